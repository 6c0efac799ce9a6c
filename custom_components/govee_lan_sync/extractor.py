"""Color extraction from a pixel source."""

from __future__ import annotations

import colorsys
import logging
import math
from dataclasses import dataclass
from typing import Protocol

import numpy as np

from .const import (
    DEFAULT_EXTRACTION_MODE,
    DEFAULT_SMOOTHING,
    DEFAULT_ZONE_COUNT,
    EXTRACTION_AVERAGE,
    EXTRACTION_DOMINANT,
    EXTRACTION_MODES,
    EXTRACTION_ZONES,
)
from .models import BLACK, RGBColor
from .protocol import clamp_color

_LOGGER = logging.getLogger(__name__)

# Pixel buffers are reduced to at most this grid before extraction
SAMPLE_WIDTH = 64
SAMPLE_HEIGHT = 48

QUANTIZE_STEP = 32
ALPHA_THRESHOLD = 128


@dataclass(frozen=True)
class Region:
    """Rectangle of the source to sample, in source pixels."""

    x: int
    y: int
    width: int
    height: int


class PixelSource(Protocol):
    """Read-only snapshot access to a rendering surface."""

    def sample_pixels(self, region: Region | None = None) -> np.ndarray:
        """Return an (height, width, 3 or 4) uint8 array of the region."""


@dataclass(frozen=True)
class FeatureVector:
    """Audio features supplied by an external analyzer."""

    energy: float = 0.0
    pitch: float = 0.0
    is_beat: bool = False


class ColorExtractor:
    """Reduces pixel buffers to representative colors.

    Raw colors are low-pass filtered against the previous output with
    ``out = prev + (raw - prev) * (1 - smoothing)``. The filter state is kept
    in floating point so a constant input converges on that exact color.
    """

    def __init__(
        self,
        extraction_mode: str = DEFAULT_EXTRACTION_MODE,
        zone_count: int = DEFAULT_ZONE_COUNT,
        smoothing: float = DEFAULT_SMOOTHING,
        brightness_boost: float = 1.0,
        saturation_boost: float = 1.0,
        min_brightness: float = 0.0,
        max_brightness: float = 100.0,
        region: Region | None = None,
    ) -> None:
        if extraction_mode not in EXTRACTION_MODES:
            raise ValueError(f"Unknown extraction mode: {extraction_mode}")
        self.extraction_mode = extraction_mode
        self.zone_count = max(1, zone_count)
        self.smoothing = min(1.0, max(0.0, smoothing))
        self.brightness_boost = brightness_boost
        self.saturation_boost = saturation_boost
        self.min_brightness = min_brightness
        self.max_brightness = max_brightness
        self.region = region

        self.frame_count = 0
        self._previous: list[tuple[float, float, float]] | None = None
        self._last_output: list[RGBColor] = []
        self._was_beat = False

    @property
    def output_count(self) -> int:
        """Number of colors each extraction yields."""
        return self.zone_count if self.extraction_mode == EXTRACTION_ZONES else 1

    def extract(self, source: PixelSource) -> list[RGBColor]:
        """Sample the source once and return smoothed, enhanced colors.

        A failed sample logs the error and repeats the previous output.
        """
        try:
            pixels = _downsample(np.asarray(source.sample_pixels(self.region)))
            raw = self.reduce(pixels)
        except Exception:
            _LOGGER.exception("Color extraction failed")
            return list(self._last_output) or [BLACK] * self.output_count

        self.frame_count += 1
        smoothed = self.smooth(raw)
        self._last_output = [self.enhance(color) for color in smoothed]
        return list(self._last_output)

    def reduce(self, pixels: np.ndarray) -> list[RGBColor]:
        """Apply the extraction mode to a pixel buffer."""
        if self.extraction_mode == EXTRACTION_DOMINANT:
            return [dominant_color(pixels)]
        if self.extraction_mode == EXTRACTION_AVERAGE:
            return [average_color(pixels)]
        return zone_colors(pixels, self.zone_count)

    def smooth(self, raw: list[RGBColor]) -> list[RGBColor]:
        """Blend raw colors with the previous output."""
        previous = self._previous
        if previous is None or len(previous) != len(raw):
            # First frame, or the zone layout changed
            previous = [(float(r), float(g), float(b)) for r, g, b in raw]

        weight = 1.0 - self.smoothing
        current = [
            (
                prev[0] + (color[0] - prev[0]) * weight,
                prev[1] + (color[1] - prev[1]) * weight,
                prev[2] + (color[2] - prev[2]) * weight,
            )
            for prev, color in zip(previous, raw)
        ]
        self._previous = current
        return [clamp_color(color) for color in current]

    def enhance(self, color: RGBColor) -> RGBColor:
        """Boost saturation and brightness in HSV space."""
        if (
            self.brightness_boost == 1.0
            and self.saturation_boost == 1.0
            and self.min_brightness <= 0
            and self.max_brightness >= 100
        ):
            return color

        hue, sat, val = rgb_to_hsv(color)
        sat = min(100.0, sat * self.saturation_boost)
        val = max(self.min_brightness, min(self.max_brightness, val * self.brightness_boost))
        return hsv_to_rgb(hue, sat, val)

    def apply_features(
        self, colors: list[RGBColor], features: FeatureVector
    ) -> list[RGBColor]:
        """Modulate colors with audio energy, pitch and beat onsets.

        Energy scales brightness, pitch shifts hue by up to 30 degrees and
        the rising edge of a beat spikes saturation and brightness.
        """
        beat_edge = features.is_beat and not self._was_beat
        self._was_beat = features.is_beat

        energy = min(1.0, max(0.0, features.energy))
        pitch = min(1.0, max(0.0, features.pitch))

        result = []
        for color in colors:
            hue, sat, val = rgb_to_hsv(color)
            val = min(100.0, val * (0.5 + energy * 0.5))
            hue = (hue + pitch * 30) % 360
            if beat_edge:
                sat = min(100.0, sat * 1.5)
                val = min(100.0, val * 1.3)
            result.append(hsv_to_rgb(hue, sat, val))
        return result

    def stats(self) -> dict[str, object]:
        """Return extraction counters."""
        return {
            "frame_count": self.frame_count,
            "mode": self.extraction_mode,
            "zones": self.output_count,
        }

    def reset(self) -> None:
        """Forget the filter state and counters."""
        self._previous = None
        self._last_output = []
        self._was_beat = False
        self.frame_count = 0


def rgb_to_hsv(color: RGBColor) -> tuple[float, float, float]:
    """Convert RGB (0-255) to HSV (hue 0-360, sat 0-100, val 0-100)."""
    r, g, b = color
    h, s, v = colorsys.rgb_to_hsv(r / 255.0, g / 255.0, b / 255.0)
    return h * 360, s * 100, v * 100


def hsv_to_rgb(hue: float, sat: float, val: float) -> RGBColor:
    """Convert HSV (hue 0-360, sat 0-100, val 0-100) to RGB (0-255)."""
    r, g, b = colorsys.hsv_to_rgb(hue / 360.0, sat / 100.0, val / 100.0)
    return clamp_color((r * 255, g * 255, b * 255))


def _downsample(pixels: np.ndarray) -> np.ndarray:
    if pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise ValueError(f"Expected an (H, W, 3|4) buffer, got {pixels.shape}")
    step_y = max(1, math.ceil(pixels.shape[0] / SAMPLE_HEIGHT))
    step_x = max(1, math.ceil(pixels.shape[1] / SAMPLE_WIDTH))
    return pixels[::step_y, ::step_x]


def _opaque_rgb(pixels: np.ndarray) -> np.ndarray:
    """Return an (N, 3) array of the pixels that are not transparent."""
    flat = pixels.reshape(-1, pixels.shape[-1])
    if flat.shape[1] == 4:
        flat = flat[flat[:, 3] > ALPHA_THRESHOLD]
    return flat[:, :3].astype(np.int64)


def average_color(pixels: np.ndarray) -> RGBColor:
    """Mean color of the opaque pixels, black if there are none."""
    rgb = _opaque_rgb(pixels)
    if not len(rgb):
        return BLACK
    return clamp_color(tuple(np.round(rgb.mean(axis=0))))


def dominant_color(pixels: np.ndarray) -> RGBColor:
    """Most frequent color after quantizing each channel to steps of 32."""
    rgb = _opaque_rgb(pixels)
    if not len(rgb):
        return BLACK
    quantized = (rgb // QUANTIZE_STEP) * QUANTIZE_STEP
    colors, counts = np.unique(quantized, axis=0, return_counts=True)
    return clamp_color(tuple(colors[int(np.argmax(counts))]))


def zone_colors(pixels: np.ndarray, zone_count: int) -> list[RGBColor]:
    """Average color of each of ``zone_count`` side by side vertical strips."""
    strips = np.array_split(pixels, zone_count, axis=1)
    return [average_color(strip) if strip.size else BLACK for strip in strips]
