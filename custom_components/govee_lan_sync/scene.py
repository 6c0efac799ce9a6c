"""Keyframe scenes and their player."""

from __future__ import annotations

import asyncio
import logging
from bisect import bisect_right
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from .const import SCENE_FRAME_RATE
from .models import RGBColor
from .protocol import clamp_brightness, clamp_color

_LOGGER = logging.getLogger(__name__)

TRANSITION_LINEAR = "linear"
TRANSITION_EASE = "ease"
TRANSITION_STEP = "step"
TRANSITIONS = (TRANSITION_LINEAR, TRANSITION_EASE, TRANSITION_STEP)


@dataclass(frozen=True)
class Keyframe:
    """Color and brightness at a point in time.

    ``transition`` describes how the scene moves from the previous keyframe
    into this one.
    """

    time: float
    color: RGBColor
    brightness: int = 100
    transition: str = TRANSITION_LINEAR

    def __post_init__(self) -> None:
        if self.transition not in TRANSITIONS:
            raise ValueError(f"Unknown transition: {self.transition}")


@dataclass(frozen=True)
class Scene:
    """An ordered list of keyframes played over ``duration`` seconds."""

    id: str
    name: str
    keyframes: tuple[Keyframe, ...]
    duration: float
    loop: bool = False
    _times: tuple[float, ...] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if not self.keyframes:
            raise ValueError("A scene needs at least one keyframe")
        if self.duration <= 0:
            raise ValueError("Scene duration must be positive")
        ordered = tuple(sorted(self.keyframes, key=lambda frame: frame.time))
        object.__setattr__(self, "keyframes", ordered)
        object.__setattr__(self, "_times", tuple(frame.time for frame in ordered))

    def finished(self, elapsed: float) -> bool:
        """Return True once a non-looping scene has played out."""
        return not self.loop and elapsed >= self.duration

    def sample(self, elapsed: float) -> tuple[RGBColor, int]:
        """Return the interpolated color and brightness at ``elapsed`` seconds."""
        if self.loop:
            elapsed %= self.duration
        else:
            elapsed = min(elapsed, self.duration)

        index = bisect_right(self._times, elapsed)
        if index == 0:
            first = self.keyframes[0]
            return first.color, first.brightness
        if index == len(self.keyframes):
            if not self.loop:
                last = self.keyframes[-1]
                return last.color, last.brightness
            # Looping scenes wrap from the last keyframe back to the first
            start = self.keyframes[-1]
            end = self.keyframes[0]
            span = self.duration - start.time + end.time
        else:
            start = self.keyframes[index - 1]
            end = self.keyframes[index]
            span = end.time - start.time

        progress = (elapsed - start.time) / span if span > 0 else 1.0
        progress = _ease(end.transition, min(1.0, max(0.0, progress)))
        color = clamp_color(
            tuple(a + (b - a) * progress for a, b in zip(start.color, end.color))
        )
        brightness = clamp_brightness(
            start.brightness + (end.brightness - start.brightness) * progress
        )
        return color, brightness


def _ease(transition: str, progress: float) -> float:
    if transition == TRANSITION_STEP:
        return 1.0 if progress >= 1.0 else 0.0
    if transition == TRANSITION_EASE:
        return progress * progress * (3 - 2 * progress)
    return progress


def _hold(colors: list[RGBColor], every: float, transition: str) -> tuple[Keyframe, ...]:
    return tuple(
        Keyframe(time=index * every, color=color, transition=transition)
        for index, color in enumerate(colors)
    )


BUILTIN_SCENES: dict[str, Scene] = {
    "rainbow": Scene(
        id="rainbow",
        name="Rainbow",
        keyframes=_hold(
            [
                (255, 0, 0),
                (255, 127, 0),
                (255, 255, 0),
                (0, 255, 0),
                (0, 0, 255),
                (75, 0, 130),
                (148, 0, 211),
            ],
            2.0,
            TRANSITION_LINEAR,
        ),
        duration=14.0,
        loop=True,
    ),
    "party": Scene(
        id="party",
        name="Party",
        keyframes=_hold(
            [
                (255, 0, 80),
                (0, 200, 255),
                (255, 220, 0),
                (140, 0, 255),
                (0, 255, 90),
            ]
            * 4,
            0.5,
            TRANSITION_STEP,
        ),
        duration=10.0,
    ),
    "chill": Scene(
        id="chill",
        name="Chill",
        keyframes=(
            Keyframe(0.0, (0, 100, 200), 40, TRANSITION_EASE),
            Keyframe(6.0, (0, 150, 150), 40, TRANSITION_EASE),
        ),
        duration=12.0,
        loop=True,
    ),
    "sunset": Scene(
        id="sunset",
        name="Sunset",
        keyframes=(
            Keyframe(0.0, (255, 94, 77), 80),
            Keyframe(5.0, (255, 154, 0), 70),
            Keyframe(10.0, (255, 206, 84), 60),
        ),
        duration=15.0,
        loop=True,
    ),
}

FrameSink = Callable[[RGBColor, int | None], Awaitable[object]]


class ScenePlayer:
    """Plays one scene at a time at a fixed frame rate.

    Each frame hands the interpolated color to ``sink``; brightness is only
    passed along when it changed since the last frame.
    """

    def __init__(self, sink: FrameSink, frame_rate: float = SCENE_FRAME_RATE) -> None:
        self._sink = sink
        self._frame_rate = frame_rate
        self._task: asyncio.Task | None = None
        self.scene: Scene | None = None

    @property
    def playing(self) -> bool:
        """Return True while a scene is playing."""
        return self._task is not None and not self._task.done()

    def play(self, scene: Scene) -> None:
        """Start ``scene``, replacing any scene already playing."""
        self.stop()
        self.scene = scene
        self._task = asyncio.get_running_loop().create_task(self._run(scene))
        _LOGGER.info("Playing scene %s", scene.name)

    def stop(self) -> None:
        """Stop playback. Safe to call when nothing is playing."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self.scene = None

    async def async_stop(self) -> None:
        """Stop playback and wait for the frame loop to exit."""
        task = self._task
        self.stop()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _run(self, scene: Scene) -> None:
        loop = asyncio.get_running_loop()
        started = loop.time()
        period = 1.0 / self._frame_rate
        last_brightness: int | None = None

        while True:
            elapsed = loop.time() - started
            color, brightness = scene.sample(elapsed)
            await self._sink(color, brightness if brightness != last_brightness else None)
            last_brightness = brightness

            if scene.finished(elapsed):
                _LOGGER.debug("Scene %s finished", scene.name)
                return
            await asyncio.sleep(period)
