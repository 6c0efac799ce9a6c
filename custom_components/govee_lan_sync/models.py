"""Device data model for Govee LAN Sync."""

from __future__ import annotations

from dataclasses import dataclass, field

from .const import (
    DEFAULT_COLOR_TEMP_KELVIN,
    MAX_COLOR_TEMP_KELVIN,
    MIN_COLOR_TEMP_KELVIN,
)

RGBColor = tuple[int, int, int]

WHITE: RGBColor = (255, 255, 255)
BLACK: RGBColor = (0, 0, 0)


@dataclass
class DeviceState:
    """Represents the last observed state of a Govee device."""

    on: bool = False
    brightness: int = 0
    color: RGBColor = WHITE
    color_temperature: int = DEFAULT_COLOR_TEMP_KELVIN
    mode: str = "normal"


@dataclass
class DeviceCapabilities:
    """Represents what a device advertises it can do."""

    power: bool = True
    brightness: bool = True
    color: bool = True
    color_temperature: bool = True
    color_temperature_range: tuple[int, int] = (
        MIN_COLOR_TEMP_KELVIN,
        MAX_COLOR_TEMP_KELVIN,
    )
    modes: tuple[str, ...] = ("normal",)
    music_mode: bool = False


@dataclass
class GoveeDevice:
    """Represents a device known on the LAN.

    The id is the MAC-formatted identifier reported by the device and never
    changes once the device is registered.
    """

    id: str
    ip: str
    name: str = "Govee Device"
    model: str = "Unknown"
    lan_enabled: bool = True
    online: bool = True
    placeholder: bool = False
    last_seen: float | None = None
    state: DeviceState = field(default_factory=DeviceState)
    capabilities: DeviceCapabilities = field(default_factory=DeviceCapabilities)


def placeholder_devices() -> list[GoveeDevice]:
    """Return the fixed device set used when no transport is available.

    Every device is flagged with ``placeholder=True`` so it is never mistaken
    for a real discovery result.
    """
    return [
        GoveeDevice(
            id="AA:BB:CC:DD:EE:01",
            ip="192.168.1.100",
            name="Living Room Strip",
            model="H6159",
            placeholder=True,
            state=DeviceState(
                on=True,
                brightness=75,
                color=(255, 128, 0),
                color_temperature=4000,
            ),
            capabilities=DeviceCapabilities(
                modes=("normal", "music", "scene"), music_mode=True
            ),
        ),
        GoveeDevice(
            id="AA:BB:CC:DD:EE:02",
            ip="192.168.1.101",
            name="TV Backlight",
            model="H6199",
            placeholder=True,
            state=DeviceState(on=False, brightness=50, color=(0, 0, 255)),
            capabilities=DeviceCapabilities(
                modes=("normal", "music", "scene", "diy"), music_mode=True
            ),
        ),
    ]
