"""Wire codec for the Govee LAN control protocol.

Every datagram carries one JSON document shaped as
``{"msg": {"cmd": <str>, "data": <object>}}``. Encoding clamps every value to
the range the firmware accepts; decoding never raises.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, Union

from .const import (
    CMD_BRIGHTNESS,
    CMD_COLORWC,
    CMD_SCAN,
    CMD_STATUS,
    CMD_TURN,
    DEFAULT_COLOR_TEMP_KELVIN,
    MAX_BRIGHTNESS_GOVEE,
    MAX_COLOR_TEMP_KELVIN,
    MIN_BRIGHTNESS_GOVEE,
    MIN_COLOR_TEMP_KELVIN,
)
from .models import WHITE, DeviceCapabilities, DeviceState, GoveeDevice, RGBColor

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class Turn:
    """Switch a device on or off."""

    on: bool


@dataclass(frozen=True)
class Brightness:
    """Set brightness (0-100)."""

    value: int


@dataclass(frozen=True)
class ColorAndTemp:
    """Set an RGB color, a color temperature, or both in one message."""

    color: RGBColor | None = None
    kelvin: int | None = None

    def __post_init__(self) -> None:
        if self.color is None and self.kelvin is None:
            raise ValueError("ColorAndTemp needs a color, a kelvin value or both")


@dataclass(frozen=True)
class StatusQuery:
    """Ask a device to report its state."""


Command = Union[Turn, Brightness, ColorAndTemp, StatusQuery]


@dataclass(frozen=True)
class LanMessage:
    """A decoded datagram."""

    cmd: str
    data: dict[str, Any]


def _clamp(value: float, low: int, high: int) -> int:
    # NaN falls to the low bound, infinities to the nearest bound
    if math.isnan(value):
        return low
    if math.isinf(value):
        return high if value > 0 else low
    return int(max(low, min(high, round(value))))


def clamp_brightness(value: float) -> int:
    """Clamp a brightness value to 0-100."""
    return _clamp(value, MIN_BRIGHTNESS_GOVEE, MAX_BRIGHTNESS_GOVEE)


def clamp_channel(value: float) -> int:
    """Clamp one RGB channel to 0-255."""
    return _clamp(value, 0, 255)


def clamp_color(color: tuple[float, float, float]) -> RGBColor:
    """Clamp every channel of an RGB triple."""
    r, g, b = color
    return clamp_channel(r), clamp_channel(g), clamp_channel(b)


def clamp_kelvin(value: float) -> int:
    """Clamp a color temperature to the supported Kelvin range."""
    return _clamp(value, MIN_COLOR_TEMP_KELVIN, MAX_COLOR_TEMP_KELVIN)


def _envelope(cmd: str, data: dict[str, Any]) -> bytes:
    return json.dumps({"msg": {"cmd": cmd, "data": data}}).encode("utf-8")


def encode_scan_request() -> bytes:
    """Build the multicast discovery request."""
    return _envelope(CMD_SCAN, {"account_topic": "reserve"})


def command_payload(command: Command) -> tuple[str, dict[str, Any]]:
    """Return the clamped ``(cmd, data)`` pair for a command."""
    if isinstance(command, Turn):
        return CMD_TURN, {"value": 1 if command.on else 0}
    if isinstance(command, Brightness):
        return CMD_BRIGHTNESS, {"value": clamp_brightness(command.value)}
    if isinstance(command, ColorAndTemp):
        data: dict[str, Any] = {}
        if command.color is not None:
            r, g, b = clamp_color(command.color)
            data["color"] = {"r": r, "g": g, "b": b}
        if command.kelvin is not None:
            data["colorTemInKelvin"] = clamp_kelvin(command.kelvin)
        return CMD_COLORWC, data
    if isinstance(command, StatusQuery):
        return CMD_STATUS, {}
    raise TypeError(f"Unsupported command: {command!r}")


def encode_command(command: Command) -> bytes:
    """Encode a control command or status query."""
    return _envelope(*command_payload(command))


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unsupported JSON constant: {name}")


def decode_message(payload: bytes | str) -> LanMessage | None:
    """Decode a datagram, returning None for anything that is not a LAN message."""
    try:
        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")
        document = json.loads(payload.strip(), parse_constant=_reject_constant)
    except (UnicodeDecodeError, ValueError, RecursionError):
        return None

    if not isinstance(document, dict):
        return None
    msg = document.get("msg")
    if not isinstance(msg, dict):
        return None
    cmd = msg.get("cmd")
    data = msg.get("data", {})
    if not isinstance(cmd, str) or not isinstance(data, dict):
        return None
    return LanMessage(cmd=cmd, data=data)


def _int_field(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    if isinstance(value, float) and not math.isfinite(value):
        return default
    return int(value)


def _parse_color(value: Any) -> RGBColor:
    if not isinstance(value, dict):
        return WHITE
    return clamp_color(
        (
            _int_field(value, "r", 255),
            _int_field(value, "g", 255),
            _int_field(value, "b", 255),
        )
    )


def parse_device_state(data: dict[str, Any]) -> DeviceState:
    """Build a DeviceState from status fields, filling defaults for missing ones."""
    mode = data.get("mode")
    kelvin = _int_field(data, "colorTemInKelvin", 0)
    return DeviceState(
        on=data.get("onOff") == 1,
        brightness=clamp_brightness(_int_field(data, "brightness", 0)),
        color=_parse_color(data.get("color")),
        color_temperature=(
            clamp_kelvin(kelvin) if kelvin > 0 else DEFAULT_COLOR_TEMP_KELVIN
        ),
        mode=mode if isinstance(mode, str) and mode else "normal",
    )


def parse_device_descriptor(message: LanMessage, sender_ip: str) -> GoveeDevice | None:
    """Build a device from a scan or status response.

    Scan responses only describe the device; status responses also carry
    its state. Responses without a device id are rejected.
    """
    if message.cmd not in (CMD_SCAN, CMD_STATUS):
        return None

    data = message.data
    device_id = data.get("device")
    if not isinstance(device_id, str) or not device_id:
        return None

    # Some models (H60xx floor lamps) leave out the ip field
    ip = data.get("ip")
    if not isinstance(ip, str) or not ip:
        ip = sender_ip

    sku = data.get("sku")
    model = sku if isinstance(sku, str) and sku else "Unknown"
    name = data.get("deviceName")
    if not isinstance(name, str) or not name:
        name = model if model != "Unknown" else "Govee Device"

    modes = data.get("modes")
    capabilities = DeviceCapabilities(
        color_temperature=(
            message.cmd == CMD_SCAN or "colorTemInKelvin" in data
        ),
        modes=tuple(m for m in modes if isinstance(m, str))
        if isinstance(modes, list)
        else ("normal",),
        music_mode=data.get("musicMode") is True,
    )

    if message.cmd == CMD_STATUS:
        state = parse_device_state(data)
    else:
        state = DeviceState()

    return GoveeDevice(
        id=device_id,
        ip=ip,
        name=name,
        model=model,
        online=True,
        state=state,
        capabilities=capabilities,
    )
