"""In-memory registry of known Govee devices."""

from __future__ import annotations

import copy
import logging
from dataclasses import replace

from .models import DeviceState, GoveeDevice, RGBColor

_LOGGER = logging.getLogger(__name__)


class DeviceRegistry:
    """Owns the canonical copy of every known device.

    Readers get deep copies, so a snapshot never changes underneath them.
    Devices are never removed; unreachable ones are only marked offline.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._devices: dict[str, GoveeDevice] = {}

    def __len__(self) -> int:
        return len(self._devices)

    def __contains__(self, device_id: object) -> bool:
        return device_id in self._devices

    def get(self, device_id: str) -> GoveeDevice | None:
        """Return a copy of one device, or None if unknown."""
        device = self._devices.get(device_id)
        return copy.deepcopy(device) if device is not None else None

    def snapshot(self) -> dict[str, GoveeDevice]:
        """Return a point-in-time copy of every device keyed by id."""
        return copy.deepcopy(self._devices)

    def upsert(
        self,
        device: GoveeDevice,
        seen_at: float | None = None,
        update_state: bool = True,
    ) -> bool:
        """Add a newly sighted device or refresh a known one.

        A sighting that carries no state (a scan reply) leaves the cached state
        of a known device alone when ``update_state`` is False.

        Returns:
            True if the device was not known before.
        """
        device = copy.deepcopy(device)
        if seen_at is not None:
            device.last_seen = seen_at

        existing = self._devices.get(device.id)
        if existing is None:
            self._devices[device.id] = device
            _LOGGER.debug("Registered device %s at %s", device.id, device.ip)
            return True

        existing.ip = device.ip
        existing.name = device.name
        existing.model = device.model
        existing.lan_enabled = device.lan_enabled
        existing.online = device.online
        existing.placeholder = device.placeholder
        existing.capabilities = device.capabilities
        if update_state:
            existing.state = device.state
        if device.last_seen is not None:
            existing.last_seen = device.last_seen
        return False

    def update_state(
        self,
        device_id: str,
        *,
        on: bool | None = None,
        brightness: int | None = None,
        color: RGBColor | None = None,
        color_temperature: int | None = None,
        seen_at: float | None = None,
    ) -> bool:
        """Apply a confirmed state change to a device.

        Returns:
            False if the device is unknown.
        """
        device = self._devices.get(device_id)
        if device is None:
            return False

        changes: dict[str, object] = {}
        if on is not None:
            changes["on"] = on
        if brightness is not None:
            changes["brightness"] = brightness
        if color is not None:
            changes["color"] = color
        if color_temperature is not None:
            changes["color_temperature"] = color_temperature
        device.state = replace(device.state, **changes)
        device.online = True
        if seen_at is not None:
            device.last_seen = seen_at
        return True

    def replace_state(
        self, device_id: str, state: DeviceState, seen_at: float | None = None
    ) -> bool:
        """Replace a device's state with one it reported itself."""
        device = self._devices.get(device_id)
        if device is None:
            return False
        device.state = replace(state)
        device.online = True
        if seen_at is not None:
            device.last_seen = seen_at
        return True

    def mark_unreachable(self, device_id: str) -> None:
        """Flag a device as offline without forgetting it."""
        device = self._devices.get(device_id)
        if device is not None and device.online:
            device.online = False
            _LOGGER.debug("Marked device %s unreachable", device_id)
