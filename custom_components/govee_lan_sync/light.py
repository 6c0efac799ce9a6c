"""Light entities for Govee LAN Sync."""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.components.light import (
    ATTR_BRIGHTNESS,
    ATTR_COLOR_TEMP_KELVIN,
    ATTR_RGB_COLOR,
    ColorMode,
    LightEntity,
)
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.device_registry import DeviceInfo
from homeassistant.helpers.entity_platform import AddEntitiesCallback
from homeassistant.helpers.update_coordinator import CoordinatorEntity

from .const import DOMAIN, MAX_BRIGHTNESS_GOVEE
from .coordinator import GoveeLanSyncCoordinator
from .models import GoveeDevice

_LOGGER = logging.getLogger(__name__)


def to_ha_brightness(brightness: int) -> int:
    """Convert Govee brightness (0-100) to HA brightness (0-255)."""
    return round((brightness / MAX_BRIGHTNESS_GOVEE) * 255)


def to_govee_brightness(brightness: int) -> int:
    """Convert HA brightness (0-255) to Govee brightness (1-100)."""
    return max(1, min(MAX_BRIGHTNESS_GOVEE, round((brightness / 255) * MAX_BRIGHTNESS_GOVEE)))


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up Govee LAN Sync lights from a config entry."""
    coordinator: GoveeLanSyncCoordinator = hass.data[DOMAIN][entry.entry_id]

    async_add_entities(
        GoveeLanSyncLight(coordinator, device) for device in coordinator.data.values()
    )


class GoveeLanSyncLight(CoordinatorEntity[GoveeLanSyncCoordinator], LightEntity):
    """Representation of one Govee device."""

    _attr_has_entity_name = True
    _attr_name = None

    def __init__(self, coordinator: GoveeLanSyncCoordinator, device: GoveeDevice) -> None:
        """Initialize the light entity.

        Args:
            coordinator: The data update coordinator.
            device: The device as first discovered.
        """
        super().__init__(coordinator)
        self._device_id = device.id
        self._attr_unique_id = device.id
        self._attr_color_mode = ColorMode.RGB

        capabilities = device.capabilities
        modes = set()
        if capabilities.color:
            modes.add(ColorMode.RGB)
        if capabilities.color_temperature:
            modes.add(ColorMode.COLOR_TEMP)
        self._attr_supported_color_modes = modes or {ColorMode.BRIGHTNESS}
        if ColorMode.RGB not in self._attr_supported_color_modes:
            self._attr_color_mode = next(iter(self._attr_supported_color_modes))
        self._attr_min_color_temp_kelvin, self._attr_max_color_temp_kelvin = (
            capabilities.color_temperature_range
        )

        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, device.id)},
            name=device.name,
            manufacturer="Govee",
            model=device.model,
        )

    @property
    def _device(self) -> GoveeDevice | None:
        if self.coordinator.data is None:
            return None
        return self.coordinator.data.get(self._device_id)

    @property
    def available(self) -> bool:
        """Return if entity is available."""
        device = self._device
        if device is None:
            return False
        # Devices that never answer status queries are assumed reachable
        return device.online or not self.coordinator.supports_status_query(device.id)

    @property
    def is_on(self) -> bool | None:
        """Return true if light is on."""
        device = self._device
        return device.state.on if device else None

    @property
    def brightness(self) -> int | None:
        """Return the brightness of the light (0-255)."""
        device = self._device
        return to_ha_brightness(device.state.brightness) if device else None

    @property
    def rgb_color(self) -> tuple[int, int, int] | None:
        """Return the RGB color value."""
        device = self._device
        return device.state.color if device else None

    @property
    def color_temp_kelvin(self) -> int | None:
        """Return the color temperature in Kelvin."""
        device = self._device
        return device.state.color_temperature if device else None

    async def async_turn_on(self, **kwargs: Any) -> None:
        """Turn the light on."""
        manager = self.coordinator.manager

        if ATTR_BRIGHTNESS in kwargs:
            await manager.set_brightness(
                self._device_id, to_govee_brightness(kwargs[ATTR_BRIGHTNESS])
            )

        if ATTR_RGB_COLOR in kwargs:
            await manager.set_color(self._device_id, tuple(kwargs[ATTR_RGB_COLOR]))
            self._attr_color_mode = ColorMode.RGB
        elif ATTR_COLOR_TEMP_KELVIN in kwargs:
            await manager.set_color_temperature(
                self._device_id, kwargs[ATTR_COLOR_TEMP_KELVIN]
            )
            self._attr_color_mode = ColorMode.COLOR_TEMP

        if not self.is_on or not any(
            attr in kwargs
            for attr in (ATTR_BRIGHTNESS, ATTR_RGB_COLOR, ATTR_COLOR_TEMP_KELVIN)
        ):
            await manager.set_power(self._device_id, True)

        self.coordinator.async_publish_local_state()

    async def async_turn_off(self, **kwargs: Any) -> None:
        """Turn the light off."""
        await self.coordinator.manager.set_power(self._device_id, False)
        self.coordinator.async_publish_local_state()

    @callback
    def _handle_coordinator_update(self) -> None:
        """Handle updated data from the coordinator."""
        self.async_write_ha_state()
