"""DataUpdateCoordinator for Govee LAN Sync."""

from __future__ import annotations

import logging
from datetime import timedelta

from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant, callback
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator

from .const import DOMAIN, POLL_INTERVAL
from .manager import GoveeSyncManager
from .models import GoveeDevice

_LOGGER = logging.getLogger(__name__)


class GoveeLanSyncCoordinator(DataUpdateCoordinator[dict[str, GoveeDevice]]):
    """Coordinator publishing the device registry to entities.

    Some Govee devices (like H607C) don't respond to status queries, so
    those are only tracked through the state the dispatcher confirms.
    Polling pauses while sync or a scene is driving the lights.
    """

    def __init__(
        self, hass: HomeAssistant, entry: ConfigEntry, manager: GoveeSyncManager
    ) -> None:
        """Initialize the coordinator.

        Args:
            hass: Home Assistant instance.
            entry: The config entry.
            manager: Manager owning the devices.
        """
        super().__init__(
            hass,
            _LOGGER,
            config_entry=entry,
            name=DOMAIN,
            update_interval=timedelta(seconds=POLL_INTERVAL),
        )
        self.manager = manager
        self._no_status_query: set[str] = set()

    def supports_status_query(self, device_id: str) -> bool:
        """Return False once a device ignored a status query."""
        return device_id not in self._no_status_query

    async def _async_update_data(self) -> dict[str, GoveeDevice]:
        """Refresh device state where the device answers status queries."""
        if self.manager.sync.running or self.manager.scenes.playing:
            return self.manager.registry.snapshot()

        for device in self.manager.get_devices():
            if device.placeholder or device.id in self._no_status_query:
                continue
            if not await self.manager.refresh_status(device.id):
                # Device didn't respond - might not support status queries
                _LOGGER.debug(
                    "Device %s did not respond to status query, using local state tracking",
                    device.ip,
                )
                self._no_status_query.add(device.id)

        return self.manager.registry.snapshot()

    @callback
    def async_publish_local_state(self) -> None:
        """Push the registry to entities after a confirmed command."""
        self.async_set_updated_data(self.manager.registry.snapshot())
