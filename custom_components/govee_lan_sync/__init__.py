"""The Govee LAN Sync integration."""

from __future__ import annotations

import logging

from homeassistant.config_entries import ConfigEntry
from homeassistant.const import Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady

from .config import DiscoveryOptions, SyncOptions
from .const import DOMAIN
from .coordinator import GoveeLanSyncCoordinator
from .manager import GoveeSyncManager
from .transport import UdpTransport

_LOGGER = logging.getLogger(__name__)

PLATFORMS: list[Platform] = [Platform.LIGHT]


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Govee LAN Sync from a config entry."""
    discovery_options = DiscoveryOptions.from_dict(dict(entry.data))
    sync_options = SyncOptions.from_dict(dict(entry.options))

    transport = UdpTransport(listen_port=discovery_options.response_port)
    manager = GoveeSyncManager(
        transport,
        discovery_options=discovery_options,
        sync_options=sync_options,
    )

    _LOGGER.debug("Setting up Govee LAN Sync, scanning for devices")
    try:
        await manager.discover()
    except OSError as err:
        transport.close()
        raise ConfigEntryNotReady(f"Cannot open discovery socket: {err}") from err

    coordinator = GoveeLanSyncCoordinator(hass, entry, manager)

    # Perform initial data fetch
    await coordinator.async_config_entry_first_refresh()

    hass.data.setdefault(DOMAIN, {})
    hass.data[DOMAIN][entry.entry_id] = coordinator

    entry.async_on_unload(entry.add_update_listener(async_reload_entry))
    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)

    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    if unload_ok := await hass.config_entries.async_unload_platforms(entry, PLATFORMS):
        coordinator: GoveeLanSyncCoordinator = hass.data[DOMAIN].pop(entry.entry_id)
        await coordinator.manager.async_shutdown()

    return unload_ok


async def async_reload_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Reload the entry after its options changed."""
    await hass.config_entries.async_reload(entry.entry_id)
