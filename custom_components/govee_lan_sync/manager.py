"""Management surface for Govee LAN Sync."""

from __future__ import annotations

import logging

from .config import DiscoveryOptions, SyncOptions
from .discovery import DiscoveryEngine
from .dispatcher import BatchItem, CommandDispatcher, zone_commands
from .extractor import PixelSource
from .models import GoveeDevice, RGBColor
from .protocol import Brightness, ColorAndTemp, Command, StatusQuery, Turn
from .registry import DeviceRegistry
from .scene import BUILTIN_SCENES, Scene, ScenePlayer
from .sync import FeatureProvider, SyncEngine, SyncStats
from .transport import Transport

_LOGGER = logging.getLogger(__name__)


class GoveeSyncManager:
    """Discovers, controls and syncs Govee devices on the LAN.

    The transport is chosen once by whoever builds the manager; pass None to
    run without a network, optionally with the placeholder device set.
    """

    def __init__(
        self,
        transport: Transport | None,
        *,
        discovery_options: DiscoveryOptions | None = None,
        sync_options: SyncOptions | None = None,
        allow_placeholders: bool = False,
        dispatcher: CommandDispatcher | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            transport: Datagram transport shared by discovery and control.
            discovery_options: Defaults for discover().
            sync_options: Defaults for start_sync().
            allow_placeholders: Serve placeholder devices without a transport.
            dispatcher: Dispatcher to use instead of a default one.
        """
        self._transport = transport
        self.registry = DeviceRegistry()
        self.discovery = DiscoveryEngine(
            transport,
            self.registry,
            discovery_options,
            allow_placeholders=allow_placeholders,
        )
        self.dispatcher = dispatcher or CommandDispatcher(transport, self.registry)
        self.sync_options = sync_options or SyncOptions()
        self.sync = SyncEngine(self.dispatcher, self.get_active_devices)
        self.scenes = ScenePlayer(self._scene_frame)
        self._active: set[str] = set()

    async def discover(
        self, options: DiscoveryOptions | None = None
    ) -> dict[str, GoveeDevice]:
        """Scan the network; reachable LAN devices become active."""
        devices = await self.discovery.discover(options)
        for device in devices.values():
            if device.online and device.lan_enabled:
                self._active.add(device.id)
        _LOGGER.debug("Found %d devices, %d active", len(devices), len(self._active))
        return devices

    def get_devices(self) -> list[GoveeDevice]:
        """Return a snapshot of every known device."""
        return list(self.registry.snapshot().values())

    def get_device(self, device_id: str) -> GoveeDevice | None:
        """Return a snapshot of one device."""
        return self.registry.get(device_id)

    def get_active_devices(self) -> list[GoveeDevice]:
        """Return snapshots of the devices sync and group commands drive."""
        devices = self.registry.snapshot()
        return [
            devices[device_id] for device_id in sorted(self._active) if device_id in devices
        ]

    def set_device_active(self, device_id: str, active: bool) -> None:
        """Include or exclude a device from group commands and sync."""
        if active:
            self._active.add(device_id)
        else:
            self._active.discard(device_id)
        _LOGGER.debug("Device %s active: %s", device_id, active)

    async def _send(self, device_id: str, command: Command) -> bool:
        device = self.registry.get(device_id)
        if device is None:
            _LOGGER.error("Device %s not found", device_id)
            return False
        return await self.dispatcher.send(device.ip, device.id, command)

    async def set_power(self, device_id: str, on: bool) -> bool:
        """Turn a device on or off."""
        return await self._send(device_id, Turn(on))

    async def set_brightness(self, device_id: str, brightness: int) -> bool:
        """Set a device's brightness (0-100)."""
        return await self._send(device_id, Brightness(brightness))

    async def set_color(self, device_id: str, color: RGBColor) -> bool:
        """Set a device's RGB color."""
        return await self._send(device_id, ColorAndTemp(color=color))

    async def set_color_temperature(self, device_id: str, kelvin: int) -> bool:
        """Set a device's color temperature in Kelvin."""
        return await self._send(device_id, ColorAndTemp(kelvin=kelvin))

    async def refresh_status(self, device_id: str) -> bool:
        """Query a device and store the state it reports."""
        return await self._send(device_id, StatusQuery())

    async def set_all_colors(self, color: RGBColor) -> list[bool]:
        """Set one color on every active device."""
        return await self.set_zone_colors([color])

    async def set_zone_colors(self, colors: list[RGBColor]) -> list[bool]:
        """Spread colors over the active devices, round-robin."""
        return await self.dispatcher.send_batch(
            zone_commands(self.get_active_devices(), colors)
        )

    async def set_brightness_all(self, brightness: int) -> list[bool]:
        """Set brightness on every active device."""
        return await self.dispatcher.send_batch(
            BatchItem(device.ip, device.id, Brightness(brightness))
            for device in self.get_active_devices()
        )

    async def set_power_all(self, on: bool) -> list[bool]:
        """Turn every active device on or off."""
        return await self.dispatcher.send_batch(
            BatchItem(device.ip, device.id, Turn(on))
            for device in self.get_active_devices()
        )

    def start_sync(
        self,
        source: PixelSource | None,
        options: SyncOptions | None = None,
        features: FeatureProvider | None = None,
    ) -> bool:
        """Start driving the active devices from ``source``.

        Returns:
            False if a sync session is already running.

        Raises:
            SyncConfigurationError: If no source is given or an option is out
                of range.
        """
        if self.scenes.playing:
            _LOGGER.debug("Stopping scene playback for sync")
            self.scenes.stop()
        if features is not None:
            self.sync.set_feature_provider(features)
        return self.sync.start(source, options or self.sync_options)

    def set_feature_provider(self, features: FeatureProvider | None) -> None:
        """Set where sync pulls audio features from."""
        self.sync.set_feature_provider(features)

    def stop_sync(self) -> None:
        """Stop the sync session, if any."""
        self.sync.stop()

    def get_sync_stats(self) -> SyncStats:
        """Return sync counters."""
        return self.sync.stats()

    def play_scene(self, scene: Scene | str) -> bool:
        """Play a scene object or a built-in scene by name.

        Returns:
            False if the scene is unknown or sync is running.
        """
        if isinstance(scene, str):
            if scene not in BUILTIN_SCENES:
                _LOGGER.warning("Unknown scene: %s", scene)
                return False
            scene = BUILTIN_SCENES[scene]
        if self.sync.running:
            _LOGGER.warning("Cannot play scene %s while sync is running", scene.name)
            return False
        self.scenes.play(scene)
        return True

    def stop_scene(self) -> None:
        """Stop scene playback, if any."""
        self.scenes.stop()

    async def _scene_frame(self, color: RGBColor, brightness: int | None) -> None:
        if brightness is not None:
            await self.set_brightness_all(brightness)
        await self.set_all_colors(color)

    async def async_shutdown(self) -> None:
        """Stop sync and scenes, then release the transport."""
        await self.sync.async_stop()
        await self.scenes.async_stop()
        if self._transport is not None:
            self._transport.close()
        _LOGGER.debug("Manager shut down")

