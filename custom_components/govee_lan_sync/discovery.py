"""Multicast discovery of Govee devices."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from .config import DiscoveryOptions
from .const import BROADCAST_ADDRESS, CMD_STATUS
from .models import GoveeDevice, placeholder_devices
from .protocol import decode_message, encode_scan_request, parse_device_descriptor
from .registry import DeviceRegistry
from .transport import Transport

_LOGGER = logging.getLogger(__name__)


@dataclass
class DiscoverySession:
    """State of the scan currently running."""

    started_at: float
    options: DiscoveryOptions
    in_progress: bool = True
    devices: dict[str, GoveeDevice] = field(default_factory=dict)


class DiscoveryEngine:
    """Runs time-bounded scans and feeds the device registry.

    Only one scan runs at a time. A call made while a scan is in flight
    returns the registry as it currently stands instead of starting a second
    listener on the same socket.
    """

    def __init__(
        self,
        transport: Transport | None,
        registry: DeviceRegistry,
        options: DiscoveryOptions | None = None,
        allow_placeholders: bool = False,
    ) -> None:
        """Initialize the engine.

        Args:
            transport: Datagram transport, or None when none is available.
            registry: Registry discovered devices are written to.
            options: Default scan options.
            allow_placeholders: Serve the fixed placeholder device set when
                there is no transport. Development use only.
        """
        self._transport = transport
        self._registry = registry
        self._options = options or DiscoveryOptions()
        self._allow_placeholders = allow_placeholders
        self._session: DiscoverySession | None = None

    @property
    def in_progress(self) -> bool:
        """Return True while a scan is running."""
        return self._session is not None and self._session.in_progress

    @property
    def session(self) -> DiscoverySession | None:
        """Return the running session, if any."""
        return self._session

    async def discover(
        self, options: DiscoveryOptions | None = None
    ) -> dict[str, GoveeDevice]:
        """Scan the network and return a snapshot of the registry.

        Partial results are a success: whatever answered before the timeout
        is registered and returned.

        Raises:
            OSError: If the transport cannot bind or join the multicast group.
        """
        if self.in_progress:
            _LOGGER.warning("Discovery already in progress, returning current devices")
            return self._registry.snapshot()

        options = options or self._options

        transport = self._transport
        if transport is None:
            return self._discover_without_transport()

        loop = asyncio.get_running_loop()
        session = DiscoverySession(started_at=loop.time(), options=options)
        self._session = session
        try:
            await self._scan(transport, session)
        finally:
            session.in_progress = False
            self._session = None

        _LOGGER.debug(
            "Discovery complete: %d device(s) answered in %.2fs",
            len(session.devices),
            loop.time() - session.started_at,
        )
        return self._registry.snapshot()

    def _discover_without_transport(self) -> dict[str, GoveeDevice]:
        if not self._allow_placeholders:
            _LOGGER.error("No transport available, cannot discover devices")
            return self._registry.snapshot()

        _LOGGER.warning("No transport available, loading placeholder devices")
        for device in placeholder_devices():
            self._registry.upsert(device)
        return self._registry.snapshot()

    async def _scan(self, transport: Transport, session: DiscoverySession) -> None:
        options = session.options
        loop = asyncio.get_running_loop()

        target = BROADCAST_ADDRESS if options.broadcast else options.multicast_group
        # A socket that cannot be bound or joined is a setup failure for the caller
        await transport.join_multicast(options.multicast_group, options.response_port)
        try:
            await transport.send_datagram(
                target, options.discovery_port, encode_scan_request()
            )
            _LOGGER.debug(
                "Sent discovery message to %s:%d", target, options.discovery_port
            )
        except OSError as err:
            _LOGGER.error("Failed to send discovery message: %s", err)
            return

        end_time = session.started_at + options.timeout

        while True:
            remaining = end_time - loop.time()
            if remaining <= 0:
                break

            try:
                datagram = await transport.receive_datagram(remaining)
            except OSError as err:
                _LOGGER.debug("Socket error during discovery: %s", err)
                break
            if datagram is None:
                break

            payload, sender_ip = datagram
            message = decode_message(payload)
            device = (
                parse_device_descriptor(message, sender_ip)
                if message is not None
                else None
            )
            if device is None:
                _LOGGER.debug("Discarding unexpected response from %s", sender_ip)
                continue

            session.devices[device.id] = device
            if self._registry.upsert(
                device, seen_at=loop.time(), update_state=message.cmd == CMD_STATUS
            ):
                _LOGGER.info(
                    "Discovered Govee device: %s (%s) at %s",
                    device.model,
                    device.id,
                    device.ip,
                )

            if (
                options.expected_devices is not None
                and len(session.devices) >= options.expected_devices
            ):
                _LOGGER.debug("All %d expected devices answered", options.expected_devices)
                break
