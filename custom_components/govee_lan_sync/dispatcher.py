"""Command dispatch with retries and paced batches."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .const import (
    CMD_STATUS,
    MAX_RETRIES,
    PACING_DELAY,
    PORT_CONTROL,
    RETRY_DELAY,
    TIMEOUT_STATUS,
)
from .models import DeviceState, GoveeDevice, RGBColor
from .protocol import (
    Brightness,
    ColorAndTemp,
    Command,
    StatusQuery,
    Turn,
    clamp_brightness,
    clamp_color,
    clamp_kelvin,
    decode_message,
    encode_command,
    parse_device_state,
)
from .registry import DeviceRegistry
from .transport import Transport

_LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class BatchItem:
    """One entry of a batch send."""

    address: str
    device_id: str
    command: Command


def zone_commands(
    devices: Sequence[GoveeDevice], colors: Sequence[RGBColor]
) -> list[BatchItem]:
    """Map zone colors onto devices, wrapping round-robin when counts differ."""
    if not colors:
        return []
    return [
        BatchItem(device.ip, device.id, ColorAndTemp(color=colors[index % len(colors)]))
        for index, device in enumerate(devices)
    ]


class CommandDispatcher:
    """Sends commands to devices through the transport.

    A failed command is retried up to ``max_retries`` attempts and reported as
    False, never raised, so batches continue past individual failures.
    Commands to the same device are serialized; different devices and
    different callers are not.
    """

    def __init__(
        self,
        transport: Transport | None,
        registry: DeviceRegistry,
        *,
        max_retries: int = MAX_RETRIES,
        retry_delay: float = RETRY_DELAY,
        pacing_delay: float = PACING_DELAY,
        status_timeout: float = TIMEOUT_STATUS,
        control_port: int = PORT_CONTROL,
        strict_capabilities: bool = False,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            transport: Datagram transport, or None when none is available.
            registry: Registry updated when a command succeeds.
            max_retries: Attempts per command, including the first.
            retry_delay: Seconds between two attempts.
            pacing_delay: Seconds between two sends of a batch.
            status_timeout: Seconds to wait for a status reply.
            control_port: Device port commands are sent to.
            strict_capabilities: Refuse commands a device does not advertise.
        """
        self._transport = transport
        self._registry = registry
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.pacing_delay = pacing_delay
        self.status_timeout = status_timeout
        self.control_port = control_port
        self.strict_capabilities = strict_capabilities
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, device_id: str) -> asyncio.Lock:
        lock = self._locks.get(device_id)
        if lock is None:
            lock = self._locks[device_id] = asyncio.Lock()
        return lock

    async def send(self, address: str, device_id: str, command: Command) -> bool:
        """Send one command, retrying on failure.

        Returns:
            True once an attempt succeeds, False after all attempts failed.
        """
        transport = self._transport
        if transport is None:
            _LOGGER.debug("No transport, dropping %s for %s", command, device_id)
            return False

        if self.strict_capabilities and not self._is_supported(device_id, command):
            _LOGGER.warning("Device %s does not support %s", device_id, command)
            return False

        async with self._lock_for(device_id):
            for attempt in range(self.max_retries):
                if attempt:
                    await asyncio.sleep(self.retry_delay)

                if await self._attempt(transport, address, device_id, command):
                    return True

                _LOGGER.debug(
                    "Attempt %d/%d failed for %s at %s",
                    attempt + 1,
                    self.max_retries,
                    device_id,
                    address,
                )

        _LOGGER.warning(
            "Giving up on %s for %s after %d attempts",
            type(command).__name__,
            device_id,
            self.max_retries,
        )
        self._registry.mark_unreachable(device_id)
        return False

    async def send_batch(self, items: Iterable[BatchItem]) -> list[bool]:
        """Send commands one after another with pacing between them.

        Returns:
            One result per item, in input order.
        """
        results: list[bool] = []
        for index, item in enumerate(items):
            if index:
                await asyncio.sleep(self.pacing_delay)
            try:
                results.append(await self.send(item.address, item.device_id, item.command))
            except Exception:
                _LOGGER.exception("Batch command failed for %s", item.device_id)
                results.append(False)
        return results

    async def _attempt(
        self, transport: Transport, address: str, device_id: str, command: Command
    ) -> bool:
        loop = asyncio.get_running_loop()

        try:
            await transport.send_datagram(address, self.control_port, encode_command(command))
        except OSError as err:
            _LOGGER.error("Socket error communicating with %s: %s", address, err)
            return False

        if isinstance(command, StatusQuery):
            state = await self._await_status(transport, address)
            if state is None:
                return False
            self._registry.replace_state(device_id, state, seen_at=loop.time())
            return True

        self._apply_optimistic(device_id, command, loop.time())
        return True

    async def _await_status(
        self, transport: Transport, address: str
    ) -> DeviceState | None:
        loop = asyncio.get_running_loop()
        end_time = loop.time() + self.status_timeout

        while (remaining := end_time - loop.time()) > 0:
            try:
                datagram = await transport.receive_datagram(remaining)
            except OSError as err:
                _LOGGER.error("Socket error querying status from %s: %s", address, err)
                return None
            if datagram is None:
                _LOGGER.debug("Timeout waiting for status response from %s", address)
                return None

            payload, sender_ip = datagram
            # Only accept responses from our target device
            if sender_ip != address:
                _LOGGER.debug("Ignoring response from %s (expected %s)", sender_ip, address)
                continue
            message = decode_message(payload)
            if message is None or message.cmd != CMD_STATUS:
                _LOGGER.debug("Discarding unexpected response from %s", sender_ip)
                continue
            return parse_device_state(message.data)
        return None

    def _apply_optimistic(self, device_id: str, command: Command, seen_at: float) -> None:
        # LAN devices do not reliably push state changes, so trust the send
        if isinstance(command, Turn):
            self._registry.update_state(device_id, on=command.on, seen_at=seen_at)
        elif isinstance(command, Brightness):
            self._registry.update_state(
                device_id, brightness=clamp_brightness(command.value), seen_at=seen_at
            )
        elif isinstance(command, ColorAndTemp):
            self._registry.update_state(
                device_id,
                color=clamp_color(command.color) if command.color is not None else None,
                color_temperature=(
                    clamp_kelvin(command.kelvin) if command.kelvin is not None else None
                ),
                seen_at=seen_at,
            )

    def _is_supported(self, device_id: str, command: Command) -> bool:
        device = self._registry.get(device_id)
        if device is None:
            return True
        capabilities = device.capabilities
        if isinstance(command, Turn):
            return capabilities.power
        if isinstance(command, Brightness):
            return capabilities.brightness
        if isinstance(command, ColorAndTemp):
            return (command.color is None or capabilities.color) and (
                command.kelvin is None or capabilities.color_temperature
            )
        return True
