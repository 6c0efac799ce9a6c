"""UDP transport for Govee LAN Sync.

The rest of the package only talks to the :class:`Transport` interface, so a
host can hand in any datagram facility. :class:`UdpTransport` is the socket
backed implementation used inside Home Assistant.
"""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import Protocol

from .const import PORT_LISTEN

_LOGGER = logging.getLogger(__name__)

Datagram = tuple[bytes, str]


class Transport(Protocol):
    """Datagram facility the discovery engine and dispatcher send through."""

    async def send_datagram(self, address: str, port: int, data: bytes) -> None:
        """Send one datagram. Raises OSError on failure."""

    async def receive_datagram(self, timeout: float) -> Datagram | None:
        """Return ``(data, sender_ip)`` or None when the timeout elapses."""

    async def join_multicast(self, group: str, port: int) -> None:
        """Listen for datagrams sent to ``group`` on ``port``."""

    def close(self) -> None:
        """Release the underlying resources."""


class UdpTransport:
    """Transport on a single non-blocking UDP socket bound to the listen port.

    Govee devices answer scans and status queries on port 4002 rather than on
    the sending socket, so the socket is bound to that port and every send
    goes out of it.
    """

    def __init__(self, listen_port: int = PORT_LISTEN, bind_address: str = "") -> None:
        """Initialize the transport.

        Args:
            listen_port: Local port responses arrive on.
            bind_address: Local interface address, empty for all interfaces.
        """
        self._listen_port = listen_port
        self._bind_address = bind_address
        self._sock: socket.socket | None = None
        self._groups: set[str] = set()

    def _ensure_socket(self, port: int | None = None) -> socket.socket:
        if self._sock is not None:
            return self._sock

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_BROADCAST, 1)
        sock.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, 2)
        sock.setblocking(False)
        try:
            sock.bind((self._bind_address, port or self._listen_port))
        except OSError:
            sock.close()
            raise
        self._sock = sock
        _LOGGER.debug("Bound UDP socket to port %d", port or self._listen_port)
        return sock

    async def send_datagram(self, address: str, port: int, data: bytes) -> None:
        """Send one datagram to ``address:port``."""
        loop = asyncio.get_running_loop()
        sock = self._ensure_socket()
        _LOGGER.debug("Sending to %s:%d: %s", address, port, data)
        await loop.sock_sendto(sock, data, (address, port))

    async def receive_datagram(self, timeout: float) -> Datagram | None:
        """Wait up to ``timeout`` seconds for the next datagram."""
        loop = asyncio.get_running_loop()
        sock = self._ensure_socket()
        try:
            data, addr = await asyncio.wait_for(
                loop.sock_recvfrom(sock, 4096), timeout=timeout
            )
        except asyncio.TimeoutError:
            return None
        _LOGGER.debug("Received from %s: %s", addr[0], data)
        return data, addr[0]

    async def join_multicast(self, group: str, port: int) -> None:
        """Join ``group`` on the socket bound to ``port``."""
        if group in self._groups:
            return
        sock = self._ensure_socket(port)
        interface = self._bind_address or "0.0.0.0"
        sock.setsockopt(
            socket.IPPROTO_IP,
            socket.IP_ADD_MEMBERSHIP,
            socket.inet_aton(group) + socket.inet_aton(interface),
        )
        self._groups.add(group)
        _LOGGER.debug("Joined multicast group %s on port %d", group, port)

    def close(self) -> None:
        """Leave joined groups and close the socket."""
        if self._sock is None:
            return
        interface = self._bind_address or "0.0.0.0"
        for group in self._groups:
            try:
                self._sock.setsockopt(
                    socket.IPPROTO_IP,
                    socket.IP_DROP_MEMBERSHIP,
                    socket.inet_aton(group) + socket.inet_aton(interface),
                )
            except OSError as err:
                _LOGGER.debug("Failed to leave multicast group %s: %s", group, err)
        self._groups.clear()
        self._sock.close()
        self._sock = None
