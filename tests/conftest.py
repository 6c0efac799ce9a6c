import asyncio
import json

import numpy as np
import pytest

from custom_components.govee_lan_sync.models import GoveeDevice
from custom_components.govee_lan_sync.registry import DeviceRegistry


def scan_reply(device_id, ip, sku="H6159", **extra):
    """Build a scan response datagram payload"""
    data = {"ip": ip, "device": device_id, "sku": sku, **extra}
    return json.dumps({"msg": {"cmd": "scan", "data": data}}).encode()


def status_reply(on=True, brightness=80, color=(10, 20, 30), kelvin=0):
    """Build a devStatus response datagram payload"""
    r, g, b = color
    data = {
        "onOff": 1 if on else 0,
        "brightness": brightness,
        "color": {"r": r, "g": g, "b": b},
        "colorTemInKelvin": kelvin,
    }
    return json.dumps({"msg": {"cmd": "devStatus", "data": data}}).encode()


class FakeTransport:
    """In-memory transport recording every send with its loop time"""

    def __init__(self, responder=None):
        self.sent = []
        self.joins = []
        self.closed = False
        self.fail_all = False
        self.fail_next = 0
        self.fail_addresses = set()
        self.fail_join = False
        self.responder = responder
        self._inbound = asyncio.Queue()

    def queue(self, payload, sender_ip):
        self._inbound.put_nowait((payload, sender_ip))

    def sends_to(self, port):
        return [send for send in self.sent if send[2] == port]

    async def send_datagram(self, address, port, data):
        self.sent.append((asyncio.get_running_loop().time(), address, port, data))
        if self.fail_all or address in self.fail_addresses:
            raise OSError("network unreachable")
        if self.fail_next:
            self.fail_next -= 1
            raise OSError("network unreachable")
        if self.responder is not None:
            for reply in self.responder(address, port, json.loads(data)) or ():
                self.queue(*reply)

    async def receive_datagram(self, timeout):
        try:
            return await asyncio.wait_for(self._inbound.get(), timeout)
        except asyncio.TimeoutError:
            return None

    async def join_multicast(self, group, port):
        if self.fail_join:
            raise OSError("address already in use")
        self.joins.append((group, port))

    def close(self):
        self.closed = True


class ArrayPixelSource:
    """Pixel source serving a fixed numpy frame"""

    def __init__(self, frame):
        self.frame = frame
        self.calls = 0

    def sample_pixels(self, region=None):
        self.calls += 1
        return self.frame


def solid_frame(color, width=32, height=24):
    """A frame filled with a single RGB color"""
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[:, :] = color
    return frame


@pytest.fixture
def transport():
    """Fake transport with no scripted replies"""
    return FakeTransport()


@pytest.fixture
def registry():
    """Registry holding two reachable devices"""
    registry = DeviceRegistry()
    registry.upsert(GoveeDevice(id="AA:00", ip="10.0.0.1", model="H6159"))
    registry.upsert(GoveeDevice(id="BB:00", ip="10.0.0.2", model="H6199"))
    return registry


@pytest.fixture
def red_source():
    """Pixel source showing solid red"""
    return ArrayPixelSource(solid_frame((255, 0, 0)))
