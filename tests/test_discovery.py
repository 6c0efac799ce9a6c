import asyncio

import pytest

from custom_components.govee_lan_sync.config import DiscoveryOptions
from custom_components.govee_lan_sync.discovery import DiscoveryEngine
from custom_components.govee_lan_sync.registry import DeviceRegistry

from .conftest import FakeTransport, scan_reply, status_reply

FAST = DiscoveryOptions(timeout=0.3)


def _two_devices(address, port, message):
    if message["msg"]["cmd"] != "scan":
        return []
    return [
        (scan_reply("AA:01", "10.0.0.1"), "10.0.0.1"),
        (scan_reply("AA:02", "10.0.0.2", sku="H6199"), "10.0.0.2"),
    ]


async def test_discover_with_no_replies_is_bounded_by_timeout(transport):
    engine = DiscoveryEngine(transport, DeviceRegistry())
    loop = asyncio.get_running_loop()

    started = loop.time()
    devices = await engine.discover(FAST)
    elapsed = loop.time() - started

    assert devices == {}
    assert 0.25 <= elapsed < 0.8
    assert transport.joins == [("239.255.255.250", 4002)]
    (_, address, port, _), = transport.sent
    assert (address, port) == ("239.255.255.250", 4001)
    assert not engine.in_progress


async def test_discover_registers_replies():
    transport = FakeTransport(responder=_two_devices)
    registry = DeviceRegistry()
    engine = DiscoveryEngine(transport, registry)

    devices = await engine.discover(FAST)

    assert set(devices) == {"AA:01", "AA:02"}
    assert devices["AA:02"].model == "H6199"
    assert devices["AA:01"].last_seen is not None
    assert len(registry) == 2


async def test_malformed_responses_are_discarded(transport):
    transport.queue(b"garbage", "10.0.0.50")
    transport.queue(b'{"msg": {"cmd": "scan", "data": {"ip": "10.0.0.51"}}}', "10.0.0.51")
    transport.queue(scan_reply("AA:01", "10.0.0.1"), "10.0.0.1")
    engine = DiscoveryEngine(transport, DeviceRegistry())

    devices = await engine.discover(FAST)

    assert list(devices) == ["AA:01"]


async def test_duplicate_responses_overwrite(transport):
    transport.queue(scan_reply("AA:01", "10.0.0.1"), "10.0.0.1")
    transport.queue(scan_reply("AA:01", "10.0.0.9"), "10.0.0.9")
    engine = DiscoveryEngine(transport, DeviceRegistry())

    devices = await engine.discover(FAST)

    assert len(devices) == 1
    assert devices["AA:01"].ip == "10.0.0.9"


async def test_concurrent_discover_sends_one_scan():
    transport = FakeTransport(responder=_two_devices)
    engine = DiscoveryEngine(transport, DeviceRegistry())

    first, second = await asyncio.gather(engine.discover(FAST), engine.discover(FAST))

    assert len(transport.sent) == 1
    assert set(first) == {"AA:01", "AA:02"}
    assert set(second) <= set(first)


async def test_rescan_keeps_cached_state():
    transport = FakeTransport(responder=_two_devices)
    registry = DeviceRegistry()
    engine = DiscoveryEngine(transport, registry)
    await engine.discover(FAST)
    registry.update_state("AA:01", on=True, brightness=33)

    await engine.discover(FAST)

    state = registry.get("AA:01").state
    assert state.on is True
    assert state.brightness == 33


async def test_status_reply_during_discovery_carries_state(transport):
    transport.queue(
        b'{"msg": {"cmd": "devStatus", "data": {"device": "AA:01", "onOff": 1, "brightness": 70}}}',
        "10.0.0.1",
    )
    engine = DiscoveryEngine(transport, DeviceRegistry())

    devices = await engine.discover(FAST)

    assert devices["AA:01"].ip == "10.0.0.1"
    assert devices["AA:01"].state.on is True
    assert devices["AA:01"].state.brightness == 70


async def test_expected_devices_ends_scan_early():
    transport = FakeTransport(responder=_two_devices)
    engine = DiscoveryEngine(transport, DeviceRegistry())
    loop = asyncio.get_running_loop()

    started = loop.time()
    devices = await engine.discover(DiscoveryOptions(timeout=5.0, expected_devices=2))

    assert len(devices) == 2
    assert loop.time() - started < 1.0


async def test_broadcast_option(transport):
    engine = DiscoveryEngine(transport, DeviceRegistry())

    await engine.discover(DiscoveryOptions(timeout=0.1, broadcast=True))

    assert transport.sent[0][1] == "255.255.255.255"


async def test_send_failure_returns_current_devices(transport):
    transport.fail_all = True
    registry = DeviceRegistry()
    engine = DiscoveryEngine(transport, registry)

    assert await engine.discover(FAST) == {}
    assert not engine.in_progress


async def test_no_transport_without_placeholders():
    engine = DiscoveryEngine(None, DeviceRegistry())
    assert await engine.discover(FAST) == {}


async def test_no_transport_with_placeholders():
    engine = DiscoveryEngine(None, DeviceRegistry(), allow_placeholders=True)

    devices = await engine.discover(FAST)

    assert len(devices) == 2
    assert all(device.placeholder for device in devices.values())


async def test_unrelated_status_reply_is_not_a_scan_result(transport):
    transport.queue(status_reply(), "10.0.0.1")
    engine = DiscoveryEngine(transport, DeviceRegistry())

    assert await engine.discover(FAST) == {}


async def test_non_finite_numbers_do_not_abort_discovery(transport):
    transport.queue(
        b'{"msg": {"cmd": "devStatus", "data": {"device": "AA:09", "brightness": NaN}}}',
        "10.0.0.9",
    )
    transport.queue(
        b'{"msg": {"cmd": "devStatus", "data": {"device": "AA:08", "brightness": 1e400}}}',
        "10.0.0.8",
    )
    transport.queue(scan_reply("AA:01", "10.0.0.1"), "10.0.0.1")
    engine = DiscoveryEngine(transport, DeviceRegistry())

    devices = await engine.discover(FAST)

    assert set(devices) == {"AA:01", "AA:08"}
    assert devices["AA:08"].state.brightness == 0


async def test_join_failure_is_raised(transport):
    transport.fail_join = True
    engine = DiscoveryEngine(transport, DeviceRegistry())

    with pytest.raises(OSError):
        await engine.discover(FAST)

    assert transport.sent == []
    assert not engine.in_progress
