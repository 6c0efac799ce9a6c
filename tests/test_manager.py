import asyncio

import pytest

from custom_components.govee_lan_sync.config import DiscoveryOptions, SyncOptions
from custom_components.govee_lan_sync.exceptions import SyncConfigurationError
from custom_components.govee_lan_sync.manager import GoveeSyncManager
from custom_components.govee_lan_sync.scene import Keyframe, Scene

from .conftest import FakeTransport, scan_reply

EPSILON = 0.005
RED = (255, 0, 0)


def _responder(address, port, message):
    if message["msg"]["cmd"] != "scan":
        return []
    return [
        (scan_reply("AA:01", "10.0.0.1"), "10.0.0.1"),
        (scan_reply("AA:02", "10.0.0.2", sku="H6199"), "10.0.0.2"),
    ]


@pytest.fixture
async def manager():
    """Manager that has discovered two devices"""
    transport = FakeTransport(responder=_responder)
    manager = GoveeSyncManager(
        transport, discovery_options=DiscoveryOptions(timeout=0.2, expected_devices=2)
    )
    await manager.discover()
    transport.sent.clear()
    yield manager
    await manager.async_shutdown()


async def test_set_all_colors_end_to_end(manager):
    assert [device.id for device in manager.get_active_devices()] == ["AA:01", "AA:02"]

    assert await manager.set_all_colors(RED) == [True, True]

    assert manager.get_device("AA:01").state.color == RED
    assert manager.get_device("AA:02").state.color == RED
    sends = manager._transport.sends_to(4003)
    assert [send[1] for send in sends] == ["10.0.0.1", "10.0.0.2"]
    assert sends[1][0] - sends[0][0] >= 0.05 - EPSILON


async def test_single_device_commands(manager):
    assert await manager.set_power("AA:01", True)
    assert await manager.set_brightness("AA:01", 30)
    assert await manager.set_color_temperature("AA:01", 2700)

    state = manager.get_device("AA:01").state
    assert state.on is True
    assert state.brightness == 30
    assert state.color_temperature == 2700


async def test_unknown_device(manager):
    assert await manager.set_power("ZZ:99", True) is False
    assert manager._transport.sent == []


async def test_inactive_devices_are_skipped(manager):
    manager.set_device_active("AA:01", False)

    assert await manager.set_power_all(True) == [True]
    assert manager.get_device("AA:01").state.on is False
    assert manager.get_device("AA:02").state.on is True


async def test_zone_colors_round_robin(manager):
    await manager.set_zone_colors([RED, (0, 0, 255)])

    assert manager.get_device("AA:01").state.color == RED
    assert manager.get_device("AA:02").state.color == (0, 0, 255)


async def test_brightness_all(manager):
    assert await manager.set_brightness_all(150) == [True, True]
    assert all(device.state.brightness == 100 for device in manager.get_devices())


async def test_start_sync_requires_source(manager):
    with pytest.raises(SyncConfigurationError):
        manager.start_sync(None)


async def test_sync_and_scene_exclusion(manager, red_source):
    assert manager.play_scene("rainbow")
    assert manager.scenes.playing

    assert manager.start_sync(red_source, SyncOptions(latency_compensation=0))
    assert not manager.scenes.playing
    assert manager.play_scene("party") is False
    assert manager.get_sync_stats().running

    manager.stop_sync()
    assert not manager.get_sync_stats().running


async def test_play_unknown_scene(manager):
    assert manager.play_scene("disco") is False


async def test_play_custom_scene(manager):
    scene = Scene(
        id="flash",
        name="Flash",
        keyframes=(Keyframe(0.0, RED, 60),),
        duration=0.05,
    )

    assert manager.play_scene(scene)
    await asyncio.sleep(0.6)

    assert not manager.scenes.playing
    assert manager.get_device("AA:01").state.color == RED
    assert manager.get_device("AA:02").state.brightness == 60


async def test_shutdown_closes_transport():
    transport = FakeTransport()
    manager = GoveeSyncManager(transport)

    await manager.async_shutdown()

    assert transport.closed


async def test_placeholder_mode():
    manager = GoveeSyncManager(None, allow_placeholders=True)

    devices = await manager.discover()

    assert len(devices) == 2
    assert len(manager.get_active_devices()) == 2
    assert await manager.set_power("AA:BB:CC:DD:EE:01", True) is False
    await manager.async_shutdown()
