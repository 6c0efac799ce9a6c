import pytest

from custom_components.govee_lan_sync.config import DiscoveryOptions, SyncOptions
from custom_components.govee_lan_sync.exceptions import InvalidOptions


def test_discovery_defaults():
    options = DiscoveryOptions.from_dict({})
    assert options == DiscoveryOptions()
    assert options.timeout == 5.0
    assert options.multicast_group == "239.255.255.250"
    assert options.discovery_port == 4001
    assert options.response_port == 4002
    assert options.broadcast is False
    assert options.expected_devices is None


def test_discovery_coerces_values():
    options = DiscoveryOptions.from_dict({"timeout": "2.5", "expected_devices": "3"})
    assert options.timeout == 2.5
    assert options.expected_devices == 3


@pytest.mark.parametrize(
    "data",
    [
        {"timeout": 0},
        {"discovery_port": 70000},
        {"expected_devices": 0},
        {"unknown": 1},
    ],
)
def test_discovery_rejects_invalid(data):
    with pytest.raises(InvalidOptions):
        DiscoveryOptions.from_dict(data)


def test_sync_defaults():
    options = SyncOptions.from_dict(None)
    assert options == SyncOptions()
    assert options.sample_rate == 30.0
    assert options.extraction_mode == "zones"
    assert options.zone_count == 4
    assert options.smoothing == 0.3
    assert options.latency_compensation == 0.05
    assert options.beat_reactive is True
    assert options.period == pytest.approx(1 / 30)


def test_sync_device_ids_become_tuple():
    options = SyncOptions.from_dict({"device_ids": ["AA", "BB"]})
    assert options.device_ids == ("AA", "BB")


@pytest.mark.parametrize(
    "data",
    [
        {"sample_rate": 0},
        {"sample_rate": 120},
        {"extraction_mode": "median"},
        {"smoothing": 1.5},
        {"zone_count": 0},
        {"latency_compensation": -0.1},
    ],
)
def test_sync_rejects_invalid(data):
    with pytest.raises(InvalidOptions):
        SyncOptions.from_dict(data)
