"""Option schemas for discovery and sync sessions."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

import voluptuous as vol

from .const import (
    CONF_BEAT_REACTIVE,
    CONF_BRIGHTNESS_BOOST,
    CONF_BROADCAST,
    CONF_DEVICE_IDS,
    CONF_DISCOVERY_PORT,
    CONF_EXPECTED_DEVICES,
    CONF_EXTRACTION_MODE,
    CONF_LATENCY_COMPENSATION,
    CONF_MULTICAST_GROUP,
    CONF_RESPONSE_PORT,
    CONF_SAMPLE_RATE,
    CONF_SATURATION_BOOST,
    CONF_SMOOTHING,
    CONF_TIMEOUT,
    CONF_ZONE_COUNT,
    DEFAULT_EXTRACTION_MODE,
    DEFAULT_LATENCY_COMPENSATION,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SMOOTHING,
    DEFAULT_ZONE_COUNT,
    EXTRACTION_MODES,
    MULTICAST_ADDRESS,
    PORT_LISTEN,
    PORT_SCAN,
    TIMEOUT_DISCOVERY,
)
from .exceptions import InvalidOptions

_PORT = vol.All(vol.Coerce(int), vol.Range(min=1, max=65535))

DISCOVERY_OPTIONS_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_TIMEOUT, default=TIMEOUT_DISCOVERY): vol.All(
            vol.Coerce(float), vol.Range(min=0.1, max=60)
        ),
        vol.Optional(CONF_MULTICAST_GROUP, default=MULTICAST_ADDRESS): str,
        vol.Optional(CONF_DISCOVERY_PORT, default=PORT_SCAN): _PORT,
        vol.Optional(CONF_RESPONSE_PORT, default=PORT_LISTEN): _PORT,
        vol.Optional(CONF_BROADCAST, default=False): bool,
        vol.Optional(CONF_EXPECTED_DEVICES): vol.Any(
            None, vol.All(vol.Coerce(int), vol.Range(min=1))
        ),
    }
)

SYNC_OPTIONS_SCHEMA = vol.Schema(
    {
        vol.Optional(CONF_SAMPLE_RATE, default=DEFAULT_SAMPLE_RATE): vol.All(
            vol.Coerce(float), vol.Range(min=1, max=60)
        ),
        vol.Optional(CONF_EXTRACTION_MODE, default=DEFAULT_EXTRACTION_MODE): vol.In(
            EXTRACTION_MODES
        ),
        vol.Optional(CONF_ZONE_COUNT, default=DEFAULT_ZONE_COUNT): vol.All(
            vol.Coerce(int), vol.Range(min=1, max=64)
        ),
        vol.Optional(CONF_SMOOTHING, default=DEFAULT_SMOOTHING): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=1)
        ),
        vol.Optional(
            CONF_LATENCY_COMPENSATION, default=DEFAULT_LATENCY_COMPENSATION
        ): vol.All(vol.Coerce(float), vol.Range(min=0, max=5)),
        vol.Optional(CONF_BRIGHTNESS_BOOST, default=1.0): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=5)
        ),
        vol.Optional(CONF_SATURATION_BOOST, default=1.0): vol.All(
            vol.Coerce(float), vol.Range(min=0, max=5)
        ),
        vol.Optional(CONF_BEAT_REACTIVE, default=True): bool,
        vol.Optional(CONF_DEVICE_IDS): vol.Any(None, [str]),
    }
)


@dataclass(frozen=True)
class DiscoveryOptions:
    """Options for one discovery scan."""

    timeout: float = TIMEOUT_DISCOVERY
    multicast_group: str = MULTICAST_ADDRESS
    discovery_port: int = PORT_SCAN
    response_port: int = PORT_LISTEN
    broadcast: bool = False
    expected_devices: int | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None = None) -> DiscoveryOptions:
        """Validate a raw option mapping and build options from it."""
        return cls(**_validate(DISCOVERY_OPTIONS_SCHEMA, data))


@dataclass(frozen=True)
class SyncOptions:
    """Options for one sync session."""

    sample_rate: float = DEFAULT_SAMPLE_RATE
    extraction_mode: str = DEFAULT_EXTRACTION_MODE
    zone_count: int = DEFAULT_ZONE_COUNT
    smoothing: float = DEFAULT_SMOOTHING
    latency_compensation: float = DEFAULT_LATENCY_COMPENSATION
    brightness_boost: float = 1.0
    saturation_boost: float = 1.0
    beat_reactive: bool = True
    device_ids: tuple[str, ...] | None = None

    @property
    def period(self) -> float:
        """Seconds between two ticks."""
        return 1.0 / self.sample_rate

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None = None) -> SyncOptions:
        """Validate a raw option mapping and build options from it."""
        options = _validate(SYNC_OPTIONS_SCHEMA, data)
        if options.get(CONF_DEVICE_IDS) is not None:
            options[CONF_DEVICE_IDS] = tuple(options[CONF_DEVICE_IDS])
        return cls(**options)

    def validated(self) -> SyncOptions:
        """Return these options after running them through the schema.

        Raises:
            InvalidOptions: If a value is out of range.
        """
        data = asdict(self)
        if self.device_ids is not None:
            data[CONF_DEVICE_IDS] = list(self.device_ids)
        return SyncOptions.from_dict(data)


def _validate(schema: vol.Schema, data: dict[str, Any] | None) -> dict[str, Any]:
    try:
        return schema(dict(data or {}))
    except vol.Invalid as err:
        raise InvalidOptions(f"Invalid options: {err}") from err
