"""Sync engine driving devices from a pixel source."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from .config import SyncOptions
from .dispatcher import BatchItem, CommandDispatcher, zone_commands
from .exceptions import InvalidOptions, SyncConfigurationError
from .extractor import ColorExtractor, FeatureVector, PixelSource
from .models import GoveeDevice, RGBColor

_LOGGER = logging.getLogger(__name__)

FeatureProvider = Callable[[], FeatureVector | None]
DeviceProvider = Callable[[], list[GoveeDevice]]


@dataclass
class SyncSession:
    """State of the running sync session."""

    options: SyncOptions
    source: PixelSource | None
    extractor: ColorExtractor
    started_at: float
    active: bool = True
    ticks: int = 0
    emitted_batches: int = 0
    dropped_emissions: int = 0
    failed_sends: int = 0
    last_colors: list[RGBColor] = field(default_factory=list)


@dataclass(frozen=True)
class SyncStats:
    """Snapshot of sync engine counters."""

    running: bool
    sample_rate: float | None = None
    extraction_mode: str | None = None
    latency_compensation: float | None = None
    active_devices: int = 0
    ticks: int = 0
    emitted_batches: int = 0
    dropped_emissions: int = 0
    failed_sends: int = 0
    frame_count: int = 0
    last_colors: tuple[RGBColor, ...] = ()


class SyncEngine:
    """Samples a pixel source on a fixed cadence and emits paced batches.

    Each tick extracts colors, optionally applies the latest audio features,
    and schedules the emission ``latency_compensation`` seconds later so the
    lights do not run ahead of what is on screen. If the previous batch is
    still being sent when an emission comes due, that emission is dropped
    and counted instead of piling up behind it.
    """

    def __init__(
        self,
        dispatcher: CommandDispatcher,
        devices: DeviceProvider,
        features: FeatureProvider | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            dispatcher: Dispatcher batches are sent through.
            devices: Returns the devices to drive, read fresh on every emission.
            features: Returns the latest audio features, if any.
        """
        self._dispatcher = dispatcher
        self._devices = devices
        self._features = features
        self._session: SyncSession | None = None
        self._tick_task: asyncio.Task | None = None
        self._pending: set[asyncio.TimerHandle] = set()
        self._in_flight: asyncio.Task | None = None
        self._last_session: SyncSession | None = None

    @property
    def running(self) -> bool:
        """Return True while a session is active."""
        return self._session is not None

    def set_feature_provider(self, features: FeatureProvider | None) -> None:
        """Replace the audio feature provider."""
        self._features = features

    def start(self, source: PixelSource | None, options: SyncOptions | None = None) -> bool:
        """Start syncing from ``source``.

        Returns:
            False if a session is already running.

        Raises:
            SyncConfigurationError: If no source is given or an option is out
                of range.
        """
        if self._session is not None:
            _LOGGER.warning("Sync already running")
            return False
        if source is None:
            raise SyncConfigurationError("A pixel source is required to start sync")

        try:
            options = (options or SyncOptions()).validated()
        except InvalidOptions as err:
            raise SyncConfigurationError(str(err)) from err

        loop = asyncio.get_running_loop()
        extractor = ColorExtractor(
            extraction_mode=options.extraction_mode,
            zone_count=options.zone_count,
            smoothing=options.smoothing,
            brightness_boost=options.brightness_boost,
            saturation_boost=options.saturation_boost,
        )
        session = SyncSession(
            options=options, source=source, extractor=extractor, started_at=loop.time()
        )
        self._session = session
        self._last_session = session
        self._tick_task = loop.create_task(self._run(session))
        _LOGGER.info(
            "Sync started at %.1fHz in %s mode, latency compensation %.3fs",
            options.sample_rate,
            options.extraction_mode,
            options.latency_compensation,
        )
        return True

    def stop(self) -> None:
        """Stop the session.

        Scheduled emissions are cancelled; a batch already being sent is left
        to finish. Safe to call when idle.
        """
        session = self._session
        if session is None:
            return

        session.active = False
        session.source = None
        self._session = None
        if self._tick_task is not None:
            self._tick_task.cancel()
            self._tick_task = None
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()
        _LOGGER.info("Sync stopped after %d ticks", session.ticks)

    async def async_stop(self) -> None:
        """Stop the session and wait for an in-flight batch to finish."""
        tick_task = self._tick_task
        self.stop()
        if tick_task is not None:
            try:
                await tick_task
            except asyncio.CancelledError:
                pass
        if self._in_flight is not None and not self._in_flight.done():
            await asyncio.wait([self._in_flight])

    def stats(self) -> SyncStats:
        """Return counters of the current, or last, session."""
        session = self._session or self._last_session
        if session is None:
            return SyncStats(running=False)
        return SyncStats(
            running=self._session is not None,
            sample_rate=session.options.sample_rate,
            extraction_mode=session.options.extraction_mode,
            latency_compensation=session.options.latency_compensation,
            active_devices=len(self._target_devices(session)),
            ticks=session.ticks,
            emitted_batches=session.emitted_batches,
            dropped_emissions=session.dropped_emissions,
            failed_sends=session.failed_sends,
            frame_count=session.extractor.frame_count,
            last_colors=tuple(session.last_colors),
        )

    async def _run(self, session: SyncSession) -> None:
        loop = asyncio.get_running_loop()
        period = session.options.period
        next_tick = loop.time() + period

        while session.active:
            delay = next_tick - loop.time()
            if delay > 0:
                await asyncio.sleep(delay)
            try:
                self._tick(session)
            except Exception:
                _LOGGER.exception("Sync tick failed")

            next_tick += period
            now = loop.time()
            if next_tick < now:
                # Overran the grid, skip the missed ticks instead of bursting
                skipped = int((now - next_tick) // period) + 1
                next_tick += skipped * period
                _LOGGER.debug("Tick overrun, skipped %d tick(s)", skipped)

    def _tick(self, session: SyncSession) -> None:
        if session.source is None:
            return
        session.ticks += 1
        colors = session.extractor.extract(session.source)

        if session.options.beat_reactive and self._features is not None:
            try:
                features = self._features()
            except Exception:
                _LOGGER.exception("Feature provider failed")
                features = None
            if features is not None:
                colors = session.extractor.apply_features(colors, features)

        loop = asyncio.get_running_loop()
        handle: asyncio.TimerHandle | None = None

        def _fire() -> None:
            self._pending.discard(handle)
            self._emit(session, colors)

        handle = loop.call_later(session.options.latency_compensation, _fire)
        self._pending.add(handle)

    def _emit(self, session: SyncSession, colors: list[RGBColor]) -> None:
        if not session.active:
            return
        if self._in_flight is not None and not self._in_flight.done():
            session.dropped_emissions += 1
            return

        try:
            items = zone_commands(self._target_devices(session), colors)
        except Exception:
            _LOGGER.exception("Failed to build sync batch")
            return
        session.last_colors = list(colors)
        if not items:
            return

        self._in_flight = asyncio.get_running_loop().create_task(
            self._send(session, items)
        )

    async def _send(self, session: SyncSession, items: list[BatchItem]) -> None:
        results = await self._dispatcher.send_batch(items)
        session.emitted_batches += 1
        session.failed_sends += results.count(False)

    def _target_devices(self, session: SyncSession) -> list[GoveeDevice]:
        devices = self._devices()
        if session.options.device_ids is None:
            return devices
        wanted = set(session.options.device_ids)
        return [device for device in devices if device.id in wanted]
