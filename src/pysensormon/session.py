"""Sensor monitoring session lifecycle."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pysensormon.channels.base import ChannelHandler
from pysensormon.channels.environment import AmbientLightChannel, BarometerChannel, MagnetometerChannel
from pysensormon.channels.location import LocationChannel
from pysensormon.channels.microphone import MicrophoneChannel
from pysensormon.channels.motion import MotionChannel
from pysensormon.channels.orientation import OrientationChannel
from pysensormon.config import SensorConfig
from pysensormon.derivations import derive_metrics
from pysensormon.exceptions import SessionClosedError
from pysensormon.models.snapshot import DerivedMetrics, SensorReadout, SensorSnapshot
from pysensormon.permissions import CapabilityGroup, PermissionGate, PermissionState
from pysensormon.platform.base import SensorPlatform
from pysensormon.state.events import Channel
from pysensormon.state.store import SnapshotStore
from pysensormon.state.throttle import ChannelThrottler

_logger = logging.getLogger(__name__)

UpdateCallback = Callable[[Channel, SensorReadout], None]

_CHANNEL_TYPES: dict[Channel, type[ChannelHandler]] = {
    Channel.LOCATION: LocationChannel,
    Channel.MOTION: MotionChannel,
    Channel.ORIENTATION: OrientationChannel,
    Channel.MAGNETOMETER: MagnetometerChannel,
    Channel.BAROMETER: BarometerChannel,
    Channel.AMBIENT_LIGHT: AmbientLightChannel,
    Channel.MICROPHONE: MicrophoneChannel,
}


def _utcnow() -> datetime:
    return datetime.now(UTC)


class SensorSession:
    """One monitoring session over a sensor platform.

    Usage::

        async with SensorSession(platform) as session:
            await session.request_permissions()
            readout = session.read()

    Location and the generic sensors start with the session. Motion,
    orientation and the microphone start once their permission is granted.
    A denied or missing capability leaves its channel unavailable and never
    fails the session.
    """

    def __init__(
        self,
        platform: SensorPlatform,
        config: SensorConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = _utcnow,
        on_update: UpdateCallback | None = None,
    ) -> None:
        self._platform = platform
        self._config = config or SensorConfig()
        self._throttler = ChannelThrottler(clock=clock)
        self._store = SnapshotStore(clock=wall_clock)
        self._gate = PermissionGate()
        self._permission_lock = asyncio.Lock()
        self._permissions_requested = False
        self._on_update = on_update
        self._channels: dict[Channel, ChannelHandler] = {}
        self._remove_listener: Callable[[], None] | None = None
        self._started = False
        self._closed = False

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> SensorSession:
        await self.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.end_session()

    @property
    def config(self) -> SensorConfig:
        return self._config

    @property
    def is_active(self) -> bool:
        return self._started and not self._closed

    @property
    def permissions(self) -> dict[CapabilityGroup, PermissionState]:
        return self._gate.states()

    async def start(self) -> None:
        """Begin location tracking and open the generic sensors."""
        self._require_open()
        if self._started:
            return
        self._started = True

        for channel, handler_type in _CHANNEL_TYPES.items():
            self._channels[channel] = handler_type(
                writer=self._store.writer(channel),
                throttler=self._throttler,
                config=self._config,
            )
        self._remove_listener = self._store.add_listener(self._on_commit)

        location = self._location
        location.add_altitude_observer(self._barometer.observe_altitude)
        location.start(self._platform)

        for channel in (Channel.MAGNETOMETER, Channel.BAROMETER, Channel.AMBIENT_LIGHT):
            handler = self._channels[channel]
            assert isinstance(handler, MagnetometerChannel | BarometerChannel | AmbientLightChannel)
            handler.start(self._platform)

        _logger.debug("Sensor session started")

    async def request_permissions(self) -> dict[CapabilityGroup, PermissionState]:
        """Request motion and microphone access once.

        Repeated calls return the settled states without asking again or
        attaching listeners a second time.
        """
        self._require_active()
        async with self._permission_lock:
            if self._permissions_requested:
                return self._gate.states()
            self._permissions_requested = True

            if self._platform.requires_motion_permission:
                motion = await self._gate.request(CapabilityGroup.MOTION, self._platform.request_motion_permission)
            else:
                motion = self._gate.resolve(CapabilityGroup.MOTION, True)
            if motion == PermissionState.GRANTED and not self._closed:
                self._start_motion()

            if not self._closed:
                await self._gate.request(CapabilityGroup.MICROPHONE, self._start_microphone)

        return self._gate.states()

    def reset_peaks(self) -> None:
        """Zero the running peak-G maximum; nothing else changes."""
        self._require_open()
        self._store.reset_accumulators()

    async def end_session(self) -> None:
        """Release every subscription and stop sampling. Safe to call twice."""
        if self._closed:
            return
        self._closed = True
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None

        for channel, handler in self._channels.items():
            try:
                await handler.aclose()
            except Exception:
                _logger.debug("Failed to close %s channel", channel, exc_info=True)
        self._throttler.reset()
        _logger.debug("Sensor session ended")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> SensorSnapshot:
        self._require_open()
        return self._store.snapshot()

    def derived(self) -> DerivedMetrics:
        return derive_metrics(self.snapshot(), self._config)

    def read(self) -> SensorReadout:
        """Snapshot and derived metrics computed from that same snapshot."""
        snapshot = self.snapshot()
        return SensorReadout(snapshot=snapshot, derived=derive_metrics(snapshot, self._config))

    def stale_channels(self) -> list[Channel]:
        """Live channels that have not committed within ``config.stale_after`` seconds."""
        snapshot = self.snapshot()
        return [channel for channel in Channel if snapshot.is_stale(channel, self._config.stale_after)]

    def channel(self, channel: Channel) -> ChannelHandler:
        """The producer behind *channel* (for diagnostics)."""
        try:
            return self._channels[channel]
        except KeyError:
            raise SessionClosedError("Session not started. Use 'async with SensorSession(...)'") from None

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @property
    def _location(self) -> LocationChannel:
        handler = self._channels[Channel.LOCATION]
        assert isinstance(handler, LocationChannel)
        return handler

    @property
    def _barometer(self) -> BarometerChannel:
        handler = self._channels[Channel.BAROMETER]
        assert isinstance(handler, BarometerChannel)
        return handler

    @property
    def _microphone(self) -> MicrophoneChannel:
        handler = self._channels[Channel.MICROPHONE]
        assert isinstance(handler, MicrophoneChannel)
        return handler

    def _start_motion(self) -> None:
        for channel in (Channel.MOTION, Channel.ORIENTATION):
            handler = self._channels[channel]
            assert isinstance(handler, MotionChannel | OrientationChannel)
            if not handler.is_subscribed:
                handler.start(self._platform)

    async def _start_microphone(self) -> bool:
        return await self._microphone.start(self._platform)

    def _on_commit(self, channel: Channel) -> None:
        if self._on_update is None or self._closed:
            return
        try:
            self._on_update(channel, self.read())
        except Exception:
            # A broken display must not take the sensors down with it.
            _logger.warning("on_update callback failed for %s", channel, exc_info=True)

    def _require_open(self) -> None:
        if self._closed:
            raise SessionClosedError("Sensor session has ended")

    def _require_active(self) -> None:
        self._require_open()
        if not self._started:
            raise SessionClosedError("Session not started. Use 'async with SensorSession(...)'")
