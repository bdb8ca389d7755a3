"""In-process push platform.

:class:`PushPlatform` implements :class:`~pysensormon.platform.base.SensorPlatform`
for hosts whose sensor events arrive as JSON-like payloads (a phone app
posting to the HTTP bridge, a board publishing over MQTT, or a test). Raw
payloads go in through :meth:`PushPlatform.dispatch` and are routed to
whichever channel listeners are subscribed.

The hub plays the role of the location service too: it rejects cached
fixes and enforces the per-fix timeout of every position watch.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable, Mapping
from enum import StrEnum
from typing import Any

from pysensormon._redact import redact_for_log
from pysensormon.exceptions import PermissionDeniedError, SensorUnsupportedError, TransientFixError
from pysensormon.ingestion.normalize import normalize_timestamp_seconds
from pysensormon.models.environment import GenericSensorKind
from pysensormon.platform.base import EventCallback, FixErrorCallback, WatchOptions

_logger = logging.getLogger(__name__)

PermissionDecider = Callable[[], Awaitable[bool]]


class EventKind(StrEnum):
    LOCATION = "location"
    LOCATION_ERROR = "location_error"
    MOTION = "motion"
    ORIENTATION = "orientation"
    MAGNETOMETER = "magnetometer"
    BAROMETER = "barometer"
    AMBIENT_LIGHT = "ambient_light"
    MICROPHONE = "microphone"


# Names used by common sensor-logging apps and browser event types.
_KIND_ALIASES: dict[str, EventKind] = {
    "gps": EventKind.LOCATION,
    "geolocation": EventKind.LOCATION,
    "position": EventKind.LOCATION,
    "locationerror": EventKind.LOCATION_ERROR,
    "devicemotion": EventKind.MOTION,
    "deviceorientation": EventKind.ORIENTATION,
    "compass": EventKind.ORIENTATION,
    "magneticfield": EventKind.MAGNETOMETER,
    "magnetometeruncalibrated": EventKind.MAGNETOMETER,
    "pressure": EventKind.BAROMETER,
    "light": EventKind.AMBIENT_LIGHT,
    "ambientlight": EventKind.AMBIENT_LIGHT,
    "audio": EventKind.MICROPHONE,
    "mic": EventKind.MICROPHONE,
}

_GENERIC_EVENT_KINDS: dict[GenericSensorKind, EventKind] = {
    GenericSensorKind.MAGNETOMETER: EventKind.MAGNETOMETER,
    GenericSensorKind.BAROMETER: EventKind.BAROMETER,
    GenericSensorKind.AMBIENT_LIGHT: EventKind.AMBIENT_LIGHT,
}


def resolve_kind(name: str) -> EventKind | None:
    """Map an incoming event name onto an :class:`EventKind`."""
    normalized = name.strip().lower()
    try:
        return EventKind(normalized)
    except ValueError:
        pass
    return _KIND_ALIASES.get(normalized.replace("_", "").replace("-", ""))


class HubSubscription:
    """Subscription handle returned by :class:`PushPlatform`."""

    def __init__(self, on_close: Callable[[], None]) -> None:
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._on_close()


class _PositionWatch:
    """One active position watch with its per-fix timeout watchdog."""

    def __init__(
        self,
        *,
        on_fix: EventCallback,
        on_error: FixErrorCallback,
        options: WatchOptions,
        started_at: float,
        loop: asyncio.AbstractEventLoop | None,
    ) -> None:
        self.on_fix = on_fix
        self.on_error = on_error
        self.options = options
        self.started_at = started_at
        self._loop = loop
        self._timer: asyncio.TimerHandle | None = None
        self._active = True

    def arm(self) -> None:
        if self._loop is None or not self._active:
            return
        self.disarm()
        self._timer = self._loop.call_later(self.options.timeout, self._timed_out)

    def disarm(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def stop(self) -> None:
        self._active = False
        self.disarm()

    def is_cached(self, payload: Mapping[str, Any]) -> bool:
        coords = payload.get("coords")
        candidate = payload.get("timestamp") or payload.get("time")
        if candidate is None and isinstance(coords, Mapping):
            candidate = coords.get("timestamp")
        fix_time = normalize_timestamp_seconds(candidate)
        if fix_time is None:
            return False
        return fix_time < self.started_at - self.options.maximum_age

    def _timed_out(self) -> None:
        self._timer = None
        if not self._active:
            return
        self.on_error(TransientFixError(f"no position fix within {self.options.timeout:g}s", timed_out=True))
        # The service keeps watching after a timeout.
        self.arm()


class PushPlatform:
    """Routes pushed sensor payloads to channel listeners.

    Parameters
    ----------
    supported_sensors
        Generic sensors this host has; opening any other raises
        :class:`SensorUnsupportedError`.
    microphone_supported
        Whether the host can capture audio at all.
    motion_permission_decider
        Awaitable callback deciding motion/orientation access. When omitted
        the platform needs no explicit permission for motion.
    microphone_permission_decider
        Awaitable callback deciding microphone access. When omitted access
        is granted.
    clock
        Wall clock in epoch seconds, used to reject cached fixes.
    """

    def __init__(
        self,
        *,
        supported_sensors: frozenset[GenericSensorKind] | set[GenericSensorKind] = frozenset(GenericSensorKind),
        microphone_supported: bool = True,
        motion_permission_decider: PermissionDecider | None = None,
        microphone_permission_decider: PermissionDecider | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._supported = frozenset(supported_sensors)
        self._microphone_supported = microphone_supported
        self._motion_decider = motion_permission_decider
        self._microphone_decider = microphone_permission_decider
        self._clock = clock
        self._lock = threading.Lock()
        self._listeners: dict[EventKind, list[Callable[[Any], None]]] = {kind: [] for kind in EventKind}
        self._watches: list[_PositionWatch] = []
        self._frequencies: dict[GenericSensorKind, float | None] = {}

    # ------------------------------------------------------------------
    # SensorPlatform
    # ------------------------------------------------------------------

    @property
    def requires_motion_permission(self) -> bool:
        return self._motion_decider is not None

    async def request_motion_permission(self) -> bool:
        if self._motion_decider is None:
            return True
        return bool(await self._motion_decider())

    def watch_position(
        self,
        on_fix: EventCallback,
        on_error: FixErrorCallback,
        options: WatchOptions,
    ) -> HubSubscription:
        try:
            loop: asyncio.AbstractEventLoop | None = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
            _logger.debug("Position watch opened outside an event loop; fix timeout not enforced")

        watch = _PositionWatch(
            on_fix=on_fix,
            on_error=on_error,
            options=options,
            started_at=self._clock(),
            loop=loop,
        )
        with self._lock:
            self._watches.append(watch)
        watch.arm()

        def _close() -> None:
            watch.stop()
            with self._lock:
                if watch in self._watches:
                    self._watches.remove(watch)

        return HubSubscription(_close)

    def add_motion_listener(self, callback: EventCallback) -> HubSubscription:
        return self._register(EventKind.MOTION, callback)

    def add_orientation_listener(self, callback: EventCallback) -> HubSubscription:
        return self._register(EventKind.ORIENTATION, callback)

    def open_sensor(
        self,
        kind: GenericSensorKind,
        on_reading: EventCallback,
        *,
        frequency: float | None = None,
    ) -> HubSubscription:
        if kind not in self._supported:
            raise SensorUnsupportedError(f"{kind} is not available on this host", kind=kind)
        self._frequencies[kind] = frequency
        return self._register(_GENERIC_EVENT_KINDS[kind], on_reading)

    async def open_microphone(self, on_frame: Callable[[Any], None]) -> HubSubscription:
        if not self._microphone_supported:
            raise SensorUnsupportedError("audio capture is not available on this host", kind="microphone")
        if self._microphone_decider is not None and not await self._microphone_decider():
            raise PermissionDeniedError("microphone access denied", capability="microphone")
        return self._register(EventKind.MICROPHONE, on_frame)

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    def requested_frequency(self, kind: GenericSensorKind) -> float | None:
        return self._frequencies.get(kind)

    def listener_count(self, kind: EventKind) -> int:
        with self._lock:
            if kind == EventKind.LOCATION:
                return len(self._watches)
            return len(self._listeners[kind])

    def dispatch(self, kind: EventKind | str, payload: Any) -> int:
        """Deliver one raw event; returns how many listeners received it.

        Must be called on the event loop thread. Bridges running their own
        threads hop over with ``loop.call_soon_threadsafe``.
        """
        resolved = kind if isinstance(kind, EventKind) else resolve_kind(kind)
        if resolved is None:
            _logger.debug("Ignoring event of unknown kind %r", kind)
            return 0

        if resolved == EventKind.LOCATION:
            return self._dispatch_fix(payload)
        if resolved == EventKind.LOCATION_ERROR:
            return self._dispatch_fix_error(payload)

        with self._lock:
            listeners = list(self._listeners[resolved])
        for listener in listeners:
            self._deliver(resolved, listener, payload)
        return len(listeners)

    def dispatch_threadsafe(self, loop: asyncio.AbstractEventLoop, kind: EventKind | str, payload: Any) -> None:
        """Schedule :meth:`dispatch` on *loop* from any thread."""
        loop.call_soon_threadsafe(self.dispatch, kind, payload)

    def dispatch_message(self, message: Mapping[str, Any]) -> int:
        """Deliver a ``{"name": ..., "values": {...}, "time": ...}`` message."""
        name = message.get("name") or message.get("type") or message.get("sensor")
        if not isinstance(name, str):
            _logger.debug("Ignoring message without a name: %s", redact_for_log(message))
            return 0
        values = message.get("values")
        if isinstance(values, Mapping):
            payload: Any = dict(values)
            if "time" in message and "time" not in payload and "timestamp" not in payload:
                payload["time"] = message["time"]
        elif values is not None:
            payload = values
        else:
            payload = {k: v for k, v in message.items() if k not in {"name", "type", "sensor"}}
        return self.dispatch(name, payload)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _register(self, kind: EventKind, callback: Callable[[Any], None]) -> HubSubscription:
        with self._lock:
            self._listeners[kind].append(callback)

        def _close() -> None:
            with self._lock:
                if callback in self._listeners[kind]:
                    self._listeners[kind].remove(callback)

        return HubSubscription(_close)

    def _deliver(self, kind: EventKind, listener: Callable[[Any], None], payload: Any) -> None:
        try:
            listener(payload)
        except Exception:
            # One listener must not starve the others of the event.
            _logger.exception("Sensor listener for %s failed", kind)

    def _dispatch_fix(self, payload: Any) -> int:
        with self._lock:
            watches = list(self._watches)
        delivered = 0
        for watch in watches:
            if isinstance(payload, Mapping) and watch.is_cached(payload):
                _logger.debug("Rejecting cached position fix older than maximum_age")
                continue
            watch.arm()
            self._deliver(EventKind.LOCATION, watch.on_fix, payload)
            delivered += 1
        return delivered

    def _dispatch_fix_error(self, payload: Any) -> int:
        message = "position unavailable"
        if isinstance(payload, Mapping):
            message = str(payload.get("message") or message)
        elif isinstance(payload, str) and payload:
            message = payload
        with self._lock:
            watches = list(self._watches)
        for watch in watches:
            error = TransientFixError(message)
            self._deliver(EventKind.LOCATION_ERROR, watch.on_error, error)  # type: ignore[arg-type]
        return len(watches)
