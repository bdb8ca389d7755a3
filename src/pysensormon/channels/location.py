"""Location channel: position fixes and climb rate."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pysensormon.channels.base import ChannelHandler
from pysensormon.derivations import climb_rate
from pysensormon.exceptions import TransientFixError
from pysensormon.ingestion.decoders import decode_location
from pysensormon.models.location import LocationFix
from pysensormon.platform.base import SensorPlatform, WatchOptions
from pysensormon.state.events import Channel

_logger = logging.getLogger(__name__)

AltitudeObserver = Callable[[float], None]


@dataclass
class AltitudeRing:
    """Previous altitude sample used for the climb-rate finite difference."""

    altitude: float | None = None
    timestamp: float | None = None

    def update(self, altitude: float, timestamp: float) -> None:
        self.altitude = altitude
        self.timestamp = timestamp


class LocationChannel(ChannelHandler):
    channel = Channel.LOCATION

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._ring = AltitudeRing()
        self._altitude_observers: list[AltitudeObserver] = []
        self.transient_failures = 0

    def add_altitude_observer(self, observer: AltitudeObserver) -> None:
        self._altitude_observers.append(observer)

    def start(self, platform: SensorPlatform) -> bool:
        options = WatchOptions(
            high_accuracy=self._config.location_high_accuracy,
            maximum_age=self._config.location_maximum_age,
            timeout=self._config.location_timeout,
        )
        return self.subscribe(lambda: platform.watch_position(self.handle, self.on_error, options))

    def on_error(self, error: TransientFixError) -> None:
        # Transient: keep the last fix and wait for the next one.
        self.transient_failures += 1
        _logger.debug("Location fix failed (timed_out=%s): %s", error.timed_out, error)

    def decode(self, payload: Any) -> LocationFix:
        return decode_location(payload)

    def process(self, reading: LocationFix) -> bool:
        now = self.now()
        patch: dict[str, Any] = {}

        if self.throttle(now=now):
            patch.update(
                latitude=reading.latitude,
                longitude=reading.longitude,
                altitude=reading.altitude,
                accuracy=reading.accuracy,
                speed=reading.speed,
                heading=reading.heading,
            )

        if self.throttle(stream="climb", interval=self._config.throttle.climb, now=now):
            patch["vertical_speed"] = climb_rate(reading.altitude, now, self._ring.altitude, self._ring.timestamp)
            self._ring.update(reading.altitude, now)

        if patch:
            self._writer.commit(patch)

        for observer in self._altitude_observers:
            observer(reading.altitude)
        return bool(patch)
