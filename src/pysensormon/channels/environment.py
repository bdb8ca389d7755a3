"""Generic sensor channels: magnetometer, barometer and ambient light."""

from __future__ import annotations

from typing import Any, ClassVar

from pysensormon.channels.base import ChannelHandler
from pysensormon.derivations import pressure_from_altitude
from pysensormon.ingestion.decoders import GENERIC_DECODERS
from pysensormon.models.environment import (
    GenericSensorKind,
    LightReading,
    MagneticFieldReading,
    PressureReading,
    ReadingOrigin,
)
from pysensormon.platform.base import SensorPlatform
from pysensormon.state.events import Channel


class GenericSensorChannel(ChannelHandler):
    """Channel fed by an optional generic sensor.

    A missing or refused sensor leaves the channel unavailable; it never
    affects the rest of the session.
    """

    kind: ClassVar[GenericSensorKind]

    def frequency(self) -> float | None:
        return None

    def start(self, platform: SensorPlatform) -> bool:
        return self.subscribe(lambda: platform.open_sensor(self.kind, self.handle, frequency=self.frequency()))

    def decode(self, payload: Any) -> Any:
        return GENERIC_DECODERS[self.kind](payload)


class MagnetometerChannel(GenericSensorChannel):
    channel = Channel.MAGNETOMETER
    kind = GenericSensorKind.MAGNETOMETER

    def frequency(self) -> float | None:
        return self._config.magnetometer_frequency

    def process(self, reading: MagneticFieldReading) -> bool:
        if not self.throttle():
            return False
        self._writer.commit(
            {"x": reading.x, "y": reading.y, "z": reading.z, "field_strength": reading.field_strength}
        )
        return True


class BarometerChannel(GenericSensorChannel):
    """Barometric pressure, with a standard-atmosphere estimate as fallback.

    Until a real barometer reports, GPS altitude is turned into an estimated
    pressure tagged ``estimated``. Estimates never mark the channel live, and
    stop for good once a real reading has been committed. They are throttled
    on their own ``barometer.estimate`` key so they never hold back a real
    reading.
    """

    channel = Channel.BAROMETER
    kind = GenericSensorKind.BAROMETER

    def frequency(self) -> float | None:
        return self._config.barometer_frequency

    def process(self, reading: PressureReading) -> bool:
        if not self.throttle():
            return False
        self._writer.commit({"pressure_hpa": reading.pressure_hpa, "origin": ReadingOrigin.SENSOR})
        return True

    def observe_altitude(self, altitude: float) -> bool:
        """Feed a GPS altitude for the fallback pressure estimate."""
        if not self._config.estimate_pressure_from_altitude:
            return False
        with self._lock:
            if self._writer.is_available():
                return False
            estimate = pressure_from_altitude(altitude)
            if estimate is None:
                return False
            if not self.throttle(stream="estimate"):
                return False
            self._writer.commit(
                {"pressure_hpa": estimate, "origin": ReadingOrigin.ESTIMATED},
                genuine=False,
            )
            return True


class AmbientLightChannel(GenericSensorChannel):
    channel = Channel.AMBIENT_LIGHT
    kind = GenericSensorKind.AMBIENT_LIGHT

    def frequency(self) -> float | None:
        return self._config.light_frequency

    def process(self, reading: LightReading) -> bool:
        if not self.throttle():
            return False
        self._writer.commit({"illuminance": reading.illuminance})
        return True
