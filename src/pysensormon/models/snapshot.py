"""Read-only snapshot and derived-metric models.

The snapshot is what the presentation collaborator sees: one subtree per
channel plus the per-channel availability flags and commit times. Derived
metrics are computed from a snapshot on every read and never stored.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from pysensormon._constants import SEA_LEVEL_PRESSURE_HPA
from pysensormon.models.environment import ReadingOrigin
from pysensormon.models.orientation import HeadingSource
from pysensormon.state.events import Channel, ChannelStatus

_STATE_CONFIG = ConfigDict(frozen=True, extra="forbid")


class LocationState(BaseModel):
    model_config = _STATE_CONFIG

    latitude: float | None = None
    longitude: float | None = None
    altitude: float = 0.0
    accuracy: float | None = None
    speed: float = 0.0
    heading: float | None = None
    vertical_speed: float = 0.0


class MotionState(BaseModel):
    model_config = _STATE_CONFIG

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    total_g: float = 0.0
    peak_g: float = 0.0
    vibration: float | None = None


class OrientationState(BaseModel):
    model_config = _STATE_CONFIG

    heading: float = 0.0
    source: HeadingSource = HeadingSource.NONE
    accuracy: float | None = None


class MagnetometerState(BaseModel):
    model_config = _STATE_CONFIG

    x: float | None = None
    y: float | None = None
    z: float | None = None
    field_strength: float | None = None


class BarometerState(BaseModel):
    model_config = _STATE_CONFIG

    pressure_hpa: float = SEA_LEVEL_PRESSURE_HPA
    origin: ReadingOrigin = ReadingOrigin.DEFAULT

    @property
    def is_real(self) -> bool:
        """Whether the pressure came from a barometer, not a default or estimate."""
        return self.origin == ReadingOrigin.SENSOR


class AmbientLightState(BaseModel):
    model_config = _STATE_CONFIG

    illuminance: float | None = None


class MicrophoneState(BaseModel):
    model_config = _STATE_CONFIG

    sound_db: float | None = None


SUBTREE_MODELS: dict[Channel, type[BaseModel]] = {
    Channel.LOCATION: LocationState,
    Channel.MOTION: MotionState,
    Channel.ORIENTATION: OrientationState,
    Channel.MAGNETOMETER: MagnetometerState,
    Channel.BAROMETER: BarometerState,
    Channel.AMBIENT_LIGHT: AmbientLightState,
    Channel.MICROPHONE: MicrophoneState,
}
"""The subtree each channel exclusively owns."""

ACCUMULATOR_FIELDS: dict[Channel, frozenset[str]] = {
    Channel.MOTION: frozenset({"peak_g"}),
}
"""Running-maximum fields; updated on every sample and cleared only by reset."""


class SensorSnapshot(BaseModel):
    """Latest committed per-channel values.

    Parameters
    ----------
    availability : dict
        Whether each channel has ever received a genuine reading.
    committed_at : dict
        Wall-clock time of each channel's last commit, ``None`` before the
        first one.
    taken_at : datetime
        When this snapshot was assembled.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    location: LocationState = Field(default_factory=LocationState)
    motion: MotionState = Field(default_factory=MotionState)
    orientation: OrientationState = Field(default_factory=OrientationState)
    magnetometer: MagnetometerState = Field(default_factory=MagnetometerState)
    barometer: BarometerState = Field(default_factory=BarometerState)
    ambient_light: AmbientLightState = Field(default_factory=AmbientLightState)
    microphone: MicrophoneState = Field(default_factory=MicrophoneState)
    availability: dict[Channel, bool] = Field(default_factory=lambda: {channel: False for channel in Channel})
    committed_at: dict[Channel, datetime | None] = Field(
        default_factory=lambda: {channel: None for channel in Channel}
    )
    taken_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def is_available(self, channel: Channel) -> bool:
        return self.availability.get(channel, False)

    def status(self, channel: Channel) -> ChannelStatus:
        return ChannelStatus.LIVE if self.is_available(channel) else ChannelStatus.UNAVAILABLE

    def is_stale(self, channel: Channel, max_age: float) -> bool:
        """Whether a live channel has not committed for more than *max_age* seconds.

        Unavailable channels are never stale; they are waiting.
        """
        if not self.is_available(channel):
            return False
        last = self.committed_at.get(channel)
        if last is None:
            return False
        return (self.taken_at - last).total_seconds() > max_age


class HeadingReference(StrEnum):
    GPS_TRUE_NORTH = "gps_true_north"
    MAGNETIC = "magnetic"


class VerticalTrend(StrEnum):
    CLIMBING = "climbing"
    LEVEL = "level"
    DESCENDING = "descending"


class EmfLevel(StrEnum):
    LOW = "low"
    ELEVATED = "elevated"
    HIGH = "high"


class FusedHeading(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float
    reference: HeadingReference
    direction: str


class DerivedMetrics(BaseModel):
    """Secondary quantities computed from a snapshot.

    ``None`` means "not computable": a required input is missing or, for
    pressure-based values, only a default/estimated pressure is known.
    """

    model_config = ConfigDict(frozen=True)

    heading: FusedHeading
    vertical_trend: VerticalTrend
    pressure_estimated: bool
    pressure_psi: float | None = None
    air_density: float | None = None
    density_altitude_ft: float | None = None
    true_airspeed: float | None = None
    speed_of_sound: float | None = None
    mach: float | None = None
    emf_level: EmfLevel | None = None


class SensorReadout(BaseModel):
    """What the presentation layer reads: a snapshot plus its derived metrics."""

    model_config = ConfigDict(frozen=True)

    snapshot: SensorSnapshot
    derived: DerivedMetrics
