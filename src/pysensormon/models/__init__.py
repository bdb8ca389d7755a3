"""Typed readings and snapshot models."""

from pysensormon.models._base import SensorBaseModel, Vector3
from pysensormon.models.environment import (
    AudioFrame,
    GenericSensorKind,
    LightReading,
    MagneticFieldReading,
    PressureReading,
    ReadingOrigin,
)
from pysensormon.models.location import LocationFix
from pysensormon.models.motion import MotionSample
from pysensormon.models.orientation import HeadingSource, OrientationReading
from pysensormon.models.snapshot import (
    AmbientLightState,
    BarometerState,
    DerivedMetrics,
    EmfLevel,
    FusedHeading,
    HeadingReference,
    LocationState,
    MagnetometerState,
    MicrophoneState,
    MotionState,
    OrientationState,
    SensorReadout,
    SensorSnapshot,
    VerticalTrend,
)

__all__ = [
    "AmbientLightState",
    "AudioFrame",
    "BarometerState",
    "DerivedMetrics",
    "EmfLevel",
    "FusedHeading",
    "GenericSensorKind",
    "HeadingReference",
    "HeadingSource",
    "LightReading",
    "LocationFix",
    "LocationState",
    "MagneticFieldReading",
    "MagnetometerState",
    "MicrophoneState",
    "MotionSample",
    "MotionState",
    "OrientationReading",
    "OrientationState",
    "PressureReading",
    "ReadingOrigin",
    "SensorBaseModel",
    "SensorReadout",
    "SensorSnapshot",
    "Vector3",
    "VerticalTrend",
]
