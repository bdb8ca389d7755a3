"""Per-channel producers that turn raw sensor events into snapshot commits."""

from pysensormon.channels.base import ChannelHandler
from pysensormon.channels.environment import (
    AmbientLightChannel,
    BarometerChannel,
    GenericSensorChannel,
    MagnetometerChannel,
)
from pysensormon.channels.location import AltitudeRing, LocationChannel
from pysensormon.channels.microphone import AudioRingBuffer, MicrophoneChannel
from pysensormon.channels.motion import MotionChannel
from pysensormon.channels.orientation import OrientationChannel

__all__ = [
    "AltitudeRing",
    "AmbientLightChannel",
    "AudioRingBuffer",
    "BarometerChannel",
    "ChannelHandler",
    "GenericSensorChannel",
    "LocationChannel",
    "MagnetometerChannel",
    "MicrophoneChannel",
    "MotionChannel",
    "OrientationChannel",
]
