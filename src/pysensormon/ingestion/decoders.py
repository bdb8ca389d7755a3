"""Channel decoders.

Each decoder converts one raw platform event into a typed reading or
raises :class:`~pysensormon.exceptions.MalformedEventError`. Callers drop
malformed events; no partial reading ever reaches the store.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from pysensormon.exceptions import MalformedEventError
from pysensormon.models.environment import (
    AudioFrame,
    GenericSensorKind,
    LightReading,
    MagneticFieldReading,
    PressureReading,
)
from pysensormon.models.location import LocationFix
from pysensormon.models.motion import MotionSample
from pysensormon.models.orientation import OrientationReading
from pysensormon.state.events import Channel

TModel = TypeVar("TModel", bound=BaseModel)


def _decode(model: type[TModel], channel: Channel, payload: Any) -> TModel:
    if isinstance(payload, model):
        return payload
    if not isinstance(payload, Mapping) and model is not AudioFrame:
        raise MalformedEventError(f"{channel} event is not an object: {type(payload).__name__}", channel=channel)
    try:
        return model.model_validate(dict(payload) if isinstance(payload, Mapping) else payload)
    except ValidationError as exc:
        fields = sorted({".".join(str(part) for part in err["loc"]) for err in exc.errors()})
        raise MalformedEventError(f"{channel} event rejected: {', '.join(fields) or exc}", channel=channel) from exc


def decode_location(payload: Any) -> LocationFix:
    return _decode(LocationFix, Channel.LOCATION, payload)


def decode_motion(payload: Any) -> MotionSample:
    return _decode(MotionSample, Channel.MOTION, payload)


def decode_orientation(payload: Any) -> OrientationReading:
    return _decode(OrientationReading, Channel.ORIENTATION, payload)


def decode_magnetic_field(payload: Any) -> MagneticFieldReading:
    return _decode(MagneticFieldReading, Channel.MAGNETOMETER, payload)


def decode_pressure(payload: Any) -> PressureReading:
    return _decode(PressureReading, Channel.BAROMETER, payload)


def decode_light(payload: Any) -> LightReading:
    return _decode(LightReading, Channel.AMBIENT_LIGHT, payload)


def decode_audio_frame(payload: Any) -> AudioFrame:
    return _decode(AudioFrame, Channel.MICROPHONE, payload)


GENERIC_DECODERS: dict[GenericSensorKind, Callable[[Any], BaseModel]] = {
    GenericSensorKind.MAGNETOMETER: decode_magnetic_field,
    GenericSensorKind.BAROMETER: decode_pressure,
    GenericSensorKind.AMBIENT_LIGHT: decode_light,
}
