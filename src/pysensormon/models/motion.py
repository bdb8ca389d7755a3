"""Motion sample model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, model_validator

from pysensormon.ingestion.normalize import merge_nested, safe_float
from pysensormon.models._base import SensorBaseModel, Vector3

_GRAVITY_KEYS = ("accelerationIncludingGravity", "acceleration_including_gravity", "accelerometer", "gravity")
_LINEAR_KEYS = ("acceleration", "linearAcceleration", "linear_acceleration", "linear")


class MotionSample(SensorBaseModel):
    """One device-motion event.

    Parameters
    ----------
    acceleration_including_gravity : Vector3
        Acceleration in m/s² including gravity. Required; a sample without it
        is discarded.
    acceleration : Vector3 or None
        Gravity-excluded (linear) acceleration in m/s². ``None`` unless all
        three axes are reported.
    interval : float or None
        Platform sampling interval in milliseconds.
    """

    acceleration_including_gravity: Vector3 = Field(validation_alias=AliasChoices(*_GRAVITY_KEYS))
    acceleration: Vector3 | None = Field(default=None, validation_alias=AliasChoices(*_LINEAR_KEYS))
    interval: float | None = None

    @model_validator(mode="before")
    @classmethod
    def _drop_partial_linear(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        merged = merge_nested(values, "values")
        merged.pop("values", None)
        merged.setdefault("raw", values)
        for key in _LINEAR_KEYS:
            if key in merged and not Vector3.is_complete(merged[key]):
                merged.pop(key)
        if "interval" in merged:
            merged["interval"] = safe_float(merged["interval"])
        return cls._clean_dict(merged)
