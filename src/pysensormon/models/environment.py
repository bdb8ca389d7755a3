"""Environmental sensor reading models.

Magnetometer, barometer, ambient light and microphone frames. Each one is
an optional capability; absence is represented by the channel never
becoming available, never by a zero reading.
"""

from __future__ import annotations

import math
from collections.abc import Sequence
from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from pysensormon.ingestion.normalize import merge_nested, safe_float
from pysensormon.models._base import SensorBaseModel


class ReadingOrigin(StrEnum):
    """Provenance of a value in the snapshot."""

    DEFAULT = "default"
    ESTIMATED = "estimated"
    SENSOR = "sensor"


class GenericSensorKind(StrEnum):
    """Generic-sensor capabilities a platform may expose."""

    MAGNETOMETER = "magnetometer"
    BAROMETER = "barometer"
    AMBIENT_LIGHT = "ambient_light"


class _FlatReading(SensorBaseModel):
    @model_validator(mode="before")
    @classmethod
    def _flatten(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        merged = merge_nested(values, "values", "reading")
        merged.pop("values", None)
        merged.pop("reading", None)
        merged.setdefault("raw", values)
        return cls._clean_dict(merged)


class MagneticFieldReading(_FlatReading):
    """Magnetic field vector in µT."""

    x: float
    y: float
    z: float

    @field_validator("x", "y", "z", mode="before")
    @classmethod
    def _coerce_axis(cls, value: Any) -> float | None:
        return safe_float(value)

    @property
    def field_strength(self) -> float:
        """Total field strength in µT."""
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)


class PressureReading(_FlatReading):
    """Barometric pressure in hPa."""

    pressure_hpa: float = Field(validation_alias=AliasChoices("pressure_hpa", "pressureHPa", "pressure", "hPa"))

    @field_validator("pressure_hpa", mode="before")
    @classmethod
    def _coerce_pressure(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("pressure_hpa")
    @classmethod
    def _check_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError(f"pressure must be positive, got {value}")
        return value


class LightReading(_FlatReading):
    """Ambient illuminance in lux."""

    illuminance: float = Field(validation_alias=AliasChoices("illuminance", "lux"))

    @field_validator("illuminance", mode="before")
    @classmethod
    def _coerce_illuminance(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("illuminance")
    @classmethod
    def _check_non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"illuminance must be >= 0, got {value}")
        return value


class AudioFrame(SensorBaseModel):
    """One frequency-domain analyser frame.

    ``bins`` holds byte magnitudes (0-255), one per frequency bin.
    """

    bins: tuple[int, ...] = Field(validation_alias=AliasChoices("bins", "frequencyData", "frequency_data", "data"))

    @model_validator(mode="before")
    @classmethod
    def _wrap_sequence(cls, values: Any) -> Any:
        if isinstance(values, (bytes, bytearray)):
            return {"bins": tuple(values)}
        if isinstance(values, Sequence) and not isinstance(values, str):
            return {"bins": values}
        return values

    @field_validator("bins", mode="before")
    @classmethod
    def _clamp_bins(cls, value: Any) -> tuple[int, ...]:
        if isinstance(value, (bytes, bytearray)):
            return tuple(value)
        if not isinstance(value, Sequence) or isinstance(value, str):
            raise ValueError("frequency data must be a sequence")
        if not value:
            raise ValueError("frequency data is empty")
        clamped: list[int] = []
        for item in value:
            parsed = safe_float(item)
            if parsed is None:
                raise ValueError(f"non-numeric frequency bin: {item!r}")
            clamped.append(max(0, min(255, int(parsed))))
        return tuple(clamped)
