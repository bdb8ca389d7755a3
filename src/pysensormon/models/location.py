"""Location fix model."""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from pysensormon.ingestion.normalize import merge_nested, normalize_degrees, normalize_timestamp_seconds, safe_float
from pysensormon.models._base import SensorBaseModel


class LocationFix(SensorBaseModel):
    """One position fix from the location service.

    Parameters
    ----------
    latitude : float
        Latitude in degrees. Required.
    longitude : float
        Longitude in degrees. Required.
    altitude : float
        Altitude above the WGS84 ellipsoid in metres; ``0`` when the
        fix has none.
    accuracy : float or None
        Horizontal accuracy radius in metres.
    speed : float
        Ground speed in m/s; ``0`` when the fix has none.
    heading : float or None
        Course over ground in degrees from true north, ``None`` when the
        service did not report one.
    timestamp : float or None
        Fix time in epoch seconds.
    """

    latitude: float = Field(validation_alias=AliasChoices("latitude", "lat"))
    longitude: float = Field(validation_alias=AliasChoices("longitude", "lon", "lng"))
    altitude: float = Field(default=0.0, validation_alias=AliasChoices("altitude", "alt"))
    accuracy: float | None = Field(
        default=None,
        validation_alias=AliasChoices("accuracy", "horizontalAccuracy", "horizontal_accuracy"),
    )
    speed: float = Field(default=0.0, validation_alias=AliasChoices("speed", "groundSpeed", "ground_speed"))
    heading: float | None = Field(default=None, validation_alias=AliasChoices("heading", "course", "bearing"))
    timestamp: float | None = Field(default=None, validation_alias=AliasChoices("timestamp", "time"))

    @model_validator(mode="before")
    @classmethod
    def _merge_coords(cls, values: Any) -> Any:
        # W3C GeolocationPosition nests the numbers under ``coords``.
        if not isinstance(values, dict):
            return values
        merged = merge_nested(values, "coords")
        merged.pop("coords", None)
        merged.setdefault("raw", values)
        return cls._clean_dict(merged)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: Any) -> float | None:
        return safe_float(value)

    @field_validator("latitude")
    @classmethod
    def _check_latitude(cls, value: float) -> float:
        if not -90.0 <= value <= 90.0:
            raise ValueError(f"latitude out of range: {value}")
        return value

    @field_validator("longitude")
    @classmethod
    def _check_longitude(cls, value: float) -> float:
        if not -180.0 <= value <= 180.0:
            raise ValueError(f"longitude out of range: {value}")
        return value

    @field_validator("altitude", mode="before")
    @classmethod
    def _coerce_altitude(cls, value: Any) -> float:
        parsed = safe_float(value)
        return 0.0 if parsed is None else parsed

    @field_validator("speed", mode="before")
    @classmethod
    def _coerce_speed(cls, value: Any) -> float:
        parsed = safe_float(value)
        if parsed is None or parsed < 0:
            return 0.0
        return parsed

    @field_validator("accuracy", mode="before")
    @classmethod
    def _coerce_accuracy(cls, value: Any) -> float | None:
        parsed = safe_float(value)
        if parsed is None or parsed < 0:
            return None
        return parsed

    @field_validator("heading", mode="before")
    @classmethod
    def _coerce_heading(cls, value: Any) -> float | None:
        parsed = safe_float(value)
        return None if parsed is None else normalize_degrees(parsed)

    @field_validator("timestamp", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> float | None:
        return normalize_timestamp_seconds(value)
