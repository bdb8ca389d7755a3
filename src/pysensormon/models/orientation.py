"""Orientation/compass reading model."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import AliasChoices, Field, field_validator, model_validator

from pysensormon.ingestion.normalize import first_present, merge_nested, normalize_degrees, safe_float
from pysensormon.models._base import SensorBaseModel

_NATIVE_HEADING_KEYS = ("webkitCompassHeading", "compassHeading", "compass_heading", "magneticHeading", "heading")
_ROTATION_KEYS = ("alpha", "rotation", "azimuth")


class HeadingSource(StrEnum):
    """Where an orientation heading came from."""

    NATIVE_COMPASS = "native_compass"
    ROTATION = "rotation"
    NONE = "none"


def heading_from_rotation(alpha: float) -> float:
    """Compass heading from a counter-clockwise rotation angle about z."""
    return normalize_degrees(360.0 - alpha)


class OrientationReading(SensorBaseModel):
    """One orientation event, normalized to a single compass heading.

    Parameters
    ----------
    heading : float
        Heading in ``[0, 360)`` degrees, ``0`` when ``source`` is ``NONE``.
    source : HeadingSource
        Convention the heading was derived from.
    accuracy : float or None
        Native compass accuracy in degrees, when reported.
    """

    heading: float = 0.0
    source: HeadingSource = HeadingSource.NONE
    accuracy: float | None = Field(
        default=None,
        validation_alias=AliasChoices("accuracy", "webkitCompassAccuracy", "compassAccuracy"),
    )

    @model_validator(mode="before")
    @classmethod
    def _resolve_heading(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        merged = merge_nested(values, "values")
        merged.pop("values", None)
        merged.setdefault("raw", values)

        # Explicit heading/source pairs pass straight through.
        if "source" in merged:
            return cls._clean_dict(merged)

        native = safe_float(first_present(merged, *_NATIVE_HEADING_KEYS))
        rotation = safe_float(first_present(merged, *_ROTATION_KEYS))
        if native is not None:
            merged["heading"] = normalize_degrees(native)
            merged["source"] = HeadingSource.NATIVE_COMPASS
        elif rotation is not None:
            merged["heading"] = heading_from_rotation(rotation)
            merged["source"] = HeadingSource.ROTATION
        else:
            merged["heading"] = 0.0
            merged["source"] = HeadingSource.NONE
        return cls._clean_dict(merged)

    @field_validator("heading", mode="before")
    @classmethod
    def _coerce_heading(cls, value: Any) -> float:
        parsed = safe_float(value)
        return 0.0 if parsed is None else normalize_degrees(parsed)

    @field_validator("accuracy", mode="before")
    @classmethod
    def _coerce_accuracy(cls, value: Any) -> float | None:
        parsed = safe_float(value)
        if parsed is None or parsed < 0:
            return None
        return parsed

    @property
    def has_heading(self) -> bool:
        return self.source != HeadingSource.NONE
