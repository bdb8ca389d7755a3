"""Base model for decoded sensor readings.

Every reading model inherits from :class:`SensorBaseModel` which provides:

* ``alias_generator=to_camel`` so camelCase platform keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips "not available"
  values (``None``, ``""``, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from pysensormon.ingestion.normalize import safe_float

# Strings some platforms send instead of null.
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})


def is_missing(value: Any) -> bool:
    """Return ``True`` for values that mean "the platform has no reading"."""
    if value is None:
        return True
    if isinstance(value, str) and value.strip() in _SENTINELS:
        return True
    return isinstance(value, float) and math.isnan(value)


class SensorBaseModel(BaseModel):
    """Base for decoded platform readings.

    Handles:
    * camelCase → snake_case via ``alias_generator=to_camel``
    * sentinel values → dropped so the field default is used instead
    * stashes the original payload in ``raw``
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True, repr=False)
    """Original platform payload."""

    @staticmethod
    def _clean_dict(values: Mapping[str, Any]) -> dict[str, Any]:
        return {key: value for key, value in values.items() if not is_missing(value)}

    @model_validator(mode="before")
    @classmethod
    def _clean_sensor_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw payload."""
        if not isinstance(values, Mapping):
            return values
        original = dict(values)
        cleaned = SensorBaseModel._clean_dict(original)
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned


class Vector3(BaseModel):
    """A three-axis sensor vector.

    Accepts ``{"x": .., "y": .., "z": ..}`` or a 3-item sequence. Components
    that are null or unparseable read as ``0`` (platforms emit ``null`` for
    an axis they cannot measure).
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _coerce_components(cls, values: Any) -> Any:
        if isinstance(values, Mapping):
            return {axis: safe_float(values.get(axis)) or 0.0 for axis in ("x", "y", "z")}
        if isinstance(values, Sequence) and not isinstance(values, (str, bytes)) and len(values) == 3:
            return {axis: safe_float(item) or 0.0 for axis, item in zip(("x", "y", "z"), values, strict=True)}
        return values

    @staticmethod
    def is_complete(values: Any) -> bool:
        """Whether *values* carries a numeric reading on every axis."""
        if isinstance(values, Mapping):
            return all(safe_float(values.get(axis)) is not None for axis in ("x", "y", "z"))
        if isinstance(values, Sequence) and not isinstance(values, (str, bytes)):
            return len(values) == 3 and all(safe_float(item) is not None for item in values)
        return False

    @property
    def magnitude(self) -> float:
        """Euclidean norm."""
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)
