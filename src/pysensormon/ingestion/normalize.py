"""Normalization helpers.

Centralizes parsing of loosely typed platform payloads.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any


def safe_float(value: Any) -> float | None:
    """Parse a finite float; anything else (including booleans) is ``None``."""
    if value is None or isinstance(value, bool) or value in ("", "--"):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def first_present(values: Mapping[str, Any], *keys: str) -> Any:
    """Return the first value under *keys* that parses as a number.

    Platforms disagree on field names; a ``null`` under one alias must not
    hide a real value under another.
    """
    for key in keys:
        if key in values and safe_float(values[key]) is not None:
            return values[key]
    return None


def merge_nested(values: Mapping[str, Any], *containers: str) -> dict[str, Any]:
    """Flatten well-known wrapper objects (``coords``, ``values``, ``data``)."""
    merged = dict(values)
    for container in containers:
        nested = values.get(container)
        if isinstance(nested, Mapping):
            merged.update(nested)
    return merged


def normalize_degrees(value: float) -> float:
    """Wrap an angle into ``[0, 360)``."""
    wrapped = math.fmod(value, 360.0)
    if wrapped < 0:
        wrapped += 360.0
    # fmod(-0.0) and float rounding can land exactly on 360.
    if wrapped >= 360.0:
        wrapped = 0.0
    return wrapped + 0.0


def normalize_timestamp_seconds(value: Any) -> float | None:
    """Normalize platform timestamps to epoch seconds.

    - Empty/missing -> None
    - <= 0 -> None
    - Nanoseconds (> 1e17) -> seconds
    - Milliseconds (> 1e11) -> seconds
    """

    ts = safe_float(value)
    if ts is None or ts <= 0:
        return None
    if ts > 1e17:
        return ts / 1e9
    if ts > 1e11:
        return ts / 1000.0
    return ts
