"""Helpers for safe debug logging.

Location payloads carry the user's position and audio payloads carry
hundreds of analyser bins. :func:`redact_for_log` hides the former and
summarizes the latter before anything reaches a DEBUG log line.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_POSITION_KEYS: frozenset[str] = frozenset({"latitude", "longitude", "lat", "lon", "lng", "coords", "position"})

_MAX_DEPTH = 20


def _clip(text: str, limit: int) -> str:
    return text if len(text) <= limit else f"{text[:limit]}…<truncated>"


def redact_for_log(value: Any, *, max_string: int = 256, max_items: int = 32, _depth: int = 0) -> Any:
    """Return a log-safe copy of *value*.

    Position keys are replaced by ``"<redacted>"``, long strings are
    clipped to *max_string* characters and sequences longer than
    *max_items* collapse to a size marker.
    """
    if _depth > _MAX_DEPTH:
        return "<max-depth>"
    if value is None or isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, str):
        return _clip(value, max_string)
    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    def _inner(item: Any) -> Any:
        return redact_for_log(item, max_string=max_string, max_items=max_items, _depth=_depth + 1)

    if isinstance(value, Mapping):
        return {
            str(key): "<redacted>" if str(key).lower() in _POSITION_KEYS else _inner(item)
            for key, item in value.items()
        }
    if isinstance(value, Sequence):
        if len(value) > max_items:
            return f"<sequence:{len(value)} items>"
        return [_inner(item) for item in value]

    return _clip(repr(value), max_string)
