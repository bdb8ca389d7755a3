"""Structural interfaces for host sensor platforms.

Channels only talk to these protocols, which keeps them independent of
where events come from (the push hub, a bridge, or a test double).
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

from pysensormon.exceptions import TransientFixError
from pysensormon.models.environment import GenericSensorKind

RawEvent = Mapping[str, Any]
EventCallback = Callable[[RawEvent], None]
FixErrorCallback = Callable[[TransientFixError], None]


@dataclass(frozen=True)
class WatchOptions:
    """Position watch request.

    ``maximum_age`` is the oldest cached fix in seconds the service may
    return (``0``: none). ``timeout`` bounds the wait for each fix.
    """

    high_accuracy: bool = True
    maximum_age: float = 0.0
    timeout: float = 5.0


class Subscription(Protocol):
    """Handle for an open platform subscription."""

    def close(self) -> None:
        """Release the underlying hardware subscription. Idempotent."""
        ...


class SensorPlatform(Protocol):
    """Everything the session needs from the host device."""

    @property
    def requires_motion_permission(self) -> bool:
        """Whether motion/orientation access needs an explicit user decision."""
        ...

    async def request_motion_permission(self) -> bool:
        """Ask for motion/orientation access; True when granted."""
        ...

    def watch_position(
        self,
        on_fix: EventCallback,
        on_error: FixErrorCallback,
        options: WatchOptions,
    ) -> Subscription:
        ...

    def add_motion_listener(self, callback: EventCallback) -> Subscription:
        ...

    def add_orientation_listener(self, callback: EventCallback) -> Subscription:
        ...

    def open_sensor(
        self,
        kind: GenericSensorKind,
        on_reading: EventCallback,
        *,
        frequency: float | None = None,
    ) -> Subscription:
        """Start a generic sensor; raises ``SensorUnsupportedError`` when absent."""
        ...

    async def open_microphone(self, on_frame: Callable[[Any], None]) -> Subscription:
        """Start audio capture.

        Raises ``PermissionDeniedError`` or ``SensorUnsupportedError``.
        """
        ...
