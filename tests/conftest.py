from __future__ import annotations

from typing import Any

import pytest

from pysensormon.exceptions import SensorUnsupportedError
from pysensormon.platform.push import PushPlatform


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now


class BarePlatform(PushPlatform):
    """Host without geolocation or motion events."""

    def watch_position(self, *args: Any, **kwargs: Any) -> Any:
        raise SensorUnsupportedError("geolocation is not available", kind="location")

    def add_motion_listener(self, *args: Any, **kwargs: Any) -> Any:
        raise SensorUnsupportedError("motion events are not available", kind="motion")

    def add_orientation_listener(self, *args: Any, **kwargs: Any) -> Any:
        raise SensorUnsupportedError("orientation events are not available", kind="orientation")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
