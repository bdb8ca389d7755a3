from __future__ import annotations

import asyncio

import pytest

from pysensormon.exceptions import PermissionDeniedError, SensorUnsupportedError, TransientFixError
from pysensormon.models.environment import GenericSensorKind
from pysensormon.platform.base import WatchOptions
from pysensormon.platform.push import EventKind, PushPlatform, resolve_kind


@pytest.mark.parametrize(
    ("name", "kind"),
    [
        ("location", EventKind.LOCATION),
        ("Location", EventKind.LOCATION),
        ("gps", EventKind.LOCATION),
        ("devicemotion", EventKind.MOTION),
        ("magnetic_field", EventKind.MAGNETOMETER),
        ("pressure", EventKind.BAROMETER),
        ("ambient-light", EventKind.AMBIENT_LIGHT),
        ("mic", EventKind.MICROPHONE),
        ("accelerometer_raw", None),
    ],
)
def test_resolve_kind(name: str, kind: EventKind | None) -> None:
    assert resolve_kind(name) == kind


def test_dispatch_routes_to_listeners_until_closed() -> None:
    platform = PushPlatform()
    received: list[dict] = []
    subscription = platform.add_motion_listener(received.append)

    assert platform.dispatch("motion", {"a": 1}) == 1
    subscription.close()
    subscription.close()
    assert platform.dispatch("motion", {"a": 2}) == 0

    assert received == [{"a": 1}]


def test_unknown_kind_is_ignored() -> None:
    assert PushPlatform().dispatch("thermometer", {"t": 20}) == 0


def test_failing_listener_does_not_starve_others() -> None:
    platform = PushPlatform()
    received: list[dict] = []

    def _broken(_payload: dict) -> None:
        raise RuntimeError("boom")

    platform.add_orientation_listener(_broken)
    platform.add_orientation_listener(received.append)

    assert platform.dispatch("orientation", {"alpha": 1.0}) == 2
    assert received == [{"alpha": 1.0}]


def test_dispatch_message_flattens_values_and_time() -> None:
    platform = PushPlatform()
    received: list[dict] = []
    platform.open_sensor(GenericSensorKind.BAROMETER, received.append)

    platform.dispatch_message({"name": "pressure", "values": {"pressure": 1001.0}, "time": 1_700_000_000_000_000_000})

    assert received == [{"pressure": 1001.0, "time": 1_700_000_000_000_000_000}]


def test_open_sensor_rejects_unsupported_kinds() -> None:
    platform = PushPlatform(supported_sensors={GenericSensorKind.BAROMETER})

    with pytest.raises(SensorUnsupportedError) as excinfo:
        platform.open_sensor(GenericSensorKind.MAGNETOMETER, lambda _p: None, frequency=10.0)
    assert excinfo.value.kind == GenericSensorKind.MAGNETOMETER


@pytest.mark.asyncio
async def test_microphone_permission_and_support() -> None:
    async def _deny() -> bool:
        return False

    with pytest.raises(PermissionDeniedError):
        await PushPlatform(microphone_permission_decider=_deny).open_microphone(lambda _f: None)
    with pytest.raises(SensorUnsupportedError):
        await PushPlatform(microphone_supported=False).open_microphone(lambda _f: None)

    subscription = await PushPlatform().open_microphone(lambda _f: None)
    assert not subscription.closed


@pytest.mark.asyncio
async def test_motion_permission_decider() -> None:
    async def _grant() -> bool:
        return True

    assert not PushPlatform().requires_motion_permission
    assert await PushPlatform().request_motion_permission()
    platform = PushPlatform(motion_permission_decider=_grant)
    assert platform.requires_motion_permission
    assert await platform.request_motion_permission()


@pytest.mark.asyncio
async def test_cached_fixes_are_rejected() -> None:
    platform = PushPlatform(clock=lambda: 1_700_000_000.0)
    fixes: list[dict] = []
    platform.watch_position(fixes.append, lambda _e: None, WatchOptions(maximum_age=0.0, timeout=60.0))

    # Millisecond timestamps, as browsers report them.
    platform.dispatch("location", {"latitude": 1.0, "longitude": 2.0, "timestamp": 1_699_999_000_000})
    platform.dispatch("location", {"latitude": 1.0, "longitude": 2.0, "timestamp": 1_700_000_001_000})
    platform.dispatch("location", {"latitude": 1.0, "longitude": 2.0})

    assert [fix.get("timestamp") for fix in fixes] == [1_700_000_001_000, None]


@pytest.mark.asyncio
async def test_maximum_age_admits_recent_cached_fix() -> None:
    platform = PushPlatform(clock=lambda: 1_700_000_000.0)
    fixes: list[dict] = []
    platform.watch_position(fixes.append, lambda _e: None, WatchOptions(maximum_age=200.0, timeout=60.0))

    platform.dispatch("location", {"coords": {"latitude": 1.0, "longitude": 2.0}, "timestamp": 1_699_999_900})

    assert len(fixes) == 1


@pytest.mark.asyncio
async def test_fix_timeout_reports_transient_errors_until_closed() -> None:
    platform = PushPlatform()
    errors: list[TransientFixError] = []
    subscription = platform.watch_position(lambda _f: None, errors.append, WatchOptions(timeout=0.02))

    await asyncio.sleep(0.09)
    subscription.close()
    count = len(errors)
    await asyncio.sleep(0.05)

    assert count >= 2
    assert all(error.timed_out for error in errors)
    assert len(errors) == count


@pytest.mark.asyncio
async def test_location_error_messages_reach_watches() -> None:
    platform = PushPlatform()
    errors: list[TransientFixError] = []
    platform.watch_position(lambda _f: None, errors.append, WatchOptions(timeout=60.0))

    assert platform.dispatch("location_error", {"message": "position unavailable"}) == 1

    assert len(errors) == 1
    assert not errors[0].timed_out
    assert str(errors[0]) == "position unavailable"
