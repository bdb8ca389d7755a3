"""Tests for the per-channel producers."""

from __future__ import annotations

import asyncio
import threading

import pytest

from pysensormon.channels import (
    AmbientLightChannel,
    AudioRingBuffer,
    BarometerChannel,
    LocationChannel,
    MagnetometerChannel,
    MicrophoneChannel,
    MotionChannel,
    OrientationChannel,
)
from pysensormon.config import SensorConfig
from pysensormon.exceptions import TransientFixError
from pysensormon.ingestion.decoders import decode_audio_frame
from pysensormon.models.environment import GenericSensorKind, ReadingOrigin
from pysensormon.models.orientation import HeadingSource
from pysensormon.platform.push import EventKind, PushPlatform
from pysensormon.state.events import Channel
from pysensormon.state.store import SnapshotStore
from pysensormon.state.throttle import ChannelThrottler

from conftest import BarePlatform, FakeClock


def _build(handler_type, store: SnapshotStore, clock: FakeClock, config: SensorConfig | None = None):
    return handler_type(
        writer=store.writer(handler_type.channel),
        throttler=ChannelThrottler(clock=clock),
        config=config or SensorConfig(),
    )


def _fix(altitude: float = 0.0, **extra: object) -> dict:
    return {"coords": {"latitude": 52.0, "longitude": 4.0, "altitude": altitude, **extra}}


def _motion(x: float, y: float, z: float, linear: tuple[float, float, float] | None = None) -> dict:
    payload: dict = {"accelerationIncludingGravity": {"x": x, "y": y, "z": z}}
    if linear is not None:
        payload["acceleration"] = dict(zip("xyz", linear, strict=True))
    return payload


def test_writer_must_match_channel(clock: FakeClock) -> None:
    store = SnapshotStore()
    with pytest.raises(ValueError):
        MotionChannel(
            writer=store.writer(Channel.LOCATION),
            throttler=ChannelThrottler(clock=clock),
            config=SensorConfig(),
        )


# ------------------------------------------------------------------
# Location
# ------------------------------------------------------------------


class TestLocationChannel:
    def test_climb_rate_from_two_fixes(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(LocationChannel, store, clock)

        assert channel.handle(_fix(100.0))
        assert store.snapshot().location.vertical_speed == 0.0
        clock.advance(5.0)
        assert channel.handle(_fix(110.0))

        location = store.snapshot().location
        assert location.vertical_speed == pytest.approx(2.0)
        assert location.altitude == 110.0
        assert store.is_available(Channel.LOCATION)

    def test_primary_and_climb_throttled_separately(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(LocationChannel, store, clock)

        channel.handle(_fix(100.0))
        clock.advance(0.5)
        channel.handle(_fix(101.0))

        snapshot = store.snapshot().location
        # Primary values refreshed after 0.3 s, climb waits for 1.0 s.
        assert snapshot.altitude == 101.0
        assert snapshot.vertical_speed == 0.0

        clock.advance(0.1)
        assert not channel.handle(_fix(102.0))
        assert store.snapshot().location.altitude == 101.0

    def test_malformed_fix_dropped_without_mutation(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(LocationChannel, store, clock)

        assert not channel.handle({"coords": {"longitude": 4.0}})
        assert channel.malformed == 1
        assert store.commit_count(Channel.LOCATION) == 0
        assert not store.is_available(Channel.LOCATION)

    def test_missing_heading_and_speed(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(LocationChannel, store, clock)
        channel.handle({"latitude": 1.0, "longitude": 2.0})

        location = store.snapshot().location
        assert location.heading is None
        assert location.speed == 0.0
        assert location.altitude == 0.0

    def test_transient_errors_are_ignored(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(LocationChannel, store, clock)
        channel.handle(_fix(10.0))

        channel.on_error(TransientFixError("timeout", timed_out=True))

        assert channel.transient_failures == 1
        assert store.snapshot().location.altitude == 10.0

    def test_altitude_observers_see_every_fix(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(LocationChannel, store, clock)
        seen: list[float] = []
        channel.add_altitude_observer(seen.append)

        channel.handle(_fix(10.0))
        channel.handle(_fix(11.0))  # throttled

        assert seen == [10.0, 11.0]


# ------------------------------------------------------------------
# Motion
# ------------------------------------------------------------------


class TestMotionChannel:
    def test_peak_sees_throttled_samples(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(MotionChannel, store, clock)

        assert channel.handle(_motion(0.0, 0.0, 9.81))
        # Same instant: throttled, but the spike still counts for the peak.
        assert not channel.handle(_motion(0.0, 0.0, 29.43))

        motion = store.snapshot().motion
        assert motion.total_g == pytest.approx(1.0)
        assert motion.peak_g == pytest.approx(3.0)

    def test_peak_is_running_maximum(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(MotionChannel, store, clock)
        peaks: list[float] = []
        for z in (9.81, 19.62, 4.9, 14.7, 24.5):
            channel.handle(_motion(0.0, 0.0, z))
            peaks.append(store.snapshot().motion.peak_g)
            clock.advance(0.1)

        assert peaks == sorted(peaks)
        assert peaks[-1] == pytest.approx(24.5 / 9.81)

    def test_vibration_needs_complete_linear_vector(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(MotionChannel, store, clock)

        channel.handle(_motion(0.0, 0.0, 9.81))
        assert store.snapshot().motion.vibration is None

        clock.advance(1.0)
        channel.handle(_motion(0.0, 0.0, 9.81, linear=(0.3, 0.0, 0.4)))
        assert store.snapshot().motion.vibration == pytest.approx(0.5)

        clock.advance(0.5)
        channel.handle(_motion(0.0, 0.0, 9.81, linear=(3.0, 0.0, 4.0)))
        # Vibration waits a full second; primary values have moved on.
        assert store.snapshot().motion.vibration == pytest.approx(0.5)

    def test_parallel_callbacks_do_not_lose_the_peak(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(MotionChannel, store, clock)
        values = [9.81 * (1 + (i % 50) / 10) for i in range(400)]

        def _feed(chunk: list[float]) -> None:
            for z in chunk:
                channel.handle(_motion(0.0, 0.0, z))

        threads = [threading.Thread(target=_feed, args=(values[i::4],)) for i in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert store.snapshot().motion.peak_g == pytest.approx(max(values) / 9.81)


# ------------------------------------------------------------------
# Orientation
# ------------------------------------------------------------------


class TestOrientationChannel:
    def test_native_heading_sets_live(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(OrientationChannel, store, clock)

        channel.handle({"webkitCompassHeading": 87.0, "webkitCompassAccuracy": 10})

        orientation = store.snapshot().orientation
        assert orientation.heading == 87.0
        assert orientation.source == HeadingSource.NATIVE_COMPASS
        assert orientation.accuracy == 10.0
        assert store.is_available(Channel.ORIENTATION)

    def test_headingless_event_commits_default_without_availability(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(OrientationChannel, store, clock)

        assert channel.handle({"beta": 10.0, "gamma": 2.0})

        assert store.snapshot().orientation.heading == 0.0
        assert not store.is_available(Channel.ORIENTATION)

    def test_headingless_event_keeps_last_live_heading(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(OrientationChannel, store, clock)
        channel.handle({"alpha": 90.0})
        clock.advance(1.0)

        assert not channel.handle({"beta": 10.0})

        orientation = store.snapshot().orientation
        assert orientation.heading == 270.0
        assert orientation.source == HeadingSource.ROTATION


# ------------------------------------------------------------------
# Generic sensors
# ------------------------------------------------------------------


class TestGenericChannels:
    def test_unsupported_sensor_leaves_channel_unavailable(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        platform = PushPlatform(supported_sensors=set())
        channel = _build(MagnetometerChannel, store, clock)

        assert not channel.start(platform)
        assert channel.supported is False
        assert not channel.is_subscribed
        assert not store.is_available(Channel.MAGNETOMETER)

    @pytest.mark.parametrize("handler_type", [LocationChannel, MotionChannel, OrientationChannel])
    def test_missing_platform_capability_is_not_raised(self, handler_type, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(handler_type, store, clock)

        assert not channel.start(BarePlatform())
        assert channel.supported is False
        assert not channel.is_subscribed
        assert not store.is_available(handler_type.channel)

    def test_magnetometer_requests_configured_frequency(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        platform = PushPlatform()
        channel = _build(MagnetometerChannel, store, clock, SensorConfig(magnetometer_frequency=20.0))

        assert channel.start(platform)
        assert platform.requested_frequency(GenericSensorKind.MAGNETOMETER) == 20.0

        platform.dispatch("magnetometer", {"x": 30.0, "y": 40.0, "z": 0.0})
        magnetometer = store.snapshot().magnetometer
        assert magnetometer.field_strength == pytest.approx(50.0)
        assert store.is_available(Channel.MAGNETOMETER)

    def test_ambient_light(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(AmbientLightChannel, store, clock)

        channel.handle({"illuminance": 320.0})

        assert store.snapshot().ambient_light.illuminance == 320.0


class TestBarometerChannel:
    def test_estimate_is_tagged_and_not_live(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(BarometerChannel, store, clock)

        assert channel.observe_altitude(1000.0)

        barometer = store.snapshot().barometer
        assert barometer.origin == ReadingOrigin.ESTIMATED
        assert barometer.pressure_hpa == pytest.approx(898.75, abs=0.1)
        assert not barometer.is_real
        assert not store.is_available(Channel.BAROMETER)

    def test_real_reading_stops_estimates(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(BarometerChannel, store, clock)
        channel.observe_altitude(1000.0)
        clock.advance(1.0)

        channel.handle({"pressure": 1002.0})
        clock.advance(1.0)

        assert not channel.observe_altitude(0.0)
        barometer = store.snapshot().barometer
        assert barometer.pressure_hpa == 1002.0
        assert barometer.origin == ReadingOrigin.SENSOR
        assert barometer.is_real

    def test_estimate_can_be_disabled(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(BarometerChannel, store, clock, SensorConfig(estimate_pressure_from_altitude=False))

        assert not channel.observe_altitude(500.0)
        assert store.snapshot().barometer.origin == ReadingOrigin.DEFAULT

    def test_estimates_are_throttled_on_their_own_key(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(BarometerChannel, store, clock)

        assert channel.observe_altitude(0.0)
        assert not channel.observe_altitude(100.0)
        clock.advance(0.3)
        assert channel.observe_altitude(100.0)
        assert channel.throttle_key("estimate") == "barometer.estimate"

    def test_real_reading_right_after_estimate_commits(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(BarometerChannel, store, clock)

        assert channel.observe_altitude(100.0)
        clock.advance(0.1)

        assert channel.handle({"pressure": 1000.0})
        assert store.is_available(Channel.BAROMETER)
        assert store.snapshot().barometer.origin == ReadingOrigin.SENSOR

    def test_barometer_behind_gps_goes_live(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        throttler = ChannelThrottler(clock=clock)
        config = SensorConfig()
        location = LocationChannel(writer=store.writer(Channel.LOCATION), throttler=throttler, config=config)
        barometer = BarometerChannel(writer=store.writer(Channel.BAROMETER), throttler=throttler, config=config)
        location.add_altitude_observer(barometer.observe_altitude)

        for _ in range(10):
            location.handle(_fix(altitude=100.0))
            clock.advance(0.1)
            barometer.handle({"pressure": 1000.0})
            clock.advance(0.9)

        snapshot = store.snapshot()
        assert snapshot.is_available(Channel.BAROMETER)
        assert snapshot.barometer.pressure_hpa == 1000.0
        assert snapshot.barometer.is_real

    def test_altitude_above_model_atmosphere_is_skipped(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(BarometerChannel, store, clock)

        assert not channel.observe_altitude(50_000.0)
        assert store.snapshot().barometer.origin == ReadingOrigin.DEFAULT


# ------------------------------------------------------------------
# Microphone
# ------------------------------------------------------------------


def test_audio_ring_buffer_is_bounded() -> None:
    buffer = AudioRingBuffer(2)
    for level in (10, 20, 30):
        buffer.push(decode_audio_frame([level] * 4))

    assert len(buffer) == 2
    latest = buffer.latest()
    assert latest is not None and latest.bins == (30, 30, 30, 30)
    buffer.clear()
    assert buffer.latest() is None


class TestMicrophoneChannel:
    def test_sample_without_frames_commits_nothing(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(MicrophoneChannel, store, clock)

        assert not channel.sample()
        assert not store.is_available(Channel.MICROPHONE)

    def test_sample_uses_newest_frame(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(MicrophoneChannel, store, clock)
        channel.on_frame([0] * 128)
        channel.on_frame([255] * 128)

        assert channel.sample()
        assert store.snapshot().microphone.sound_db == 58.0

    def test_malformed_frames_are_dropped(self, clock: FakeClock) -> None:
        store = SnapshotStore()
        channel = _build(MicrophoneChannel, store, clock)

        channel.on_frame({"bins": "noise"})

        assert channel.malformed == 1
        assert len(channel.buffer) == 0

    @pytest.mark.asyncio
    async def test_tick_task_samples_and_cancels(self) -> None:
        store = SnapshotStore()
        channel = MicrophoneChannel(
            writer=store.writer(Channel.MICROPHONE),
            throttler=ChannelThrottler(),
            config=SensorConfig(microphone_tick=0.01),
        )
        platform = PushPlatform()

        await channel.start(platform)
        platform.dispatch("microphone", [128] * 128)
        for _ in range(50):
            if store.is_available(Channel.MICROPHONE):
                break
            await asyncio.sleep(0.01)

        assert channel.is_sampling
        assert store.snapshot().microphone.sound_db is not None

        await channel.aclose()
        assert not channel.is_sampling
        assert not channel.is_subscribed

    @pytest.mark.asyncio
    async def test_capture_opened_after_close_is_released(self, clock: FakeClock) -> None:
        release = asyncio.Event()

        async def _slow_grant() -> bool:
            await release.wait()
            return True

        store = SnapshotStore()
        channel = _build(MicrophoneChannel, store, clock)
        platform = PushPlatform(microphone_permission_decider=_slow_grant)

        opening = asyncio.create_task(channel.start(platform))
        await asyncio.sleep(0)
        await channel.aclose()
        release.set()

        assert not await opening
        assert not channel.is_sampling
        assert not channel.is_subscribed
        assert platform.listener_count(EventKind.MICROPHONE) == 0
