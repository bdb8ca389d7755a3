"""Session configuration for pysensormon."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from typing import Any

from pysensormon._constants import DEFAULT_TEMPERATURE_C
from pysensormon.exceptions import SensorConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_number(key: str, value: str, convert: Callable[[str], Any] = float) -> Any:
    try:
        return convert(value.strip())
    except ValueError:
        raise SensorConfigError(f"{key} must be a number, got {value!r}") from None


def _env_optional_float(key: str, value: str) -> float | None:
    if value.strip().lower() in {"", "none", "off"}:
        return None
    return _env_number(key, value)


@dataclasses.dataclass(frozen=True)
class ThrottleIntervals:
    """Minimum spacing, in seconds, between committed snapshot mutations.

    ``primary`` applies to the fast values of every channel (position,
    G-force, heading, field strength, pressure, illuminance, sound level).
    ``climb`` and ``vibration`` are the slower sub-streams that need a
    longer window to be stable.
    """

    primary: float = 0.3
    climb: float = 1.0
    vibration: float = 1.0

    def __post_init__(self) -> None:
        for field in dataclasses.fields(self):
            value = getattr(self, field.name)
            if value < 0:
                raise SensorConfigError(f"throttle interval {field.name} must be >= 0, got {value}")


@dataclasses.dataclass(frozen=True)
class SensorConfig:
    """Session configuration.

    Parameters
    ----------
    throttle : ThrottleIntervals
        Per sub-stream commit intervals.
    location_timeout : float
        Per-fix timeout in seconds enforced by the location service.
    location_maximum_age : float
        Oldest cached fix, in seconds, the location service may hand out.
        ``0`` rejects every cached fix.
    location_high_accuracy : bool
        Ask the location service for its most accurate provider.
    heading_min_speed_kmh : float
        Ground speed above which the GPS course replaces the compass heading.
    ambient_temperature_c : float or None
        Assumed outside air temperature used by air density, density
        altitude and Mach number. ``None`` makes those metrics not computable.
    require_real_barometer : bool
        Only compute pressure-based metrics from a genuine barometer reading.
    estimate_pressure_from_altitude : bool
        Fill the barometer subtree with an ISA estimate from GPS altitude
        while no real barometer has reported. Estimates are always tagged.
    magnetometer_frequency : float
        Requested magnetometer sampling rate in Hz.
    barometer_frequency : float
        Requested barometer sampling rate in Hz.
    light_frequency : float or None
        Requested ambient light sampling rate in Hz; ``None`` for the
        platform default.
    microphone_tick : float
        Period in seconds of the microphone sampling task.
    audio_buffer_frames : int
        Frames kept in the microphone ring buffer.
    stale_after : float
        Age in seconds after which a live channel is reported stale.
    """

    throttle: ThrottleIntervals = dataclasses.field(default_factory=ThrottleIntervals)
    location_timeout: float = 5.0
    location_maximum_age: float = 0.0
    location_high_accuracy: bool = True
    heading_min_speed_kmh: float = 3.0
    ambient_temperature_c: float | None = DEFAULT_TEMPERATURE_C
    require_real_barometer: bool = True
    estimate_pressure_from_altitude: bool = True
    magnetometer_frequency: float = 10.0
    barometer_frequency: float = 1.0
    light_frequency: float | None = None
    microphone_tick: float = 0.1
    audio_buffer_frames: int = 8
    stale_after: float = 5.0

    def __post_init__(self) -> None:
        if self.location_timeout <= 0:
            raise SensorConfigError(f"location_timeout must be > 0, got {self.location_timeout}")
        if self.location_maximum_age < 0:
            raise SensorConfigError(f"location_maximum_age must be >= 0, got {self.location_maximum_age}")
        if self.microphone_tick <= 0:
            raise SensorConfigError(f"microphone_tick must be > 0, got {self.microphone_tick}")
        if self.audio_buffer_frames < 1:
            raise SensorConfigError(f"audio_buffer_frames must be >= 1, got {self.audio_buffer_frames}")
        if self.heading_min_speed_kmh < 0:
            raise SensorConfigError(f"heading_min_speed_kmh must be >= 0, got {self.heading_min_speed_kmh}")

    @classmethod
    def from_env(cls, **overrides: Any) -> SensorConfig:
        """Create configuration from environment variables.

        Reads optional ``SENSORMON_*`` variables. Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        SensorConfig
            Populated configuration.
        """
        env = os.environ

        throttle_kwargs: dict[str, float] = {}
        _ENV_THROTTLE_MAP = {
            "SENSORMON_THROTTLE_PRIMARY": "primary",
            "SENSORMON_THROTTLE_CLIMB": "climb",
            "SENSORMON_THROTTLE_VIBRATION": "vibration",
        }
        for env_key, field_name in _ENV_THROTTLE_MAP.items():
            val = env.get(env_key)
            if val is not None:
                throttle_kwargs[field_name] = _env_number(env_key, val)

        throttle_overrides = overrides.pop("throttle", None)
        if isinstance(throttle_overrides, dict):
            throttle_kwargs.update(throttle_overrides)
        elif isinstance(throttle_overrides, ThrottleIntervals):
            throttle_kwargs = dataclasses.asdict(throttle_overrides)

        config_kwargs: dict[str, Any] = {"throttle": ThrottleIntervals(**throttle_kwargs)}

        _ENV_FLOAT_MAP = {
            "SENSORMON_LOCATION_TIMEOUT": "location_timeout",
            "SENSORMON_LOCATION_MAXIMUM_AGE": "location_maximum_age",
            "SENSORMON_HEADING_MIN_SPEED_KMH": "heading_min_speed_kmh",
            "SENSORMON_MAGNETOMETER_FREQUENCY": "magnetometer_frequency",
            "SENSORMON_BAROMETER_FREQUENCY": "barometer_frequency",
            "SENSORMON_MICROPHONE_TICK": "microphone_tick",
            "SENSORMON_STALE_AFTER": "stale_after",
        }
        for env_key, field_name in _ENV_FLOAT_MAP.items():
            val = env.get(env_key)
            if val is not None and field_name not in overrides:
                config_kwargs[field_name] = _env_number(env_key, val)

        # Optional floats accept "none" to disable the value.
        temp_env = env.get("SENSORMON_AMBIENT_TEMPERATURE_C")
        if temp_env is not None and "ambient_temperature_c" not in overrides:
            config_kwargs["ambient_temperature_c"] = _env_optional_float("SENSORMON_AMBIENT_TEMPERATURE_C", temp_env)

        light_env = env.get("SENSORMON_LIGHT_FREQUENCY")
        if light_env is not None and "light_frequency" not in overrides:
            config_kwargs["light_frequency"] = _env_optional_float("SENSORMON_LIGHT_FREQUENCY", light_env)

        frames_env = env.get("SENSORMON_AUDIO_BUFFER_FRAMES")
        if frames_env is not None and "audio_buffer_frames" not in overrides:
            config_kwargs["audio_buffer_frames"] = _env_number("SENSORMON_AUDIO_BUFFER_FRAMES", frames_env, int)

        _ENV_BOOL_MAP = {
            "SENSORMON_LOCATION_HIGH_ACCURACY": ("location_high_accuracy", True),
            "SENSORMON_REQUIRE_REAL_BAROMETER": ("require_real_barometer", True),
            "SENSORMON_ESTIMATE_PRESSURE": ("estimate_pressure_from_altitude", True),
        }
        for env_key, (field_name, default) in _ENV_BOOL_MAP.items():
            if field_name not in overrides:
                config_kwargs[field_name] = _env_bool(env.get(env_key), default)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
