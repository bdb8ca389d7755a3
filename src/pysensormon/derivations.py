"""Derivation engine.

Pure functions computing secondary physical quantities from the snapshot.
Nothing here holds state; :func:`derive_metrics` is re-run on every read.

Functions return ``None`` when a required input is missing. Altitude and
ground speed are the exception: they legitimately default to ``0``.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from pysensormon._constants import (
    COMPASS_POINTS,
    COMPASS_SECTOR_DEGREES,
    DENSITY_ALTITUDE_FT_PER_C,
    EMF_ELEVATED_UT,
    EMF_HIGH_UT,
    HPA_TO_PSI,
    ISA_LAPSE_RATE_C_PER_KFT,
    ISA_PRESSURE_COEFFICIENT,
    ISA_PRESSURE_EXPONENT,
    ISA_SEA_LEVEL_TEMP_C,
    KELVIN_OFFSET,
    MPS_TO_KMH,
    PRESSURE_ALTITUDE_EXPONENT,
    PRESSURE_ALTITUDE_SCALE_FT,
    SEA_LEVEL_AIR_DENSITY,
    SEA_LEVEL_PRESSURE_HPA,
    SOUND_DB_FLOOR,
    SOUND_DB_OFFSET,
    SPECIFIC_GAS_CONSTANT_DRY_AIR,
    SPEED_OF_SOUND_BASE,
    SPEED_OF_SOUND_PER_C,
    STANDARD_GRAVITY,
    VERTICAL_TREND_THRESHOLD,
)
from pysensormon.config import SensorConfig
from pysensormon.ingestion.normalize import normalize_degrees
from pysensormon.models.environment import ReadingOrigin
from pysensormon.models.orientation import heading_from_rotation  # noqa: F401  (re-exported)
from pysensormon.models.snapshot import (
    DerivedMetrics,
    EmfLevel,
    FusedHeading,
    HeadingReference,
    SensorSnapshot,
    VerticalTrend,
)
from pysensormon.state.events import Channel

# ------------------------------------------------------------------
# Motion
# ------------------------------------------------------------------


def vector_magnitude(x: float, y: float, z: float) -> float:
    return math.sqrt(x * x + y * y + z * z)


def g_force(x: float, y: float, z: float) -> float:
    """Total acceleration in units of standard gravity."""
    return vector_magnitude(x, y, z) / STANDARD_GRAVITY


# ------------------------------------------------------------------
# Heading
# ------------------------------------------------------------------


def compass_direction(heading: float) -> str:
    """Eight-point compass label for *heading* in degrees.

    Sectors are 45° wide and centred on the cardinal/intercardinal points.
    Exact sector boundaries (22.5°, 67.5°, ...) round up to the next point.
    """
    sector = math.floor(normalize_degrees(heading) / COMPASS_SECTOR_DEGREES + 0.5)
    return COMPASS_POINTS[sector % len(COMPASS_POINTS)]


def fuse_heading(
    *,
    magnetic_heading: float,
    gps_heading: float | None,
    ground_speed_mps: float,
    min_speed_kmh: float = 3.0,
) -> FusedHeading:
    """Pick the heading to display.

    Course over ground is only meaningful while moving, so the GPS heading
    (true north) wins only above *min_speed_kmh* and when reported.
    """
    if gps_heading is not None and ground_speed_mps * MPS_TO_KMH > min_speed_kmh:
        value = normalize_degrees(gps_heading)
        reference = HeadingReference.GPS_TRUE_NORTH
    else:
        value = normalize_degrees(magnetic_heading)
        reference = HeadingReference.MAGNETIC
    return FusedHeading(value=value, reference=reference, direction=compass_direction(value))


# ------------------------------------------------------------------
# Climb
# ------------------------------------------------------------------


def climb_rate(altitude_now: float, t_now: float, altitude_prev: float | None, t_prev: float | None) -> float:
    """Vertical speed in m/s by finite difference; ``0`` without a usable previous sample."""
    if altitude_prev is None or t_prev is None:
        return 0.0
    dt = t_now - t_prev
    if dt <= 0:
        return 0.0
    return (altitude_now - altitude_prev) / dt


def vertical_trend(vertical_speed: float) -> VerticalTrend:
    if vertical_speed > VERTICAL_TREND_THRESHOLD:
        return VerticalTrend.CLIMBING
    if vertical_speed < -VERTICAL_TREND_THRESHOLD:
        return VerticalTrend.DESCENDING
    return VerticalTrend.LEVEL


# ------------------------------------------------------------------
# Atmosphere
# ------------------------------------------------------------------


def pressure_from_altitude(altitude_m: float) -> float | None:
    """ISA pressure in hPa at *altitude_m* metres.

    ``None`` above the top of the model atmosphere (about 44 km), where the
    formula has no real value.
    """
    base = 1 - ISA_PRESSURE_COEFFICIENT * altitude_m
    if base <= 0:
        return None
    return SEA_LEVEL_PRESSURE_HPA * math.pow(base, ISA_PRESSURE_EXPONENT)


def pressure_psi(pressure_hpa: float | None) -> float | None:
    if pressure_hpa is None:
        return None
    return pressure_hpa * HPA_TO_PSI


def air_density(pressure_hpa: float | None, temp_c: float | None) -> float | None:
    """Dry-air density in kg/m³ from the ideal gas law."""
    if pressure_hpa is None or temp_c is None:
        return None
    kelvin = temp_c + KELVIN_OFFSET
    if kelvin <= 0:
        return None
    return (pressure_hpa * 100) / (SPECIFIC_GAS_CONSTANT_DRY_AIR * kelvin)


def pressure_altitude_ft(pressure_hpa: float | None) -> float | None:
    if pressure_hpa is None or pressure_hpa <= 0:
        return None
    ratio = pressure_hpa / SEA_LEVEL_PRESSURE_HPA
    return (1 - math.pow(ratio, PRESSURE_ALTITUDE_EXPONENT)) * PRESSURE_ALTITUDE_SCALE_FT


def isa_temperature_c(pressure_altitude: float) -> float:
    """Standard temperature at a pressure altitude given in feet."""
    return ISA_SEA_LEVEL_TEMP_C - ISA_LAPSE_RATE_C_PER_KFT * pressure_altitude / 1000.0


def density_altitude_ft(pressure_hpa: float | None, temp_c: float | None) -> float | None:
    """Pressure altitude corrected for non-standard temperature, in feet."""
    pa = pressure_altitude_ft(pressure_hpa)
    if pa is None or temp_c is None:
        return None
    return pa + DENSITY_ALTITUDE_FT_PER_C * (temp_c - isa_temperature_c(pa))


def true_airspeed(ground_speed_mps: float, density: float | None) -> float | None:
    """Ground speed scaled to sea-level density (no wind model)."""
    if density is None or density <= 0:
        return None
    return ground_speed_mps * math.sqrt(SEA_LEVEL_AIR_DENSITY / density)


def speed_of_sound(temp_c: float | None) -> float | None:
    if temp_c is None:
        return None
    return SPEED_OF_SOUND_BASE + SPEED_OF_SOUND_PER_C * temp_c


def mach_number(ground_speed_mps: float, temp_c: float | None) -> float | None:
    local = speed_of_sound(temp_c)
    if local is None or local <= 0:
        return None
    return ground_speed_mps / local


# ------------------------------------------------------------------
# Sound & magnetic field
# ------------------------------------------------------------------


def sound_level_db(bins: Sequence[int]) -> int | None:
    """Approximate loudness from an analyser frame of byte magnitudes.

    ``None`` for an empty frame. Never reports below the display floor.
    """
    if not bins:
        return None
    rms = math.sqrt(sum(b * b for b in bins) / len(bins))
    db = math.floor(20 * math.log10(rms) + 0.5) + SOUND_DB_OFFSET if rms > 0 else 0
    return max(SOUND_DB_FLOOR, db)


def emf_level(field_strength_ut: float | None) -> EmfLevel | None:
    if field_strength_ut is None:
        return None
    if field_strength_ut > EMF_HIGH_UT:
        return EmfLevel.HIGH
    if field_strength_ut > EMF_ELEVATED_UT:
        return EmfLevel.ELEVATED
    return EmfLevel.LOW


# ------------------------------------------------------------------
# Snapshot view
# ------------------------------------------------------------------


def derive_metrics(snapshot: SensorSnapshot, config: SensorConfig | None = None) -> DerivedMetrics:
    """Compute every derived metric from *snapshot*."""
    cfg = config or SensorConfig()
    temp_c = cfg.ambient_temperature_c
    speed = snapshot.location.speed

    barometer = snapshot.barometer
    pressure: float | None = barometer.pressure_hpa
    if cfg.require_real_barometer and not barometer.is_real:
        pressure = None

    density = air_density(pressure, temp_c)
    magnetometer_field = (
        snapshot.magnetometer.field_strength if snapshot.is_available(Channel.MAGNETOMETER) else None
    )

    return DerivedMetrics(
        heading=fuse_heading(
            magnetic_heading=snapshot.orientation.heading,
            gps_heading=snapshot.location.heading,
            ground_speed_mps=speed,
            min_speed_kmh=cfg.heading_min_speed_kmh,
        ),
        vertical_trend=vertical_trend(snapshot.location.vertical_speed),
        pressure_estimated=barometer.origin == ReadingOrigin.ESTIMATED,
        pressure_psi=pressure_psi(pressure),
        air_density=density,
        density_altitude_ft=density_altitude_ft(pressure, temp_c),
        true_airspeed=true_airspeed(speed, density),
        speed_of_sound=speed_of_sound(temp_c),
        mach=mach_number(speed, temp_c),
        emf_level=emf_level(magnetometer_field),
    )
