"""Internal constants shared across the library."""

STANDARD_GRAVITY = 9.81  # m/s²

# ------------------------------------------------------------------
# International Standard Atmosphere
# ------------------------------------------------------------------

SEA_LEVEL_PRESSURE_HPA = 1013.25
SEA_LEVEL_AIR_DENSITY = 1.225  # kg/m³
ISA_SEA_LEVEL_TEMP_C = 15.0
ISA_LAPSE_RATE_C_PER_KFT = 1.98

# P(h) = P0 * (1 - k*h)^n, h in metres
ISA_PRESSURE_COEFFICIENT = 2.25577e-5
ISA_PRESSURE_EXPONENT = 5.25588

# Pressure altitude in feet: (1 - (P/P0)^e) * scale
PRESSURE_ALTITUDE_EXPONENT = 0.190284
PRESSURE_ALTITUDE_SCALE_FT = 145366.45

# Empirical density-altitude correction per °C of deviation from ISA.
DENSITY_ALTITUDE_FT_PER_C = 118.8

SPECIFIC_GAS_CONSTANT_DRY_AIR = 287.05  # J/(kg·K)
KELVIN_OFFSET = 273.15

SPEED_OF_SOUND_BASE = 331.3  # m/s at 0 °C
SPEED_OF_SOUND_PER_C = 0.606

HPA_TO_PSI = 0.0145038
MPS_TO_KMH = 3.6

DEFAULT_TEMPERATURE_C = 20.0

# ------------------------------------------------------------------
# Compass
# ------------------------------------------------------------------

COMPASS_POINTS: tuple[str, ...] = ("N", "NE", "E", "SE", "S", "SW", "W", "NW")
COMPASS_SECTOR_DEGREES = 45.0

# ------------------------------------------------------------------
# Presentation thresholds carried by derived metrics
# ------------------------------------------------------------------

VERTICAL_TREND_THRESHOLD = 0.5  # m/s
EMF_ELEVATED_UT = 40.0
EMF_HIGH_UT = 100.0

# ------------------------------------------------------------------
# Sound level (byte-magnitude analyser frames)
# ------------------------------------------------------------------

SOUND_DB_OFFSET = 10
SOUND_DB_FLOOR = 30
