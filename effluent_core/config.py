"""
Simulation defaults and numeric tolerances.

Plain module constants; the API layer may override the sample cap and the
regulation file through environment settings, the core reads these as-is.
"""

# Monte Carlo
DEFAULT_SEED = 42
DEFAULT_SAMPLES = 200
MAX_SAMPLES = 5000
PERCENTILES = (0.50, 0.90, 0.95)
HISTOGRAM_BINS = 12

# Input floors applied to the influent/removal draws
LOGNORMAL_MIN_MEAN = 1.0
LOGNORMAL_MIN_CV = 0.01

# Sampler guards
U_EPSILON = 1e-12
MEAN_FLOOR = 1e-9
CV_FLOOR = 1e-4
CV_CEILING = 10.0
# distribution parameters are capped here
VALUE_CEILING = 1e9

# Queue
QUEUE_DEFAULT_SEED = 1234
MAX_ENTITIES = 5000
MAX_SERVERS = 100
ARRIVAL_SEED_STRIDE = 17
SERVICE_SEED_STRIDE = 31
SERVICE_SEED_OFFSET = 999
WAIT_EPSILON = 1e-12

# Probabilistic events
PROBABILITY_TOLERANCE = 0.001
MAX_FORMULA_LENGTH = 500

# Streeter-Phelps
RATE_EPSILON = 1e-6
STEP_M = 1000.0
SECONDS_PER_DAY = 86400.0
RIVER_DEFAULTS = {
    "qr": 10.0,
    "cr": 8.5,
    "qw": 0.2,
    "lw": 20.0,
    "cs": 9.2,
    "kd": 0.35,
    "kr": 0.65,
    "v": 0.2,
    "max_distance_km": 30.0,
}
QUALITY_CURVE_PARAMETER = "bod5"
QUALITY_CURVE_QUANTILE = 0.95

# Compliance
SEVERITY_DEVIATION = 0.20
SINGLE_VALUE_PARAMETERS = ("ph", "temperature")
