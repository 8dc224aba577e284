"""Physical and numerical constants for wave intensity analysis."""

# Blood density in kg/m^3 used for the single-point wave speed
BLOOD_DENSITY = 1050.0

# 1 mmHg expressed in pascals (1 atm = 101325 Pa = 760 mmHg)
MMHG_TO_PASCAL = 101325.0 / 760.0

# cm/s per m/s
CM_PER_M = 100.0

# ms per s
MS_PER_S = 1000.0

# Tolerance for floating point comparisons of time intervals
EPSILON = 1e-7

# Beats in one ensemble may differ in sample interval by at most this (seconds)
ENSEMBLE_INTERVAL_TOLERANCE = 1e-4

# A beat must span more than this many samples (end - start)
MIN_BEAT_SPAN = 3

# Seam jump allowed when wrapping, as a multiple of the mean absolute step
WRAP_DISCORDANCE_FACTOR = 3.0

# Replaces a zero mean step when checking wrap discordance
MIN_MEAN_STEP = 1e-6

# Cycles shorter than this (seconds) have no meaningful duration
MIN_CYCLE_DURATION = 0.25

# Plausible value ranges used to guess units of unlabelled channels
PRESSURE_MMHG_RANGE = (10.0, 200.0)
PRESSURE_PASCAL_RANGE = (8000.0, 24000.0)
FLOW_M_PER_S_RANGE = (0.05, 1.5)
FLOW_CM_PER_S_RANGE = (5.0, 300.0)
