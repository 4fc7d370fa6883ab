"""
Physical constants and default tuning values for speed fusion.
"""

import math

# Earth parameters
EARTH_RADIUS_M = 6371000.0  # Earth radius in meters
GRAVITY_MS2 = 9.80665       # Standard gravity in m/s²

# Conversion factors
DEG_TO_RAD = math.pi / 180.0
RAD_TO_DEG = 180.0 / math.pi
MS_TO_KMH = 3.6

# Scalar Kalman filter
PROCESS_NOISE = 0.01
MEASUREMENT_NOISE_BASE = 0.5
INITIAL_ESTIMATE_ERROR = 1.0

# GPS jump rejection
GPS_JUMP_THRESHOLD_M = 20.0     # Absolute jump limit (meters)
SPEED_MARGIN_FACTOR = 1.5       # Allowed speed-up over last reported speed
SPEED_MARGIN_OFFSET = 5.0       # m/s added on top of the scaled speed
UNKNOWN_SPEED_LIMIT = 30.0      # m/s when the last fix had no speed
MIN_JUDGEABLE_GAP_S = 0.1       # Fixes closer than this are always accepted
GEO_HISTORY_CAPACITY = 100

# Speed smoothing
SMOOTHING_WINDOW_MS = 5000

# Motion calibration
CALIBRATION_SAMPLES = 50
NOISE_THRESHOLD_FACTOR = 1.5
DEFAULT_NOISE_THRESHOLD = 1.0

# Motion detection
MOVEMENT_THRESHOLD = 0.5            # GPS speed (m/s) above which we are moving
INERTIAL_MOVEMENT_THRESHOLD = 0.8   # Acceleration above noise floor (m/s²)
INERTIAL_SPEED_BUFFER = 10

# Cycling pattern heuristic (m/s², device axes)
VERTICAL_OSCILLATION_MIN = 1.5
VERTICAL_OSCILLATION_MAX = 8.0
FORWARD_MOTION_MIN = 1.0
SIDEWAYS_MOTION_MAX = 3.0

# Confidence grading (meters of reported accuracy)
HIGH_CONFIDENCE_ACCURACY_M = 10.0
MEDIUM_CONFIDENCE_ACCURACY_M = 20.0

# Weight of the inertial magnitude in the acceleration blend while calibrating
INERTIAL_BLEND_WEIGHT = 0.5
