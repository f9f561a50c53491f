"""Internal constants shared across the library.

Every threshold of the simulation lives here. None of them is configurable.
"""

COLLECTION_PATH = "vehicleData"

# ------------------------------------------------------------------
# Tick / system defaults
# ------------------------------------------------------------------

TICK_INTERVAL_S = 1.0
DEFAULT_SPEED_LIMIT = 60.0
DEFAULT_BATTERY_LEVEL = 85.0
START_SPEED = 45.0
BATTERY_DRAIN_PER_TICK = 0.01

# ------------------------------------------------------------------
# Speed random walk (km/h)
# ------------------------------------------------------------------

ACCELERATION_CEILING = 50.0
CRUISE_CEILING = 70.0
ACCELERATION_DELTA = (1.0, 5.0)
CRUISE_RECOVERY_DELTA = (-8.0, -2.0)
CRUISE_SPAN = 8.0
CRUISE_BIAS = 0.3  # (r - 0.3) * 8 -> [-2.4, 5.6]
HIGH_RECOVERY_DELTA = (-11.0, -3.0)
HIGH_DRIFT_DELTA = (-3.0, 3.0)
WARNING_RATIO = 0.8

# ------------------------------------------------------------------
# Cooldowns and windows (milliseconds)
# ------------------------------------------------------------------

OBSTACLE_COOLDOWN_MS = 8000
OVERSPEED_COOLDOWN_MS = 6000
OVERSPEED_RECOVERY_WINDOW_MS = 10_000
OBSTACLE_PROBABILITY = 0.8

# ------------------------------------------------------------------
# Persistence sampling
# ------------------------------------------------------------------

SAMPLE_PERIOD_MS = 5000
SAMPLE_WINDOW_MS = 1000
OBSTACLE_DISTANCE_NEAR = (20.0, 100.0)
OBSTACLE_DISTANCE_CLEAR = (100.0, 250.0)

# ------------------------------------------------------------------
# Messages
# ------------------------------------------------------------------

OBSTACLE_MESSAGE = "Obstacle Detected - Reducing Speed"
OVERSPEED_MESSAGE = "Overspeed Alert - Speed Limit Exceeded"
TEST_ALERT_MESSAGE = "Audio alert system test"
