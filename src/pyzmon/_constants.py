"""Internal constants shared across the library."""

#: Milliseconds since the Unix epoch at which world time counting started.
WORLD_TIME_OFFSET_MS = 1414016074335

#: Key under which the athlete profile cache is persisted.
ATHLETE_CACHE_KEY = "athlete-cache"

# ------------------------------------------------------------------
# Wire scaling
# ------------------------------------------------------------------

SPEED_SCALE = 1_000_000  # raw speed units per km/h
CADENCE_SCALE = 1_000_000  # raw cadence units (uHz) per Hz

# ------------------------------------------------------------------
# Proximity defaults
# ------------------------------------------------------------------

DEFAULT_STALE_AFTER_S = 15.0
DEFAULT_EVICT_AFTER_S = 1800.0
DEFAULT_NEARBY_WINDOW = 8
DEFAULT_GROUP_GAP_M = 15.0

# ------------------------------------------------------------------
# Scheduler / persistence defaults
# ------------------------------------------------------------------

DEFAULT_NEARBY_INTERVAL_S = 5.0
DEFAULT_IDLE_POLL_INTERVAL_S = 0.1
DEFAULT_CACHE_SAVE_INTERVAL_S = 30.0
DEFAULT_CACHE_MIN_UPDATES = 100
