"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
Times of day are expressed in minutes from midnight.
"""

MINUTES_PER_DAY = 24 * 60

EARLY_MORNING_START = 6 * 60
MORNING_START = 8 * 60
MORNING_END = 12 * 60
LUNCH_START = 12 * 60
LUNCH_END = 13 * 60
AFTERNOON_START = 13 * 60
AFTERNOON_END = 17 * 60
EVENING_START = 17 * 60
EVENING_FIRST_HOUR_END = 18 * 60
OVERTIME_WINDOW_END = 22 * 60
NIGHT_WINDOW_END = EARLY_MORNING_START + MINUTES_PER_DAY

REGULAR_GRACE_MINUTES = 5
SESSION_GRACE_MINUTES = 15
LATENESS_CUTOFF_MINUTES = 30
HALF_HOUR_THRESHOLD_MINUTES = 30

# Early-morning fixed allowance: clock in within [05:55, 06:05), clock out at or after 11:30.
EARLY_ALLOWANCE_FROM = EARLY_MORNING_START - REGULAR_GRACE_MINUTES
EARLY_ALLOWANCE_UNTIL = EARLY_MORNING_START + REGULAR_GRACE_MINUTES
EARLY_ALLOWANCE_MIN_CLOCK_OUT = 11 * 60 + 30
EARLY_ALLOWANCE_REGULAR_HOURS = 4.0
EARLY_ALLOWANCE_OVERTIME_HOURS = 2.0

# Evening clock-ins are expected from 17:15 (after the session grace).
EVENING_CLOCK_IN_FROM = EVENING_START + SESSION_GRACE_MINUTES

HOURS_TOLERANCE = 0.01
DUPLICATE_WINDOW_MINUTES = 5

DEFAULT_FETCH_LIMIT = 1000
DEFAULT_REMOTE_TIMEOUT_SECONDS = 30
DEFAULT_SYNC_INTERVAL_SECONDS = 120
DEFAULT_DEBOUNCE_SECONDS = 3.0
DEFAULT_REUPLOAD_CAPACITY = 500
DEFAULT_REUPLOAD_ITEM_DELAY_SECONDS = 0.2
DEFAULT_RETRY_BASE_DELAY_SECONDS = 5.0
DEFAULT_RETRY_MAX_DELAY_SECONDS = 60.0
DEFAULT_MAX_RETRY_ATTEMPTS = 5
DEFAULT_SYNC_LOG_RETENTION_DAYS = 30

CHECKPOINT_SETTING_KEY = "last_sync_cursor"
