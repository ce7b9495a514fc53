from .config import *  # noqa: F401,F403

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

AUTO_INIT_DB = False
AUTO_START_SYNC = False

# Keep timing-driven behaviour fast and deterministic under test.
VALIDATION_DEBOUNCE_SECONDS = 3.0
REUPLOAD_ITEM_DELAY_SECONDS = 0.0
