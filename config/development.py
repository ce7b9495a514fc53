from .config import *  # noqa: F401,F403
from .config import env_bool

DEBUG = True
LOG_LEVEL = "DEBUG"

# Apply schema.sql on startup (idempotent: CREATE TABLE IF NOT EXISTS)
AUTO_INIT_DB = env_bool("AUTO_INIT_DB", "1")
AUTO_START_SYNC = env_bool("AUTO_START_SYNC", "0")
