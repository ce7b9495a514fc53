from .config import *  # noqa: F401,F403
from .config import env_bool

DEBUG = False

AUTO_INIT_DB = env_bool("AUTO_INIT_DB", "0")
AUTO_START_SYNC = env_bool("AUTO_START_SYNC", "1")
