import os


def env_bool(name: str, default: str = "0") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Local MySQL store
    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", "3306"))
    DB_NAME = os.environ.get("DB_NAME", "attendance_sync")

    # Remote authoritative server
    SERVER_URL = os.environ.get("SERVER_URL", "http://localhost:3001/api")
    REMOTE_TIMEOUT_SECONDS = float(os.environ.get("REMOTE_TIMEOUT_SECONDS", "30"))

    # Reconciliation / scheduler
    SYNC_INTERVAL_SECONDS = float(os.environ.get("SYNC_INTERVAL_SECONDS", "120"))
    FETCH_LIMIT = int(os.environ.get("FETCH_LIMIT", "1000"))
    VALIDATION_DEBOUNCE_SECONDS = float(os.environ.get("VALIDATION_DEBOUNCE_SECONDS", "3"))
    REUPLOAD_QUEUE_CAPACITY = int(os.environ.get("REUPLOAD_QUEUE_CAPACITY", "500"))
    REUPLOAD_ITEM_DELAY_SECONDS = float(os.environ.get("REUPLOAD_ITEM_DELAY_SECONDS", "0.2"))
    RETRY_BASE_DELAY_SECONDS = float(os.environ.get("RETRY_BASE_DELAY_SECONDS", "5"))
    RETRY_MAX_DELAY_SECONDS = float(os.environ.get("RETRY_MAX_DELAY_SECONDS", "60"))
    MAX_RETRY_ATTEMPTS = int(os.environ.get("MAX_RETRY_ATTEMPTS", "5"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


DB_CONFIG = {
    "host": Config.DB_HOST,
    "port": Config.DB_PORT,
    "user": Config.DB_USER,
    "password": Config.DB_PASSWORD,
    "database": Config.DB_NAME,
}

SERVER_URL = Config.SERVER_URL
REMOTE_TIMEOUT_SECONDS = Config.REMOTE_TIMEOUT_SECONDS
SYNC_INTERVAL_SECONDS = Config.SYNC_INTERVAL_SECONDS
FETCH_LIMIT = Config.FETCH_LIMIT
VALIDATION_DEBOUNCE_SECONDS = Config.VALIDATION_DEBOUNCE_SECONDS
REUPLOAD_QUEUE_CAPACITY = Config.REUPLOAD_QUEUE_CAPACITY
REUPLOAD_ITEM_DELAY_SECONDS = Config.REUPLOAD_ITEM_DELAY_SECONDS
RETRY_BASE_DELAY_SECONDS = Config.RETRY_BASE_DELAY_SECONDS
RETRY_MAX_DELAY_SECONDS = Config.RETRY_MAX_DELAY_SECONDS
MAX_RETRY_ATTEMPTS = Config.MAX_RETRY_ATTEMPTS
LOG_LEVEL = Config.LOG_LEVEL
