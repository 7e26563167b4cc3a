import os

from config import env_approvals, env_flag, env_levels, work_hour_defaults_from_env

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "worktime_db"),
}

# "mysql" hoặc "memory" (không cần DB, dữ liệu mất khi tắt app)
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "mysql")

DEBUG = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")

# If enabled, app will apply schema.sql on startup (idempotent: CREATE IF NOT EXISTS)
AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "1")

WORK_HOUR_DEFAULTS = work_hour_defaults_from_env()

AUTO_CHECKOUT_SCHEDULER = env_flag("AUTO_CHECKOUT_SCHEDULER", "1")
AUTO_CHECKOUT_INTERVAL_MINUTES = int(os.getenv("AUTO_CHECKOUT_INTERVAL_MINUTES", "5"))

NOTIFICATION_WORKERS = int(os.getenv("NOTIFICATION_WORKERS", "2"))

REGULARIZATION_LEVELS = env_levels("REGULARIZATION_LEVELS")
REGULARIZATION_APPROVALS_REQUIRED = env_approvals("REGULARIZATION_APPROVALS_REQUIRED")

MAX_CAS_RETRIES = int(os.getenv("MAX_CAS_RETRIES", "3"))
