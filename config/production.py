import os

from config import env_approvals, env_flag, env_levels, work_hour_defaults_from_env

SECRET_KEY = os.getenv("SECRET_KEY", "please-set-SECRET_KEY")

DB_CONFIG = {
    "host": os.getenv("DB_HOST", "localhost"),
    "port": int(os.getenv("DB_PORT", "3306")),
    "user": os.getenv("DB_USER", "root"),
    "password": os.getenv("DB_PASSWORD", ""),
    "database": os.getenv("DB_NAME", "worktime_db"),
}

STORAGE_BACKEND = "mysql"

DEBUG = False
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "0")

WORK_HOUR_DEFAULTS = work_hour_defaults_from_env()

AUTO_CHECKOUT_SCHEDULER = env_flag("AUTO_CHECKOUT_SCHEDULER", "1")
AUTO_CHECKOUT_INTERVAL_MINUTES = int(os.getenv("AUTO_CHECKOUT_INTERVAL_MINUTES", "5"))

NOTIFICATION_WORKERS = int(os.getenv("NOTIFICATION_WORKERS", "4"))

REGULARIZATION_LEVELS = env_levels("REGULARIZATION_LEVELS")
REGULARIZATION_APPROVALS_REQUIRED = env_approvals("REGULARIZATION_APPROVALS_REQUIRED")

MAX_CAS_RETRIES = int(os.getenv("MAX_CAS_RETRIES", "3"))
