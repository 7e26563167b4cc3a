import os
from typing import Optional


def get_settings_module() -> str:
    # Lấy giá trị môi trường từ biến APP_ENV, mặc định là 'development'
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "config.production"

    if env in {"test", "testing"}:
        return "config.testing"

    return "config.development"


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def env_levels(name: str) -> Optional[tuple]:
    # "Team Manager,HR,VP/Admin" -> tuple; trống -> dùng mặc định của container
    raw = os.getenv(name, "")
    levels = tuple(part.strip() for part in raw.split(",") if part.strip())
    return levels or None


def env_approvals(name: str, default: str = "1") -> Optional[int]:
    raw = os.getenv(name, default).strip().lower()
    if raw in {"all", ""}:
        return None
    return int(raw)


def work_hour_defaults_from_env() -> dict:
    mapping = {
        "WORK_CHECK_IN_TIME": "checkInTime",
        "WORK_CHECK_OUT_TIME": "checkOutTime",
        "WORK_HOURS": "workingHours",
        "WORK_MIN_HOURS": "minimumWorkHours",
        "WORK_BREAK_MINUTES": "breakMinutes",
        "WORK_INACTIVITY_MINUTES": "autoCheckoutTimeoutMinutes",
        "WORK_LATE_THRESHOLD_MINUTES": "lateThresholdMinutes",
        "WORK_AUTO_CHECKOUT": "autoCheckoutEnabled",
    }
    return {key: os.environ[env] for env, key in mapping.items() if env in os.environ}
