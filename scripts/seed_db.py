"""Ghi giờ làm việc mặc định vào bảng system_settings (nếu chưa có)."""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
for path in (REPO_ROOT, REPO_ROOT / "src" / "worktime"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from config import get_settings_module

from worktime.database.connection import DBConfig, DatabaseConnection
from worktime.policy.model import WorkHourPolicy
from worktime.policy.mysql_policy_repository import MySQLPolicyRepository


def main() -> None:
    settings = importlib.import_module(get_settings_module())
    db_config = dict(settings.DB_CONFIG)

    conn = DatabaseConnection.get_instance(DBConfig.from_mapping(db_config))
    repo = MySQLPolicyRepository(conn)
    if repo.load() is not None:
        print("SKIP: work-hour settings already present")
        return

    policy = WorkHourPolicy.from_mapping(getattr(settings, "WORK_HOUR_DEFAULTS", {}) or {})
    repo.save(policy, updated_by=None)
    print(f"OK: Seeded work-hour settings -> {db_config.get('database')}: {policy.to_mapping()}")


if __name__ == "__main__":
    main()
