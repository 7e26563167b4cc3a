from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import WorkHourPolicy
from .repository import PolicyRepository

_CATEGORY = "work_hours"


class MySQLPolicyRepository(PolicyRepository):
    """Policy stored as key/value rows in `system_settings` (one row per wire field)."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def load(self) -> Optional[WorkHourPolicy]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT setting_key, setting_value
                FROM system_settings
                WHERE category=%s
                """,
                (_CATEGORY,),
            )
            rows = fetchall(cur)
        if not rows:
            return None
        return WorkHourPolicy.from_mapping({r["setting_key"]: r["setting_value"] for r in rows})

    def save(self, policy: WorkHourPolicy, *, updated_by: Optional[int] = None) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            for key, value in policy.to_mapping().items():
                cur.execute(
                    """
                    INSERT INTO system_settings(setting_key, setting_value, category, updated_by)
                    VALUES(%s,%s,%s,%s)
                    ON DUPLICATE KEY UPDATE setting_value=VALUES(setting_value), updated_by=VALUES(updated_by)
                    """,
                    (key, str(value).lower() if isinstance(value, bool) else str(value), _CATEGORY, updated_by),
                )
