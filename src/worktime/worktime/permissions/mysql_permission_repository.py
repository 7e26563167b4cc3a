from __future__ import annotations

from dataclasses import replace
from typing import FrozenSet, Optional, Sequence

from ..core.enums import ApprovalLevel, RequestStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, normalize_mysql_time, to_json
from ..workflow.model import WorkflowState
from .model import PermissionRequest
from .repository import PermissionRepository

_COLUMNS = """
    request_id, employee_id, start_date, start_time, end_date, end_time, duration,
    reason, work_description, assigned_by, responsible_person,
    status, current_level, workflow_json, created_at, version
"""


def _row_to_request(r: dict) -> PermissionRequest:
    return PermissionRequest(
        request_id=int(r["request_id"]),
        employee_id=int(r["employee_id"]),
        start_date=r["start_date"],
        start_time=normalize_mysql_time(r["start_time"]),
        end_date=r["end_date"],
        end_time=normalize_mysql_time(r["end_time"]),
        duration=r["duration"],
        reason=r["reason"],
        work_description=r["work_description"],
        assigned_by=int(r["assigned_by"]) if r.get("assigned_by") is not None else None,
        responsible_person=int(r["responsible_person"]) if r.get("responsible_person") is not None else None,
        workflow=WorkflowState.from_dict(from_json(r["workflow_json"])),
        created_at=r["created_at"],
        version=int(r["version"]),
    )


class MySQLPermissionRepository(PermissionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, request: PermissionRequest) -> PermissionRequest:
        wf = request.workflow
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO permission_requests(
                    employee_id, start_date, start_time, end_date, end_time, duration,
                    reason, work_description, assigned_by, responsible_person,
                    status, current_level, workflow_json, created_at, version
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (
                    int(request.employee_id),
                    request.start_date,
                    request.start_time,
                    request.end_date,
                    request.end_time,
                    request.duration,
                    request.reason,
                    request.work_description,
                    request.assigned_by,
                    request.responsible_person,
                    wf.status.value,
                    wf.current_level.value,
                    to_json(wf.to_dict()),
                    request.created_at,
                ),
            )
            new_id = int(cur.lastrowid)
        return replace(request, request_id=new_id, version=1)

    def get_by_id(self, request_id: int) -> Optional[PermissionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM permission_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _row_to_request(r) if r else None

    def save(self, request: PermissionRequest, *, expected_version: int) -> bool:
        wf = request.workflow
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE permission_requests
                SET status=%s, current_level=%s, workflow_json=%s, version=version+1
                WHERE request_id=%s AND version=%s
                """,
                (wf.status.value, wf.current_level.value, to_json(wf.to_dict()), int(request.request_id), int(expected_version)),
            )
            return cur.rowcount > 0

    def list_for_employee(self, employee_id: int, *, limit: int = 200) -> Sequence[PermissionRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM permission_requests
                WHERE employee_id=%s
                ORDER BY created_at DESC, request_id DESC
                LIMIT %s
                """,
                (int(employee_id), int(limit)),
            )
            return [_row_to_request(r) for r in fetchall(cur)]

    def list_open(self, *, levels: FrozenSet[ApprovalLevel], limit: int = 1000) -> Sequence[PermissionRequest]:
        if not levels:
            return []
        level_values = sorted(lvl.value for lvl in levels)
        placeholders = ",".join(["%s"] * len(level_values))
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM permission_requests
                WHERE status IN (%s, %s) AND current_level IN ({placeholders})
                ORDER BY created_at, request_id
                LIMIT %s
                """,
                (RequestStatus.PENDING.value, RequestStatus.UNDER_REVIEW.value, *level_values, int(limit)),
            )
            return [_row_to_request(r) for r in fetchall(cur)]
