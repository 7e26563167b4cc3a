from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

from ..core.enums import Priority, RegularizationType, RequestedStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, to_json
from ..workflow.model import WorkflowState
from .model import RegularizationRequest
from .repository import ACTIVE_STATUSES, OPEN_STATUSES, RegularizationFilter, RegularizationRepository

_COLUMNS = """
    request_id, employee_id, attendance_date, request_type, reason,
    requested_check_in, requested_check_out, requested_status, priority,
    status, current_level, workflow_json, supporting_documents_json,
    attendance_id, original_attendance_json, updated_attendance_json, attendance_updated,
    created_at, version
"""


def _row_to_request(r: dict) -> RegularizationRequest:
    return RegularizationRequest(
        request_id=int(r["request_id"]),
        employee_id=int(r["employee_id"]),
        attendance_date=r["attendance_date"],
        request_type=RegularizationType(r["request_type"]),
        reason=r["reason"],
        workflow=WorkflowState.from_dict(from_json(r["workflow_json"])),
        created_at=r["created_at"],
        requested_check_in=r.get("requested_check_in"),
        requested_check_out=r.get("requested_check_out"),
        requested_status=RequestedStatus(r["requested_status"]) if r.get("requested_status") else None,
        priority=Priority(r.get("priority") or Priority.NORMAL.value),
        supporting_documents=tuple(from_json(r.get("supporting_documents_json"), [])),
        attendance_id=int(r["attendance_id"]) if r.get("attendance_id") is not None else None,
        original_attendance=from_json(r.get("original_attendance_json")),
        updated_attendance=from_json(r.get("updated_attendance_json")),
        attendance_updated=bool(r.get("attendance_updated")),
        version=int(r["version"]),
    )


def _placeholders(values) -> str:
    return ",".join(["%s"] * len(values))


def _mutable_params(req: RegularizationRequest) -> tuple:
    wf = req.workflow
    return (
        wf.status.value,
        wf.current_level.value,
        to_json(wf.to_dict()),
        req.attendance_id,
        to_json(req.original_attendance) if req.original_attendance is not None else None,
        to_json(req.updated_attendance) if req.updated_attendance is not None else None,
        int(req.attendance_updated),
    )


class MySQLRegularizationRepository(RegularizationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def add(self, request: RegularizationRequest) -> RegularizationRequest:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO regularization_requests(
                    employee_id, attendance_date, request_type, reason,
                    requested_check_in, requested_check_out, requested_status, priority,
                    supporting_documents_json, created_at,
                    status, current_level, workflow_json,
                    attendance_id, original_attendance_json, updated_attendance_json, attendance_updated,
                    version
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (
                    int(request.employee_id),
                    request.attendance_date,
                    request.request_type.value,
                    request.reason,
                    request.requested_check_in,
                    request.requested_check_out,
                    request.requested_status.value if request.requested_status else None,
                    request.priority.value,
                    to_json(list(request.supporting_documents)),
                    request.created_at,
                )
                + _mutable_params(request),
            )
            new_id = int(cur.lastrowid)
        return replace(request, request_id=new_id, version=1)

    def get_by_id(self, request_id: int) -> Optional[RegularizationRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM regularization_requests WHERE request_id=%s", (int(request_id),))
            r = fetchone(cur)
            return _row_to_request(r) if r else None

    def save(self, request: RegularizationRequest, *, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE regularization_requests
                SET status=%s, current_level=%s, workflow_json=%s,
                    attendance_id=%s, original_attendance_json=%s, updated_attendance_json=%s,
                    attendance_updated=%s, version=version+1
                WHERE request_id=%s AND version=%s
                """,
                _mutable_params(request) + (int(request.request_id), int(expected_version)),
            )
            return cur.rowcount > 0

    def find_active(self, *, employee_id: int, attendance_date: date) -> Optional[RegularizationRequest]:
        placeholders = _placeholders(ACTIVE_STATUSES)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM regularization_requests
                WHERE employee_id=%s AND attendance_date=%s AND status IN ({placeholders})
                LIMIT 1
                """,
                (int(employee_id), attendance_date) + tuple(s.value for s in ACTIVE_STATUSES),
            )
            r = fetchone(cur)
            return _row_to_request(r) if r else None

    def list(self, flt: RegularizationFilter, *, limit: int = 500) -> Sequence[RegularizationRequest]:
        where = ["1=1"]
        params: list = []
        if flt.employee_id is not None:
            where.append("employee_id=%s")
            params.append(int(flt.employee_id))
        if flt.current_level is not None:
            where.append("current_level=%s")
            params.append(flt.current_level.value)
        if flt.status is not None:
            where.append("status=%s")
            params.append(flt.status.value)
        if flt.request_type is not None:
            where.append("request_type=%s")
            params.append(flt.request_type.value)
        if flt.start_date is not None:
            where.append("attendance_date >= %s")
            params.append(flt.start_date)
        if flt.end_date is not None:
            where.append("attendance_date <= %s")
            params.append(flt.end_date)
        if flt.open_only:
            where.append(f"status IN ({_placeholders(OPEN_STATUSES)})")
            params.extend(s.value for s in OPEN_STATUSES)
        if flt.levels is not None:
            if not flt.levels:
                return []
            where.append(f"current_level IN ({_placeholders(flt.levels)})")
            params.extend(sorted(lvl.value for lvl in flt.levels))
        if flt.scope is not None:
            visible = ["employee_id=%s"]
            params.append(int(flt.scope.viewer_id))
            if flt.scope.levels:
                visible.append(f"current_level IN ({_placeholders(flt.scope.levels)})")
                params.extend(sorted(lvl.value for lvl in flt.scope.levels))
            visible.append("JSON_CONTAINS(JSON_EXTRACT(workflow_json, '$.approvals[*].approver_id'), CAST(%s AS JSON))")
            params.append(str(int(flt.scope.viewer_id)))
            where.append("(" + " OR ".join(visible) + ")")
        params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM regularization_requests
                WHERE {' AND '.join(where)}
                ORDER BY created_at DESC, request_id DESC
                LIMIT %s
                """,
                tuple(params),
            )
            return [_row_to_request(r) for r in fetchall(cur)]
