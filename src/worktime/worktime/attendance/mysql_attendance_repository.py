from __future__ import annotations

from dataclasses import replace
from datetime import date
from typing import Optional, Sequence

from ..common.audit import AuditTrail
from ..core.enums import AttendanceStatus, Location
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_json, to_json
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, user_id, work_date, check_in_time, check_out_time, break_minutes, break_started_at, break_tracked,
    total_hours, status, is_late, late_minutes, is_early, early_minutes,
    overtime_hours, shortage_hours, adjusted_overtime_hours,
    last_activity_at, auto_checked_out, location, notes,
    is_regularized, regularization_id, regularized_by, regularized_at, regularization_reason,
    lateness_waived, earliness_waived, audit_json, version
"""


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        user_id=int(r["user_id"]),
        work_date=r["work_date"],
        check_in=r.get("check_in_time"),
        check_out=r.get("check_out_time"),
        break_minutes=int(r.get("break_minutes") or 0),
        break_started_at=r.get("break_started_at"),
        break_tracked=bool(r.get("break_tracked")),
        total_hours=float(r.get("total_hours") or 0),
        status=AttendanceStatus(r["status"]),
        is_late=bool(r.get("is_late")),
        late_minutes=int(r.get("late_minutes") or 0),
        is_early=bool(r.get("is_early")),
        early_minutes=int(r.get("early_minutes") or 0),
        overtime_hours=float(r.get("overtime_hours") or 0),
        shortage_hours=float(r.get("shortage_hours") or 0),
        adjusted_overtime_hours=float(r.get("adjusted_overtime_hours") or 0),
        last_activity_at=r.get("last_activity_at"),
        auto_checked_out=bool(r.get("auto_checked_out")),
        location=Location(r.get("location") or Location.OFFICE.value),
        notes=r.get("notes"),
        is_regularized=bool(r.get("is_regularized")),
        regularization_id=int(r["regularization_id"]) if r.get("regularization_id") is not None else None,
        regularized_by=int(r["regularized_by"]) if r.get("regularized_by") is not None else None,
        regularized_at=r.get("regularized_at"),
        regularization_reason=r.get("regularization_reason"),
        lateness_waived=bool(r.get("lateness_waived")),
        earliness_waived=bool(r.get("earliness_waived")),
        audit_trail=AuditTrail.from_list(from_json(r.get("audit_json"), [])),
        version=int(r["version"]),
    )


def _record_params(rec: AttendanceRecord) -> tuple:
    return (
        rec.check_in,
        rec.check_out,
        int(rec.break_minutes),
        rec.break_started_at,
        int(rec.break_tracked),
        rec.total_hours,
        rec.status.value,
        int(rec.is_late),
        int(rec.late_minutes),
        int(rec.is_early),
        int(rec.early_minutes),
        rec.overtime_hours,
        rec.shortage_hours,
        rec.adjusted_overtime_hours,
        rec.last_activity_at,
        int(rec.auto_checked_out),
        rec.location.value,
        rec.notes,
        int(rec.is_regularized),
        rec.regularization_id,
        rec.regularized_by,
        rec.regularized_at,
        rec.regularization_reason,
        int(rec.lateness_waived),
        int(rec.earliness_waived),
        to_json(rec.audit_trail.to_list()),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE attendance_id=%s", (int(attendance_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE user_id=%s AND work_date=%s",
                (int(user_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def add(self, record: AttendanceRecord) -> AttendanceRecord:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    user_id, work_date,
                    check_in_time, check_out_time, break_minutes, break_started_at, break_tracked,
                    total_hours, status, is_late, late_minutes, is_early, early_minutes,
                    overtime_hours, shortage_hours, adjusted_overtime_hours,
                    last_activity_at, auto_checked_out, location, notes,
                    is_regularized, regularization_id, regularized_by, regularized_at, regularization_reason,
                    lateness_waived, earliness_waived, audit_json, version
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,1)
                """,
                (int(record.user_id), record.work_date) + _record_params(record),
            )
            new_id = int(cur.lastrowid)
        return replace(record, attendance_id=new_id, version=1)

    def save(self, record: AttendanceRecord, *, expected_version: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET check_in_time=%s, check_out_time=%s, break_minutes=%s, break_started_at=%s, break_tracked=%s,
                    total_hours=%s, status=%s, is_late=%s, late_minutes=%s, is_early=%s, early_minutes=%s,
                    overtime_hours=%s, shortage_hours=%s, adjusted_overtime_hours=%s,
                    last_activity_at=%s, auto_checked_out=%s, location=%s, notes=%s,
                    is_regularized=%s, regularization_id=%s, regularized_by=%s, regularized_at=%s,
                    regularization_reason=%s, lateness_waived=%s, earliness_waived=%s, audit_json=%s,
                    version=version+1
                WHERE attendance_id=%s AND version=%s
                """,
                _record_params(record) + (int(record.attendance_id), int(expected_version)),
            )
            return cur.rowcount > 0

    def list_open_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE work_date=%s AND check_in_time IS NOT NULL AND check_out_time IS NULL
                """,
                (work_date,),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def list_for_user(self, user_id: int, *, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE user_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date
                """,
                (int(user_id), start_date, end_date),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE user_id=%s
                ORDER BY work_date DESC
                LIMIT %s
                """,
                (int(user_id), int(limit)),
            )
            return [_row_to_record(r) for r in fetchall(cur)]
