from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date
from typing import Dict, Optional, Sequence, Tuple

from ..core.exceptions import DuplicateRecordError
from .model import AttendanceRecord
from .repository import AttendanceRepository


class InMemoryAttendanceRepository(AttendanceRepository):
    """Thread-safe in-process store (development / tests)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 1
        self._rows: Dict[int, AttendanceRecord] = {}
        self._by_key: Dict[Tuple[int, date], int] = {}

    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        with self._lock:
            return self._rows.get(int(attendance_id))

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with self._lock:
            aid = self._by_key.get((int(user_id), work_date))
            return self._rows.get(aid) if aid is not None else None

    def add(self, record: AttendanceRecord) -> AttendanceRecord:
        with self._lock:
            key = (int(record.user_id), record.work_date)
            if key in self._by_key:
                raise DuplicateRecordError("Bản ghi chấm công đã tồn tại")
            stored = replace(record, attendance_id=self._next_id, version=1)
            self._next_id += 1
            self._rows[stored.attendance_id] = stored
            self._by_key[key] = stored.attendance_id
            return stored

    def save(self, record: AttendanceRecord, *, expected_version: int) -> bool:
        with self._lock:
            current = self._rows.get(int(record.attendance_id))
            if current is None or current.version != expected_version:
                return False
            self._rows[current.attendance_id] = replace(record, version=expected_version + 1)
            return True

    def list_open_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        with self._lock:
            return [r for r in self._rows.values() if r.work_date == work_date and r.is_open]

    def list_for_user(self, user_id: int, *, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        with self._lock:
            rows = [
                r
                for r in self._rows.values()
                if r.user_id == int(user_id) and start_date <= r.work_date <= end_date
            ]
        return sorted(rows, key=lambda r: r.work_date)

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with self._lock:
            rows = [r for r in self._rows.values() if r.user_id == int(user_id)]
        rows.sort(key=lambda r: r.work_date, reverse=True)
        return rows[: int(limit)]
