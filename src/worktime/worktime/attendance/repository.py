from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_by_id(self, attendance_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_user_and_date(self, user_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def add(self, record: AttendanceRecord) -> AttendanceRecord:
        """Insert a new record (version 1). Raises DuplicateRecordError for an existing (user, date)."""

        raise NotImplementedError

    def save(self, record: AttendanceRecord, *, expected_version: int) -> bool:
        """Compare-and-swap write: succeeds only if the stored version still equals `expected_version`.

        On success the stored version becomes `expected_version + 1`.
        """

        raise NotImplementedError

    def list_open_for_date(self, work_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def list_for_user(self, user_id: int, *, start_date: date, end_date: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def get_recent_for_user(self, user_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError
