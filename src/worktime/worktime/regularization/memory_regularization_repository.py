from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date
from typing import Dict, Optional, Sequence

from ..core.exceptions import DuplicateRecordError
from .model import RegularizationRequest
from .repository import ACTIVE_STATUSES, RegularizationFilter, RegularizationRepository


class InMemoryRegularizationRepository(RegularizationRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 1
        self._rows: Dict[int, RegularizationRequest] = {}

    def add(self, request: RegularizationRequest) -> RegularizationRequest:
        with self._lock:
            if request.workflow.status in ACTIVE_STATUSES and self._active_locked(request.employee_id, request.attendance_date):
                raise DuplicateRecordError(
                    f"active regularization exists for user {request.employee_id} on {request.attendance_date}"
                )
            stored = replace(request, request_id=self._next_id, version=1)
            self._next_id += 1
            self._rows[stored.request_id] = stored
            return stored

    def get_by_id(self, request_id: int) -> Optional[RegularizationRequest]:
        with self._lock:
            return self._rows.get(int(request_id))

    def save(self, request: RegularizationRequest, *, expected_version: int) -> bool:
        with self._lock:
            current = self._rows.get(int(request.request_id))
            if current is None or current.version != expected_version:
                return False
            self._rows[current.request_id] = replace(request, version=expected_version + 1)
            return True

    def find_active(self, *, employee_id: int, attendance_date: date) -> Optional[RegularizationRequest]:
        with self._lock:
            return self._active_locked(employee_id, attendance_date)

    def _active_locked(self, employee_id: int, attendance_date: date) -> Optional[RegularizationRequest]:
        for r in self._rows.values():
            if (
                r.employee_id == int(employee_id)
                and r.attendance_date == attendance_date
                and r.workflow.status in ACTIVE_STATUSES
            ):
                return r
        return None

    def list(self, flt: RegularizationFilter, *, limit: int = 500) -> Sequence[RegularizationRequest]:
        with self._lock:
            rows = [r for r in self._rows.values() if flt.matches(r)]
        rows.sort(key=lambda r: (r.created_at, r.request_id), reverse=True)
        return rows[: int(limit)]
