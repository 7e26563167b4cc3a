from __future__ import annotations

import threading
from dataclasses import replace
from typing import Dict, FrozenSet, Optional, Sequence

from ..core.enums import ApprovalLevel
from .model import PermissionRequest
from .repository import PermissionRepository


class InMemoryPermissionRepository(PermissionRepository):
    def __init__(self):
        self._lock = threading.Lock()
        self._next_id = 1
        self._rows: Dict[int, PermissionRequest] = {}

    def add(self, request: PermissionRequest) -> PermissionRequest:
        with self._lock:
            stored = replace(request, request_id=self._next_id, version=1)
            self._next_id += 1
            self._rows[stored.request_id] = stored
            return stored

    def get_by_id(self, request_id: int) -> Optional[PermissionRequest]:
        with self._lock:
            return self._rows.get(int(request_id))

    def save(self, request: PermissionRequest, *, expected_version: int) -> bool:
        with self._lock:
            current = self._rows.get(int(request.request_id))
            if current is None or current.version != expected_version:
                return False
            self._rows[current.request_id] = replace(request, version=expected_version + 1)
            return True

    def list_for_employee(self, employee_id: int, *, limit: int = 200) -> Sequence[PermissionRequest]:
        with self._lock:
            rows = [r for r in self._rows.values() if r.employee_id == int(employee_id)]
        rows.sort(key=lambda r: (r.created_at, r.request_id), reverse=True)
        return rows[: int(limit)]

    def list_open(self, *, levels: FrozenSet[ApprovalLevel], limit: int = 1000) -> Sequence[PermissionRequest]:
        with self._lock:
            rows = [r for r in self._rows.values() if not r.workflow.is_terminal and r.workflow.current_level in levels]
        rows.sort(key=lambda r: (r.created_at, r.request_id))
        return rows[: int(limit)]
