from __future__ import annotations

from typing import FrozenSet, Optional, Protocol, Sequence

from ..core.enums import ApprovalLevel
from .model import PermissionRequest


class PermissionRepository(Protocol):
    def add(self, request: PermissionRequest) -> PermissionRequest:
        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[PermissionRequest]:
        raise NotImplementedError

    def save(self, request: PermissionRequest, *, expected_version: int) -> bool:
        raise NotImplementedError

    def list_for_employee(self, employee_id: int, *, limit: int = 200) -> Sequence[PermissionRequest]:
        raise NotImplementedError

    def list_open(self, *, levels: FrozenSet[ApprovalLevel], limit: int = 1000) -> Sequence[PermissionRequest]:
        """Requests still Pending / Under Review and waiting at one of `levels`, oldest first."""

        raise NotImplementedError
