from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Tuple

from ..core.constants import REGULARIZATION_ID_PREFIX
from ..core.enums import Priority, RegularizationType, RequestedStatus
from ..workflow.model import WorkflowState


@dataclass(frozen=True)
class RegularizationRequest:
    """Yêu cầu điều chỉnh chấm công (đi qua luồng duyệt nhiều cấp)."""

    request_id: Optional[int]
    employee_id: int
    attendance_date: date
    request_type: RegularizationType
    reason: str
    workflow: WorkflowState
    created_at: datetime
    requested_check_in: Optional[datetime] = None
    requested_check_out: Optional[datetime] = None
    requested_status: Optional[RequestedStatus] = None
    priority: Priority = Priority.NORMAL
    supporting_documents: Tuple[str, ...] = ()

    attendance_id: Optional[int] = None
    original_attendance: Optional[dict] = None
    updated_attendance: Optional[dict] = None
    attendance_updated: bool = False

    version: int = 0

    @property
    def display_id(self) -> str:
        if self.request_id is None:
            return f"{REGULARIZATION_ID_PREFIX}-new"
        return f"{REGULARIZATION_ID_PREFIX}{int(self.request_id):06d}"

    def to_dict(self) -> dict:
        wf = self.workflow
        return {
            "id": self.request_id,
            "request_id": self.display_id,
            "employee_id": self.employee_id,
            "attendance_date": self.attendance_date.isoformat(),
            "request_type": self.request_type.value,
            "reason": self.reason,
            "requested_check_in": self.requested_check_in.isoformat() if self.requested_check_in else None,
            "requested_check_out": self.requested_check_out.isoformat() if self.requested_check_out else None,
            "requested_status": self.requested_status.value if self.requested_status else None,
            "priority": self.priority.value,
            "supporting_documents": list(self.supporting_documents),
            "status": wf.status.value,
            "current_level": wf.current_level.value,
            "workflow": wf.to_dict(),
            "attendance_id": self.attendance_id,
            "original_attendance": self.original_attendance,
            "updated_attendance": self.updated_attendance,
            "attendance_updated": self.attendance_updated,
            "created_at": self.created_at.isoformat(),
        }
