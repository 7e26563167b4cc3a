from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from ..core.constants import PERMISSION_ID_PREFIX
from ..core.enums import Decision, RequestStatus
from ..workflow.model import WorkflowState


@dataclass(frozen=True)
class PermissionRequest:
    """Đơn xin phép ra ngoài / vắng mặt ngắn trong giờ làm."""

    request_id: Optional[int]
    employee_id: int
    start_date: date
    start_time: time
    end_date: date
    end_time: time
    duration: str
    reason: str
    work_description: str
    workflow: WorkflowState
    created_at: datetime
    assigned_by: Optional[int] = None
    responsible_person: Optional[int] = None
    version: int = 0

    @property
    def display_id(self) -> str:
        if self.request_id is None:
            return f"{PERMISSION_ID_PREFIX}-new"
        return f"{PERMISSION_ID_PREFIX}{int(self.request_id):06d}"

    @property
    def status_label(self) -> str:
        """Nhãn trạng thái kiểu cũ: "<cấp> Approved" theo cấp gần nhất đã duyệt."""

        wf = self.workflow
        if wf.status in {RequestStatus.REJECTED, RequestStatus.CANCELLED}:
            return wf.status.value
        approved = [d for d in wf.decisions if d.decision == Decision.APPROVED]
        if not approved:
            return RequestStatus.PENDING.value
        return f"{approved[-1].level.value} Approved"

    def to_dict(self) -> dict:
        wf = self.workflow
        return {
            "id": self.request_id,
            "permission_id": self.display_id,
            "employee_id": self.employee_id,
            "start_date": self.start_date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M"),
            "end_date": self.end_date.isoformat(),
            "end_time": self.end_time.strftime("%H:%M"),
            "duration": self.duration,
            "reason": self.reason,
            "work_description": self.work_description,
            "assigned_by": self.assigned_by,
            "responsible_person": self.responsible_person,
            "status": wf.status.value,
            "status_label": self.status_label,
            "current_level": wf.current_level.value,
            "workflow": wf.to_dict(),
            "created_at": self.created_at.isoformat(),
        }
