from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import FrozenSet, Optional, Protocol, Sequence

from ..core.enums import ApprovalLevel, RegularizationType, RequestStatus
from .model import RegularizationRequest

ACTIVE_STATUSES = (RequestStatus.PENDING, RequestStatus.UNDER_REVIEW, RequestStatus.APPROVED)
OPEN_STATUSES = (RequestStatus.PENDING, RequestStatus.UNDER_REVIEW)


@dataclass(frozen=True)
class QueueScope:
    """Queue approver view: their own requests plus those at their levels or decided by them."""

    viewer_id: int
    levels: FrozenSet[ApprovalLevel]

    def matches(self, req: RegularizationRequest) -> bool:
        wf = req.workflow
        return req.employee_id == int(self.viewer_id) or wf.current_level in self.levels or wf.decided_by(self.viewer_id)


@dataclass(frozen=True)
class RegularizationFilter:
    employee_id: Optional[int] = None
    current_level: Optional[ApprovalLevel] = None
    status: Optional[RequestStatus] = None
    request_type: Optional[RegularizationType] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    open_only: bool = False
    levels: Optional[FrozenSet[ApprovalLevel]] = None
    scope: Optional[QueueScope] = None

    def matches(self, req: RegularizationRequest) -> bool:
        wf = req.workflow
        if self.employee_id is not None and req.employee_id != self.employee_id:
            return False
        if self.current_level is not None and wf.current_level != self.current_level:
            return False
        if self.status is not None and wf.status != self.status:
            return False
        if self.request_type is not None and req.request_type != self.request_type:
            return False
        if self.start_date is not None and req.attendance_date < self.start_date:
            return False
        if self.end_date is not None and req.attendance_date > self.end_date:
            return False
        if self.open_only and wf.status not in OPEN_STATUSES:
            return False
        if self.levels is not None and wf.current_level not in self.levels:
            return False
        if self.scope is not None and not self.scope.matches(req):
            return False
        return True


class RegularizationRepository(Protocol):
    def add(self, request: RegularizationRequest) -> RegularizationRequest:
        """Store a new request; DuplicateRecordError if the employee already has an active one for that day."""

        raise NotImplementedError

    def get_by_id(self, request_id: int) -> Optional[RegularizationRequest]:
        raise NotImplementedError

    def save(self, request: RegularizationRequest, *, expected_version: int) -> bool:
        raise NotImplementedError

    def find_active(self, *, employee_id: int, attendance_date: date) -> Optional[RegularizationRequest]:
        """Pending / Under Review / Approved request for the employee and day, if any."""

        raise NotImplementedError

    def list(self, flt: RegularizationFilter, *, limit: int = 500) -> Sequence[RegularizationRequest]:
        """Newest first."""

        raise NotImplementedError
