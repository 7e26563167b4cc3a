from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional

from ..common.datetime_utils import at_clock, now_local, parse_clock
from ..common.validators import require_max_length, require_non_empty, require_positive_int
from ..core.constants import REASON_MAX_LENGTH
from ..core.enums import EventKind, Role
from ..core.exceptions import AuthorizationError, ValidationError
from ..core.roles import capability_for
from ..notifications.dispatcher import BackgroundNotifier
from ..workflow.engine import ApprovalWorkflow
from ..workflow.service import WorkflowRequestService
from .model import PermissionRequest
from .repository import PermissionRepository


class PermissionService(WorkflowRequestService[PermissionRequest]):
    kind_label = "Đơn xin phép"

    def __init__(
        self,
        requests: PermissionRepository,
        workflow: ApprovalWorkflow,
        *,
        notifier: Optional[BackgroundNotifier] = None,
    ):
        super().__init__(requests, workflow, notifier=notifier)
        self._requests = requests

    def submit(
        self,
        *,
        actor_id: int,
        actor_role: Role,
        start_date: date,
        start_time: str,
        end_date: date,
        end_time: str,
        duration: str,
        reason: str,
        work_description: str,
        assigned_by,
        responsible_person,
        now: Optional[datetime] = None,
    ) -> PermissionRequest:
        now = now or now_local()
        start_t = parse_clock(start_time)
        end_t = parse_clock(end_time)
        if at_clock(end_date, end_t) <= at_clock(start_date, start_t):
            raise ValidationError("Thời gian kết thúc phải sau thời gian bắt đầu")

        reason = require_max_length(require_non_empty(reason, "Lý do"), "Lý do", REASON_MAX_LENGTH)
        duration = require_non_empty(duration, "Thời lượng")
        work_description = require_non_empty(work_description, "Mô tả công việc")
        assigned = require_positive_int(assigned_by, "Người giao việc")
        responsible = require_positive_int(responsible_person, "Người phụ trách")

        state = self._workflow.start(requester_id=int(actor_id), requester_role=actor_role, at=now)
        request = self._requests.add(
            PermissionRequest(
                request_id=None,
                employee_id=int(actor_id),
                start_date=start_date,
                start_time=start_t,
                end_date=end_date,
                end_time=end_t,
                duration=duration,
                reason=reason,
                work_description=work_description,
                assigned_by=assigned,
                responsible_person=responsible,
                workflow=state,
                created_at=now,
            )
        )
        self._log.info("Permission %s submitted by user %s -> %s", request.display_id, actor_id, state.current_level.value)
        self._notify(
            request,
            EventKind.REQUEST_CREATED,
            at=now,
            message=f"Đơn xin phép mới chờ duyệt ở cấp {state.current_level.value}",
        )
        return request

    def approve(
        self,
        *,
        request_id: int,
        actor_id: int,
        actor_role: Role,
        comments: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> PermissionRequest:
        now = now or now_local()
        _, after = self._transition(
            request_id,
            lambda wf: self._workflow.approve(wf, actor_id=actor_id, actor_role=actor_role, at=now, comments=comments),
        )
        self._notify_transition(after, at=now)
        return after

    def reject(
        self,
        *,
        request_id: int,
        actor_id: int,
        actor_role: Role,
        reason: str,
        now: Optional[datetime] = None,
    ) -> PermissionRequest:
        now = now or now_local()
        _, after = self._transition(
            request_id,
            lambda wf: self._workflow.reject(wf, actor_id=actor_id, actor_role=actor_role, at=now, reason=reason),
        )
        self._notify_transition(after, at=now)
        return after

    def cancel(self, *, request_id: int, actor_id: int, now: Optional[datetime] = None) -> PermissionRequest:
        now = now or now_local()
        _, after = self._transition(request_id, lambda wf: self._workflow.cancel(wf, actor_id=actor_id, at=now))
        self._notify_transition(after, at=now)
        return after

    def get(self, *, request_id: int, viewer_id: int, viewer_role: Role) -> PermissionRequest:
        req = self._require(request_id)
        if not self.can_view(req, viewer_id=viewer_id, viewer_role=viewer_role):
            raise AuthorizationError("Bạn không có quyền xem đơn này")
        return req

    def list_mine(self, *, employee_id: int, limit: int = 200) -> List[PermissionRequest]:
        return list(self._requests.list_for_employee(int(employee_id), limit=limit))

    def pending_for(self, *, actor_id: int, actor_role: Role, limit: int = 1000) -> List[PermissionRequest]:
        rows = self._requests.list_open(levels=capability_for(actor_role).levels, limit=limit)
        return [r for r in rows if self.is_in_queue(r, actor_id=actor_id, actor_role=actor_role)]
