from __future__ import annotations

from collections import Counter
from dataclasses import replace
from datetime import date, datetime
from typing import Iterable, List, Optional

from ..attendance.service import AttendanceService
from ..common.datetime_utils import at_clock, now_local, parse_optional_clock
from ..common.validators import optional_enum, require_enum, require_max_length, require_non_empty
from ..core.constants import REASON_MAX_LENGTH, REGULARIZATION_TYPE_DESCRIPTIONS
from ..core.enums import (
    EventKind,
    Priority,
    RegularizationType,
    RequestedStatus,
    RequestStatus,
    Role,
)
from ..core.exceptions import (
    AuthorizationError,
    ConcurrencyError,
    DuplicateRecordError,
    PersistenceError,
    StateConflictError,
    ValidationError,
)
from ..core.roles import Visibility, capability_for, require_role
from ..notifications.dispatcher import BackgroundNotifier
from ..workflow.engine import ApprovalWorkflow
from ..workflow.service import WorkflowRequestService
from .applier import RegularizationApplier
from .model import RegularizationRequest
from .repository import QueueScope, RegularizationFilter, RegularizationRepository

_DUPLICATE_MESSAGE = "Đã có yêu cầu điều chỉnh đang xử lý hoặc đã duyệt cho ngày này"


class RegularizationService(WorkflowRequestService[RegularizationRequest]):
    kind_label = "Yêu cầu điều chỉnh"

    def __init__(
        self,
        requests: RegularizationRepository,
        attendance: AttendanceService,
        workflow: ApprovalWorkflow,
        *,
        applier: Optional[RegularizationApplier] = None,
        notifier: Optional[BackgroundNotifier] = None,
    ):
        super().__init__(requests, workflow, notifier=notifier)
        self._requests = requests
        self._attendance = attendance
        self._applier = applier or RegularizationApplier()

    def submit(
        self,
        *,
        actor_id: int,
        actor_role: Role,
        attendance_date: date,
        request_type: str,
        reason: str,
        requested_check_in: Optional[str] = None,
        requested_check_out: Optional[str] = None,
        requested_status: Optional[str] = None,
        priority: Optional[str] = None,
        supporting_documents: Iterable[str] = (),
        now: Optional[datetime] = None,
    ) -> RegularizationRequest:
        now = now or now_local()
        rtype = require_enum(RegularizationType, request_type, "Loại yêu cầu")
        reason = require_max_length(require_non_empty(reason, "Lý do"), "Lý do", REASON_MAX_LENGTH)
        status = optional_enum(RequestedStatus, requested_status, "Trạng thái đề nghị")
        prio = optional_enum(Priority, priority, "Mức ưu tiên") or Priority.NORMAL

        if attendance_date > now.date():
            raise ValidationError("Không thể điều chỉnh chấm công cho ngày trong tương lai")

        in_clock = parse_optional_clock(requested_check_in)
        out_clock = parse_optional_clock(requested_check_out)
        req_in = at_clock(attendance_date, in_clock) if in_clock else None
        req_out = at_clock(attendance_date, out_clock) if out_clock else None
        if req_in and req_out and req_out <= req_in:
            raise ValidationError("Giờ ra không thể nhỏ hơn giờ vào")

        state = self._workflow.start(
            requester_id=int(actor_id),
            requester_role=actor_role,
            at=now,
            details=f"{rtype.value} cho ngày {attendance_date.isoformat()}",
        )

        if self._requests.find_active(employee_id=int(actor_id), attendance_date=attendance_date):
            raise ValidationError(_DUPLICATE_MESSAGE)

        record = self._attendance.get_today_record(int(actor_id), attendance_date)
        draft = RegularizationRequest(
            request_id=None,
            employee_id=int(actor_id),
            attendance_date=attendance_date,
            request_type=rtype,
            reason=reason,
            workflow=state,
            created_at=now,
            requested_check_in=req_in,
            requested_check_out=req_out,
            requested_status=status,
            priority=prio,
            supporting_documents=tuple(supporting_documents or ()),
            attendance_id=record.attendance_id if record else None,
            original_attendance=record.snapshot() if record else None,
        )
        try:
            request = self._requests.add(draft)
        except DuplicateRecordError as e:
            # a concurrent submit for the same day won the insert
            raise ValidationError(_DUPLICATE_MESSAGE) from e
        self._log.info(
            "Regularization %s submitted by user %s (%s) -> %s",
            request.display_id,
            actor_id,
            actor_role.value,
            state.current_level.value,
        )
        self._notify(
            request,
            EventKind.REQUEST_CREATED,
            at=now,
            message=f"Yêu cầu mới chờ duyệt ở cấp {state.current_level.value}",
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
    ) -> RegularizationRequest:
        now = now or now_local()
        current = self._require(request_id)
        preview = self._workflow.approve(current.workflow, actor_id=actor_id, actor_role=actor_role, at=now, comments=comments)

        if preview.status == RequestStatus.APPROVED:
            # Validate the attendance rewrite before the decision is stored.
            policy = self._attendance.get_policy()
            existing = self._attendance.get_today_record(current.employee_id, current.attendance_date)
            self._applier.apply(replace(current, workflow=preview), existing, policy, approver_id=int(actor_id))

        _, after = self._transition(
            request_id,
            lambda wf: self._workflow.approve(wf, actor_id=actor_id, actor_role=actor_role, at=now, comments=comments),
        )

        if after.workflow.status == RequestStatus.APPROVED:
            after = self._apply_to_attendance(after)
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
    ) -> RegularizationRequest:
        now = now or now_local()
        _, after = self._transition(
            request_id,
            lambda wf: self._workflow.reject(wf, actor_id=actor_id, actor_role=actor_role, at=now, reason=reason),
        )
        self._notify_transition(after, at=now)
        return after

    def cancel(self, *, request_id: int, actor_id: int, now: Optional[datetime] = None) -> RegularizationRequest:
        now = now or now_local()
        _, after = self._transition(request_id, lambda wf: self._workflow.cancel(wf, actor_id=actor_id, at=now))
        self._notify_transition(after, at=now)
        return after

    def reapply(self, *, request_id: int, actor_role: Role) -> RegularizationRequest:
        """Finish an approved request whose attendance write failed earlier (idempotent)."""

        require_role(actor_role, Role.VP_ADMIN)
        req = self._require(request_id)
        if req.workflow.status != RequestStatus.APPROVED:
            raise StateConflictError("Chỉ áp dụng lại yêu cầu đã được duyệt")
        return self._apply_to_attendance(req)

    def _apply_to_attendance(self, request: RegularizationRequest) -> RegularizationRequest:
        approver_id = int(request.workflow.final_approver_id)
        try:
            record = self._attendance.write_day(
                user_id=request.employee_id,
                work_date=request.attendance_date,
                build=lambda cur, policy: self._applier.apply(request, cur, policy, approver_id=approver_id),
            )
        except (PersistenceError, ConcurrencyError) as e:
            self._log.error("Regularization %s approved but attendance update failed: %s", request.display_id, e)
            raise PersistenceError("Đã duyệt nhưng chưa cập nhật được chấm công, vui lòng thử lại") from e

        updated = replace(
            request,
            attendance_id=record.attendance_id,
            updated_attendance=record.snapshot(),
            attendance_updated=True,
        )
        if self._requests.save(updated, expected_version=request.version):
            updated = replace(updated, version=request.version + 1)
        else:
            # attendance itself is already correct; the next reapply refreshes the snapshot
            self._log.warning("Regularization %s snapshot not stored (version changed)", request.display_id)
        self._log.info(
            "Regularization %s applied to attendance %s (%s)",
            request.display_id,
            record.attendance_id,
            record.status.value,
        )
        return updated

    def get(self, *, request_id: int, viewer_id: int, viewer_role: Role) -> RegularizationRequest:
        req = self._require(request_id)
        if not self.can_view(req, viewer_id=viewer_id, viewer_role=viewer_role):
            raise AuthorizationError("Bạn không có quyền xem yêu cầu này")
        return req

    def list(
        self,
        *,
        viewer_id: int,
        viewer_role: Role,
        flt: Optional[RegularizationFilter] = None,
        limit: int = 200,
    ) -> List[RegularizationRequest]:
        flt = self._scoped(flt or RegularizationFilter(), viewer_id=viewer_id, viewer_role=viewer_role)
        if flt is None:
            return []
        return list(self._requests.list(flt, limit=max(int(limit), 1)))

    @staticmethod
    def _scoped(flt: RegularizationFilter, *, viewer_id: int, viewer_role: Role) -> Optional[RegularizationFilter]:
        """Narrow `flt` to what the viewer may see; None when nothing can match."""

        cap = capability_for(viewer_role)
        if cap.visibility == Visibility.OWN:
            if flt.employee_id is not None and int(flt.employee_id) != int(viewer_id):
                return None
            return replace(flt, employee_id=int(viewer_id))
        if cap.visibility == Visibility.QUEUE:
            return replace(flt, scope=QueueScope(viewer_id=int(viewer_id), levels=cap.levels))
        return flt

    def pending_for(self, *, actor_id: int, actor_role: Role, limit: int = 1000) -> List[RegularizationRequest]:
        levels = capability_for(actor_role).levels
        if not levels:
            return []
        rows = self._requests.list(RegularizationFilter(open_only=True, levels=levels), limit=limit)
        return [r for r in rows if self.is_in_queue(r, actor_id=actor_id, actor_role=actor_role)]

    def statistics(
        self,
        *,
        viewer_id: int,
        viewer_role: Role,
        employee_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> dict:
        rows = self.list(
            viewer_id=viewer_id,
            viewer_role=viewer_role,
            flt=RegularizationFilter(employee_id=employee_id, start_date=start_date, end_date=end_date),
            limit=10000,
        )
        by_status = Counter(r.workflow.status.value for r in rows)
        by_type = Counter(r.request_type.value for r in rows)
        return {
            "total": len(rows),
            "by_status": {s.value: by_status.get(s.value, 0) for s in RequestStatus},
            "by_type": {t.value: by_type.get(t.value, 0) for t in RegularizationType if by_type.get(t.value)},
        }

    def config(self) -> dict:
        return {
            "request_types": [
                {"value": t.value, "description": REGULARIZATION_TYPE_DESCRIPTIONS[t.value]} for t in RegularizationType
            ],
            "priorities": [p.value for p in Priority],
            "requested_statuses": [s.value for s in RequestedStatus],
            "statuses": [s.value for s in RequestStatus],
            "levels": [lvl.value for lvl in self._workflow.definition.levels],
            "approvals_required": self._workflow.definition.approvals_required,
            "reason_max_length": REASON_MAX_LENGTH,
        }
