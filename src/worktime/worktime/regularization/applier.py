"""Turn an approved regularization into a rewritten attendance record.

`RegularizationApplier.apply` is pure and idempotent: applying the same approved
request to its own output gives back an identical record.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional

from ..attendance.computer import recompute
from ..attendance.factory import AttendanceStrategyFactory
from ..attendance.model import AttendanceRecord
from ..common.datetime_utils import at_clock
from ..core.constants import HALF_DAY_HOURS
from ..core.enums import AttendanceStatus, AuditAction, Location, RegularizationType, RequestedStatus
from ..core.exceptions import ValidationError
from ..policy.model import WorkHourPolicy
from .model import RegularizationRequest


class _Ctx:
    """Resolved inputs for one application."""

    def __init__(self, request: RegularizationRequest, record: AttendanceRecord, policy: WorkHourPolicy):
        day = request.attendance_date
        self.request = request
        self.record = record
        self.std_in = at_clock(day, policy.check_in_time)
        self.std_out = at_clock(day, policy.check_out_time)
        self.req_in = request.requested_check_in
        self.req_out = request.requested_check_out

    @staticmethod
    def first(*values: Optional[datetime]) -> Optional[datetime]:
        for v in values:
            if v is not None:
                return v
        return None


Handler = Callable[[_Ctx], AttendanceRecord]


def _both_times(ctx: _Ctx) -> AttendanceRecord:
    return replace(
        ctx.record,
        check_in=ctx.first(ctx.req_in, ctx.std_in),
        check_out=ctx.first(ctx.req_out, ctx.std_out),
        status=AttendanceStatus.PRESENT,
    )


def _missed_check_in(ctx: _Ctx) -> AttendanceRecord:
    return replace(
        ctx.record,
        check_in=ctx.first(ctx.req_in, ctx.std_in),
        check_out=ctx.first(ctx.req_out, ctx.record.check_out, ctx.std_out),
        status=AttendanceStatus.PRESENT,
    )


def _missed_check_out(ctx: _Ctx) -> AttendanceRecord:
    return replace(
        ctx.record,
        check_in=ctx.first(ctx.record.check_in, ctx.req_in, ctx.std_in),
        check_out=ctx.first(ctx.req_out, ctx.std_out),
        status=AttendanceStatus.PRESENT,
    )


def _absent_to_half_day(ctx: _Ctx) -> AttendanceRecord:
    return replace(
        ctx.record,
        check_in=ctx.first(ctx.req_in, ctx.std_in),
        check_out=ctx.first(ctx.req_out, ctx.std_in + timedelta(hours=HALF_DAY_HOURS)),
        status=AttendanceStatus.HALF_DAY,
    )


def _late_arrival(ctx: _Ctx) -> AttendanceRecord:
    # Only the arrival moves; an open day stays open.
    return replace(
        ctx.record,
        check_in=ctx.first(ctx.req_in, ctx.record.check_in, ctx.std_in),
        lateness_waived=True,
        status=AttendanceStatus.PRESENT,
    )


def _early_departure(ctx: _Ctx) -> AttendanceRecord:
    if ctx.record.check_in is None:
        raise ValidationError("Chưa có giờ vào cho ngày này, không thể ghi nhận về sớm")
    return replace(
        ctx.record,
        check_out=ctx.first(ctx.req_out, ctx.record.check_out),
        earliness_waived=True,
        status=AttendanceStatus.PRESENT,
    )


def _work_from_home(ctx: _Ctx) -> AttendanceRecord:
    return replace(_both_times(ctx), location=Location.REMOTE, notes="Work From Home - Regularized")


def _field_work(ctx: _Ctx) -> AttendanceRecord:
    return replace(_both_times(ctx), location=Location.CLIENT_SITE, notes="Field Work - Regularized")


def _medical_emergency(ctx: _Ctx) -> AttendanceRecord:
    return replace(_both_times(ctx), notes="Medical Emergency - Regularized")


def _transport_issue(ctx: _Ctx) -> AttendanceRecord:
    return replace(
        ctx.record,
        check_in=ctx.first(ctx.req_in, ctx.std_in),
        check_out=ctx.first(ctx.record.check_out, ctx.req_out, ctx.std_out),
        lateness_waived=True,
        notes="Transport Issue - Regularized",
        status=AttendanceStatus.PRESENT,
    )


def _verbatim(ctx: _Ctx) -> AttendanceRecord:
    """System Error / Other: take the requested values as given."""

    requested = ctx.request.requested_status
    status = AttendanceStatus.PRESENT
    location = ctx.record.location
    if requested == RequestedStatus.HALF_DAY:
        status = AttendanceStatus.HALF_DAY
    elif requested == RequestedStatus.WORK_FROM_HOME:
        location = Location.REMOTE
    return replace(
        ctx.record,
        check_in=ctx.first(ctx.req_in, ctx.record.check_in),
        check_out=ctx.first(ctx.req_out, ctx.record.check_out),
        location=location,
        status=status,
    )


_HANDLERS: Dict[RegularizationType, Handler] = {
    RegularizationType.MISSED_CHECK_IN: _missed_check_in,
    RegularizationType.MISSED_CHECK_OUT: _missed_check_out,
    RegularizationType.MISSED_BOTH: _both_times,
    RegularizationType.ABSENT_TO_PRESENT: _both_times,
    RegularizationType.ABSENT_TO_HALF_DAY: _absent_to_half_day,
    RegularizationType.LATE_ARRIVAL: _late_arrival,
    RegularizationType.EARLY_DEPARTURE: _early_departure,
    RegularizationType.WORK_FROM_HOME: _work_from_home,
    RegularizationType.FIELD_WORK: _field_work,
    RegularizationType.MEDICAL_EMERGENCY: _medical_emergency,
    RegularizationType.TRANSPORT_ISSUE: _transport_issue,
    RegularizationType.SYSTEM_ERROR: _verbatim,
    RegularizationType.OTHER: _verbatim,
}


class RegularizationApplier:
    def __init__(self, *, strategy_factory: Optional[AttendanceStrategyFactory] = None):
        self._factory = strategy_factory or AttendanceStrategyFactory()

    def apply(
        self,
        request: RegularizationRequest,
        record: Optional[AttendanceRecord],
        policy: WorkHourPolicy,
        *,
        approver_id: int,
    ) -> AttendanceRecord:
        base = record or AttendanceRecord(
            attendance_id=None,
            user_id=request.employee_id,
            work_date=request.attendance_date,
            break_minutes=policy.break_minutes,
        )
        if base.user_id != request.employee_id or base.work_date != request.attendance_date:
            raise ValidationError("Bản ghi chấm công không khớp với yêu cầu")

        applied = _HANDLERS[request.request_type](_Ctx(request, base, policy))

        if applied.check_in is not None and applied.check_out is not None and applied.check_out <= applied.check_in:
            raise ValidationError("Giờ ra không thể nhỏ hơn giờ vào")

        regularized_at = request.workflow.decided_at
        already = base.is_regularized and base.regularization_id == request.request_id
        audit = base.audit_trail
        if not already:
            audit = audit.append(
                AuditAction.REGULARIZED,
                actor_id=int(approver_id),
                at=regularized_at,
                details=f"{request.display_id}: {request.request_type.value}",
            )

        applied = replace(
            applied,
            break_started_at=None if applied.check_out is not None else applied.break_started_at,
            is_regularized=True,
            regularization_id=request.request_id,
            regularized_by=int(approver_id),
            regularized_at=regularized_at,
            regularization_reason=request.reason,
            audit_trail=audit,
        )
        return recompute(applied, policy, factory=self._factory)
