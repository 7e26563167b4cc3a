"""Attendance derivation: raw check-in/check-out + policy -> status and hour figures.

Pure functions only. Every path that touches an AttendanceRecord (check-in, check-out,
break tracking, auto-checkout, regularization) funnels through `recompute` so the
derived fields always move together.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import at_clock, minutes_between
from ..core.enums import AttendanceStatus
from ..policy.model import WorkHourPolicy
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord

_DEFAULT_FACTORY = AttendanceStrategyFactory()


@dataclass(frozen=True)
class AttendanceMetrics:
    status: AttendanceStatus
    total_hours: float = 0.0
    is_late: bool = False
    late_minutes: int = 0
    is_early: bool = False
    early_minutes: int = 0
    overtime_hours: float = 0.0
    shortage_hours: float = 0.0
    adjusted_overtime_hours: float = 0.0


def lateness(check_in: datetime, policy: WorkHourPolicy) -> int:
    """Whole minutes late, or 0 when within the threshold."""

    diff = minutes_between(at_clock(check_in.date(), policy.check_in_time), check_in)
    if diff > policy.late_threshold_minutes:
        return int(math.floor(diff))
    return 0


def earliness(check_out: datetime, policy: WorkHourPolicy) -> int:
    diff = minutes_between(check_out, at_clock(check_out.date(), policy.check_out_time))
    if diff > 0:
        return int(math.floor(diff))
    return 0


def worked_hours(check_in: datetime, check_out: datetime, break_minutes: int) -> float:
    total_minutes = math.floor(minutes_between(check_in, check_out)) - int(break_minutes)
    return max(0.0, total_minutes / 60.0)


def offset_overtime(extra_hours: float, shortage_hours: float) -> tuple[float, float]:
    """Smart offset: overtime first pays back the lateness shortage.

    Returns (adjusted_overtime_hours, remaining_shortage_hours).
    """

    if shortage_hours > 0:
        reduction = min(extra_hours, shortage_hours)
        return extra_hours - reduction, shortage_hours - reduction
    return extra_hours, 0.0


def compute_attendance(
    *,
    check_in: Optional[datetime],
    check_out: Optional[datetime],
    break_minutes: int,
    policy: WorkHourPolicy,
    current_status: AttendanceStatus = AttendanceStatus.ABSENT,
    status_locked: bool = False,
    lateness_waived: bool = False,
    earliness_waived: bool = False,
    factory: Optional[AttendanceStrategyFactory] = None,
) -> AttendanceMetrics:
    factory = factory or _DEFAULT_FACTORY

    if check_in is None:
        return AttendanceMetrics(status=current_status)

    late_minutes = 0 if lateness_waived else lateness(check_in, policy)
    is_late = late_minutes > 0

    if check_out is None:
        strategy = factory.for_record(has_check_out=False, status_locked=status_locked)
        decision = strategy.decide(total_hours=0.0, policy=policy, current=current_status)
        return AttendanceMetrics(status=decision.status, is_late=is_late, late_minutes=late_minutes)

    total_hours = worked_hours(check_in, check_out, break_minutes)
    strategy = factory.for_record(has_check_out=True, status_locked=status_locked)
    decision = strategy.decide(total_hours=total_hours, policy=policy, current=current_status)

    early_minutes = 0 if earliness_waived else earliness(check_out, policy)

    shortage = late_minutes / 60.0 if is_late else 0.0
    extra = max(0.0, total_hours - policy.working_hours)
    adjusted, shortage = offset_overtime(extra, shortage)

    return AttendanceMetrics(
        status=decision.status,
        total_hours=total_hours,
        is_late=is_late,
        late_minutes=late_minutes,
        is_early=early_minutes > 0,
        early_minutes=early_minutes,
        overtime_hours=adjusted,
        shortage_hours=shortage,
        adjusted_overtime_hours=adjusted,
    )


def recompute(
    record: AttendanceRecord,
    policy: WorkHourPolicy,
    *,
    factory: Optional[AttendanceStrategyFactory] = None,
) -> AttendanceRecord:
    m = compute_attendance(
        check_in=record.check_in,
        check_out=record.check_out,
        break_minutes=record.break_minutes,
        policy=policy,
        current_status=record.status,
        status_locked=record.is_regularized,
        lateness_waived=record.lateness_waived,
        earliness_waived=record.earliness_waived,
        factory=factory,
    )
    return replace(
        record,
        status=m.status,
        total_hours=m.total_hours,
        is_late=m.is_late,
        late_minutes=m.late_minutes,
        is_early=m.is_early,
        early_minutes=m.early_minutes,
        overtime_hours=m.overtime_hours,
        shortage_hours=m.shortage_hours,
        adjusted_overtime_hours=m.adjusted_overtime_hours,
    )
