from __future__ import annotations

from ...core.enums import AttendanceStatus
from ...policy.model import WorkHourPolicy
from .base import AttendanceStrategy, StatusDecision


class ClosedDayStrategy(AttendanceStrategy):
    """Classify a finished day by worked hours against the policy minimum."""

    def decide(self, *, total_hours: float, policy: WorkHourPolicy, current: AttendanceStatus) -> StatusDecision:
        minimum = policy.minimum_work_hours
        if total_hours >= minimum:
            return StatusDecision(status=AttendanceStatus.PRESENT)
        if total_hours >= minimum / 2:
            return StatusDecision(status=AttendanceStatus.HALF_DAY)
        return StatusDecision(status=AttendanceStatus.ABSENT)
