from __future__ import annotations

from ...core.enums import AttendanceStatus
from ...policy.model import WorkHourPolicy
from .base import AttendanceStrategy, StatusDecision


class LockedStatusStrategy(AttendanceStrategy):
    """Regularized records keep the status the approver assigned."""

    def decide(self, *, total_hours: float, policy: WorkHourPolicy, current: AttendanceStatus) -> StatusDecision:
        return StatusDecision(status=current)
