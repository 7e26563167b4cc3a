from __future__ import annotations

from ...core.enums import AttendanceStatus
from ...policy.model import WorkHourPolicy
from .base import AttendanceStrategy, StatusDecision


class OpenDayStrategy(AttendanceStrategy):
    """Checked in, not yet checked out: provisionally present."""

    def decide(self, *, total_hours: float, policy: WorkHourPolicy, current: AttendanceStatus) -> StatusDecision:
        return StatusDecision(status=AttendanceStatus.PRESENT)
