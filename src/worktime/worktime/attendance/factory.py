from __future__ import annotations

from dataclasses import dataclass

from .strategies.base import AttendanceStrategy
from .strategies.closed_day_strategy import ClosedDayStrategy
from .strategies.locked_status_strategy import LockedStatusStrategy
from .strategies.open_day_strategy import OpenDayStrategy


@dataclass
class AttendanceStrategyFactory:
    """Factory Pattern: choose appropriate strategy based on rules."""

    def for_record(self, *, has_check_out: bool, status_locked: bool) -> AttendanceStrategy:
        if status_locked:
            return LockedStatusStrategy()
        if not has_check_out:
            return OpenDayStrategy()
        return ClosedDayStrategy()
