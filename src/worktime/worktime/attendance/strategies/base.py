from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ...core.enums import AttendanceStatus
from ...policy.model import WorkHourPolicy


@dataclass(frozen=True)
class StatusDecision:
    status: AttendanceStatus


class AttendanceStrategy(ABC):
    """Strategy Pattern: encapsulate how we decide an attendance status."""

    @abstractmethod
    def decide(self, *, total_hours: float, policy: WorkHourPolicy, current: AttendanceStatus) -> StatusDecision:
        raise NotImplementedError
