from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..common.audit import AuditTrail
from ..core.enums import AttendanceStatus, Location


@dataclass(frozen=True)
class AttendanceRecord:
    """Thực thể miền (domain): Bản ghi chấm công của một nhân viên trong một ngày.

    Derived fields (total/overtime/shortage/lateness) are only ever written by
    `computer.recompute`; everything else is raw input.
    """

    attendance_id: Optional[int]
    user_id: int
    work_date: date
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None
    break_minutes: int = 0
    break_started_at: Optional[datetime] = None
    break_tracked: bool = False

    total_hours: float = 0.0
    status: AttendanceStatus = AttendanceStatus.ABSENT
    is_late: bool = False
    late_minutes: int = 0
    is_early: bool = False
    early_minutes: int = 0
    overtime_hours: float = 0.0
    shortage_hours: float = 0.0
    adjusted_overtime_hours: float = 0.0

    last_activity_at: Optional[datetime] = None
    auto_checked_out: bool = False
    location: Location = Location.OFFICE
    notes: Optional[str] = None

    is_regularized: bool = False
    regularization_id: Optional[int] = None
    regularized_by: Optional[int] = None
    regularized_at: Optional[datetime] = None
    regularization_reason: Optional[str] = None
    lateness_waived: bool = False
    earliness_waived: bool = False

    audit_trail: AuditTrail = field(default_factory=AuditTrail)
    version: int = 0

    @property
    def is_open(self) -> bool:
        return self.check_in is not None and self.check_out is None

    def snapshot(self) -> dict:
        """Ảnh chụp trạng thái chấm công (lưu kèm yêu cầu điều chỉnh)."""

        return {
            "attendance_id": self.attendance_id,
            "date": self.work_date.isoformat(),
            "check_in": self.check_in.isoformat() if self.check_in else None,
            "check_out": self.check_out.isoformat() if self.check_out else None,
            "status": self.status.value,
            "total_hours": round(self.total_hours, 4),
            "is_late": self.is_late,
            "late_minutes": self.late_minutes,
        }

    def to_dict(self) -> dict:
        return {
            "attendance_id": self.attendance_id,
            "user_id": self.user_id,
            "date": self.work_date.isoformat(),
            "check_in": self.check_in.isoformat() if self.check_in else None,
            "check_out": self.check_out.isoformat() if self.check_out else None,
            "break_minutes": self.break_minutes,
            "on_break": self.break_started_at is not None,
            "total_hours": round(self.total_hours, 4),
            "status": self.status.value,
            "is_late": self.is_late,
            "late_minutes": self.late_minutes,
            "is_early": self.is_early,
            "early_minutes": self.early_minutes,
            "overtime_hours": round(self.overtime_hours, 4),
            "shortage_hours": round(self.shortage_hours, 4),
            "adjusted_overtime_hours": round(self.adjusted_overtime_hours, 4),
            "last_activity_at": self.last_activity_at.isoformat() if self.last_activity_at else None,
            "auto_checked_out": self.auto_checked_out,
            "location": self.location.value,
            "notes": self.notes,
            "is_regularized": self.is_regularized,
            "regularization_id": self.regularization_id,
            "regularized_by": self.regularized_by,
            "regularized_at": self.regularized_at.isoformat() if self.regularized_at else None,
            "regularization_reason": self.regularization_reason,
            "audit": self.audit_trail.to_list(),
        }


@dataclass(frozen=True)
class MonthlySummary:
    """Read-model: tổng hợp công theo tháng."""

    user_id: int
    year: int
    month: int
    total_days: int
    present_days: int
    absent_days: int
    late_days: int
    half_days: int
    total_hours: float
    overtime_hours: float
    expected_hours: float
    shortage_hours: float

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "year": self.year,
            "month": self.month,
            "total_days": self.total_days,
            "present_days": self.present_days,
            "absent_days": self.absent_days,
            "late_days": self.late_days,
            "half_days": self.half_days,
            "total_hours": round(self.total_hours, 2),
            "overtime_hours": round(self.overtime_hours, 2),
            "expected_hours": round(self.expected_hours, 2),
            "shortage_hours": round(self.shortage_hours, 2),
        }
