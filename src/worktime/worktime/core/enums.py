from __future__ import annotations

from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Vai trò người dùng dùng cho phân quyền (thứ tự = cấp bậc)."""

    EMPLOYEE = "Employee"
    TEAM_LEADER = "Team Leader"
    TEAM_MANAGER = "Team Manager"
    HR = "HR"
    VP_ADMIN = "VP/Admin"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "Role":
        """Accept both canonical names and the legacy role strings stored on user accounts."""

        key = (value or "").strip().lower()
        if not key:
            raise ValueError("empty role")
        for role in cls:
            if role.value.lower() == key:
                return role
        alias = _ROLE_ALIASES.get(key)
        if alias is None:
            raise ValueError(f"unknown role: {value!r}")
        return alias


_ROLE_RANK = {
    Role.EMPLOYEE: 0,
    Role.TEAM_LEADER: 1,
    Role.TEAM_MANAGER: 2,
    Role.HR: 3,
    Role.VP_ADMIN: 4,
}

_ROLE_ALIASES = {
    "employee": Role.EMPLOYEE,
    "staff": Role.EMPLOYEE,
    "intern": Role.EMPLOYEE,
    "team lead": Role.TEAM_LEADER,
    "team leader": Role.TEAM_LEADER,
    "manager": Role.TEAM_MANAGER,
    "team manager": Role.TEAM_MANAGER,
    "hr manager": Role.HR,
    "hr bp": Role.HR,
    "hr executive": Role.HR,
    "vice president": Role.VP_ADMIN,
    "vp": Role.VP_ADMIN,
    "senior vp": Role.VP_ADMIN,
    "admin": Role.VP_ADMIN,
    "system administrator": Role.VP_ADMIN,
    "super admin": Role.VP_ADMIN,
}


class AttendanceStatus(str, Enum):
    """Trạng thái chấm công lưu trong CSDL."""

    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"
    HALF_DAY = "Half Day"
    ON_LEAVE = "On Leave"
    HOLIDAY = "Holiday"


class Location(str, Enum):
    OFFICE = "Office"
    REMOTE = "Remote"
    CLIENT_SITE = "Client Site"


class RequestStatus(str, Enum):
    """Trạng thái luồng duyệt yêu cầu."""

    PENDING = "Pending"
    UNDER_REVIEW = "Under Review"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in {RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED}


class ApprovalLevel(str, Enum):
    TEAM_LEADER = "Team Leader"
    TEAM_MANAGER = "Team Manager"
    HR = "HR"
    VP_ADMIN = "VP/Admin"
    COMPLETED = "Completed"

    @property
    def rank(self) -> int:
        # Level ranks line up with the role that owns the level.
        if self is ApprovalLevel.COMPLETED:
            return 99
        return Role(self.value).rank


class Decision(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class AuditAction(str, Enum):
    CREATED = "Created"
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    UPDATED = "Updated"
    CANCELLED = "Cancelled"
    CHECKED_IN = "Checked In"
    CHECKED_OUT = "Checked Out"
    AUTO_CHECKED_OUT = "Auto Checked Out"
    REGULARIZED = "Regularized"


class RegularizationType(str, Enum):
    MISSED_CHECK_IN = "Missed Check-In"
    MISSED_CHECK_OUT = "Missed Check-Out"
    MISSED_BOTH = "Missed Both"
    LATE_ARRIVAL = "Late Arrival"
    EARLY_DEPARTURE = "Early Departure"
    ABSENT_TO_PRESENT = "Absent to Present"
    ABSENT_TO_HALF_DAY = "Absent to Half Day"
    SYSTEM_ERROR = "System Error"
    WORK_FROM_HOME = "Work From Home"
    FIELD_WORK = "Field Work"
    MEDICAL_EMERGENCY = "Medical Emergency"
    TRANSPORT_ISSUE = "Transport Issue"
    OTHER = "Other"


class RequestedStatus(str, Enum):
    PRESENT = "Present"
    HALF_DAY = "Half Day"
    WORK_FROM_HOME = "Work From Home"


class Priority(str, Enum):
    LOW = "Low"
    NORMAL = "Normal"
    HIGH = "High"
    URGENT = "Urgent"


class EventKind(str, Enum):
    """Các sự kiện gửi sang kênh thông báo."""

    REQUEST_CREATED = "request-created"
    LEVEL_ADVANCED = "level-advanced"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    AUTO_CHECKED_OUT = "auto-checked-out"
    OVERTIME_ALERT = "overtime-alert"
