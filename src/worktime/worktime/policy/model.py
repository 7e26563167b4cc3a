from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import time
from typing import Any, Mapping

from ..common.datetime_utils import format_clock, parse_clock
from ..core.exceptions import ValidationError

# wire name -> attribute name
_WIRE_NAMES = {
    "checkInTime": "check_in_time",
    "checkOutTime": "check_out_time",
    "workingHours": "working_hours",
    "minimumWorkHours": "minimum_work_hours",
    "lateThresholdMinutes": "late_threshold_minutes",
    "breakMinutes": "break_minutes",
    "autoCheckoutTimeoutMinutes": "auto_checkout_timeout_minutes",
    "autoCheckoutEnabled": "auto_checkout_enabled",
}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return bool(value)
    v = str(value).strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off", ""}:
        return False
    raise ValidationError(f"Giá trị boolean không hợp lệ: {value!r}")


@dataclass(frozen=True)
class WorkHourPolicy:
    """Quy định giờ làm việc (cấu hình hệ thống, admin có thể sửa)."""

    check_in_time: time = time(9, 0)
    check_out_time: time = time(18, 0)
    working_hours: float = 8.0
    minimum_work_hours: float = 6.0
    late_threshold_minutes: int = 30
    break_minutes: int = 60
    auto_checkout_timeout_minutes: int = 10
    auto_checkout_enabled: bool = True

    def __post_init__(self):
        if self.check_out_time <= self.check_in_time:
            raise ValidationError("Giờ tan ca phải sau giờ vào ca")
        if self.working_hours <= 0 or self.working_hours > 24:
            raise ValidationError("Số giờ làm việc không hợp lệ")
        if self.minimum_work_hours < 0 or self.minimum_work_hours > self.working_hours:
            raise ValidationError("Số giờ tối thiểu phải nằm trong khoảng 0..giờ làm việc")
        if self.late_threshold_minutes < 0:
            raise ValidationError("Ngưỡng đi muộn không hợp lệ")
        if self.break_minutes < 0:
            raise ValidationError("Thời gian nghỉ không hợp lệ")
        if self.auto_checkout_timeout_minutes <= 0:
            raise ValidationError("Thời gian chờ tự động chấm ra không hợp lệ")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, base: "WorkHourPolicy | None" = None) -> "WorkHourPolicy":
        """Build a policy from camelCase (wire) or snake_case keys; missing keys keep `base` values."""

        base = base or cls()
        known = {f.name for f in fields(cls)}
        changes: dict[str, Any] = {}
        for key, value in (data or {}).items():
            name = _WIRE_NAMES.get(key, key)
            if name not in known:
                raise ValidationError(f"Thiết lập không tồn tại: {key}")
            changes[name] = value

        try:
            for name in ("check_in_time", "check_out_time"):
                if name in changes and not isinstance(changes[name], time):
                    changes[name] = parse_clock(str(changes[name]))
            for name in ("working_hours", "minimum_work_hours"):
                if name in changes:
                    changes[name] = float(changes[name])
            for name in ("late_threshold_minutes", "break_minutes", "auto_checkout_timeout_minutes"):
                if name in changes:
                    changes[name] = int(changes[name])
        except (TypeError, ValueError):
            raise ValidationError("Giá trị thiết lập không hợp lệ")
        if "auto_checkout_enabled" in changes:
            changes["auto_checkout_enabled"] = _as_bool(changes["auto_checkout_enabled"])

        return replace(base, **changes)

    def to_mapping(self) -> dict:
        return {
            "checkInTime": format_clock(self.check_in_time),
            "checkOutTime": format_clock(self.check_out_time),
            "workingHours": self.working_hours,
            "minimumWorkHours": self.minimum_work_hours,
            "lateThresholdMinutes": self.late_threshold_minutes,
            "breakMinutes": self.break_minutes,
            "autoCheckoutTimeoutMinutes": self.auto_checkout_timeout_minutes,
            "autoCheckoutEnabled": self.auto_checkout_enabled,
        }
