"""Ví dụ: dùng service layer (không qua Flask), lưu trong bộ nhớ.

Luồng: chấm công thiếu giờ ra -> gửi yêu cầu điều chỉnh -> HR duyệt -> chấm công được cập nhật.
"""

from datetime import date, datetime

from worktime.container import build_container
from worktime.core.enums import Role


def main():
    container = build_container(storage_backend="memory", notification_workers=0)
    day = date(2025, 3, 3)

    container.attendance_service.check_in(7, now=datetime(2025, 3, 3, 9, 5))
    req = container.regularization_service.submit(
        actor_id=7,
        actor_role=Role.TEAM_MANAGER,
        attendance_date=day,
        request_type="Missed Check-Out",
        reason="Quên chấm công ra",
        now=datetime(2025, 3, 4, 8, 0),
    )
    print(req.display_id, req.workflow.current_level.value)

    req = container.regularization_service.approve(
        request_id=req.request_id, actor_id=2, actor_role=Role.HR, now=datetime(2025, 3, 4, 10, 0)
    )
    print(req.workflow.status.value, container.attendance_service.get_today_record(7, day).to_dict())


if __name__ == "__main__":
    main()
