from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

import pytest

from worktime.attendance.memory_attendance_repository import InMemoryAttendanceRepository
from worktime.attendance.model import AttendanceRecord
from worktime.attendance.service import AttendanceService
from worktime.core.enums import AttendanceStatus, AuditAction, EventKind, Location
from worktime.core.exceptions import ConcurrencyError, DuplicateRecordError, StateConflictError, ValidationError
from worktime.policy.memory_policy_repository import InMemoryPolicyRepository
from worktime.policy.model import WorkHourPolicy
from worktime.policy.service import PolicyService


def t(day: date, hh: int, mm: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hh, mm)


def make_service(repo=None, policy: WorkHourPolicy | None = None, **kwargs) -> AttendanceService:
    return AttendanceService(
        repo or InMemoryAttendanceRepository(),
        PolicyService(InMemoryPolicyRepository(policy)),
        **kwargs,
    )


class RacingSaveRepo(InMemoryAttendanceRepository):
    """First save loses to a concurrent writer that changed the notes."""

    def __init__(self):
        super().__init__()
        self.raced = False

    def save(self, record, *, expected_version):
        if not self.raced:
            self.raced = True
            current = self.get_by_id(record.attendance_id)
            super().save(replace(current, notes="concurrent"), expected_version=expected_version)
        return super().save(record, expected_version=expected_version)


class AlwaysStaleRepo(InMemoryAttendanceRepository):
    def __init__(self):
        super().__init__()
        self.attempts = 0

    def save(self, record, *, expected_version):
        self.attempts += 1
        return False


class RacingAddRepo(InMemoryAttendanceRepository):
    """Another request inserts the same (user, day) right before us."""

    def add(self, record):
        if record.notes != "other tab":
            super().add(replace(record, notes="other tab"))
            raise DuplicateRecordError("duplicate")
        return super().add(record)


def test_check_in_creates_open_day(container, day):
    service = container.attendance_service

    record = service.check_in(1, now=t(day, 9, 45), location=Location.REMOTE)

    assert record.attendance_id is not None
    assert record.status == AttendanceStatus.PRESENT
    assert record.is_late is True and record.late_minutes == 45
    assert record.break_minutes == 60
    assert record.location == Location.REMOTE
    assert [e.action for e in record.audit_trail] == [AuditAction.CHECKED_IN]
    assert service.get_today_record(1, day) == record


def test_double_check_in_is_rejected(container, day):
    service = container.attendance_service
    service.check_in(1, now=t(day, 9))

    with pytest.raises(StateConflictError):
        service.check_in(1, now=t(day, 9, 5))


def test_check_out_requires_open_day(container, day):
    service = container.attendance_service

    with pytest.raises(StateConflictError):
        service.check_out(1, now=t(day, 18))

    service.check_in(1, now=t(day, 9))
    service.check_out(1, now=t(day, 18))
    with pytest.raises(StateConflictError):
        service.check_out(1, now=t(day, 18, 5))


def test_check_out_computes_and_alerts_overtime(container, dispatcher, day):
    service = container.attendance_service
    service.check_in(1, now=t(day, 9))

    record = service.check_out(1, now=t(day, 19, 30))

    assert record.total_hours == pytest.approx(9.5)
    assert record.adjusted_overtime_hours == pytest.approx(1.5)
    assert record.status == AttendanceStatus.PRESENT
    assert record.version == 2
    assert dispatcher.kinds() == [EventKind.OVERTIME_ALERT.value]


def test_short_day_becomes_half_day(container, dispatcher, day):
    service = container.attendance_service
    service.check_in(1, now=t(day, 9))

    record = service.check_out(1, now=t(day, 14))

    assert record.status == AttendanceStatus.HALF_DAY
    assert record.is_early is True and record.early_minutes == 240
    assert dispatcher.sent == []


def test_measured_breaks_replace_default(container, day):
    service = container.attendance_service
    service.check_in(1, now=t(day, 9))

    service.start_break(1, now=t(day, 12))
    with pytest.raises(StateConflictError):
        service.start_break(1, now=t(day, 12, 5))
    record = service.end_break(1, now=t(day, 12, 45))
    assert record.break_minutes == 45

    service.start_break(1, now=t(day, 15))
    record = service.end_break(1, now=t(day, 15, 10))
    assert record.break_minutes == 55

    record = service.check_out(1, now=t(day, 18))
    assert record.total_hours == pytest.approx((540 - 55) / 60)


def test_check_out_closes_running_break(container, day):
    service = container.attendance_service
    service.check_in(1, now=t(day, 9))
    service.start_break(1, now=t(day, 17))

    record = service.check_out(1, now=t(day, 17, 30))

    assert record.break_started_at is None
    assert record.break_minutes == 30


def test_end_break_without_start(container, day):
    service = container.attendance_service
    service.check_in(1, now=t(day, 9))

    with pytest.raises(StateConflictError):
        service.end_break(1, now=t(day, 12))


def test_lost_race_is_retried_on_fresh_state(day):
    repo = RacingSaveRepo()
    service = make_service(repo)
    service.check_in(1, now=t(day, 9))

    record = service.record_activity(1, now=t(day, 11))

    assert repo.raced is True
    assert record.notes == "concurrent"
    assert record.last_activity_at == t(day, 11)
    assert repo.get_for_user_and_date(1, day).version == 3


def test_retries_are_bounded(day):
    repo = AlwaysStaleRepo()
    service = make_service(repo, max_retries=2)
    service.check_in(1, now=t(day, 9))

    with pytest.raises(ConcurrencyError):
        service.record_activity(1, now=t(day, 10))
    assert repo.attempts == 2


def test_concurrent_first_check_in_reports_conflict(day):
    service = make_service(RacingAddRepo())

    with pytest.raises(StateConflictError):
        service.check_in(1, now=t(day, 9))


def test_auto_checkout_closes_only_inactive_days(container, dispatcher, day):
    service = container.attendance_service
    service.check_in(1, now=t(day, 9))
    service.check_in(2, now=t(day, 9))
    service.record_activity(2, now=t(day, 18, 25))
    service.check_in(3, now=t(day, 9))
    service.check_out(3, now=t(day, 17))

    closed = service.auto_checkout_inactive(now=t(day, 18, 30))

    assert [r.user_id for r in closed] == [1]
    rec = service.get_today_record(1, day)
    assert rec.check_out == t(day, 18, 30)
    assert rec.auto_checked_out is True
    assert rec.total_hours == pytest.approx(8.5)
    assert rec.audit_trail.entries[-1].action == AuditAction.AUTO_CHECKED_OUT
    assert service.get_today_record(2, day).is_open
    assert EventKind.AUTO_CHECKED_OUT.value in dispatcher.kinds()

    # idempotent: nothing left to close
    assert service.auto_checkout_inactive(now=t(day, 18, 31)) == []


def test_auto_checkout_waits_for_standard_checkout(container, day):
    service = container.attendance_service
    service.check_in(1, now=t(day, 9))

    assert service.auto_checkout_inactive(now=t(day, 17, 59)) == []
    assert service.get_today_record(1, day).is_open


def test_auto_checkout_can_be_disabled(day):
    service = make_service(policy=WorkHourPolicy(auto_checkout_enabled=False))
    service.check_in(1, now=t(day, 9))

    assert service.auto_checkout_inactive(now=t(day, 20)) == []


def test_monthly_summary_counts_open_day_live(container):
    service = container.attendance_service
    d1, d2, today = date(2025, 3, 3), date(2025, 3, 4), date(2025, 3, 5)
    service.check_in(1, now=t(date(2025, 2, 28), 9))
    service.check_in(1, now=t(d1, 9))
    service.check_out(1, now=t(d1, 18))
    service.check_in(1, now=t(d2, 9, 45))
    service.check_out(1, now=t(d2, 18))
    service.check_in(1, now=t(today, 9))

    summary = service.monthly_summary(1, year=2025, month=3, now=t(today, 12))

    assert summary.total_days == 3
    assert summary.present_days == 3
    assert summary.late_days == 1
    assert summary.total_hours == pytest.approx(8 + 7.25 + 3)
    assert summary.expected_hours == 24
    assert summary.shortage_hours == pytest.approx(0.75)
    assert summary.overtime_hours == 0


def test_monthly_summary_rejects_bad_month(container):
    with pytest.raises(ValidationError):
        container.attendance_service.monthly_summary(1, year=2025, month=13)


def test_history_range_and_recent(container):
    service = container.attendance_service
    for d in (1, 2, 3):
        service.check_in(1, now=datetime(2025, 3, d, 9))

    assert [r.work_date.day for r in service.get_history(1, limit=2)] == [3, 2]
    rows = service.get_history(1, start_date=date(2025, 3, 2), end_date=date(2025, 3, 3))
    assert [r.work_date.day for r in rows] == [2, 3]
    with pytest.raises(ValidationError):
        service.get_history(1, start_date=date(2025, 3, 2))
