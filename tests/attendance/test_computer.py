from __future__ import annotations

import random
from datetime import date, datetime, time, timedelta

import pytest

from worktime.attendance.computer import compute_attendance, earliness, lateness, offset_overtime, recompute, worked_hours
from worktime.attendance.model import AttendanceRecord
from worktime.core.enums import AttendanceStatus
from worktime.policy.model import WorkHourPolicy

DAY = date(2025, 3, 3)
POLICY = WorkHourPolicy(
    check_in_time=time(9, 0),
    check_out_time=time(18, 0),
    working_hours=8,
    minimum_work_hours=6,
    late_threshold_minutes=30,
    break_minutes=60,
)


def t(hh, mm=0, ss=0):
    return datetime(2025, 3, 3, hh, mm, ss)


def test_late_arrival_overtime_pays_back_shortage():
    m = compute_attendance(check_in=t(9, 50), check_out=t(19, 30), break_minutes=60, policy=POLICY)

    assert m.is_late is True
    assert m.late_minutes == 50
    assert m.total_hours == pytest.approx(8 + 40 / 60)
    assert m.shortage_hours == pytest.approx(50 / 60 - 40 / 60)
    assert m.adjusted_overtime_hours == 0
    assert m.status == AttendanceStatus.PRESENT


def test_late_arrival_without_extra_hours_keeps_full_shortage():
    m = compute_attendance(check_in=t(9, 50), check_out=t(18, 40), break_minutes=60, policy=POLICY)

    assert m.total_hours == pytest.approx(7 + 50 / 60)
    assert m.shortage_hours == pytest.approx(50 / 60)
    assert m.adjusted_overtime_hours == 0
    assert m.status == AttendanceStatus.PRESENT


def test_on_time_long_day_is_all_overtime():
    m = compute_attendance(check_in=t(9, 0), check_out=t(20, 0), break_minutes=0, policy=POLICY)

    assert m.late_minutes == 0
    assert m.total_hours == 11
    assert m.shortage_hours == 0
    assert m.adjusted_overtime_hours == 3
    assert m.overtime_hours == m.adjusted_overtime_hours


def test_lateness_threshold_is_exclusive():
    assert lateness(t(9, 30), POLICY) == 0
    assert lateness(t(9, 30, 59), POLICY) == 30
    assert lateness(t(9, 31), POLICY) == 31
    assert lateness(t(8, 0), POLICY) == 0


def test_earliness_counts_whole_minutes_before_standard_checkout():
    assert earliness(t(18, 0), POLICY) == 0
    assert earliness(t(17, 45, 30), POLICY) == 14
    assert earliness(t(19, 0), POLICY) == 0


def test_worked_hours_never_negative():
    assert worked_hours(t(9, 0), t(9, 30), 60) == 0.0
    assert worked_hours(t(9, 0), t(10, 0, 59), 0) == 1.0


@pytest.mark.parametrize(
    "check_out, expected",
    [
        (t(16, 0), AttendanceStatus.PRESENT),  # exactly 6h after break
        (t(15, 59), AttendanceStatus.HALF_DAY),
        (t(13, 0), AttendanceStatus.HALF_DAY),  # exactly 3h
        (t(12, 59), AttendanceStatus.ABSENT),
    ],
)
def test_status_boundaries(check_out, expected):
    m = compute_attendance(check_in=t(9, 0), check_out=check_out, break_minutes=60, policy=POLICY)
    assert m.status == expected


def test_open_day_is_present_and_flags_lateness():
    m = compute_attendance(check_in=t(9, 45), check_out=None, break_minutes=60, policy=POLICY)

    assert m.status == AttendanceStatus.PRESENT
    assert m.is_late is True
    assert m.total_hours == 0
    assert m.shortage_hours == 0


def test_no_check_in_keeps_current_status():
    m = compute_attendance(
        check_in=None, check_out=None, break_minutes=60, policy=POLICY, current_status=AttendanceStatus.ON_LEAVE
    )
    assert m.status == AttendanceStatus.ON_LEAVE
    assert m.total_hours == 0


def test_locked_status_survives_short_day():
    m = compute_attendance(
        check_in=t(9, 0),
        check_out=t(11, 0),
        break_minutes=0,
        policy=POLICY,
        current_status=AttendanceStatus.HALF_DAY,
        status_locked=True,
    )
    assert m.status == AttendanceStatus.HALF_DAY
    assert m.total_hours == 2


def test_waived_lateness_has_no_shortage():
    m = compute_attendance(check_in=t(10, 0), check_out=t(18, 0), break_minutes=60, policy=POLICY, lateness_waived=True)
    assert m.is_late is False
    assert m.shortage_hours == 0


def test_offset_overtime():
    assert offset_overtime(0.5, 0.0) == (0.5, 0.0)
    assert offset_overtime(0.25, 1.0) == (0.0, 0.75)
    assert offset_overtime(2.0, 0.5) == (1.5, 0.0)


def test_recompute_replay_gives_same_fields():
    raw = AttendanceRecord(attendance_id=1, user_id=1, work_date=DAY, check_in=t(9, 40), check_out=t(19, 10), break_minutes=45)
    once = recompute(raw, POLICY)
    twice = recompute(once, POLICY)
    assert once == twice


def test_random_days_respect_derived_field_bounds():
    rng = random.Random(20250303)
    for _ in range(300):
        check_in = t(7, 0) + timedelta(minutes=rng.randint(0, 240))
        check_out = check_in + timedelta(minutes=rng.randint(0, 14 * 60))
        brk = rng.choice([0, 30, 60, 90])
        m = compute_attendance(check_in=check_in, check_out=check_out, break_minutes=brk, policy=POLICY)

        assert m.total_hours >= 0
        assert m.adjusted_overtime_hours >= 0
        assert m.shortage_hours >= 0
        assert not (m.adjusted_overtime_hours > 0 and m.shortage_hours > 0)
        assert m.is_late == (m.late_minutes > 0)
        if not m.is_late:
            assert m.shortage_hours == 0
            assert m.adjusted_overtime_hours == pytest.approx(max(0.0, m.total_hours - 8))
