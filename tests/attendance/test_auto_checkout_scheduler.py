from __future__ import annotations

from datetime import datetime

from worktime.attendance.scheduler import AutoCheckoutScheduler


class ExplodingService:
    def auto_checkout_inactive(self, *, now=None):
        raise RuntimeError("db unavailable")


def test_run_once_reports_closed_records(container):
    service = container.attendance_service
    service.check_in(5, now=datetime(2025, 3, 3, 9))
    scheduler = AutoCheckoutScheduler(service, interval_minutes=5)

    result = scheduler.run_once(now=datetime(2025, 3, 3, 19))

    assert result["status"] == "success"
    assert result["closed"] == 1
    assert result["attendance_ids"] == [service.get_today_record(5, datetime(2025, 3, 3).date()).attendance_id]
    status = scheduler.status()
    assert status["running"] is False
    assert status["interval_minutes"] == 5
    assert status["last_run_at"] == "2025-03-03T19:00:00"
    assert status["last_result"]["closed"] == 1


def test_job_failure_is_recorded_not_raised():
    scheduler = AutoCheckoutScheduler(ExplodingService(), clock=lambda: datetime(2025, 3, 3, 19))

    scheduler._job()

    assert scheduler.status()["last_result"] == {"status": "error", "error": "db unavailable"}


def test_start_and_stop(container):
    scheduler = AutoCheckoutScheduler(container.attendance_service, interval_minutes=1)
    scheduler.start()
    try:
        assert scheduler.running is True
        assert scheduler.status()["next_run_at"] is not None
    finally:
        scheduler.stop()
    assert scheduler.running is False
