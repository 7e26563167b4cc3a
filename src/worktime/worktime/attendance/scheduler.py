"""Auto-checkout background job.

Runs `AttendanceService.auto_checkout_inactive` on an interval (default every 5 minutes).

Guardrails:
- coalesce=True, max_instances=1 so a slow sweep never overlaps the next one
- each record is closed with the same compare-and-swap write as a manual check-out
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_AUTO_CHECKOUT_INTERVAL_MINUTES
from .service import AttendanceService

logger = logging.getLogger(__name__)

JOB_ID = "auto_checkout_sweep"


class AutoCheckoutScheduler:
    def __init__(
        self,
        service: AttendanceService,
        *,
        interval_minutes: int = DEFAULT_AUTO_CHECKOUT_INTERVAL_MINUTES,
        clock: Callable[[], datetime] = now_local,
    ):
        self._service = service
        self._interval = max(1, int(interval_minutes))
        self._clock = clock
        self._scheduler: Optional[BackgroundScheduler] = None
        self._last_run_at: Optional[datetime] = None
        self._last_result: Optional[dict] = None

    def start(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            return
        scheduler = BackgroundScheduler()
        scheduler.add_job(
            self._job,
            "interval",
            minutes=self._interval,
            id=JOB_ID,
            replace_existing=True,
            coalesce=True,
            max_instances=1,
        )
        scheduler.start()
        self._scheduler = scheduler
        logger.info("[cron] Auto-checkout scheduler started (every %s min)", self._interval)

    def stop(self) -> None:
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            logger.info("[cron] Auto-checkout scheduler stopped")
        self._scheduler = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def run_once(self, *, now: Optional[datetime] = None) -> dict:
        """Run one sweep right away (manual trigger / tests)."""

        now = now or self._clock()
        closed = self._service.auto_checkout_inactive(now=now)
        self._last_run_at = now
        self._last_result = {
            "status": "success",
            "closed": len(closed),
            "attendance_ids": [r.attendance_id for r in closed],
        }
        return dict(self._last_result)

    def status(self) -> dict:
        next_run = None
        if self.running:
            job = self._scheduler.get_job(JOB_ID)
            if job is not None and job.next_run_time is not None:
                next_run = job.next_run_time.isoformat()
        return {
            "running": self.running,
            "interval_minutes": self._interval,
            "next_run_at": next_run,
            "last_run_at": self._last_run_at.isoformat() if self._last_run_at else None,
            "last_result": self._last_result,
        }

    def _job(self) -> None:
        try:
            result = self.run_once()
            if result["closed"]:
                logger.info("[cron] Auto-checkout sweep closed %s record(s)", result["closed"])
        except Exception as e:
            logger.exception("[cron] Auto-checkout sweep failed")
            self._last_run_at = self._clock()
            self._last_result = {"status": "error", "error": str(e)}
