from __future__ import annotations

import calendar
import logging
import math
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Protocol

from ..common.datetime_utils import at_clock, minutes_between, now_local
from ..core.constants import DEFAULT_CAS_RETRIES, DEFAULT_HISTORY_LIMIT
from ..core.enums import AttendanceStatus, AuditAction, EventKind, Location
from ..core.exceptions import ConcurrencyError, DuplicateRecordError, StateConflictError, ValidationError
from ..notifications.dispatcher import BackgroundNotifier, Notification
from ..policy.model import WorkHourPolicy
from .computer import recompute
from .factory import AttendanceStrategyFactory
from .model import AttendanceRecord, MonthlySummary
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)

Builder = Callable[[Optional[AttendanceRecord], WorkHourPolicy], AttendanceRecord]


class PolicyProvider(Protocol):
    def get_policy(self) -> WorkHourPolicy:
        raise NotImplementedError


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        policies: PolicyProvider,
        *,
        notifier: Optional[BackgroundNotifier] = None,
        strategy_factory: Optional[AttendanceStrategyFactory] = None,
        max_retries: int = DEFAULT_CAS_RETRIES,
    ):
        self._attendance = attendance
        self._policies = policies
        self._notifier = notifier
        self._factory = strategy_factory or AttendanceStrategyFactory()
        self._max_retries = max(1, int(max_retries))

    def get_policy(self) -> WorkHourPolicy:
        return self._policies.get_policy()

    def write_day(self, *, user_id: int, work_date: date, build: Builder) -> AttendanceRecord:
        """Read -> build -> recompute -> compare-and-swap write, retried on lost races.

        `build` gets the fresh record (None if the day has none yet) and must re-verify
        its preconditions each time; it may raise a DomainError to abort.
        """

        policy = self.get_policy()
        for attempt in range(1, self._max_retries + 1):
            current = self._attendance.get_for_user_and_date(int(user_id), work_date)
            candidate = recompute(build(current, policy), policy, factory=self._factory)

            if current is None:
                try:
                    return self._attendance.add(candidate)
                except DuplicateRecordError:
                    logger.warning("Concurrent insert for user %s on %s (attempt %s)", user_id, work_date, attempt)
                    continue

            if self._attendance.save(candidate, expected_version=current.version):
                return replace(candidate, version=current.version + 1)
            logger.warning(
                "Lost compare-and-swap on attendance %s (attempt %s)", current.attendance_id, attempt
            )

        raise ConcurrencyError("Dữ liệu chấm công vừa được cập nhật, vui lòng thử lại")

    def check_in(
        self,
        user_id: int,
        *,
        now: Optional[datetime] = None,
        location: Location = Location.OFFICE,
        notes: Optional[str] = None,
    ) -> AttendanceRecord:
        now = now or now_local()

        def build(current: Optional[AttendanceRecord], policy: WorkHourPolicy) -> AttendanceRecord:
            if current is not None and current.check_in is not None:
                raise StateConflictError("Bạn đã chấm công vào ca hôm nay rồi")
            base = current or AttendanceRecord(
                attendance_id=None,
                user_id=int(user_id),
                work_date=now.date(),
                break_minutes=policy.break_minutes,
            )
            return replace(
                base,
                check_in=now,
                last_activity_at=now,
                location=location,
                notes=notes if notes is not None else base.notes,
                audit_trail=base.audit_trail.append(AuditAction.CHECKED_IN, actor_id=int(user_id), at=now),
            )

        record = self.write_day(user_id=user_id, work_date=now.date(), build=build)
        logger.info("User %s checked in at %s (late=%s)", user_id, now.isoformat(), record.is_late)
        return record

    def check_out(self, user_id: int, *, now: Optional[datetime] = None, notes: Optional[str] = None) -> AttendanceRecord:
        now = now or now_local()

        def build(current: Optional[AttendanceRecord], policy: WorkHourPolicy) -> AttendanceRecord:
            if current is None or current.check_in is None:
                raise StateConflictError("Bạn chưa chấm công vào ca hôm nay")
            if current.check_out is not None:
                raise StateConflictError("Bạn đã chấm công tan ca rồi")
            if now < current.check_in:
                raise ValidationError("Giờ ra không thể nhỏ hơn giờ vào")
            closed = _close_break(current, now)
            return replace(
                closed,
                check_out=now,
                last_activity_at=now,
                notes=notes if notes is not None else closed.notes,
                audit_trail=closed.audit_trail.append(AuditAction.CHECKED_OUT, actor_id=int(user_id), at=now),
            )

        record = self.write_day(user_id=user_id, work_date=now.date(), build=build)
        logger.info("User %s checked out at %s (%.2fh)", user_id, now.isoformat(), record.total_hours)
        if record.adjusted_overtime_hours > 0:
            self._notify(
                Notification(
                    kind=EventKind.OVERTIME_ALERT,
                    recipient_id=record.user_id,
                    title="Làm thêm giờ",
                    message=f"Bạn đã làm thêm {record.adjusted_overtime_hours:.2f} giờ ngày {record.work_date.isoformat()}",
                    created_at=now,
                    payload={"attendance_id": record.attendance_id, "overtime_hours": record.adjusted_overtime_hours},
                )
            )
        return record

    def record_activity(self, user_id: int, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or now_local()

        def build(current: Optional[AttendanceRecord], policy: WorkHourPolicy) -> AttendanceRecord:
            if current is None or not current.is_open:
                raise StateConflictError("Không có ca làm việc đang mở")
            return replace(current, last_activity_at=now)

        return self.write_day(user_id=user_id, work_date=now.date(), build=build)

    def start_break(self, user_id: int, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or now_local()

        def build(current: Optional[AttendanceRecord], policy: WorkHourPolicy) -> AttendanceRecord:
            if current is None or not current.is_open:
                raise StateConflictError("Không có ca làm việc đang mở")
            if current.break_started_at is not None:
                raise StateConflictError("Bạn đang trong giờ nghỉ")
            return replace(
                current,
                break_started_at=now,
                # first measured break replaces the policy default
                break_minutes=current.break_minutes if current.break_tracked else 0,
                break_tracked=True,
                last_activity_at=now,
            )

        return self.write_day(user_id=user_id, work_date=now.date(), build=build)

    def end_break(self, user_id: int, *, now: Optional[datetime] = None) -> AttendanceRecord:
        now = now or now_local()

        def build(current: Optional[AttendanceRecord], policy: WorkHourPolicy) -> AttendanceRecord:
            if current is None or not current.is_open:
                raise StateConflictError("Không có ca làm việc đang mở")
            if current.break_started_at is None:
                raise StateConflictError("Bạn chưa bắt đầu nghỉ")
            return replace(_close_break(current, now), last_activity_at=now)

        return self.write_day(user_id=user_id, work_date=now.date(), build=build)

    def get_today_record(self, user_id: int, today: date) -> Optional[AttendanceRecord]:
        """Get today's attendance record for a user"""
        return self._attendance.get_for_user_and_date(int(user_id), today)

    def get_history(
        self,
        user_id: int,
        *,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = DEFAULT_HISTORY_LIMIT,
    ) -> List[AttendanceRecord]:
        if start_date is None and end_date is None:
            return list(self._attendance.get_recent_for_user(int(user_id), int(limit)))
        if start_date is None or end_date is None:
            raise ValidationError("Cần cả ngày bắt đầu và ngày kết thúc")
        if end_date < start_date:
            raise ValidationError("Ngày kết thúc phải >= ngày bắt đầu")
        return list(self._attendance.list_for_user(int(user_id), start_date=start_date, end_date=end_date))

    def monthly_summary(self, user_id: int, *, year: int, month: int, now: Optional[datetime] = None) -> MonthlySummary:
        now = now or now_local()
        if not 1 <= int(month) <= 12:
            raise ValidationError("Tháng không hợp lệ")
        first = date(int(year), int(month), 1)
        last = date(int(year), int(month), calendar.monthrange(int(year), int(month))[1])
        records = self._attendance.list_for_user(int(user_id), start_date=first, end_date=last)
        policy = self.get_policy()

        total_hours = 0.0
        for r in records:
            if r.is_open and r.work_date == now.date():
                # live figure for today's open day
                total_hours += max(0.0, math.floor(minutes_between(r.check_in, now)) / 60.0)
            else:
                total_hours += r.total_hours

        return MonthlySummary(
            user_id=int(user_id),
            year=int(year),
            month=int(month),
            total_days=len(records),
            present_days=sum(1 for r in records if r.status == AttendanceStatus.PRESENT),
            absent_days=sum(1 for r in records if r.status == AttendanceStatus.ABSENT),
            late_days=sum(1 for r in records if r.is_late),
            half_days=sum(1 for r in records if r.status == AttendanceStatus.HALF_DAY),
            total_hours=total_hours,
            overtime_hours=sum(r.adjusted_overtime_hours for r in records),
            expected_hours=len(records) * policy.working_hours,
            shortage_hours=sum(r.shortage_hours for r in records),
        )

    def auto_checkout_inactive(self, *, now: Optional[datetime] = None) -> List[AttendanceRecord]:
        """Close today's open days whose owner went quiet after the standard check-out time."""

        now = now or now_local()
        policy = self.get_policy()
        if not policy.auto_checkout_enabled:
            return []
        today = now.date()
        if now <= at_clock(today, policy.check_out_time):
            return []

        cutoff = now - timedelta(minutes=policy.auto_checkout_timeout_minutes)

        def eligible(rec: AttendanceRecord) -> bool:
            if not rec.is_open or rec.auto_checked_out:
                return False
            return rec.last_activity_at is None or rec.last_activity_at < cutoff

        def build(current: Optional[AttendanceRecord], _policy: WorkHourPolicy) -> AttendanceRecord:
            if current is None or not eligible(current):
                raise StateConflictError("Bản ghi không còn đủ điều kiện tự động chấm ra")
            closed = _close_break(current, now)
            return replace(
                closed,
                check_out=now,
                auto_checked_out=True,
                audit_trail=closed.audit_trail.append(
                    AuditAction.AUTO_CHECKED_OUT,
                    actor_id=None,
                    at=now,
                    details=f"Không hoạt động quá {policy.auto_checkout_timeout_minutes} phút",
                ),
            )

        closed: List[AttendanceRecord] = []
        for rec in self._attendance.list_open_for_date(today):
            if not eligible(rec):
                continue
            try:
                updated = self.write_day(user_id=rec.user_id, work_date=today, build=build)
            except StateConflictError:
                # user checked out or pinged in the meantime
                logger.info("Auto-checkout skipped for user %s: record changed concurrently", rec.user_id)
                continue
            closed.append(updated)
            self._notify(
                Notification(
                    kind=EventKind.AUTO_CHECKED_OUT,
                    recipient_id=updated.user_id,
                    title="Tự động chấm công ra",
                    message=f"Hệ thống đã tự động chấm ra lúc {now.strftime('%H:%M')} do không có hoạt động",
                    created_at=now,
                    payload={"attendance_id": updated.attendance_id},
                )
            )

        if closed:
            logger.info("Auto-checkout closed %s record(s) for %s", len(closed), today.isoformat())
        return closed

    def _notify(self, notification: Notification) -> None:
        if self._notifier is not None:
            self._notifier.notify(notification)


def _close_break(record: AttendanceRecord, now: datetime) -> AttendanceRecord:
    if record.break_started_at is None:
        return record
    measured = max(0, int(math.floor(minutes_between(record.break_started_at, now))))
    return replace(record, break_started_at=None, break_minutes=record.break_minutes + measured)
