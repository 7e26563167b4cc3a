from __future__ import annotations

from datetime import date, datetime

import pytest

from worktime.container import build_container
from worktime.core.enums import ApprovalLevel, AttendanceStatus, RequestStatus, Role
from worktime.core.exceptions import (
    AlreadyProcessedError,
    AuthorizationError,
    NotFoundError,
    PersistenceError,
    StateConflictError,
    ValidationError,
)
from worktime.regularization.repository import RegularizationFilter

NEXT_MORNING = datetime(2025, 3, 4, 8, 0)
DECIDED = datetime(2025, 3, 4, 10, 0)


def submit(service, *, actor_id=1, role=Role.EMPLOYEE, day=date(2025, 3, 3), rtype="Missed Check-Out", **kwargs):
    return service.submit(
        actor_id=actor_id,
        actor_role=role,
        attendance_date=day,
        request_type=rtype,
        reason=kwargs.pop("reason", "Quên chấm công ra"),
        now=kwargs.pop("now", NEXT_MORNING),
        **kwargs,
    )


def test_missed_check_out_end_to_end(container, dispatcher, day):
    container.attendance_service.check_in(1, now=datetime(2025, 3, 3, 9, 5))
    service = container.regularization_service

    req = submit(service)
    assert req.display_id == "REG000001"
    assert req.workflow.current_level == ApprovalLevel.TEAM_MANAGER
    assert req.original_attendance["check_out"] is None

    req = service.approve(request_id=req.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, now=DECIDED)

    assert req.workflow.status == RequestStatus.APPROVED
    assert req.attendance_updated is True
    assert req.updated_attendance["check_out"] == "2025-03-03T18:00:00"
    rec = container.attendance_service.get_today_record(1, day)
    assert rec.status == AttendanceStatus.PRESENT
    assert rec.is_regularized is True
    assert rec.regularization_id == req.request_id
    assert rec.regularized_at == DECIDED
    assert dispatcher.kinds() == ["request-created", "approved"]


def test_same_day_late_arrival_keeps_the_day_open(container, day):
    attendance = container.attendance_service
    attendance.check_in(1, now=datetime(2025, 3, 3, 9, 50))
    service = container.regularization_service

    req = submit(service, rtype="Late Arrival", reason="Kẹt xe", now=datetime(2025, 3, 3, 10, 0))
    service.approve(request_id=req.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, now=datetime(2025, 3, 3, 11, 0))

    rec = attendance.get_today_record(1, day)
    assert rec.check_out is None
    assert rec.is_late is False

    rec = attendance.check_out(1, now=datetime(2025, 3, 3, 18, 30))
    assert rec.check_out == datetime(2025, 3, 3, 18, 30)
    assert rec.is_regularized is True
    assert rec.is_late is False


def test_manager_request_starts_at_hr_and_rejection_leaves_attendance(container, day):
    container.attendance_service.check_in(10, now=datetime(2025, 3, 3, 9, 5))
    before = container.attendance_service.get_today_record(10, day)
    service = container.regularization_service

    req = submit(service, actor_id=10, role=Role.TEAM_MANAGER)
    assert req.workflow.path == (ApprovalLevel.HR,)

    with pytest.raises(AuthorizationError):
        service.approve(request_id=req.request_id, actor_id=11, actor_role=Role.TEAM_MANAGER, now=DECIDED)

    req = service.reject(request_id=req.request_id, actor_id=20, actor_role=Role.HR, reason="Không có bằng chứng", now=DECIDED)

    assert req.workflow.status == RequestStatus.REJECTED
    assert req.workflow.current_level == ApprovalLevel.COMPLETED
    assert container.attendance_service.get_today_record(10, day) == before


def test_multi_level_chain_applies_only_at_the_end(dispatcher, day):
    container = build_container(
        storage_backend="memory", notification_workers=0, dispatcher=dispatcher, regularization_approvals_required=None
    )
    service = container.regularization_service
    req = submit(service, rtype="Missed Both")

    req = service.approve(request_id=req.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, now=DECIDED)
    assert req.workflow.status == RequestStatus.UNDER_REVIEW
    assert container.attendance_service.get_today_record(1, day) is None

    req = service.approve(request_id=req.request_id, actor_id=60, actor_role=Role.HR, now=DECIDED)
    req = service.approve(request_id=req.request_id, actor_id=70, actor_role=Role.VP_ADMIN, now=DECIDED)

    assert req.workflow.status == RequestStatus.APPROVED
    rec = container.attendance_service.get_today_record(1, day)
    assert rec.total_hours == 8
    assert rec.regularized_by == 70
    assert dispatcher.kinds() == ["request-created", "level-advanced", "level-advanced", "approved"]


def test_duplicate_guard_until_rejected(container):
    service = container.regularization_service
    req = submit(service)

    with pytest.raises(ValidationError):
        submit(service, rtype="Late Arrival")

    service.reject(request_id=req.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, reason="Sai loại", now=DECIDED)
    assert submit(service, rtype="Late Arrival").request_id == 2


def test_concurrent_submit_for_same_day_keeps_one_active_request(container, monkeypatch):
    service = container.regularization_service
    submit(service)
    # both submits passed the lookup before either insert landed
    monkeypatch.setattr(container.regularization_repo, "find_active", lambda **kw: None)

    with pytest.raises(ValidationError):
        submit(service, rtype="Late Arrival")

    rows = service.list(viewer_id=20, viewer_role=Role.HR)
    assert [r.request_type.value for r in rows] == ["Missed Check-Out"]


def test_employee_list_is_not_crowded_out_by_newer_requests(container):
    service = container.regularization_service
    mine = submit(service, actor_id=1)
    for offset in range(5):
        submit(service, actor_id=100 + offset, now=datetime(2025, 3, 4, 9, offset))

    assert [r.request_id for r in service.list(viewer_id=1, viewer_role=Role.EMPLOYEE, limit=1)] == [mine.request_id]
    assert service.list(viewer_id=1, viewer_role=Role.EMPLOYEE, flt=RegularizationFilter(employee_id=100)) == []
    assert service.statistics(viewer_id=1, viewer_role=Role.EMPLOYEE)["total"] == 1


def test_team_manager_list_keeps_decided_request_under_limit(container):
    service = container.regularization_service
    decided = submit(service, actor_id=1)
    service.approve(request_id=decided.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, now=DECIDED)
    for offset in range(5):
        submit(service, actor_id=200 + offset, role=Role.TEAM_MANAGER, now=datetime(2025, 3, 4, 11, offset))

    rows = service.list(viewer_id=50, viewer_role=Role.TEAM_MANAGER, limit=1)
    assert [r.request_id for r in rows] == [decided.request_id]


def test_queue_is_not_crowded_out_by_other_levels(container):
    service = container.regularization_service
    waiting = submit(service, actor_id=1)
    for offset in range(5):
        submit(service, actor_id=300 + offset, role=Role.TEAM_MANAGER, now=datetime(2025, 3, 4, 9, offset))

    queue = service.pending_for(actor_id=50, actor_role=Role.TEAM_MANAGER, limit=1)
    assert [r.request_id for r in queue] == [waiting.request_id]
    assert len(service.pending_for(actor_id=20, actor_role=Role.HR)) == 5
    assert service.pending_for(actor_id=1, actor_role=Role.EMPLOYEE) == []


@pytest.mark.parametrize(
    "kwargs",
    [
        {"day": date(2025, 3, 5)},
        {"rtype": "Forgot"},
        {"reason": " "},
        {"reason": "x" * 501},
        {"requested_check_in": "18:00", "requested_check_out": "09:00"},
        {"requested_check_in": "9h"},
        {"requested_status": "Holiday"},
        {"priority": "Critical"},
    ],
)
def test_submit_validation(container, kwargs):
    with pytest.raises(ValidationError):
        submit(container.regularization_service, **kwargs)


def test_vp_admin_has_no_approver_above(container):
    with pytest.raises(ValidationError):
        submit(container.regularization_service, actor_id=99, role=Role.VP_ADMIN)


def test_cancel_only_by_requester_while_pending(container):
    service = container.regularization_service
    req = submit(service)

    with pytest.raises(AuthorizationError):
        service.cancel(request_id=req.request_id, actor_id=2)
    req = service.cancel(request_id=req.request_id, actor_id=1)
    assert req.workflow.status == RequestStatus.CANCELLED
    with pytest.raises(NotFoundError):
        service.cancel(request_id=999, actor_id=1)


def test_visibility_scopes(container):
    service = container.regularization_service
    own = submit(service, actor_id=1)
    other = submit(service, actor_id=2)
    manager_req = submit(service, actor_id=10, role=Role.TEAM_MANAGER)

    with pytest.raises(AuthorizationError):
        service.get(request_id=other.request_id, viewer_id=1, viewer_role=Role.EMPLOYEE)
    assert service.get(request_id=own.request_id, viewer_id=1, viewer_role=Role.EMPLOYEE) == own

    mine = service.list(viewer_id=1, viewer_role=Role.EMPLOYEE)
    assert [r.request_id for r in mine] == [own.request_id]

    tm_view = {r.request_id for r in service.list(viewer_id=11, viewer_role=Role.TEAM_MANAGER)}
    assert tm_view == {own.request_id, other.request_id}

    assert len(service.list(viewer_id=20, viewer_role=Role.HR)) == 3

    assert [r.request_id for r in service.pending_for(actor_id=20, actor_role=Role.HR)] == [manager_req.request_id]
    assert [r.request_id for r in service.pending_for(actor_id=10, actor_role=Role.TEAM_MANAGER)] == [
        other.request_id,
        own.request_id,
    ]


def test_approver_keeps_seeing_decided_request(container):
    service = container.regularization_service
    req = submit(service)
    service.reject(request_id=req.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, reason="Không", now=DECIDED)

    assert service.get(request_id=req.request_id, viewer_id=50, viewer_role=Role.TEAM_MANAGER).request_id == req.request_id
    with pytest.raises(AuthorizationError):
        service.get(request_id=req.request_id, viewer_id=51, viewer_role=Role.TEAM_MANAGER)


def test_statistics_and_filters(container):
    service = container.regularization_service
    a = submit(service, actor_id=1)
    submit(service, actor_id=2, rtype="Late Arrival")
    submit(service, actor_id=3, rtype="Late Arrival", day=date(2025, 3, 1))
    service.approve(request_id=a.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, now=DECIDED)

    stats = service.statistics(viewer_id=20, viewer_role=Role.HR)
    assert stats["total"] == 3
    assert stats["by_status"]["Approved"] == 1
    assert stats["by_status"]["Pending"] == 2
    assert stats["by_type"] == {"Missed Check-Out": 1, "Late Arrival": 2}

    rows = service.list(viewer_id=20, viewer_role=Role.HR, flt=RegularizationFilter(start_date=date(2025, 3, 2)))
    assert len(rows) == 2
    assert service.statistics(viewer_id=1, viewer_role=Role.EMPLOYEE)["total"] == 1


def test_notification_failure_does_not_break_approval(failing_dispatcher):
    container = build_container(storage_backend="memory", notification_workers=0, dispatcher=failing_dispatcher)
    service = container.regularization_service
    req = submit(service, rtype="Missed Both")

    req = service.approve(request_id=req.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, now=DECIDED)

    assert req.attendance_updated is True


def test_lost_race_on_request_reports_already_processed(container, monkeypatch):
    service = container.regularization_service
    req = submit(service)
    monkeypatch.setattr(container.regularization_repo, "save", lambda *a, **kw: False)

    with pytest.raises(AlreadyProcessedError):
        service.approve(request_id=req.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, now=DECIDED)


def test_second_approval_of_same_level_is_refused(container):
    service = container.regularization_service
    req = submit(service)
    service.approve(request_id=req.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, now=DECIDED)

    with pytest.raises(AlreadyProcessedError):
        service.approve(request_id=req.request_id, actor_id=51, actor_role=Role.TEAM_MANAGER, now=DECIDED)


def test_failed_attendance_write_can_be_reapplied(container, monkeypatch, day):
    container.attendance_service.check_in(1, now=datetime(2025, 3, 3, 9, 5))
    service = container.regularization_service
    req = submit(service)

    monkeypatch.setattr(container.attendance_repo, "save", lambda *a, **kw: False)
    with pytest.raises(PersistenceError):
        service.approve(request_id=req.request_id, actor_id=50, actor_role=Role.TEAM_MANAGER, now=DECIDED)
    monkeypatch.undo()

    stored = container.regularization_repo.get_by_id(req.request_id)
    assert stored.workflow.status == RequestStatus.APPROVED
    assert stored.attendance_updated is False
    assert container.attendance_service.get_today_record(1, day).is_open

    with pytest.raises(AuthorizationError):
        service.reapply(request_id=req.request_id, actor_role=Role.HR)
    fixed = service.reapply(request_id=req.request_id, actor_role=Role.VP_ADMIN)

    assert fixed.attendance_updated is True
    assert container.attendance_service.get_today_record(1, day).check_out == datetime(2025, 3, 3, 18, 0)
    # running it again changes nothing
    again = service.reapply(request_id=req.request_id, actor_role=Role.VP_ADMIN)
    assert again.updated_attendance == fixed.updated_attendance


def test_reapply_needs_approved_request(container):
    service = container.regularization_service
    req = submit(service)

    with pytest.raises(StateConflictError):
        service.reapply(request_id=req.request_id, actor_role=Role.VP_ADMIN)


def test_config_lists_all_types(container):
    cfg = container.regularization_service.config()

    assert len(cfg["request_types"]) == 13
    assert cfg["levels"] == ["Team Manager", "HR", "VP/Admin"]
    assert cfg["approvals_required"] == 1
