from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Generic, Optional, Protocol, TypeVar

from ..core.enums import EventKind, RequestStatus, Role
from ..core.exceptions import AlreadyProcessedError, NotFoundError
from ..core.roles import Visibility, capability_for
from ..notifications.dispatcher import BackgroundNotifier, Notification
from .engine import ApprovalWorkflow
from .model import WorkflowState


R = TypeVar("R")


class RequestStore(Protocol[R]):
    def get_by_id(self, request_id: int) -> Optional[R]:
        raise NotImplementedError

    def save(self, request: R, *, expected_version: int) -> bool:
        raise NotImplementedError


class WorkflowRequestService(Generic[R]):
    """Shared plumbing: load -> transition -> compare-and-swap save -> notify."""

    kind_label = "Yêu cầu"

    def __init__(self, store: RequestStore[R], workflow: ApprovalWorkflow, *, notifier: Optional[BackgroundNotifier] = None):
        self._store = store
        self._workflow = workflow
        self._notifier = notifier
        self._log = logging.getLogger(type(self).__module__)

    @property
    def workflow(self) -> ApprovalWorkflow:
        return self._workflow

    def _require(self, request_id: int) -> R:
        req = self._store.get_by_id(int(request_id))
        if req is None:
            raise NotFoundError("Yêu cầu không tồn tại")
        return req

    def _transition(self, request_id: int, change: Callable[[WorkflowState], WorkflowState]) -> tuple[R, R]:
        """Apply `change` and persist it; returns (before, after).

        A lost compare-and-swap means another approver got there first.
        """

        before = self._require(request_id)
        state = change(before.workflow)
        after = replace(before, workflow=state)
        if not self._store.save(after, expected_version=before.version):
            raise AlreadyProcessedError("Yêu cầu vừa được người khác xử lý")
        after = replace(after, version=before.version + 1)
        self._log.info(
            "%s %s: %s/%s -> %s/%s",
            self._workflow.name,
            before.display_id,
            before.workflow.status.value,
            before.workflow.current_level.value,
            state.status.value,
            state.current_level.value,
        )
        return before, after

    def _notify(self, request: R, kind: EventKind, *, at: datetime, message: str, recipient_id: Optional[int] = None) -> None:
        if self._notifier is None:
            return
        wf = request.workflow
        self._notifier.notify(
            Notification(
                kind=kind,
                recipient_id=recipient_id if recipient_id is not None else request.employee_id,
                title=f"{self.kind_label} {request.display_id}",
                message=message,
                created_at=at,
                payload={
                    "request_id": request.request_id,
                    "workflow": self._workflow.name,
                    "status": wf.status.value,
                    "current_level": wf.current_level.value,
                },
            )
        )

    def _notify_transition(self, after: R, *, at: datetime) -> None:
        wf = after.workflow
        if wf.status == RequestStatus.APPROVED:
            self._notify(after, EventKind.APPROVED, at=at, message="Yêu cầu của bạn đã được duyệt")
        elif wf.status == RequestStatus.REJECTED:
            self._notify(after, EventKind.REJECTED, at=at, message=f"Yêu cầu bị từ chối: {wf.rejection_reason}")
        elif wf.status == RequestStatus.CANCELLED:
            self._notify(after, EventKind.CANCELLED, at=at, message="Yêu cầu đã được huỷ")
        else:
            self._notify(
                after,
                EventKind.LEVEL_ADVANCED,
                at=at,
                message=f"Yêu cầu đã chuyển tới cấp {wf.current_level.value}",
            )

    # Visibility

    @staticmethod
    def can_view(request: R, *, viewer_id: int, viewer_role: Role) -> bool:
        cap = capability_for(viewer_role)
        if cap.visibility == Visibility.ALL or request.employee_id == int(viewer_id):
            return True
        if cap.visibility == Visibility.QUEUE:
            wf = request.workflow
            return wf.current_level in cap.levels or wf.decided_by(int(viewer_id))
        return False

    @staticmethod
    def is_in_queue(request: R, *, actor_id: int, actor_role: Role) -> bool:
        wf = request.workflow
        return (
            not wf.is_terminal
            and wf.current_level in capability_for(actor_role).levels
            and wf.requester_id != int(actor_id)
        )
