"""Sequential approval state machine shared by regularization and permission requests.

Every transition is a pure function of (state, actor) -> new state. All checks run
before anything changes, so a refused call leaves the caller's state untouched.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Optional

from ..common.audit import AuditTrail
from ..common.validators import require_non_empty
from ..core.enums import AuditAction, Decision, RequestStatus, Role
from ..core.exceptions import AlreadyProcessedError, AuthorizationError, StateConflictError
from ..core.roles import can_act_at
from .model import LevelDecision, WorkflowDefinition, WorkflowState


class ApprovalWorkflow:
    def __init__(self, definition: WorkflowDefinition):
        self.definition = definition

    @property
    def name(self) -> str:
        return self.definition.name

    def start(
        self,
        *,
        requester_id: int,
        requester_role: Role,
        at: datetime,
        details: Optional[str] = None,
    ) -> WorkflowState:
        path = self.definition.path_for(requester_role)
        audit = AuditTrail().append(
            AuditAction.CREATED,
            actor_id=int(requester_id),
            at=at,
            details=details or f"Gửi tới cấp {path[0].value}",
        )
        return WorkflowState(
            requester_id=int(requester_id),
            requester_role=requester_role,
            path=path,
            decisions=tuple(LevelDecision(level=lvl) for lvl in path),
            audit_trail=audit,
        )

    def approve(
        self,
        state: WorkflowState,
        *,
        actor_id: int,
        actor_role: Role,
        at: datetime,
        comments: Optional[str] = None,
    ) -> WorkflowState:
        self._check_can_decide(state, actor_id=actor_id, actor_role=actor_role)

        level = state.current_level
        decided = state.with_decision(
            LevelDecision(level=level, decision=Decision.APPROVED, approver_id=int(actor_id), comments=comments, decided_at=at)
        )
        is_last = state.current_index == len(state.path) - 1

        if is_last:
            return replace(
                decided,
                status=RequestStatus.APPROVED,
                final_approver_id=int(actor_id),
                decided_at=at,
                audit_trail=decided.audit_trail.append(
                    AuditAction.APPROVED,
                    actor_id=int(actor_id),
                    at=at,
                    details=f"Duyệt cuối tại cấp {level.value}",
                    comments=comments,
                ),
            )

        nxt = state.path[state.current_index + 1]
        return replace(
            decided,
            current_index=state.current_index + 1,
            status=RequestStatus.UNDER_REVIEW,
            audit_trail=decided.audit_trail.append(
                AuditAction.APPROVED,
                actor_id=int(actor_id),
                at=at,
                details=f"Duyệt tại cấp {level.value}, chuyển tới {nxt.value}",
                comments=comments,
            ),
        )

    def reject(
        self,
        state: WorkflowState,
        *,
        actor_id: int,
        actor_role: Role,
        at: datetime,
        reason: str,
    ) -> WorkflowState:
        self._check_can_decide(state, actor_id=actor_id, actor_role=actor_role)
        reason = require_non_empty(reason, "Lý do từ chối")

        level = state.current_level
        decided = state.with_decision(
            LevelDecision(level=level, decision=Decision.REJECTED, approver_id=int(actor_id), comments=reason, decided_at=at)
        )
        return replace(
            decided,
            status=RequestStatus.REJECTED,
            final_approver_id=int(actor_id),
            decided_at=at,
            rejection_reason=reason,
            audit_trail=decided.audit_trail.append(
                AuditAction.REJECTED,
                actor_id=int(actor_id),
                at=at,
                details=f"Từ chối tại cấp {level.value}",
                comments=reason,
            ),
        )

    def cancel(self, state: WorkflowState, *, actor_id: int, at: datetime) -> WorkflowState:
        if int(actor_id) != state.requester_id:
            raise AuthorizationError("Chỉ người tạo yêu cầu mới được huỷ")
        if state.is_terminal:
            raise AlreadyProcessedError("Yêu cầu đã được xử lý")
        if state.status != RequestStatus.PENDING:
            raise StateConflictError("Yêu cầu đã được duyệt một phần, không thể huỷ")
        return replace(
            state,
            status=RequestStatus.CANCELLED,
            decided_at=at,
            audit_trail=state.audit_trail.append(AuditAction.CANCELLED, actor_id=int(actor_id), at=at),
        )

    @staticmethod
    def _check_can_decide(state: WorkflowState, *, actor_id: int, actor_role: Role) -> None:
        if state.is_terminal:
            raise AlreadyProcessedError("Yêu cầu đã được xử lý")
        if not can_act_at(actor_role, state.current_level):
            raise AuthorizationError(f"Bạn không có quyền duyệt ở cấp {state.current_level.value}")
        if int(actor_id) == state.requester_id:
            raise AuthorizationError("Không thể tự duyệt yêu cầu của mình")
        if state.current_decision.decision != Decision.PENDING:
            raise AlreadyProcessedError("Cấp duyệt này đã được xử lý")
