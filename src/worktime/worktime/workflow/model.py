from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Tuple

from ..common.audit import AuditTrail
from ..core.enums import ApprovalLevel, Decision, RequestStatus, Role
from ..core.exceptions import ValidationError


@dataclass(frozen=True)
class WorkflowDefinition:
    """Ordered approval levels for one kind of request.

    `approvals_required` counts consecutive levels from the requester's starting level;
    None means every remaining level up to the last one.
    """

    name: str
    levels: Tuple[ApprovalLevel, ...]
    approvals_required: Optional[int] = None

    def __post_init__(self):
        if not self.levels:
            raise ValueError(f"workflow {self.name!r} has no levels")
        if ApprovalLevel.COMPLETED in self.levels:
            raise ValueError("Completed is not an approval level")
        ranks = [lvl.rank for lvl in self.levels]
        if ranks != sorted(set(ranks)):
            raise ValueError(f"workflow {self.name!r}: levels must be unique and ordered by rank")
        if self.approvals_required is not None and self.approvals_required < 1:
            raise ValueError("approvals_required must be >= 1")

    def path_for(self, requester_role: Role) -> Tuple[ApprovalLevel, ...]:
        remaining = tuple(lvl for lvl in self.levels if lvl.rank > requester_role.rank)
        if not remaining:
            raise ValidationError("Không có cấp duyệt phù hợp cho vai trò của bạn")
        if self.approvals_required is None:
            return remaining
        return remaining[: self.approvals_required]


@dataclass(frozen=True)
class LevelDecision:
    level: ApprovalLevel
    decision: Decision = Decision.PENDING
    approver_id: Optional[int] = None
    comments: Optional[str] = None
    decided_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return {
            "level": self.level.value,
            "decision": self.decision.value,
            "approver_id": self.approver_id,
            "comments": self.comments,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "LevelDecision":
        return cls(
            level=ApprovalLevel(data["level"]),
            decision=Decision(data.get("decision") or Decision.PENDING.value),
            approver_id=int(data["approver_id"]) if data.get("approver_id") is not None else None,
            comments=data.get("comments"),
            decided_at=datetime.fromisoformat(data["decided_at"]) if data.get("decided_at") else None,
        )


@dataclass(frozen=True)
class WorkflowState:
    requester_id: int
    requester_role: Role
    path: Tuple[ApprovalLevel, ...]
    decisions: Tuple[LevelDecision, ...]
    current_index: int = 0
    status: RequestStatus = RequestStatus.PENDING
    audit_trail: AuditTrail = field(default_factory=AuditTrail)
    final_approver_id: Optional[int] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def current_level(self) -> ApprovalLevel:
        if self.is_terminal:
            return ApprovalLevel.COMPLETED
        return self.path[self.current_index]

    @property
    def current_decision(self) -> LevelDecision:
        return self.decisions[self.current_index]

    def decision_for(self, level: ApprovalLevel) -> Optional[LevelDecision]:
        for d in self.decisions:
            if d.level == level:
                return d
        return None

    def decided_by(self, user_id: int) -> bool:
        return any(d.approver_id == int(user_id) for d in self.decisions)

    def with_decision(self, decision: LevelDecision) -> "WorkflowState":
        decisions = tuple(decision if i == self.current_index else d for i, d in enumerate(self.decisions))
        return replace(self, decisions=decisions)

    def to_dict(self) -> dict:
        return {
            "requester_id": self.requester_id,
            "requester_role": self.requester_role.value,
            "path": [lvl.value for lvl in self.path],
            "current_index": self.current_index,
            "current_level": self.current_level.value,
            "status": self.status.value,
            "approvals": [d.to_dict() for d in self.decisions],
            "audit": self.audit_trail.to_list(),
            "final_approver_id": self.final_approver_id,
            "decided_at": self.decided_at.isoformat() if self.decided_at else None,
            "rejection_reason": self.rejection_reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "WorkflowState":
        return cls(
            requester_id=int(data["requester_id"]),
            requester_role=Role(data["requester_role"]),
            path=tuple(ApprovalLevel(v) for v in data["path"]),
            decisions=tuple(LevelDecision.from_dict(d) for d in data["approvals"]),
            current_index=int(data.get("current_index", 0)),
            status=RequestStatus(data["status"]),
            audit_trail=AuditTrail.from_list(data.get("audit")),
            final_approver_id=int(data["final_approver_id"]) if data.get("final_approver_id") is not None else None,
            decided_at=datetime.fromisoformat(data["decided_at"]) if data.get("decided_at") else None,
            rejection_reason=data.get("rejection_reason"),
        )
