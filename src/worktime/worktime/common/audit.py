from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterator, Optional, Tuple

from ..core.enums import AuditAction


@dataclass(frozen=True)
class AuditEntry:
    """Một dòng lịch sử thao tác (append-only)."""

    action: AuditAction
    actor_id: Optional[int]
    at: datetime
    details: Optional[str] = None
    comments: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "action": self.action.value,
            "actor_id": self.actor_id,
            "at": self.at.isoformat(),
            "details": self.details,
            "comments": self.comments,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuditEntry":
        return cls(
            action=AuditAction(data["action"]),
            actor_id=int(data["actor_id"]) if data.get("actor_id") is not None else None,
            at=datetime.fromisoformat(data["at"]),
            details=data.get("details"),
            comments=data.get("comments"),
        )


@dataclass(frozen=True)
class AuditTrail:
    entries: Tuple[AuditEntry, ...] = ()

    def append(
        self,
        action: AuditAction,
        *,
        actor_id: Optional[int],
        at: datetime,
        details: Optional[str] = None,
        comments: Optional[str] = None,
    ) -> "AuditTrail":
        entry = AuditEntry(action=action, actor_id=actor_id, at=at, details=details, comments=comments)
        return AuditTrail(entries=self.entries + (entry,))

    def __iter__(self) -> Iterator[AuditEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def to_list(self) -> list[dict]:
        return [e.to_dict() for e in self.entries]

    @classmethod
    def from_list(cls, rows: Optional[list[Any]]) -> "AuditTrail":
        return cls(entries=tuple(AuditEntry.from_dict(r) for r in (rows or [])))
