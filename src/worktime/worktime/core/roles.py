from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from .enums import ApprovalLevel, Role
from .exceptions import AuthorizationError


class Visibility(str, Enum):
    OWN = "own"
    QUEUE = "queue"
    ALL = "all"


@dataclass(frozen=True)
class Capability:
    levels: FrozenSet[ApprovalLevel]
    visibility: Visibility
    manages_settings: bool = False


CAPABILITIES = {
    Role.EMPLOYEE: Capability(levels=frozenset(), visibility=Visibility.OWN),
    Role.TEAM_LEADER: Capability(levels=frozenset({ApprovalLevel.TEAM_LEADER}), visibility=Visibility.QUEUE),
    Role.TEAM_MANAGER: Capability(levels=frozenset({ApprovalLevel.TEAM_MANAGER}), visibility=Visibility.QUEUE),
    Role.HR: Capability(levels=frozenset({ApprovalLevel.HR}), visibility=Visibility.ALL, manages_settings=True),
    # VP/Admin also clears the HR queue.
    Role.VP_ADMIN: Capability(
        levels=frozenset({ApprovalLevel.VP_ADMIN, ApprovalLevel.HR}),
        visibility=Visibility.ALL,
        manages_settings=True,
    ),
}


def capability_for(role: Role) -> Capability:
    return CAPABILITIES[role]


def can_act_at(role: Role, level: ApprovalLevel) -> bool:
    return level in CAPABILITIES[role].levels


def coerce_role(value) -> Role:
    """Role from the session/user record; unknown strings are an authorization failure."""

    if isinstance(value, Role):
        return value
    try:
        return Role.parse(value)
    except ValueError:
        raise AuthorizationError("Vai trò không hợp lệ")


def require_settings_manager(role: Role) -> None:
    if not CAPABILITIES[role].manages_settings:
        raise AuthorizationError("Bạn không có quyền")


def require_role(role: Role, *allowed: Role, message: Optional[str] = None) -> None:
    if role not in allowed:
        raise AuthorizationError(message or "Bạn không có quyền")
