from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from ..core.enums import Role
from ..core.roles import require_settings_manager
from ..core.exceptions import ValidationError
from .model import WorkHourPolicy
from .repository import PolicyRepository

logger = logging.getLogger(__name__)


class PolicyService:
    def __init__(self, repo: PolicyRepository, *, defaults: Optional[WorkHourPolicy] = None):
        self._repo = repo
        self._defaults = defaults or WorkHourPolicy()

    def get_policy(self) -> WorkHourPolicy:
        return self._repo.load() or self._defaults

    def update_policy(self, *, actor_role: Role, changes: Mapping[str, Any], updated_by: int) -> WorkHourPolicy:
        require_settings_manager(actor_role)
        if not changes:
            raise ValidationError("Không có thay đổi nào")

        policy = WorkHourPolicy.from_mapping(changes, base=self.get_policy())
        self._repo.save(policy, updated_by=int(updated_by))
        logger.info("Work-hour policy updated by user %s: %s", updated_by, sorted(changes))
        return policy
