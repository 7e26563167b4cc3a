from __future__ import annotations

from typing import Optional, Protocol

from .model import WorkHourPolicy


class PolicyRepository(Protocol):
    def load(self) -> Optional[WorkHourPolicy]:
        """Return the stored policy, or None when nothing has been saved yet."""

        raise NotImplementedError

    def save(self, policy: WorkHourPolicy, *, updated_by: Optional[int] = None) -> None:
        raise NotImplementedError
