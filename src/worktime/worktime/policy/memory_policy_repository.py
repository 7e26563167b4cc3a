from __future__ import annotations

import threading
from typing import Optional

from .model import WorkHourPolicy
from .repository import PolicyRepository


class InMemoryPolicyRepository(PolicyRepository):
    def __init__(self, initial: Optional[WorkHourPolicy] = None):
        self._lock = threading.Lock()
        self._policy = initial
        self.updated_by: Optional[int] = None

    def load(self) -> Optional[WorkHourPolicy]:
        with self._lock:
            return self._policy

    def save(self, policy: WorkHourPolicy, *, updated_by: Optional[int] = None) -> None:
        with self._lock:
            self._policy = policy
            self.updated_by = updated_by
