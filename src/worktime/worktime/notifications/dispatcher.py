from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Protocol

from ..core.enums import EventKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    kind: EventKind
    recipient_id: Optional[int]
    title: str
    message: str
    created_at: datetime
    payload: Dict[str, Any] = field(default_factory=dict)


class NotificationDispatcher(Protocol):
    """External side channel (email / in-app). Delivery is out of scope here."""

    def dispatch(self, notification: Notification) -> None:
        raise NotImplementedError


class LoggingNotificationDispatcher(NotificationDispatcher):
    def dispatch(self, notification: Notification) -> None:
        logger.info(
            "notify[%s] -> user %s: %s",
            notification.kind.value,
            notification.recipient_id,
            notification.title,
        )


class BackgroundNotifier:
    """Fire-and-forget wrapper: dispatch failures are logged, never raised to the caller.

    With an executor, dispatch runs on its worker threads; without one it runs inline
    (still swallowing failures), which keeps tests deterministic.
    """

    def __init__(self, dispatcher: NotificationDispatcher, *, executor: Optional[Executor] = None):
        self._dispatcher = dispatcher
        self._executor = executor

    def notify(self, notification: Notification) -> None:
        if self._executor is None:
            self._deliver(notification)
            return
        try:
            self._executor.submit(self._deliver, notification)
        except RuntimeError:
            # executor already shut down
            logger.warning("Notification dropped (executor closed): %s", notification.kind.value)

    def _deliver(self, notification: Notification) -> None:
        try:
            self._dispatcher.dispatch(notification)
        except Exception:
            logger.exception("Notification dispatch failed: %s", notification.kind.value)

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
