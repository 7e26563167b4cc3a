from __future__ import annotations

from datetime import date

import pytest

from worktime.container import build_container
from worktime.notifications.dispatcher import Notification


class RecordingDispatcher:
    def __init__(self, *, fail: bool = False):
        self.fail = fail
        self.sent: list[Notification] = []

    def dispatch(self, notification: Notification) -> None:
        if self.fail:
            raise RuntimeError("smtp down")
        self.sent.append(notification)

    def kinds(self) -> list[str]:
        return [n.kind.value for n in self.sent]


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def container(dispatcher):
    return build_container(storage_backend="memory", notification_workers=0, dispatcher=dispatcher)


@pytest.fixture
def day():
    return date(2025, 3, 3)




@pytest.fixture
def failing_dispatcher():
    return RecordingDispatcher(fail=True)
