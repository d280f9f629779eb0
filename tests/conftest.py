"""Shared fixtures: virtual clock, virtual timers and an in-memory platform."""

from datetime import datetime, timedelta

import pytest

from taskalarm.engine.schema import Task
from taskalarm.platform.base import NotificationPlatform

NOW = datetime(2025, 6, 10, 8, 0, 0)


class FakeClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeHandle:
    def __init__(self, due: datetime, seq: int, callback):
        self.due = due
        self.seq = seq
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeTimers:
    """Timer backend driven by FakeClock.

    advance() runs due callbacks in trigger order, moving the clock to each
    trigger instant before running it.
    """

    def __init__(self, clock: FakeClock):
        self.clock = clock
        self.handles: list[FakeHandle] = []
        self.requested_delays: list[float] = []
        self._seq = 0

    def call_later(self, delay_s: float, callback) -> FakeHandle:
        self._seq += 1
        self.requested_delays.append(delay_s)
        handle = FakeHandle(self.clock.now + timedelta(seconds=delay_s), self._seq, callback)
        self.handles.append(handle)
        return handle

    def pending(self) -> list[FakeHandle]:
        return [h for h in self.handles if not h.cancelled]

    def advance(self, **kwargs) -> None:
        target = self.clock.now + timedelta(**kwargs)
        while True:
            due = [h for h in self.pending() if h.due <= target]
            if not due:
                break
            handle = min(due, key=lambda h: (h.due, h.seq))
            self.handles.remove(handle)
            if handle.due > self.clock.now:
                self.clock.now = handle.due
            handle.callback()
        self.clock.now = target


class FakePlatform(NotificationPlatform):
    """In-memory platform recording every prompt and notification."""

    def __init__(self, permission: str = "granted", supported: bool = True):
        self.supported = supported
        self._permission = permission
        self.request_result = "granted"
        self.request_calls = 0
        self.request_error: Exception | None = None
        self.show_error: Exception | None = None
        self.shown: list[dict] = []
        self.closed: list[int] = []

    def permission(self) -> str:
        return self._permission

    def set_permission(self, value: str) -> None:
        self._permission = value

    async def request_permission(self) -> str:
        self.request_calls += 1
        if self.request_error is not None:
            raise self.request_error
        self._permission = self.request_result
        return self._permission

    async def show(self, title, body, *, tag=None, require_interaction=False):
        if self.show_error is not None:
            raise self.show_error
        self.shown.append(
            {"title": title, "body": body, "tag": tag, "require_interaction": require_interaction}
        )
        return len(self.shown)

    def close(self, handle) -> None:
        self.closed.append(handle)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def timers(clock):
    return FakeTimers(clock)


@pytest.fixture
def platform():
    return FakePlatform()


@pytest.fixture
def make_task():
    """Factory for Task records with reminder defaults."""

    def _make(task_id="t1", **overrides) -> Task:
        data = {
            "id": task_id,
            "title": f"Task {task_id}",
            "due_date": "2025-06-10",
            "due_time": "09:00",
            "completed": False,
            "reminder_enabled": True,
            "reminder_offset": 30,
        }
        data.update(overrides)
        return Task.model_validate(data)

    return _make
