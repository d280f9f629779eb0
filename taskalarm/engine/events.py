"""Structured observability events.

Components accept an optional ``on_event`` callback instead of exposing
debug state globally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from loguru import logger


@dataclass(slots=True, frozen=True)
class ReminderEvent:
    """One engine event (scheduled, fired, suppressed, state change, ...)."""

    kind: str
    at: datetime
    task_id: str | None = None
    detail: dict[str, Any] = field(default_factory=dict)


EventHook = Callable[[ReminderEvent], None]


class EventEmitter:
    """Wraps an optional hook. Hook errors are logged and never propagate."""

    def __init__(self, hook: EventHook | None = None, clock: Callable[[], datetime] = datetime.now):
        self.hook = hook
        self.clock = clock

    def emit(self, kind: str, task_id: str | None = None, **detail: Any) -> None:
        if self.hook is None:
            return
        try:
            self.hook(ReminderEvent(kind=kind, at=self.clock(), task_id=task_id, detail=detail))
        except Exception as e:
            logger.error(f"[Events] Hook failed on {kind}: {e}")
