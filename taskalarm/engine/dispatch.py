"""Dispatch Gate: show one notification per fired timer, rate limited per task."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable

from loguru import logger

from taskalarm.engine.errors import DispatchFailure
from taskalarm.engine.events import EventEmitter, EventHook
from taskalarm.engine.permission import PermissionGate, PermissionState
from taskalarm.engine.schema import ReminderCandidate
from taskalarm.engine.timers import AsyncioTimerBackend, TimerBackend
from taskalarm.platform.base import NotificationPlatform

MIN_RENOTIFY_INTERVAL = timedelta(minutes=10)


class DispatchOutcome(str, Enum):
    DISPATCHED = "dispatched"
    SUPPRESSED = "suppressed"
    FAILED = "failed"


class DispatchGate:
    """Shows reminder notifications.

    Flow per fired candidate:
      1. Rate limit: suppressed if this task was notified < min_renotify ago
      2. Permission re-check: failed (no platform call) unless still granted
      3. Show; success records the time, any platform error -> failed

    Failures are never retried. Calls are serialized so two dispatches
    never overlap.
    """

    def __init__(
        self,
        platform: NotificationPlatform,
        permission: PermissionGate,
        clock: Callable[[], datetime] = datetime.now,
        min_renotify_interval: timedelta = MIN_RENOTIFY_INTERVAL,
        title_template: str = "Reminder: {title}",
        default_body: str = "Deadline approaching",
        notification_timeout_s: float = 0,
        timers: TimerBackend | None = None,
        on_event: EventHook | None = None,
    ):
        self.platform = platform
        self.permission = permission
        self.clock = clock
        self.min_renotify_interval = min_renotify_interval
        self.title_template = title_template
        self.default_body = default_body
        self.notification_timeout_s = notification_timeout_s
        self.timers = timers or AsyncioTimerBackend()
        self.dispatched_count = 0
        self._events = EventEmitter(on_event, clock)
        self._last_notified: dict[str, datetime] = {}
        self._lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def dispatch(self, candidate: ReminderCandidate) -> DispatchOutcome:
        async with self._lock:
            return await self._dispatch(candidate)

    async def announce(self, title: str, body: str) -> bool:
        """One-off informational notification (not rate limited)."""
        async with self._lock:
            if self.permission.current_state() != PermissionState.GRANTED:
                return False
            try:
                handle = await self.platform.show(title, body)
            except Exception as e:
                logger.error(f"[Dispatch] Announcement failed: {e}")
                return False
            self._schedule_close(handle)
            return True

    def last_notified(self, task_id: str) -> datetime | None:
        return self._last_notified.get(task_id)

    def is_rate_limited(self, task_id: str, now: datetime | None = None) -> bool:
        last = self._last_notified.get(task_id)
        if last is None:
            return False
        return (now or self.clock()) - last < self.min_renotify_interval

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _dispatch(self, candidate: ReminderCandidate) -> DispatchOutcome:
        task_id = candidate.task_id
        now = self.clock()

        if self.is_rate_limited(task_id, now):
            logger.debug(f"[Dispatch] Suppressed {task_id} (notified {self._last_notified[task_id]})")
            self._events.emit("suppressed", task_id)
            return DispatchOutcome.SUPPRESSED

        try:
            await self._show(candidate)
        except DispatchFailure as e:
            logger.error(f"[Dispatch] {e}")
            self._events.emit("dispatch_failed", task_id, error=str(e.cause or e))
            return DispatchOutcome.FAILED

        self._record(task_id, now)
        self.dispatched_count += 1
        logger.info(f"[Dispatch] Notified {task_id}: {candidate.title}")
        self._events.emit("dispatched", task_id)
        return DispatchOutcome.DISPATCHED

    async def _show(self, candidate: ReminderCandidate) -> None:
        """Show the notification or raise DispatchFailure."""
        # Re-read the platform: permission may have been revoked since arming.
        if self.permission.refresh() != PermissionState.GRANTED:
            raise DispatchFailure(candidate.task_id, PermissionError("permission not granted"))

        title = self.title_template.format(title=candidate.title)
        body = candidate.description or self.default_body
        try:
            handle = await self.platform.show(
                title,
                body,
                tag=f"reminder-{candidate.task_id}",
                require_interaction=True,
            )
        except Exception as e:
            raise DispatchFailure(candidate.task_id, e) from e
        self._schedule_close(handle)

    def _record(self, task_id: str, now: datetime) -> None:
        self._last_notified[task_id] = now
        # Clean entries that can no longer suppress anything
        cutoff = now - self.min_renotify_interval
        self._last_notified = {k: v for k, v in self._last_notified.items() if v > cutoff}

    def _schedule_close(self, handle: Any) -> None:
        if handle is None or self.notification_timeout_s <= 0:
            return

        def _close() -> None:
            try:
                self.platform.close(handle)
            except Exception as e:
                logger.debug(f"[Dispatch] Close failed: {e}")

        self.timers.call_later(self.notification_timeout_s, _close)
