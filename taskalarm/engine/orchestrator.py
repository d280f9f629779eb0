"""Reminder Orchestrator: the facade used by the UI layer.

Wires task-list snapshots through derive -> reconcile -> dispatch and owns
the lifecycle:

    idle -> initializing -> active <-> suspended -> stopped

``active`` only while permission is granted. Losing permission suspends
and cancels every timer; ``stopped`` is terminal and cancels every timer.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable

from loguru import logger
from pydantic import ValidationError

from taskalarm.config.schema import ReminderConfig
from taskalarm.engine.candidates import derive
from taskalarm.engine.dispatch import DispatchGate, DispatchOutcome
from taskalarm.engine.errors import NotificationsUnsupported, PermissionDenied, PermissionNotGranted
from taskalarm.engine.events import EventEmitter, EventHook
from taskalarm.engine.permission import PermissionGate, PermissionState
from taskalarm.engine.scheduler import ReminderScheduler
from taskalarm.engine.schema import ReminderCandidate, Task
from taskalarm.engine.timers import AsyncioTimerBackend, TimerBackend
from taskalarm.platform.base import NotificationPlatform

WELCOME_TITLE = "Reminders enabled"
WELCOME_BODY = "You will be notified before your tasks are due."


class OrchestratorState(str, Enum):
    IDLE = "idle"
    INITIALIZING = "initializing"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    STOPPED = "stopped"


@dataclass
class ReminderStatus:
    """Read-only status snapshot for display."""

    state: OrchestratorState
    permission_state: PermissionState
    scheduled_count: int
    active: bool
    last_reconciled_at: datetime | None
    notification_count: int
    notice: str | None = None


class ReminderOrchestrator:
    """Accepts full task snapshots and keeps reminders in sync with them."""

    def __init__(
        self,
        platform: NotificationPlatform | None,
        config: ReminderConfig | None = None,
        timers: TimerBackend | None = None,
        clock: Callable[[], datetime] = datetime.now,
        on_event: EventHook | None = None,
    ):
        self.config = config or ReminderConfig()
        self.clock = clock
        timers = timers or AsyncioTimerBackend()

        self.permission = PermissionGate(platform)
        self.scheduler = ReminderScheduler(
            on_fire=self._on_fire,
            timers=timers,
            clock=clock,
            max_timer_delay_s=self.config.max_timer_delay_s,
            on_event=on_event,
        )
        self.dispatcher = DispatchGate(
            platform=platform,
            permission=self.permission,
            clock=clock,
            min_renotify_interval=self.config.min_renotify_interval,
            title_template=self.config.title_template,
            default_body=self.config.default_body,
            notification_timeout_s=self.config.notification_timeout_s,
            timers=timers,
            on_event=on_event,
        )
        self.permission.subscribe(self._on_permission_change)

        self._events = EventEmitter(on_event, clock)
        self._state = OrchestratorState.IDLE
        self._tasks: list[Task] = []
        self._inflight: set[asyncio.Task] = set()
        self._notice: str | None = None
        self._surfaced: set[str] = set()
        self.last_reconciled_at: datetime | None = None

    # ------------------------------------------------------------------
    # UI-facing API
    # ------------------------------------------------------------------

    @property
    def state(self) -> OrchestratorState:
        return self._state

    def update_tasks(self, tasks: Iterable[Task | dict[str, Any]]) -> None:
        """Accept a full task snapshot. Never raises."""
        try:
            self._tasks = _coerce_tasks(tasks)
            if self._state == OrchestratorState.STOPPED:
                return
            self.permission.refresh()
            if self._state == OrchestratorState.ACTIVE:
                self._reconcile()
        except Exception as e:
            logger.error(f"[Orchestrator] update_tasks failed: {e}")

    async def start(self) -> None:
        """Resolve permission, then go active or suspended."""
        if self._state != OrchestratorState.IDLE:
            logger.warning(f"[Orchestrator] start() ignored in state {self._state.value}")
            return

        self._transition(OrchestratorState.INITIALIZING)
        state = self.permission.refresh()
        if state == PermissionState.DEFAULT and self.config.auto_request_permission:
            await self.request_permission()

        if self._state != OrchestratorState.INITIALIZING:
            return  # stopped while the prompt was open
        if self.permission.current_state() == PermissionState.GRANTED:
            self._activate()
        else:
            self._suspend()

    def stop(self) -> None:
        """Terminal: cancel every timer and ignore further updates."""
        if self._state == OrchestratorState.STOPPED:
            return
        self.scheduler.cancel_all()
        self._transition(OrchestratorState.STOPPED)

    async def request_permission(self) -> bool:
        """Ask the user for permission; confirms with a welcome notification."""
        if self._state == OrchestratorState.STOPPED:
            return False

        was_granted = self.permission.current_state() == PermissionState.GRANTED
        granted = await self.permission.request()
        if self._state == OrchestratorState.STOPPED:
            return granted  # stopped while the prompt was open

        if granted and not was_granted and self.config.welcome_notification:
            await self.dispatcher.announce(WELCOME_TITLE, WELCOME_BODY)
        if not granted:
            self._surface_permission_notice()
        return granted

    def status(self) -> ReminderStatus:
        return ReminderStatus(
            state=self._state,
            permission_state=self.permission.current_state(),
            scheduled_count=self.scheduler.scheduled_count(),
            active=self._state == OrchestratorState.ACTIVE,
            last_reconciled_at=self.last_reconciled_at,
            notification_count=self.dispatcher.dispatched_count,
            notice=self._notice,
        )

    def take_notice(self) -> str | None:
        """Return the pending one-time notice and clear it."""
        notice, self._notice = self._notice, None
        return notice

    async def drain(self) -> None:
        """Wait for in-flight dispatches to finish."""
        while True:
            pending = [t for t in self._inflight if not t.done()]
            if not pending:
                return
            await asyncio.gather(*pending, return_exceptions=True)

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _reconcile(self) -> None:
        now = self.clock()
        candidates = derive(self._tasks, now)
        self.scheduler.reconcile(candidates, now)
        self.last_reconciled_at = now

    def _on_fire(self, candidate: ReminderCandidate) -> None:
        if self._state != OrchestratorState.ACTIVE:
            logger.debug(f"[Orchestrator] Dropping fire for {candidate.task_id} in {self._state.value}")
            return
        task = asyncio.get_running_loop().create_task(self._dispatch(candidate))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _dispatch(self, candidate: ReminderCandidate) -> DispatchOutcome:
        outcome = await self.dispatcher.dispatch(candidate)
        logger.debug(f"[Orchestrator] {candidate.task_id} -> {outcome.value}")
        return outcome

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _on_permission_change(self, old: PermissionState, new: PermissionState) -> None:
        if self._state in (
            OrchestratorState.IDLE,
            OrchestratorState.INITIALIZING,
            OrchestratorState.STOPPED,
        ):
            return  # start() settles the initial state itself

        if new == PermissionState.GRANTED and self._state == OrchestratorState.SUSPENDED:
            self._activate()
        elif new != PermissionState.GRANTED and self._state == OrchestratorState.ACTIVE:
            self._suspend()

    def _activate(self) -> None:
        self._transition(OrchestratorState.ACTIVE)
        # Fresh swap from empty state so the latest snapshot is fully re-evaluated.
        self.scheduler.cancel_all()
        self._reconcile()

    def _suspend(self) -> None:
        self.scheduler.cancel_all()
        self._transition(OrchestratorState.SUSPENDED)
        self._surface_permission_notice()

    def _transition(self, new: OrchestratorState) -> None:
        old, self._state = self._state, new
        if old != new:
            logger.info(f"[Orchestrator] {old.value} -> {new.value}")
            self._events.emit("state", old=old.value, new=new.value)

    def _surface_permission_notice(self) -> None:
        try:
            self.permission.ensure_granted()
        except NotificationsUnsupported as e:
            self._surface("unsupported", f"{e}. Reminders are off.")
        except PermissionDenied as e:
            self._surface("denied", f"{e}. Enable notifications in your settings to get reminders.")
        except PermissionNotGranted:
            pass

    def _surface(self, kind: str, message: str) -> None:
        """Surface a notice at most once per kind."""
        if kind in self._surfaced:
            return
        self._surfaced.add(kind)
        self._notice = message
        logger.warning(f"[Orchestrator] {message}")
        self._events.emit("notice", notice=kind, message=message)


def _coerce_tasks(tasks: Iterable[Task | dict[str, Any]]) -> list[Task]:
    out: list[Task] = []
    for t in tasks:
        if isinstance(t, Task):
            out.append(t)
            continue
        try:
            out.append(Task.model_validate(t))
        except ValidationError as e:
            task_id = t.get("id") if isinstance(t, dict) else None
            logger.warning(f"[Orchestrator] Skip invalid task {task_id!r}: {e}")
    return out
