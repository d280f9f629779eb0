"""Scheduler Core: one timer per eligible reminder candidate.

The timer map is reconciled against each new candidate set with an
all-or-nothing swap: when the set fingerprint changed, every live timer is
cancelled and one timer is armed per eligible candidate. Equal fingerprints
are a no-op and leave running timers untouched.

Per task id: Unscheduled -> Scheduled -> Fired | Cancelled.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

from loguru import logger

from taskalarm.engine.candidates import fingerprint, is_eligible
from taskalarm.engine.events import EventEmitter, EventHook
from taskalarm.engine.schema import ReminderCandidate
from taskalarm.engine.timers import AsyncioTimerBackend, TimerBackend, TimerHandle

DEFAULT_MAX_TIMER_DELAY_S = 24 * 60 * 60

FireCallback = Callable[[ReminderCandidate], Any]


# ============================================================================
# Result / bookkeeping types
# ============================================================================


@dataclass
class ScheduledTimer:
    """Live timer entry, owned by the scheduler."""

    task_id: str
    trigger_at: datetime
    candidate: ReminderCandidate
    handle: TimerHandle | None = None
    generation: int = 0


@dataclass
class ReconcileResult:
    """Outcome of a single reconcile() pass."""

    changed: bool = False
    scheduled: list[str] = field(default_factory=list)
    dropped_stale: list[str] = field(default_factory=list)
    cancelled: int = 0


@dataclass
class SchedulerStats:
    """Instrumentation counters (monotonic over the scheduler lifetime)."""

    reconciles: int = 0
    skipped: int = 0
    created: int = 0
    cancelled: int = 0
    fired: int = 0
    dropped_stale: int = 0
    rejected: int = 0


# ============================================================================
# ReminderScheduler
# ============================================================================


class ReminderScheduler:
    """Owns the task-id -> timer map.

    All methods are sync and run on the control thread. A reconcile or
    cancel_all runs to completion before any timer callback can run, so no
    timer fires mid-swap.
    """

    def __init__(
        self,
        on_fire: FireCallback,
        timers: TimerBackend | None = None,
        clock: Callable[[], datetime] = datetime.now,
        max_timer_delay_s: float = DEFAULT_MAX_TIMER_DELAY_S,
        on_event: EventHook | None = None,
    ):
        self.on_fire = on_fire
        self.timers = timers or AsyncioTimerBackend()
        self.clock = clock
        self.max_timer_delay_s = max_timer_delay_s
        self.stats = SchedulerStats()
        self._events = EventEmitter(on_event, clock)
        self._timers: dict[str, ScheduledTimer] = {}
        self._fingerprint: str | None = None
        self._generation = 0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def reconcile(
        self, candidates: list[ReminderCandidate], now: datetime | None = None
    ) -> ReconcileResult:
        """Bring live timers into agreement with ``candidates``."""
        result = ReconcileResult()
        now = now or self.clock()
        digest = fingerprint(candidates)
        self.stats.reconciles += 1

        if digest == self._fingerprint:
            self.stats.skipped += 1
            logger.debug("[Scheduler] Candidate set unchanged, skip")
            return result

        result.changed = True
        result.cancelled = self._cancel_every_timer()

        for candidate in candidates:
            if not is_eligible(candidate, now):
                self.stats.dropped_stale += 1
                result.dropped_stale.append(candidate.task_id)
                self._events.emit("stale", candidate.task_id, trigger_at=candidate.trigger_at.isoformat())
                continue
            if self._schedule(candidate, now):
                result.scheduled.append(candidate.task_id)

        self._fingerprint = digest
        logger.info(
            f"[Scheduler] Reconciled: {len(result.scheduled)} scheduled, "
            f"{len(result.dropped_stale)} stale, {result.cancelled} cancelled"
        )
        self._events.emit(
            "reconciled",
            scheduled=len(result.scheduled),
            stale=len(result.dropped_stale),
            cancelled=result.cancelled,
        )
        return result

    def cancel(self, task_id: str) -> bool:
        """Cancel one task's timer. Returns False when none was scheduled."""
        entry = self._timers.pop(task_id, None)
        if entry is None:
            return False
        self._cancel_entry(entry)
        logger.debug(f"[Scheduler] Cancelled {task_id}")
        return True

    def cancel_all(self) -> int:
        """Cancel every timer and forget the fingerprint."""
        count = self._cancel_every_timer()
        self._fingerprint = None
        if count:
            logger.info(f"[Scheduler] Cancelled all ({count})")
        return count

    def scheduled_count(self) -> int:
        return len(self._timers)

    def scheduled(self) -> list[ScheduledTimer]:
        """Live entries sorted by trigger instant."""
        return sorted(self._timers.values(), key=lambda e: (e.trigger_at, e.task_id))

    def is_scheduled(self, task_id: str) -> bool:
        return task_id in self._timers

    # ------------------------------------------------------------------
    # Timer helpers
    # ------------------------------------------------------------------

    def _schedule(self, candidate: ReminderCandidate, now: datetime) -> bool:
        delay = (candidate.trigger_at - now).total_seconds()
        if delay <= 0:
            self.stats.rejected += 1
            logger.warning(f"[Scheduler] Rejected {candidate.task_id}: non-positive delay {delay:.3f}s")
            return False

        previous = self._timers.pop(candidate.task_id, None)
        if previous is not None:
            # Duplicate id in one snapshot: the later row wins
            logger.warning(f"[Scheduler] Duplicate candidate {candidate.task_id}, replacing earlier timer")
            self._cancel_entry(previous)

        self._generation += 1
        entry = ScheduledTimer(
            task_id=candidate.task_id,
            trigger_at=candidate.trigger_at,
            candidate=candidate,
            generation=self._generation,
        )
        self._timers[candidate.task_id] = entry
        self._arm(entry, delay)
        self.stats.created += 1
        logger.debug(f"[Scheduler] Armed {candidate.task_id}: {delay:.0f}s until {candidate.trigger_at}")
        self._events.emit("scheduled", candidate.task_id, trigger_at=candidate.trigger_at.isoformat())
        return True

    def _arm(self, entry: ScheduledTimer, delay: float) -> None:
        """Arm for at most max_timer_delay_s; longer waits are chained."""
        wait = min(delay, self.max_timer_delay_s)
        task_id, generation = entry.task_id, entry.generation
        entry.handle = self.timers.call_later(wait, lambda: self._wake(task_id, generation))

    def _wake(self, task_id: str, generation: int) -> None:
        entry = self._timers.get(task_id)
        if entry is None or entry.generation != generation:
            return  # cancelled or replaced after the callback was queued

        remaining = (entry.trigger_at - self.clock()).total_seconds()
        if remaining > 0:
            logger.debug(f"[Scheduler] Re-arming {task_id}: {remaining:.0f}s left")
            self._arm(entry, remaining)
            return

        # Fired: leave the map before dispatch so it can't be cancelled or counted twice.
        del self._timers[task_id]
        self.stats.fired += 1
        logger.info(f"[Scheduler] Fired {task_id}")
        self._events.emit("fired", task_id)
        try:
            self.on_fire(entry.candidate)
        except Exception as e:
            logger.error(f"[Scheduler] Fire callback error for {task_id}: {e}")

    def _cancel_entry(self, entry: ScheduledTimer) -> None:
        if entry.handle is not None:
            entry.handle.cancel()
            entry.handle = None
        self.stats.cancelled += 1
        self._events.emit("cancelled", entry.task_id)

    def _cancel_every_timer(self) -> int:
        entries = list(self._timers.values())
        self._timers.clear()
        for entry in entries:
            self._cancel_entry(entry)
        return len(entries)
