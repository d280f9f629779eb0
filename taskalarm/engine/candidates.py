"""Candidate Deriver: tasks -> reminder candidates (+ set fingerprint)."""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timedelta
from typing import Iterable

from taskalarm.engine.schema import ReminderCandidate, Task


def wants_reminder(task: Task) -> bool:
    """Candidate membership: enabled, not completed, offset set."""
    return task.reminder_enabled and not task.completed and task.has_offset


def trigger_instant(task: Task) -> datetime:
    """Due date/time (midnight when no time) minus the reminder offset."""
    return task.due_at - timedelta(minutes=task.reminder_offset or 0)


def derive(tasks: Iterable[Task], now: datetime | None = None) -> list[ReminderCandidate]:
    """Filter and map tasks into candidates, sorted by task id.

    ``now`` does not affect membership. Past triggers are still candidates;
    eligibility is decided at scheduling time (see ``eligible``).
    """
    candidates = [
        ReminderCandidate(
            task_id=t.id,
            title=t.title,
            description=t.description,
            trigger_at=trigger_instant(t),
            offset_minutes=t.reminder_offset or 0,
            due_date=t.due_date,
            due_time=t.due_time,
            completed=t.completed,
            reminder_enabled=t.reminder_enabled,
        )
        for t in tasks
        if wants_reminder(t)
    ]
    candidates.sort(key=lambda c: c.task_id)
    return candidates


def is_eligible(candidate: ReminderCandidate, now: datetime) -> bool:
    """A trigger at or before ``now`` is stale and never fired late."""
    return candidate.trigger_at > now


def eligible(candidates: Iterable[ReminderCandidate], now: datetime) -> list[ReminderCandidate]:
    """Candidates whose trigger instant is still in the future."""
    return [c for c in candidates if is_eligible(c, now)]


def fingerprint(candidates: Iterable[ReminderCandidate]) -> str:
    """Deterministic digest of the candidate set.

    Completion/enablement changes alter membership and are captured that way.
    """
    rows = sorted(
        (
            [c.task_id, c.title, c.description or "", c.trigger_at.isoformat(), c.offset_minutes]
            for c in candidates
        ),
        key=lambda r: r[0],
    )
    payload = json.dumps(rows, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
