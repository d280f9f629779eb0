"""Task and reminder candidate schemas."""

import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Task (owned by the task store, read-only here)
# ============================================================================


class Task(BaseModel):
    """Task record as delivered by the task store.

    Accepts store column names (reminder_time) and UI camelCase names
    (dueDate, reminderEnabled, ...) besides the attribute names.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    id: str
    title: str
    description: Optional[str] = None
    due_date: date = Field(validation_alias=AliasChoices("due_date", "dueDate"))
    due_time: Optional[time] = Field(
        default=None, validation_alias=AliasChoices("due_time", "dueTime")
    )
    completed: bool = False
    reminder_enabled: bool = Field(
        default=False, validation_alias=AliasChoices("reminder_enabled", "reminderEnabled")
    )
    reminder_offset: Optional[int] = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices(
            "reminder_offset", "reminder_time", "reminderTime", "offset"
        ),
    )

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: object) -> object:
        if isinstance(v, int) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("due_date", mode="before")
    @classmethod
    def normalize_due_date(cls, v: object) -> object:
        """Keep only the date part of datetime values (2025-06-10T00:00:00Z)."""
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str):
            m = re.match(r"^(\d{4}-\d{2}-\d{2})", v.strip())
            if m:
                return m.group(1)
        return v

    @field_validator("due_time", mode="before")
    @classmethod
    def empty_due_time(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def has_offset(self) -> bool:
        """A zero offset means "no reminder" in the task store."""
        return bool(self.reminder_offset)

    @property
    def due_at(self) -> datetime:
        """Due instant; start of the due date when no time is set."""
        return datetime.combine(self.due_date, self.due_time or time.min)


# ============================================================================
# ReminderCandidate (derived, never persisted)
# ============================================================================


@dataclass(slots=True, frozen=True)
class ReminderCandidate:
    """A task that wants a reminder, with its absolute trigger instant."""

    task_id: str
    title: str
    description: str | None
    trigger_at: datetime
    offset_minutes: int
    due_date: date
    due_time: time | None
    completed: bool = False
    reminder_enabled: bool = True


# ============================================================================
# Display helpers
# ============================================================================


def format_offset(minutes: int) -> str:
    """Human label for a reminder offset, rounded down to the largest unit."""
    if minutes >= 1440:
        days = minutes // 1440
        return f"{days} day{'s' if days != 1 else ''} before"
    if minutes >= 60:
        hours = minutes // 60
        return f"{hours} hour{'s' if hours != 1 else ''} before"
    return f"{minutes} minute{'s' if minutes != 1 else ''} before"
