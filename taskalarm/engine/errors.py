"""Reminder engine error taxonomy.

Stale candidates (trigger already passed at reconcile time) are not errors:
they are dropped and counted by the scheduler.
"""


class ReminderError(Exception):
    """Base class for reminder engine errors."""


class NotificationsUnsupported(ReminderError):
    """The platform has no notification capability. Permanent."""


class PermissionDenied(ReminderError):
    """The user declined notifications. Permanent until platform settings change."""


class PermissionNotGranted(ReminderError):
    """Permission is still undecided (never requested or prompt dismissed)."""


class DispatchFailure(ReminderError):
    """Showing one notification failed. Logged, never retried."""

    def __init__(self, task_id: str, cause: BaseException | None = None):
        self.task_id = task_id
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"Dispatch failed for {task_id}{detail}")
