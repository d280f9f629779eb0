"""Reminder scheduling and notification dispatch engine."""

from taskalarm.engine.dispatch import DispatchGate, DispatchOutcome
from taskalarm.engine.orchestrator import OrchestratorState, ReminderOrchestrator, ReminderStatus
from taskalarm.engine.permission import PermissionGate, PermissionState
from taskalarm.engine.scheduler import ReminderScheduler
from taskalarm.engine.schema import ReminderCandidate, Task

__all__ = [
    "DispatchGate",
    "DispatchOutcome",
    "OrchestratorState",
    "PermissionGate",
    "PermissionState",
    "ReminderCandidate",
    "ReminderOrchestrator",
    "ReminderScheduler",
    "ReminderStatus",
    "Task",
]
