"""Task snapshot sources."""

from taskalarm.tasks.source import TaskFileSource, parse_snapshot

__all__ = [
    "TaskFileSource",
    "parse_snapshot",
]
