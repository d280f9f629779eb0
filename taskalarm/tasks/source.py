"""Task snapshot source - watches a JSON export of the task store."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Callable

from loguru import logger
from pydantic import ValidationError

from taskalarm.engine.schema import Task

# Default interval: 5 seconds
DEFAULT_WATCH_INTERVAL_S = 5.0


def parse_snapshot(data: Any) -> list[Task]:
    """Validate a snapshot (a list, or {"tasks": [...]}) into Task records.

    Invalid rows are skipped with a warning; the rest still load.
    """
    rows = data.get("tasks", []) if isinstance(data, dict) else data
    if not isinstance(rows, list):
        raise ValueError(f"Task snapshot must be a list, got {type(rows).__name__}")

    tasks: list[Task] = []
    for row in rows:
        try:
            tasks.append(Task.model_validate(row))
        except ValidationError as e:
            row_id = row.get("id", "?") if isinstance(row, dict) else "?"
            logger.warning(f"[TaskSource] Skip {row_id}: {e.error_count()} validation error(s)")
    return tasks


class TaskFileSource:
    """
    Reads the task snapshot file and pushes full snapshots on change.

    The store rewrites the whole file on every change; a change is detected
    by modification time and size.
    """

    def __init__(
        self,
        path: Path,
        on_snapshot: Callable[[list[Task]], Any] | None = None,
        interval_s: float = DEFAULT_WATCH_INTERVAL_S,
    ):
        self.path = Path(path).expanduser()
        self.on_snapshot = on_snapshot
        self.interval_s = interval_s
        self._signature: tuple[float, int] | None = None
        self._running = False
        self._task: asyncio.Task | None = None

    def load(self) -> list[Task]:
        """Read and validate the snapshot file.

        Raises FileNotFoundError / ValueError (bad JSON or shape).
        """
        raw = self.path.read_text(encoding="utf-8")
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {self.path}: {e}") from e
        return parse_snapshot(data)

    def poll(self) -> list[Task] | None:
        """Return a fresh snapshot when the file changed, else None."""
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            if self._signature is not None:
                logger.warning(f"[TaskSource] {self.path} disappeared")
                self._signature = None
            return None

        signature = (stat.st_mtime, stat.st_size)
        if signature == self._signature:
            return None

        try:
            tasks = self.load()
        except (OSError, ValueError) as e:
            # Likely mid-write; retry on the next tick
            logger.warning(f"[TaskSource] Could not read snapshot: {e}")
            return None

        self._signature = signature
        logger.debug(f"[TaskSource] Loaded {len(tasks)} tasks from {self.path}")
        return tasks

    async def start(self) -> None:
        """Start watching (pushes the current snapshot immediately)."""
        self._running = True
        self._check()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"[TaskSource] Watching {self.path} (every {self.interval_s}s)")

    def stop(self) -> None:
        """Stop watching."""
        self._running = False
        if self._task:
            self._task.cancel()
            self._task = None

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval_s)
                if self._running:
                    self._check()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"[TaskSource] Watch error: {e}")

    def _check(self) -> None:
        tasks = self.poll()
        if tasks is not None and self.on_snapshot:
            self.on_snapshot(tasks)
