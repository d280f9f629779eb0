"""Utility functions for taskalarm."""

import json
import os
from pathlib import Path


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, creating it if necessary."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Get the taskalarm data directory (~/.taskalarm or TASKALARM_DATA_DIR)."""
    override = (os.environ.get("TASKALARM_DATA_DIR") or "").strip() or None
    return ensure_dir(Path(override).expanduser() if override else Path.home() / ".taskalarm")


def load_json_file(path: Path, default: dict | list | None = None) -> dict | list:
    """Load a JSON file, returning default when missing or unreadable.

    A task snapshot that is half-written by the store is expected to be
    replaced shortly; callers keep their previous snapshot in that case.
    """
    if not path.exists():
        return default if default is not None else {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception:
        return default if default is not None else {}
