"""Config file loading and saving."""

import json
import re
from pathlib import Path

from loguru import logger

from taskalarm.config.schema import Config
from taskalarm.utils.helpers import get_data_path, load_json_file

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def get_config_path() -> Path:
    """Get the config file path (~/.taskalarm/config.json)."""
    return get_data_path() / "config.json"


def _to_snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def convert_keys(data: object) -> object:
    """Recursively convert camelCase dict keys to snake_case."""
    if isinstance(data, dict):
        return {_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(v) for v in data]
    return data


def load_config(config_path: Path | None = None) -> Config:
    """Load config from file, falling back to defaults.

    TASKALARM_* environment variables override values from the file.
    """
    path = config_path or get_config_path()
    raw = load_json_file(path, default={})
    if not isinstance(raw, dict):
        logger.warning(f"[Config] {path} is not a JSON object, using defaults")
        raw = {}

    try:
        return Config(**convert_keys(raw))
    except Exception as e:
        logger.warning(f"[Config] Invalid config at {path}: {e}, using defaults")
        return Config()


def save_config(config: Config, config_path: Path | None = None) -> Path:
    """Write config to file as JSON. Returns the written path."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config.model_dump(), indent=2), encoding="utf-8")
    return path
