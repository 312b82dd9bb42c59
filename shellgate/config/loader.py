"""Configuration loading and saving."""

import json
import re
from pathlib import Path
from typing import Any

from filelock import FileLock
from loguru import logger
from pydantic import ValidationError

from shellgate.config.schema import Config, _default_shells

CONFIG_FILENAME = "config.json"


def get_data_dir() -> Path:
    """Get the shellgate data directory (~/.shellgate)."""
    return Path.home() / ".shellgate"


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return get_data_dir() / CONFIG_FILENAME


def find_config_path(config_path: Path | str | None = None) -> Path | None:
    """
    Locate the configuration file.

    Search order: explicit path, ./config.json, ~/.shellgate/config.json.
    """
    candidates = []
    if config_path:
        candidates.append(Path(config_path).expanduser())
    candidates.append(Path.cwd() / CONFIG_FILENAME)
    candidates.append(get_config_path())

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def snake_to_camel(name: str) -> str:
    """Convert snake_case to camelCase."""
    first, *rest = name.split("_")
    return first + "".join(word.capitalize() for word in rest)


# Maps whose keys are user-chosen names, not schema fields
_NAMED_MAPS = {"shells", "connections"}


def convert_keys(data: Any, _parent: str | None = None) -> Any:
    """Recursively convert dict keys from camelCase to snake_case."""
    if isinstance(data, dict):
        converted = {}
        for key, value in data.items():
            new_key = key if _parent in _NAMED_MAPS else camel_to_snake(key)
            converted[new_key] = convert_keys(value, new_key if _parent not in _NAMED_MAPS else None)
        return converted
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any, _parent: str | None = None) -> Any:
    """Recursively convert dict keys from snake_case to camelCase."""
    if isinstance(data, dict):
        converted = {}
        for key, value in data.items():
            new_key = key if _parent in _NAMED_MAPS else snake_to_camel(key)
            converted[new_key] = convert_to_camel(value, key if _parent not in _NAMED_MAPS else None)
        return converted
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def _merge_shells(user_shells: dict[str, Any]) -> dict[str, Any]:
    """Overlay user shell settings onto the built-in shells, field by field."""
    merged = {name: shell.model_dump() for name, shell in _default_shells().items()}
    for name, overrides in user_shells.items():
        if isinstance(overrides, dict):
            merged[name] = {**merged.get(name, {}), **overrides}
        else:
            merged[name] = overrides
    return merged


def config_from_dict(data: dict[str, Any]) -> Config:
    """Build a Config from camelCase file data (raises pydantic ValidationError)."""
    data = convert_keys(data)
    if isinstance(data.get("shells"), dict):
        data["shells"] = _merge_shells(data["shells"])
    return Config(**data)


def load_config(config_path: Path | str | None = None) -> Config:
    """
    Load configuration from file, or defaults if none is found.

    Unreadable or invalid files fall back to defaults with a warning.
    """
    path = find_config_path(config_path)
    if path is None:
        return Config()

    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text) if text.strip() else {}
        config = config_from_dict(data)
        logger.info(f"Loaded config from {path}")
        return config
    except (OSError, json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"Failed to load config from {path}: {e}")
        logger.warning("Using default configuration.")
        return Config()


def save_config(config: Config, config_path: Path | str | None = None) -> Path:
    """Save configuration to file with camelCase keys."""
    path = Path(config_path).expanduser() if config_path else get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_to_camel(config.model_dump(exclude_none=True))
    with FileLock(str(path) + ".lock", timeout=10):
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


def create_default_config(config_path: Path | str) -> Path:
    """Write a default configuration file."""
    return save_config(Config(), config_path)
