"""Create, read, update and delete SSH connections in the config file."""

import json
from pathlib import Path
from typing import Any

from loguru import logger

from shellgate.config.loader import config_from_dict, find_config_path, get_config_path, save_config
from shellgate.config.schema import Config, SSHConnectionConfig
from shellgate.exec.errors import UnknownConnectionError
from shellgate.ssh.types import REDACTED


def _config_file(config_path: Path | str | None) -> Path:
    """The file to read and write: explicit path, else the discovered one."""
    if config_path:
        return Path(config_path).expanduser()
    return find_config_path() or get_config_path()


def _load(path: Path) -> Config:
    # Strict: a broken file must not be silently replaced by defaults on save
    if not path.is_file():
        return Config()
    text = path.read_text(encoding="utf-8")
    return config_from_dict(json.loads(text) if text.strip() else {})


def create_connection(
    connection_id: str,
    connection: SSHConnectionConfig,
    config_path: Path | str | None = None,
) -> None:
    """Add or replace a connection and persist the config."""
    path = _config_file(config_path)
    config = _load(path)
    config.ssh.connections[connection_id] = connection
    save_config(config, path)
    logger.info(f"SSH connection saved: {connection_id}")


def read_connections(config_path: Path | str | None = None) -> dict[str, dict[str, Any]]:
    """All connections as plain dicts, passwords redacted."""
    config = _load(_config_file(config_path))
    result = {}
    for connection_id, connection in config.ssh.connections.items():
        data = connection.model_dump(exclude_none=True)
        if data.get("password"):
            data["password"] = REDACTED
        result[connection_id] = data
    return result


def update_connection(
    connection_id: str,
    connection: SSHConnectionConfig,
    config_path: Path | str | None = None,
) -> None:
    """Replace an existing connection. Raises UnknownConnectionError."""
    path = _config_file(config_path)
    config = _load(path)
    if connection_id not in config.ssh.connections:
        raise UnknownConnectionError(connection_id)
    config.ssh.connections[connection_id] = connection
    save_config(config, path)
    logger.info(f"SSH connection updated: {connection_id}")


def delete_connection(connection_id: str, config_path: Path | str | None = None) -> bool:
    """Remove a connection. Returns False if it did not exist."""
    path = _config_file(config_path)
    config = _load(path)
    if config.ssh.connections.pop(connection_id, None) is None:
        return False
    save_config(config, path)
    logger.info(f"SSH connection deleted: {connection_id}")
    return True
