"""Type definitions for pooled SSH sessions."""

from dataclasses import dataclass
from typing import Any, Literal

# Session lifecycle
SessionState = Literal["disconnected", "connecting", "connected"]

# Transport events that end a connection
TransportEvent = Literal["error", "end", "close"]

REDACTED = "********"


@dataclass(frozen=True)
class SSHConnectionProfile:
    """Connection settings for one named remote host. Never mutated."""
    host: str
    username: str
    port: int = 22
    password: str | None = None
    private_key_path: str | None = None
    keepalive_interval_ms: int = 10_000
    keepalive_count_max: int = 3
    ready_timeout_ms: int = 20_000

    def describe(self) -> dict[str, Any]:
        """Serializable view with the password redacted."""
        data: dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "username": self.username,
        }
        if self.password:
            data["password"] = REDACTED
        if self.private_key_path:
            data["privateKeyPath"] = self.private_key_path
        return data

    def __repr__(self) -> str:
        return f"SSHConnectionProfile({self.username}@{self.host}:{self.port})"
