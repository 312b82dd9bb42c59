"""Pooled SSH command execution."""

from shellgate.ssh.types import SessionState, SSHConnectionProfile
from shellgate.ssh.session import SSHSession
from shellgate.ssh.pool import SSHConnectionPool

__all__ = [
    "SessionState",
    "SSHConnectionProfile",
    "SSHSession",
    "SSHConnectionPool",
]
