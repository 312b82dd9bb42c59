"""Command gateway: validate requests, then dispatch locally or over SSH."""

import os
from collections import deque
from typing import TYPE_CHECKING, Callable

from loguru import logger

from shellgate.exec.errors import (
    ExecutionError,
    HistoryDisabledError,
    SSHDisabledError,
    TransportError,
    UnknownConnectionError,
    UnknownShellError,
)
from shellgate.exec.executor import execute_local
from shellgate.exec.paths import enforce_working_directory, validate_directories
from shellgate.exec.safety import validate_command
from shellgate.exec.types import (
    CommandHistoryEntry,
    DirectoryCheck,
    ExecOutcome,
    SecurityPolicy,
    ShellProfile,
)
from shellgate.ssh.pool import SSHConnectionPool
from shellgate.ssh.types import SSHConnectionProfile

if TYPE_CHECKING:
    from shellgate.config.schema import Config

HISTORY_OUTPUT_LIMIT = 1000
SSH_SHELL_NAME = "ssh"


class CommandGateway:
    """
    The trust boundary between a caller and the real shells.

    Every request passes validation before anything is spawned: local
    commands also clear the working-directory allow-list. The security
    policy is an immutable snapshot; ``replace_policy`` swaps it whole.
    """

    def __init__(
        self,
        policy: SecurityPolicy,
        shells: dict[str, ShellProfile],
        connections: dict[str, SSHConnectionProfile] | None = None,
        *,
        ssh_enabled: bool = True,
        ssh_operators: tuple[str, ...] = ("&", "|", ";", "`"),
        ssh_timeout: float | None = None,
        max_sessions: int = 5,
        cwd_provider: Callable[[], str] = os.getcwd,
        log_commands: bool = True,
        max_history_size: int = 1000,
        pool: SSHConnectionPool | None = None,
    ):
        self._policy = policy
        self.shells = dict(shells)
        self.connections = dict(connections or {})
        self.ssh_enabled = ssh_enabled
        self.ssh_timeout = ssh_timeout
        self.cwd_provider = cwd_provider
        self.log_commands = log_commands
        self.pool = pool or SSHConnectionPool(max_sessions=max_sessions)
        self._ssh_profile = ShellProfile(
            name=SSH_SHELL_NAME,
            command="",
            blocked_operators=tuple(ssh_operators),
        )
        self._history: deque[CommandHistoryEntry] = deque(maxlen=max_history_size)

    @classmethod
    def from_config(cls, config: "Config", **kwargs) -> "CommandGateway":
        """Build a gateway from a loaded Config."""
        return cls(
            policy=config.to_security_policy(),
            shells=config.to_shell_profiles(),
            connections=config.to_ssh_profiles(),
            ssh_enabled=config.ssh.enabled,
            ssh_operators=tuple(config.ssh.blocked_operators),
            ssh_timeout=config.ssh.default_timeout,
            max_sessions=config.ssh.max_concurrent_sessions,
            log_commands=config.security.log_commands,
            max_history_size=config.security.max_history_size,
            **kwargs,
        )

    @property
    def policy(self) -> SecurityPolicy:
        return self._policy

    def replace_policy(self, policy: SecurityPolicy) -> None:
        """Install a new policy snapshot. Checks in flight keep the old one."""
        self._policy = policy
        logger.info("Security policy replaced")

    def enabled_shells(self) -> list[str]:
        return [name for name, shell in self.shells.items() if shell.enabled]

    def current_directory(self) -> str:
        return self.cwd_provider()

    # ── History ─────────────────────────────────────────────────────

    def _record(self, command: str, output: str, exit_code: int, connection_id: str | None = None) -> None:
        if not self.log_commands:
            return
        self._history.append(CommandHistoryEntry(
            command=command,
            output=output,
            exit_code=exit_code,
            connection_id=connection_id,
        ))

    def get_history(self, limit: int = 10) -> list[CommandHistoryEntry]:
        """Most recent history entries, oldest first, output clipped."""
        if not self.log_commands:
            raise HistoryDisabledError()
        limit = max(1, min(limit, self._history.maxlen or limit))
        entries = list(self._history)[-limit:]
        return [
            CommandHistoryEntry(
                command=entry.command,
                output=entry.output[:HISTORY_OUTPUT_LIMIT],
                exit_code=entry.exit_code,
                timestamp=entry.timestamp,
                connection_id=entry.connection_id,
            )
            for entry in entries
        ]

    # ── Operations ──────────────────────────────────────────────────

    def _resolve_shell(self, shell_name: str) -> ShellProfile:
        shell = self.shells.get(shell_name)
        if shell is None or not shell.enabled:
            raise UnknownShellError(shell_name, self.enabled_shells())
        return shell

    async def execute_local(
        self,
        shell_name: str,
        command: str,
        working_dir: str | None = None,
    ) -> ExecOutcome:
        """
        Validate and run a command in a local shell.

        Raises a ValidationError subclass before anything is spawned, or an
        ExecutionError for spawn failures and timeouts. A non-zero exit is
        returned as an unsuccessful ExecOutcome.
        """
        policy = self._policy
        shell = self._resolve_shell(shell_name)
        validate_command(command, shell, policy)

        directory = enforce_working_directory(
            working_dir or self.cwd_provider(),
            list(policy.allowed_paths),
            policy.restrict_working_directory,
        )

        logger.info(f"Executing in {shell.name} ({directory}): {command[:80]}")
        try:
            outcome = await execute_local(
                shell,
                command,
                directory,
                policy.command_timeout,
                policy.max_output_chars,
            )
        except ExecutionError as e:
            self._record(command, str(e), -1)
            raise

        self._record(command, outcome.text, outcome.exit_code)
        return outcome

    async def execute_remote(self, connection_id: str, command: str) -> ExecOutcome:
        """Validate and run a command over a pooled SSH session."""
        if not self.ssh_enabled:
            raise SSHDisabledError()

        profile = self.connections.get(connection_id)
        if profile is None:
            raise UnknownConnectionError(connection_id)

        validate_command(command, self._ssh_profile, self._policy)

        logger.info(f"Executing on {connection_id}: {command[:80]}")
        try:
            outcome = await self.pool.execute(connection_id, profile, command, timeout=self.ssh_timeout)
        except TransportError as e:
            self._record(command, f"SSH error: {e}", -1, connection_id)
            raise

        self._record(command, outcome.output, outcome.exit_code, connection_id)
        return outcome

    def check_directories(self, paths: list[str]) -> DirectoryCheck:
        """Report which of the given directories fall outside the allowed roots."""
        return validate_directories(paths, list(self._policy.allowed_paths))

    async def disconnect(self, connection_id: str) -> bool:
        if not self.ssh_enabled:
            raise SSHDisabledError()
        return await self.pool.disconnect(connection_id)

    async def close(self) -> None:
        """Release every SSH session; call on process shutdown."""
        await self.pool.close_all()
