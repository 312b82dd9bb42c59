"""Configuration schema using Pydantic."""

import os
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shellgate.exec.paths import canonicalize_roots
from shellgate.exec.safety import DEFAULT_BLOCKED_ARGUMENTS, DEFAULT_BLOCKED_COMMANDS
from shellgate.exec.types import SecurityPolicy, ShellProfile
from shellgate.ssh.types import REDACTED, SSHConnectionProfile


def _default_allowed_paths() -> list[str]:
    return [str(Path.home()), os.getcwd()]


class SecurityConfig(BaseModel):
    """Command validation and execution limits."""
    max_command_length: int = Field(default=2000, gt=0)
    blocked_commands: list[str] = Field(default_factory=lambda: list(DEFAULT_BLOCKED_COMMANDS))
    blocked_arguments: list[str] = Field(default_factory=lambda: list(DEFAULT_BLOCKED_ARGUMENTS))
    allowed_paths: list[str] = Field(default_factory=_default_allowed_paths)
    restrict_working_directory: bool = True
    log_commands: bool = True
    max_history_size: int = Field(default=1000, gt=0)
    command_timeout: float = Field(default=30, gt=0)  # seconds
    enable_injection_protection: bool = True
    max_output_chars: int = Field(default=200_000, gt=0)

    @field_validator("allowed_paths")
    @classmethod
    def _canonical_roots(cls, value: list[str]) -> list[str]:
        return canonicalize_roots(value)


class ShellConfig(BaseModel):
    """One local shell: executable, fixed leading args and blocked operators."""
    enabled: bool = True
    command: str = ""
    args: list[str] = Field(default_factory=list)
    blocked_operators: list[str] = Field(default_factory=lambda: ["&", "|", ";", "`"])
    wsl_distribution_name: str | None = None


def _default_shells() -> dict[str, ShellConfig]:
    return {
        "powershell": ShellConfig(
            command="powershell.exe",
            args=["-NoProfile", "-NonInteractive", "-Command"],
            blocked_operators=["&", ";", "`"],
        ),
        "cmd": ShellConfig(
            command="cmd.exe",
            args=["/c"],
            blocked_operators=["&", "|", ";", "`"],
        ),
        "gitbash": ShellConfig(
            command="C:\\Program Files\\Git\\bin\\bash.exe",
            args=["-c"],
            blocked_operators=["&", "|", ";", "`"],
        ),
        "wsl": ShellConfig(
            enabled=False,
            command="wsl.exe",
            args=["-e"],
            blocked_operators=["&", "|", ";", "`"],
            wsl_distribution_name="Ubuntu",
        ),
    }


class SSHConnectionConfig(BaseModel):
    """A named remote host."""
    host: str
    port: int = Field(default=22, gt=0, lt=65536)
    username: str
    password: str | None = None
    private_key_path: str | None = None
    keepalive_interval: int | None = None  # ms
    keepalive_count_max: int | None = None
    ready_timeout: int | None = None  # ms


class SSHConfig(BaseModel):
    """Remote execution configuration."""
    enabled: bool = False
    connections: dict[str, SSHConnectionConfig] = Field(default_factory=dict)
    default_timeout: float = 30  # seconds per remote command
    max_concurrent_sessions: int = 5
    keepalive_interval: int = 10000  # ms
    keepalive_count_max: int = 3
    ready_timeout: int = 20000  # ms
    blocked_operators: list[str] = Field(default_factory=lambda: ["&", "|", ";", "`"])


class Config(BaseSettings):
    """Root configuration for shellgate."""
    model_config = SettingsConfigDict(env_prefix="SHELLGATE_", env_nested_delimiter="__")

    security: SecurityConfig = Field(default_factory=SecurityConfig)
    shells: dict[str, ShellConfig] = Field(default_factory=_default_shells)
    ssh: SSHConfig = Field(default_factory=SSHConfig)

    @model_validator(mode="after")
    def _check_shells(self) -> "Config":
        for name, shell in self.shells.items():
            if not shell.enabled:
                continue
            if not shell.command:
                raise ValueError(f"Invalid configuration for {name}: missing command")
            if name == "wsl" and not (shell.wsl_distribution_name or "").strip():
                raise ValueError(
                    "Invalid configuration for wsl: wslDistributionName must be a "
                    "non-empty string when wsl is enabled"
                )
        return self

    def enabled_shells(self) -> list[str]:
        return [name for name, shell in self.shells.items() if shell.enabled]

    def to_security_policy(self) -> SecurityPolicy:
        sec = self.security
        return SecurityPolicy.create(
            max_command_length=sec.max_command_length,
            blocked_commands=sec.blocked_commands,
            blocked_arguments=sec.blocked_arguments,
            allowed_paths=sec.allowed_paths,
            restrict_working_directory=sec.restrict_working_directory,
            command_timeout=sec.command_timeout,
            enable_injection_protection=sec.enable_injection_protection,
            max_output_chars=sec.max_output_chars,
        )

    def to_shell_profiles(self) -> dict[str, ShellProfile]:
        profiles = {}
        for name, shell in self.shells.items():
            args = list(shell.args)
            if name == "wsl" and shell.wsl_distribution_name:
                args = ["-d", shell.wsl_distribution_name, *args]
            profiles[name] = ShellProfile(
                name=name,
                command=shell.command,
                args=tuple(args),
                blocked_operators=tuple(shell.blocked_operators),
                enabled=shell.enabled,
            )
        return profiles

    def to_ssh_profiles(self) -> dict[str, SSHConnectionProfile]:
        ssh = self.ssh
        return {
            connection_id: SSHConnectionProfile(
                host=conn.host,
                port=conn.port,
                username=conn.username,
                password=conn.password,
                private_key_path=conn.private_key_path,
                keepalive_interval_ms=conn.keepalive_interval or ssh.keepalive_interval,
                keepalive_count_max=conn.keepalive_count_max or ssh.keepalive_count_max,
                ready_timeout_ms=conn.ready_timeout or ssh.ready_timeout,
            )
            for connection_id, conn in ssh.connections.items()
        }

    def to_safe_dict(self) -> dict[str, Any]:
        """Serializable view of the configuration with passwords redacted."""
        data = self.model_dump()
        for conn in data["ssh"]["connections"].values():
            if conn.get("password"):
                conn["password"] = REDACTED
        return data
