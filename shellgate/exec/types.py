"""Type definitions for policy-checked command execution."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

# Executable suffixes recognised on Windows
EXECUTABLE_SUFFIXES = (".exe", ".cmd", ".bat")

NO_OUTPUT_MESSAGE = "Command completed successfully (no output)"


@dataclass(frozen=True)
class ShellProfile:
    """Fixed executable, base arguments and operator rules for one shell."""
    name: str
    command: str
    args: tuple[str, ...] = ()
    blocked_operators: tuple[str, ...] = ()
    enabled: bool = True


@dataclass(frozen=True)
class SecurityPolicy:
    """
    Immutable snapshot of the execution policy.

    Blocked names and arguments are stored case-folded; allowed paths are
    canonical roots (see ``canonicalize_roots``). Use ``create`` to build one
    from raw configuration values.
    """
    max_command_length: int = 2000
    blocked_commands: frozenset[str] = frozenset()
    blocked_arguments: frozenset[str] = frozenset()
    allowed_paths: tuple[str, ...] = ()
    restrict_working_directory: bool = True
    command_timeout: float = 30
    enable_injection_protection: bool = True
    max_output_chars: int = 200_000

    @classmethod
    def create(
        cls,
        *,
        max_command_length: int = 2000,
        blocked_commands: Iterable[str] = (),
        blocked_arguments: Iterable[str] = (),
        allowed_paths: Iterable[str] = (),
        restrict_working_directory: bool = True,
        command_timeout: float = 30,
        enable_injection_protection: bool = True,
        max_output_chars: int = 200_000,
    ) -> "SecurityPolicy":
        from shellgate.exec.paths import canonicalize_roots

        return cls(
            max_command_length=max_command_length,
            blocked_commands=frozenset(c.casefold() for c in blocked_commands if c),
            blocked_arguments=frozenset(a.casefold() for a in blocked_arguments if a),
            allowed_paths=tuple(canonicalize_roots(list(allowed_paths))),
            restrict_working_directory=restrict_working_directory,
            command_timeout=command_timeout,
            enable_injection_protection=enable_injection_protection,
            max_output_chars=max_output_chars,
        )


@dataclass
class ParsedCommand:
    """A raw command split into executable and arguments."""
    executable: str
    args: list[str] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.executable


@dataclass
class ExecOutcome:
    """Result of one local or remote command run."""
    success: bool
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    shell: str | None = None
    working_dir: str | None = None
    connection_id: str | None = None

    @property
    def output(self) -> str:
        """Primary output: stdout, or stderr when stdout is empty."""
        return self.stdout or self.stderr

    @property
    def text(self) -> str:
        """Caller-facing message for this outcome."""
        if self.success:
            return self.output or NO_OUTPUT_MESSAGE

        message = f"Command failed with exit code {self.exit_code}\n"
        if self.stderr:
            message += f"Error output:\n{self.stderr}\n"
        if self.stdout:
            message += f"Standard output:\n{self.stdout}"
        if not self.stderr and not self.stdout:
            message += "No error message or output was provided"
        return message


@dataclass
class DirectoryCheck:
    """Result of checking directories against the allowed roots."""
    all_pass: bool
    failing: list[str] = field(default_factory=list)


@dataclass
class CommandHistoryEntry:
    """One recorded command execution."""
    command: str
    output: str
    exit_code: int
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    connection_id: str | None = None

    def to_dict(self) -> dict:
        data = {
            "command": self.command,
            "output": self.output,
            "timestamp": self.timestamp,
            "exitCode": self.exit_code,
        }
        if self.connection_id:
            data["connectionId"] = self.connection_id
        return data
