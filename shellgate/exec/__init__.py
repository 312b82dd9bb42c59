"""Policy-checked command execution."""

from shellgate.exec.types import (
    ShellProfile,
    SecurityPolicy,
    ParsedCommand,
    ExecOutcome,
    DirectoryCheck,
    CommandHistoryEntry,
)
from shellgate.exec.tokenizer import tokenize
from shellgate.exec.paths import (
    normalize_path,
    is_absolute_path,
    canonicalize_roots,
    is_path_allowed,
    enforce_working_directory,
    validate_directories,
    validate_directories_or_raise,
)
from shellgate.exec.safety import (
    extract_command_name,
    is_command_blocked,
    is_argument_blocked,
    check_operators,
    validate_command,
    DEFAULT_BLOCKED_COMMANDS,
    DEFAULT_BLOCKED_ARGUMENTS,
)
from shellgate.exec.executor import execute_local

__all__ = [
    "ShellProfile",
    "SecurityPolicy",
    "ParsedCommand",
    "ExecOutcome",
    "DirectoryCheck",
    "CommandHistoryEntry",
    "tokenize",
    "normalize_path",
    "is_absolute_path",
    "canonicalize_roots",
    "is_path_allowed",
    "enforce_working_directory",
    "validate_directories",
    "validate_directories_or_raise",
    "extract_command_name",
    "is_command_blocked",
    "is_argument_blocked",
    "check_operators",
    "validate_command",
    "DEFAULT_BLOCKED_COMMANDS",
    "DEFAULT_BLOCKED_ARGUMENTS",
    "execute_local",
]
