"""Command blocklist checks and validation chain."""

import re

from loguru import logger

from shellgate.exec.errors import (
    ArgumentBlockedError,
    CommandBlockedError,
    CommandTooLongError,
    EmptyCommandError,
    OperatorBlockedError,
    ValidationError,
)
from shellgate.exec.tokenizer import tokenize
from shellgate.exec.types import EXECUTABLE_SUFFIXES, ParsedCommand, SecurityPolicy, ShellProfile

# Commands blocked when no configuration overrides them
DEFAULT_BLOCKED_COMMANDS = (
    "rm", "del", "rmdir", "format",
    "shutdown", "restart",
    "reg", "regedit",
    "net", "netsh",
    "takeown", "icacls",
)

# Arguments that turn a harmless executable into an arbitrary code runner
DEFAULT_BLOCKED_ARGUMENTS = (
    "--exec", "-e", "/c", "-enc", "-encodedcommand", "-command",
    "--interactive", "-i", "--login", "--system",
)

_PATH_SPLIT = re.compile(r"[\\/]")


def extract_command_name(executable: str) -> str:
    """Strip directories and one executable suffix, case-folded."""
    name = _PATH_SPLIT.split(executable)[-1].casefold()
    for suffix in EXECUTABLE_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def is_command_blocked(executable: str, blocked_commands) -> bool:
    """
    Check whether an executable is on the blocklist.

    Matches the whole base name only: ``rm`` and ``C:\\Windows\\RM.EXE``
    are blocked by ``rm`` while ``warm_dir`` is not.
    """
    name = extract_command_name(executable)
    if not name:
        return False
    for blocked in blocked_commands:
        blocked = blocked.casefold()
        if name == blocked or any(name == f"{blocked}{suffix}" for suffix in EXECUTABLE_SUFFIXES):
            return True
    return False


def find_blocked_argument(args: list[str], blocked_arguments) -> str | None:
    """Return the first argument that equals a blocked pattern, if any."""
    blocked = {pattern.casefold() for pattern in blocked_arguments}
    for arg in args:
        if arg.casefold() in blocked:
            return arg
    return None


def is_argument_blocked(args: list[str], blocked_arguments) -> bool:
    """True iff any single argument equals a blocked pattern (full-token match)."""
    return find_blocked_argument(args, blocked_arguments) is not None


def check_operators(command: str, shell: ShellProfile, enabled: bool = True) -> None:
    """
    Reject raw commands containing any of the shell's blocked operators.

    This is a plain substring check on the untokenized string, so an
    operator inside quotes is rejected too.
    """
    if not enabled or not shell.blocked_operators:
        return

    for operator in shell.blocked_operators:
        if operator and operator in command:
            raise OperatorBlockedError(operator, shell.name)


def check_command_length(command: str, max_length: int) -> None:
    if len(command) > max_length:
        raise CommandTooLongError(len(command), max_length)


def validate_command(command: str, shell: ShellProfile, policy: SecurityPolicy) -> ParsedCommand:
    """
    Run the full validation chain for one raw command.

    Order: length, shell operators, empty command, blocked executable,
    blocked arguments. Raises the first violation found.
    """
    try:
        check_command_length(command, policy.max_command_length)
        check_operators(command, shell, policy.enable_injection_protection)

        parsed = tokenize(command)
        if parsed.is_empty:
            raise EmptyCommandError()

        if is_command_blocked(parsed.executable, policy.blocked_commands):
            raise CommandBlockedError(extract_command_name(parsed.executable))

        blocked_arg = find_blocked_argument(parsed.args, policy.blocked_arguments)
        if blocked_arg is not None:
            raise ArgumentBlockedError(blocked_arg)
    except ValidationError as e:
        logger.warning(f"Command rejected ({e.code}) for shell {shell.name}: {command[:80]}")
        raise

    return parsed
