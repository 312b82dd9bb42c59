"""Tests for blocklists, operator checks and the validation chain."""

import pytest

from shellgate.exec.errors import (
    ArgumentBlockedError,
    CommandBlockedError,
    CommandTooLongError,
    EmptyCommandError,
    OperatorBlockedError,
    ValidationError,
)
from shellgate.exec.safety import (
    DEFAULT_BLOCKED_ARGUMENTS,
    DEFAULT_BLOCKED_COMMANDS,
    check_operators,
    extract_command_name,
    find_blocked_argument,
    is_argument_blocked,
    is_command_blocked,
    validate_command,
)
from shellgate.exec.types import SecurityPolicy, ShellProfile

CMD = ShellProfile(name="cmd", command="cmd.exe", args=("/c",), blocked_operators=("&", "|", ";", "`"))
POWERSHELL = ShellProfile(
    name="powershell",
    command="powershell.exe",
    args=("-NoProfile", "-NonInteractive", "-Command"),
    blocked_operators=("&", ";", "`"),
)


@pytest.fixture
def policy() -> SecurityPolicy:
    return SecurityPolicy.create(
        max_command_length=100,
        blocked_commands=DEFAULT_BLOCKED_COMMANDS,
        blocked_arguments=DEFAULT_BLOCKED_ARGUMENTS,
        allowed_paths=["C:\\Users\\test"],
    )


# ── Blocked commands ────────────────────────────────────────────────


class TestExtractCommandName:
    def test_strips_directories_and_suffix(self):
        assert extract_command_name("C:\\Windows\\System32\\DEL.EXE") == "del"

    def test_forward_slashes(self):
        assert extract_command_name("/usr/bin/rm") == "rm"

    def test_only_one_suffix(self):
        assert extract_command_name("tool.bat.exe") == "tool.bat"

    def test_unknown_suffix_kept(self):
        assert extract_command_name("script.ps1") == "script.ps1"


class TestIsCommandBlocked:
    @pytest.mark.parametrize("executable", [
        "rm",
        "RM",
        "rm.exe",
        "C:\\Windows\\System32\\del.exe",
        "/usr/bin/rm",
        "Format.COM.exe",
        "shutdown.cmd",
        "REG.bat",
    ])
    def test_blocked(self, executable):
        blocked = DEFAULT_BLOCKED_COMMANDS + ("format.com",)
        assert is_command_blocked(executable, blocked)

    @pytest.mark.parametrize("executable", [
        "warm_dir",
        "rmdir2",
        "format-table",
        "delta",
        "dir",
        "C:\\rm\\tool.exe",
        "",
    ])
    def test_not_blocked(self, executable):
        assert not is_command_blocked(executable, DEFAULT_BLOCKED_COMMANDS)

    def test_configured_name_case_insensitive(self):
        assert is_command_blocked("curl", ["CURL"])


class TestBlockedArguments:
    @pytest.mark.parametrize("arg", ["-e", "-E", "--exec", "/c", "/C", "-EncodedCommand", "--system"])
    def test_blocked(self, arg):
        assert is_argument_blocked(["x", arg], DEFAULT_BLOCKED_ARGUMENTS)

    @pytest.mark.parametrize("arg", ["--exec-path", "-ee", "/cd", "echo", "-command:x"])
    def test_full_token_only(self, arg):
        assert not is_argument_blocked([arg], DEFAULT_BLOCKED_ARGUMENTS)

    def test_returns_original_spelling(self):
        assert find_blocked_argument(["ok", "-Command", "-e"], DEFAULT_BLOCKED_ARGUMENTS) == "-Command"

    def test_no_args(self):
        assert find_blocked_argument([], DEFAULT_BLOCKED_ARGUMENTS) is None


# ── Operators ───────────────────────────────────────────────────────


class TestCheckOperators:
    @pytest.mark.parametrize("command,operator", [
        ("dir & del x", "&"),
        ("type a | more", "|"),
        ("echo a; echo b", ";"),
        ("echo `whoami`", "`"),
        ("dir && del x", "&"),
    ])
    def test_cmd_operators(self, command, operator):
        with pytest.raises(OperatorBlockedError) as exc:
            check_operators(command, CMD)
        assert exc.value.operator == operator
        assert exc.value.shell == "cmd"

    def test_operator_inside_quotes_still_blocked(self):
        with pytest.raises(OperatorBlockedError):
            check_operators('echo "a & b"', CMD)

    def test_pipe_allowed_in_powershell(self):
        check_operators("Get-Process | Sort-Object CPU", POWERSHELL)

    def test_protection_disabled(self):
        check_operators("dir & del x", CMD, enabled=False)

    def test_shell_without_operators(self):
        check_operators("a & b | c", ShellProfile(name="raw", command="raw.exe"))


# ── Validation chain ────────────────────────────────────────────────


class TestValidateCommand:
    def test_valid(self, policy):
        parsed = validate_command('git commit -m "fix bug"', CMD, policy)
        assert parsed.executable == "git"
        assert parsed.args == ["commit", "-m", "fix bug"]

    def test_blocked_command(self, policy):
        with pytest.raises(CommandBlockedError) as exc:
            validate_command("del important.txt", CMD, policy)
        assert exc.value.command_name == "del"
        assert exc.value.code == "command_blocked"

    def test_blocked_command_in_spaced_path(self, policy):
        with pytest.raises(CommandBlockedError):
            validate_command("C:\\Program Files\\Tools\\rm.exe -rf x", CMD, policy)

    def test_blocked_argument(self, policy):
        with pytest.raises(ArgumentBlockedError) as exc:
            validate_command("node -e process.exit()", CMD, policy)
        assert exc.value.argument == "-e"

    def test_too_long(self, policy):
        with pytest.raises(CommandTooLongError) as exc:
            validate_command("echo " + "x" * 200, CMD, policy)
        assert exc.value.max_length == 100

    def test_exactly_max_length_passes(self, policy):
        command = "echo " + "x" * 95
        assert len(command) == 100
        validate_command(command, CMD, policy)

    def test_empty(self, policy):
        with pytest.raises(EmptyCommandError):
            validate_command("   ", CMD, policy)

    def test_length_checked_before_operators(self, policy):
        with pytest.raises(CommandTooLongError):
            validate_command("del & " + "x" * 200, CMD, policy)

    def test_operators_checked_before_blocklist(self, policy):
        with pytest.raises(OperatorBlockedError):
            validate_command("del x & echo", CMD, policy)

    def test_command_checked_before_arguments(self, policy):
        with pytest.raises(CommandBlockedError):
            validate_command("rm -e", CMD, policy)

    def test_all_errors_are_validation_errors(self, policy):
        for command in ["del x", "node -e 1", "a & b", ""]:
            with pytest.raises(ValidationError):
                validate_command(command, CMD, policy)
