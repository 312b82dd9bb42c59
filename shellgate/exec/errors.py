"""Error taxonomy for validation, execution and SSH transport failures."""


class ShellGateError(Exception):
    """Base class for every failure raised by shellgate."""

    code = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ── Validation ──────────────────────────────────────────────────────
# Raised before any process or transport is touched. Never retried.


class ValidationError(ShellGateError):
    code = "validation_error"


class CommandBlockedError(ValidationError):
    code = "command_blocked"

    def __init__(self, command_name: str):
        super().__init__(f'Command is blocked: "{command_name}"')
        self.command_name = command_name


class ArgumentBlockedError(ValidationError):
    code = "argument_blocked"

    def __init__(self, argument: str):
        super().__init__(
            f'Argument is blocked: "{argument}". '
            "Check configuration for blocked patterns (security.blockedArguments)."
        )
        self.argument = argument


class OperatorBlockedError(ValidationError):
    code = "operator_blocked"

    def __init__(self, operator: str, shell: str):
        super().__init__(
            f'Command contains blocked operator for {shell}: "{operator}". '
            "Run commands one at a time instead of chaining them."
        )
        self.operator = operator
        self.shell = shell


class CommandTooLongError(ValidationError):
    code = "command_too_long"

    def __init__(self, length: int, max_length: int):
        super().__init__(f"Command exceeds maximum length of {max_length} (got {length})")
        self.length = length
        self.max_length = max_length


class EmptyCommandError(ValidationError):
    code = "empty_command"

    def __init__(self):
        super().__init__("Command is empty")


class PathNotAbsoluteError(ValidationError):
    code = "path_not_absolute"

    def __init__(self, path: str):
        super().__init__(
            f"Working directory must be an absolute path (drive letter or UNC): {path}"
        )
        self.path = path


class PathOutsideAllowedRootsError(ValidationError):
    code = "path_outside_allowed_roots"

    def __init__(self, paths: list[str], allowed_paths: list[str]):
        allowed = ", ".join(allowed_paths) or "(none)"
        if len(paths) == 1:
            message = (
                f"The following directory is outside allowed paths: {paths[0]}. "
                f"Allowed paths are: {allowed}. "
                "Commands with restricted directory are not allowed to execute."
            )
        else:
            message = (
                f"The following directories are outside allowed paths: {', '.join(paths)}. "
                f"Allowed paths are: {allowed}. "
                "Commands with restricted directories are not allowed to execute."
            )
        super().__init__(message)
        self.paths = paths
        self.allowed_paths = allowed_paths


class UnknownShellError(ValidationError):
    code = "unknown_shell"

    def __init__(self, shell: str, available: list[str]):
        super().__init__(
            f"Unknown or disabled shell: {shell}. Available shells: {', '.join(available) or '(none)'}"
        )
        self.shell = shell


class UnknownConnectionError(ValidationError):
    code = "unknown_connection"

    def __init__(self, connection_id: str):
        super().__init__(f"Unknown SSH connection ID: {connection_id}")
        self.connection_id = connection_id


class MissingCredentialError(ValidationError):
    code = "missing_credential"

    def __init__(self, connection_id: str):
        super().__init__(
            f"No authentication method provided for SSH connection {connection_id} "
            "(set password or privateKeyPath)"
        )
        self.connection_id = connection_id


class SSHDisabledError(ValidationError):
    code = "ssh_disabled"

    def __init__(self):
        super().__init__("SSH support is disabled in configuration")


class SessionLimitError(ValidationError):
    code = "session_limit"

    def __init__(self, max_sessions: int):
        super().__init__(f"Maximum number of concurrent SSH sessions reached ({max_sessions})")
        self.max_sessions = max_sessions


class HistoryDisabledError(ValidationError):
    code = "history_disabled"

    def __init__(self):
        super().__init__(
            "Command history is disabled in configuration (security.logCommands)."
        )


# ── Execution ───────────────────────────────────────────────────────


class ExecutionError(ShellGateError):
    code = "execution_error"


class SpawnFailedError(ExecutionError):
    code = "spawn_failed"

    def __init__(self, command: str, reason: str):
        super().__init__(
            f"Failed to start shell process {command}: {reason}. "
            "Check the shell configuration (shells)."
        )
        self.command = command
        self.reason = reason


class StreamInitError(ExecutionError):
    code = "stream_init_failed"

    def __init__(self):
        super().__init__("Failed to initialize shell process streams")


class CommandTimeoutError(ExecutionError):
    code = "timeout"

    def __init__(self, timeout: float, pid: int | None = None):
        super().__init__(
            f"Command execution timed out after {timeout:g} seconds "
            "(security.commandTimeout)."
        )
        self.timeout = timeout
        self.pid = pid


# ── SSH transport ───────────────────────────────────────────────────


class TransportError(ShellGateError):
    code = "transport_error"


class ConnectFailedError(TransportError):
    code = "connect_failed"

    def __init__(self, host: str, reason: str):
        super().__init__(f"SSH connection to {host} failed: {reason}")
        self.host = host


class ReadyTimeoutError(TransportError):
    code = "ready_timeout"

    def __init__(self, host: str, timeout_ms: int):
        super().__init__(f"SSH connection to {host} not ready after {timeout_ms} ms")
        self.host = host
        self.timeout_ms = timeout_ms


class ConnectionLostError(TransportError):
    code = "connection_lost"

    def __init__(self, connection_id: str):
        super().__init__(f"SSH connection {connection_id} was lost while a command was running")
        self.connection_id = connection_id


class RemoteCommandFailedError(TransportError):
    code = "remote_command_failed"

    def __init__(self, connection_id: str, reason: str):
        super().__init__(f"Remote command on {connection_id} failed: {reason}")
        self.connection_id = connection_id
