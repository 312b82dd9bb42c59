"""Local shell process dispatcher with timeout enforcement."""

import asyncio
import os
import signal
import sys
import time

from loguru import logger

from shellgate.exec.errors import CommandTimeoutError, SpawnFailedError, StreamInitError
from shellgate.exec.types import ExecOutcome, ShellProfile


def _truncate(text: str, max_chars: int) -> str:
    if max_chars and len(text) > max_chars:
        return text[:max_chars] + f"\n... (truncated, {len(text)} total chars)"
    return text


def _kill(process: asyncio.subprocess.Process) -> None:
    """Forcibly terminate the process, including its children on POSIX."""
    if process.returncode is not None:
        return
    try:
        if sys.platform != "win32":
            os.killpg(process.pid, signal.SIGKILL)
        else:
            process.kill()
    except ProcessLookupError:
        pass


async def execute_local(
    shell: ShellProfile,
    command: str,
    working_dir: str,
    timeout_seconds: float,
    max_output_chars: int = 200_000,
) -> ExecOutcome:
    """
    Run an already-validated command through a shell profile.

    The child is ``[shell.command, *shell.args, command]`` started without
    any intermediate shell interpolation. Both output streams are drained
    concurrently while the timeout runs. Callers must have run the full
    validation chain first.

    Raises:
        SpawnFailedError: the shell executable could not be started.
        StreamInitError: the output pipes were not created.
        CommandTimeoutError: the process outlived ``timeout_seconds``; it has
            been killed and reaped before this is raised.
    """
    argv = [shell.command, *shell.args, command]
    started = time.monotonic()

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=working_dir,
            start_new_session=sys.platform != "win32",
        )
    except OSError as e:
        logger.error(f"Failed to spawn {shell.command}: {e}")
        raise SpawnFailedError(shell.command, str(e)) from e

    if process.stdout is None or process.stderr is None:
        _kill(process)
        await process.wait()
        raise StreamInitError()

    logger.debug(f"Spawned {shell.name} (pid={process.pid}) in {working_dir}")

    try:
        stdout, stderr = await asyncio.wait_for(
            process.communicate(),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        _kill(process)
        await process.wait()
        logger.warning(f"Command timed out after {timeout_seconds}s (pid={process.pid}): {command[:80]}")
        raise CommandTimeoutError(timeout_seconds, process.pid)
    except asyncio.CancelledError:
        _kill(process)
        await process.wait()
        raise

    duration_ms = int((time.monotonic() - started) * 1000)
    exit_code = process.returncode if process.returncode is not None else -1

    stdout_str = _truncate(stdout.decode("utf-8", errors="replace"), max_output_chars)
    stderr_str = _truncate(stderr.decode("utf-8", errors="replace"), max_output_chars)

    logger.debug(f"{shell.name} exited with {exit_code} in {duration_ms}ms")

    return ExecOutcome(
        success=exit_code == 0,
        exit_code=exit_code,
        stdout=stdout_str,
        stderr=stderr_str,
        duration_ms=duration_ms,
        shell=shell.name,
        working_dir=working_dir,
    )
