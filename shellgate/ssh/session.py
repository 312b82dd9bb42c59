"""A single pooled SSH session with explicit lifecycle and reconnect timer."""

import asyncio
import io
import time
from pathlib import Path
from typing import Any, Callable

import paramiko
from loguru import logger

from shellgate.exec.errors import (
    ConnectFailedError,
    ConnectionLostError,
    MissingCredentialError,
    ReadyTimeoutError,
    RemoteCommandFailedError,
    ShellGateError,
)
from shellgate.exec.types import ExecOutcome
from shellgate.ssh.types import SessionState, SSHConnectionProfile, TransportEvent

RECONNECT_DELAY_SECONDS = 5.0
ACTIVITY_WINDOW_SECONDS = 30 * 60

_BUFFER_SIZE = 4096
_POLL_INTERVAL = 0.05
_KEY_TYPES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)


def load_private_key(key_text: str) -> paramiko.PKey:
    """Parse private key content, trying each supported key type."""
    errors = []
    for key_type in _KEY_TYPES:
        try:
            return key_type.from_private_key(io.StringIO(key_text))
        except paramiko.SSHException as e:
            errors.append(f"{key_type.__name__}: {e}")
    raise paramiko.SSHException("Unsupported private key format (" + "; ".join(errors) + ")")


class SSHSession:
    """
    One logical SSH connection identified by a connection id.

    State machine: disconnected -> connecting -> connected -> disconnected.
    An unexpected transport error/end/close schedules exactly one reconnect
    attempt after ``reconnect_delay`` seconds, but only when the session was
    used within ``activity_window`` seconds. ``disconnect`` cancels any
    pending reconnect and no reconnect is ever scheduled afterwards.

    Commands are serialized per session. Blocking paramiko calls run in
    worker threads.
    """

    def __init__(
        self,
        connection_id: str,
        profile: SSHConnectionProfile,
        *,
        client_factory: Callable[[], Any] = paramiko.SSHClient,
        reconnect_delay: float = RECONNECT_DELAY_SECONDS,
        activity_window: float = ACTIVITY_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.connection_id = connection_id
        self.profile = profile
        self.reconnect_delay = reconnect_delay
        self.activity_window = activity_window
        self.state: SessionState = "disconnected"
        self.reconnect_attempts = 0

        self._client_factory = client_factory
        self._clock = clock
        self.last_activity = clock()

        self._client: Any = None
        self._closed = False
        self._generation = 0
        self._connect_lock = asyncio.Lock()
        self._run_lock = asyncio.Lock()
        self._reconnect_handle: asyncio.TimerHandle | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._watchdog: asyncio.Task | None = None

    @property
    def is_active(self) -> bool:
        return self.state == "connected"

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    # ── Connection ──────────────────────────────────────────────────

    def _connect_kwargs(self) -> dict[str, Any]:
        """Build paramiko connect arguments, resolving exactly one credential."""
        profile = self.profile
        ready_timeout = profile.ready_timeout_ms / 1000
        kwargs: dict[str, Any] = {
            "hostname": profile.host,
            "port": profile.port,
            "username": profile.username,
            "timeout": ready_timeout,
            "banner_timeout": ready_timeout,
            "auth_timeout": ready_timeout,
            "allow_agent": False,
            "look_for_keys": False,
        }

        if profile.private_key_path:
            key_path = Path(profile.private_key_path).expanduser()
            try:
                key_text = key_path.read_text(encoding="utf-8")
                kwargs["pkey"] = load_private_key(key_text)
            except (OSError, paramiko.SSHException) as e:
                raise ConnectFailedError(profile.host, f"cannot load private key {key_path}: {e}") from e
        elif profile.password:
            kwargs["password"] = profile.password
        else:
            raise MissingCredentialError(self.connection_id)

        return kwargs

    def _open_client(self, kwargs: dict[str, Any]) -> Any:
        client = self._client_factory()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        try:
            client.connect(**kwargs)
        except TimeoutError as e:
            client.close()
            raise ReadyTimeoutError(self.profile.host, self.profile.ready_timeout_ms) from e
        except (paramiko.SSHException, OSError) as e:
            client.close()
            raise ConnectFailedError(self.profile.host, str(e)) from e

        transport = client.get_transport()
        if transport is not None and self.profile.keepalive_interval_ms > 0:
            transport.set_keepalive(max(1, self.profile.keepalive_interval_ms // 1000))
        return client

    async def connect(self) -> None:
        """
        Connect if not already connected.

        Concurrent callers share one attempt. Raises MissingCredentialError,
        ConnectFailedError or ReadyTimeoutError, and ConnectionLostError if
        the session was disconnected before or during the attempt.
        """
        async with self._connect_lock:
            if self._closed:
                raise ConnectionLostError(self.connection_id)
            if self.state == "connected":
                return

            generation = self._generation
            self.state = "connecting"
            logger.info(f"Connecting to {self.profile.host}:{self.profile.port} ({self.connection_id})")

            try:
                kwargs = self._connect_kwargs()
                client = await asyncio.to_thread(self._open_client, kwargs)
            except BaseException:
                if self._generation == generation:
                    self.state = "disconnected"
                raise

            if self._closed or self._generation != generation:
                # Torn down while the handshake was in progress
                await asyncio.to_thread(self._close_quietly, client)
                self.state = "disconnected"
                logger.info(f"Discarding connection to {self.profile.host}: session was disconnected")
                raise ConnectionLostError(self.connection_id)

            self._client = client
            self.state = "connected"
            self.last_activity = self._clock()
            self._start_watchdog()
            logger.info(f"SSH connection ready for {self.profile.host} ({self.connection_id})")

    async def disconnect(self) -> None:
        """Tear the session down for good: no reconnect will follow."""
        self._closed = True
        self._cancel_reconnect()
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = None

        client = self._mark_disconnected()
        if client is not None:
            await asyncio.to_thread(client.close)
        logger.info(f"Disconnected from {self.profile.host} ({self.connection_id})")

    def _mark_disconnected(self) -> Any:
        """Drop the current transport; in-flight commands see ConnectionLostError."""
        self._generation += 1
        self.state = "disconnected"
        if self._watchdog is not None and self._watchdog is not asyncio.current_task():
            self._watchdog.cancel()
        self._watchdog = None
        client, self._client = self._client, None
        return client

    # ── Transport events and reconnect ──────────────────────────────

    def handle_transport_event(self, event: TransportEvent, detail: str = "") -> None:
        """React to the transport reporting error, end or close."""
        if self._closed:
            logger.debug(f"Ignoring SSH {event} for {self.connection_id}: session was disconnected")
            return

        suffix = f": {detail}" if detail else ""
        logger.warning(f"SSH connection {event} for {self.profile.host}{suffix}")

        client = self._mark_disconnected()
        if client is not None:
            asyncio.get_running_loop().run_in_executor(None, self._close_quietly, client)

        self._schedule_reconnect()

    def _close_quietly(self, client: Any) -> None:
        try:
            client.close()
        except (paramiko.SSHException, OSError) as e:
            logger.debug(f"Error closing dead SSH client for {self.connection_id}: {e}")

    def _schedule_reconnect(self) -> None:
        self._cancel_reconnect()

        idle = self._clock() - self.last_activity
        if idle >= self.activity_window:
            logger.info(f"Not reconnecting {self.connection_id}: idle for {idle:.0f}s")
            return

        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(self.reconnect_delay, self._start_reconnect)
        logger.info(f"Reconnect to {self.profile.host} scheduled in {self.reconnect_delay:g}s")

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    def _start_reconnect(self) -> None:
        self._reconnect_handle = None
        if self._closed:
            return
        self._reconnect_task = asyncio.get_running_loop().create_task(self._reconnect())

    async def _reconnect(self) -> None:
        self.reconnect_attempts += 1
        logger.info(f"Attempting to reconnect to {self.profile.host}...")
        try:
            await self.connect()
        except ShellGateError as e:
            # No further automatic retry; the next run() connects on demand
            logger.error(f"Reconnection failed for {self.profile.host}: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error reconnecting to {self.profile.host}: {e}")

    # ── Watchdog ────────────────────────────────────────────────────

    def _transport_alive(self) -> bool:
        client = self._client
        if client is None:
            return False
        transport = client.get_transport()
        return transport is not None and transport.is_active()

    def _start_watchdog(self) -> None:
        interval = self.profile.keepalive_interval_ms / 1000
        if interval <= 0:
            return
        self._watchdog = asyncio.get_running_loop().create_task(
            self._watch_transport(self._generation, interval)
        )

    async def _watch_transport(self, generation: int, interval: float) -> None:
        """Report a close after keepalive_count_max consecutive dead polls."""
        misses = 0
        while self._generation == generation:
            await asyncio.sleep(interval)
            if self._generation != generation:
                return
            if self._transport_alive():
                misses = 0
                continue
            misses += 1
            if misses >= max(1, self.profile.keepalive_count_max):
                self.handle_transport_event("close", "keepalive lost")
                return

    # ── Command execution ───────────────────────────────────────────

    def _exec_blocking(self, client: Any, command: str, timeout: float | None, generation: int) -> tuple[str, str, int]:
        try:
            _, stdout, _ = client.exec_command(command, timeout=timeout)
        except (paramiko.SSHException, OSError) as e:
            if self._generation != generation:
                raise ConnectionLostError(self.connection_id) from e
            raise RemoteCommandFailedError(self.connection_id, str(e)) from e

        channel = stdout.channel
        out: list[bytes] = []
        err: list[bytes] = []
        deadline = time.monotonic() + timeout if timeout else None

        while True:
            if self._generation != generation:
                channel.close()
                raise ConnectionLostError(self.connection_id)

            progressed = False
            if channel.recv_ready():
                out.append(channel.recv(_BUFFER_SIZE))
                progressed = True
            if channel.recv_stderr_ready():
                err.append(channel.recv_stderr(_BUFFER_SIZE))
                progressed = True
            if progressed:
                continue

            if channel.exit_status_ready():
                break
            if channel.closed:
                raise ConnectionLostError(self.connection_id)
            if deadline is not None and time.monotonic() > deadline:
                channel.close()
                raise RemoteCommandFailedError(self.connection_id, f"timed out after {timeout:g} seconds")
            time.sleep(_POLL_INTERVAL)

        exit_code = channel.recv_exit_status()
        if exit_code is None or exit_code < 0:
            # Server sent no exit status
            exit_code = 0

        return (
            b"".join(out).decode("utf-8", errors="replace"),
            b"".join(err).decode("utf-8", errors="replace"),
            exit_code,
        )

    async def run(self, command: str, timeout: float | None = None) -> ExecOutcome:
        """
        Execute a command on the remote host, connecting on demand.

        The outcome's ``output`` is stdout, falling back to stderr when
        stdout is empty; both streams are kept on the outcome.
        """
        self.last_activity = self._clock()

        async with self._run_lock:
            if self.state != "connected":
                await self.connect()

            generation = self._generation
            client = self._client
            started = time.monotonic()
            try:
                stdout, stderr, exit_code = await asyncio.to_thread(
                    self._exec_blocking, client, command, timeout, generation
                )
            except RemoteCommandFailedError:
                if self._generation == generation and not self._transport_alive():
                    self.handle_transport_event("error", "transport inactive after command failure")
                raise
            finally:
                self.last_activity = self._clock()

        duration_ms = int((time.monotonic() - started) * 1000)
        logger.debug(f"Remote command on {self.connection_id} exited with {exit_code} in {duration_ms}ms")

        return ExecOutcome(
            success=exit_code == 0,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            connection_id=self.connection_id,
        )
