"""Pool of SSH sessions keyed by connection id."""

import asyncio
from typing import Any, Callable

from loguru import logger

from shellgate.exec.errors import SessionLimitError
from shellgate.exec.types import ExecOutcome
from shellgate.ssh.session import SSHSession
from shellgate.ssh.types import SSHConnectionProfile


class SSHConnectionPool:
    """
    Lazily creates and reuses one SSHSession per connection id.

    The session map is guarded by a lock so simultaneous first calls for
    the same id share a single session (and therefore a single connect).
    Different ids never wait on each other once their session exists.
    """

    def __init__(
        self,
        max_sessions: int = 5,
        session_factory: Callable[..., SSHSession] = SSHSession,
        **session_options: Any,
    ):
        self.max_sessions = max_sessions
        self._session_factory = session_factory
        self._session_options = session_options
        self._sessions: dict[str, SSHSession] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, connection_id: str) -> bool:
        return connection_id in self._sessions

    def active_ids(self) -> list[str]:
        """Connection ids whose session is currently connected."""
        return [cid for cid, session in self._sessions.items() if session.is_active]

    async def get_session(self, connection_id: str, profile: SSHConnectionProfile) -> SSHSession:
        """
        Return a connected session for ``connection_id``.

        Raises SessionLimitError when a new session would exceed
        ``max_sessions``, or the session's connect errors.
        """
        stale: SSHSession | None = None

        async with self._lock:
            session = self._sessions.get(connection_id)
            if session is not None and session.profile != profile:
                # Connection settings changed since the session was created
                stale = self._sessions.pop(connection_id)
                session = None

            if session is None:
                if self.max_sessions and len(self._sessions) >= self.max_sessions:
                    logger.warning(f"SSH session limit reached, rejecting {connection_id}")
                    raise SessionLimitError(self.max_sessions)
                session = self._session_factory(connection_id, profile, **self._session_options)
                self._sessions[connection_id] = session

        if stale is not None:
            await stale.disconnect()

        if not session.is_active:
            await session.connect()
        return session

    async def execute(
        self,
        connection_id: str,
        profile: SSHConnectionProfile,
        command: str,
        timeout: float | None = None,
    ) -> ExecOutcome:
        session = await self.get_session(connection_id, profile)
        return await session.run(command, timeout=timeout)

    async def disconnect(self, connection_id: str) -> bool:
        """Close and forget a session. Returns False if there was none."""
        async with self._lock:
            session = self._sessions.pop(connection_id, None)
        if session is None:
            return False
        await session.disconnect()
        return True

    async def close_all(self) -> None:
        """Tear down every session without reconnecting (process shutdown)."""
        async with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        if sessions:
            await asyncio.gather(*(session.disconnect() for session in sessions))
            logger.info(f"Closed {len(sessions)} SSH session(s)")
