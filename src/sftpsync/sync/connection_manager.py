"""
Connection manager: owns the one live SFTP session and its reconnect loop.

connect() builds a brand-new session, and on success arms the reconciliation
scheduler (which runs a cycle immediately). Any connection-class failure ends
up in reconnect(), which tears the session down, waits a fixed delay and
connects again, forever. While a reconnect is in flight further reconnect()
calls are no-ops.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from sftpsync.connections.sftp import SFTPConfig, SFTPSession
from sftpsync.exceptions import RemoteConnectionError
from sftpsync.sync.types import DEFAULT_RECONNECT_DELAY_S, SessionState
from sftpsync.utils.logging import get_logger

logger = get_logger("sftpsync.sync.connection_manager")

SessionFactory = Callable[[], Any]


class ConnectionManager:
    """
    Exclusive owner of the SFTP session.

    Other components borrow `session` for the duration of one call and never
    keep it across cycles; a reconnect replaces it with a new object.

    Args:
        sftp_config: Connection settings for new sessions
        reconnect_delay_s: Fixed wait between teardown and the next connect attempt
        operation_timeout_s: Bound for each remote listing/download call
        session_factory: Builds an unconnected session (default: SFTPSession)
    """

    def __init__(
        self,
        sftp_config: SFTPConfig,
        *,
        reconnect_delay_s: float = DEFAULT_RECONNECT_DELAY_S,
        operation_timeout_s: float = 300.0,
        session_factory: SessionFactory | None = None,
    ):
        if reconnect_delay_s < 0:
            raise ValueError("reconnect_delay_s must be >= 0")
        self.sftp_config = sftp_config
        self.reconnect_delay_s = reconnect_delay_s
        self.session_factory: SessionFactory = session_factory or (
            lambda: SFTPSession(sftp_config, operation_timeout_s=operation_timeout_s)
        )
        self.on_connected: list[Callable[[], Any]] = []
        self.on_disconnected: list[Callable[[], Any]] = []

        self._session: Any = None
        self._reconnecting = False
        self._reconnect_task: asyncio.Task | None = None
        self._teardown_tasks: set[asyncio.Task] = set()
        self._closed = False
        self.connect_attempts = 0

    @property
    def session(self) -> Any:
        return self._session

    @property
    def state(self) -> SessionState:
        if self._session is None:
            return SessionState.DISCONNECTED
        return self._session.state

    @property
    def reconnecting(self) -> bool:
        return self._reconnecting

    async def connect(self) -> bool:
        """
        Establish a new session.

        Returns True when connected. On failure the error is logged and a
        reconnect is scheduled; nothing is raised.
        """
        if self._closed:
            return False
        self.connect_attempts += 1
        session = self.session_factory()
        self._session = session
        try:
            await session.connect()
        except RemoteConnectionError as e:
            logger.error(f"SFTP connection error: {e.message}")
            self.reconnect(reason=e.message)
            return False

        logger.info(f"Connected to SFTP {self.sftp_config.host}:{self.sftp_config.port}; session kept open")
        for callback in self.on_connected:
            self._run_callback(callback, "connected")
        return True

    async def connect_once(self) -> None:
        """
        Establish a session without the reconnect loop.

        Raises:
            RemoteConnectionError: connection failed
        """
        session = self.session_factory()
        await session.connect()
        self._session = session
        logger.info(f"Connected to SFTP {self.sftp_config.host}:{self.sftp_config.port}")

    def reconnect(self, reason: str | None = None) -> asyncio.Task | None:
        """
        Schedule teardown + delayed reconnect.

        Returns the background task, or None when a reconnect is already in
        flight (or the manager is closed).
        """
        if self._reconnecting or self._closed:
            logger.debug(f"Reconnect already in progress or manager closed; ignoring ({reason})")
            return None
        self._reconnecting = True

        logger.warning(f"Trying to reconnect to SFTP in {self.reconnect_delay_s:g}s...")
        for callback in self.on_disconnected:
            self._run_callback(callback, "disconnected")

        old_session, self._session = self._session, None
        self._reconnect_task = asyncio.create_task(self._reconnect_after_delay(old_session), name="sftpsync-reconnect")
        return self._reconnect_task

    async def _reconnect_after_delay(self, old_session: Any) -> None:
        if old_session is not None:
            # Teardown runs in the background; it must not delay the retry timer
            teardown = asyncio.create_task(self._teardown(old_session))
            self._teardown_tasks.add(teardown)
            teardown.add_done_callback(self._teardown_tasks.discard)
        try:
            await asyncio.sleep(self.reconnect_delay_s)
        finally:
            self._reconnecting = False
        await self.connect()

    async def _teardown(self, session: Any) -> None:
        try:
            await session.close()
        except Exception as e:
            logger.debug(f"Ignoring error while closing old SFTP session: {e}")

    def _run_callback(self, callback: Callable[[], Any], event: str) -> None:
        try:
            callback()
        except Exception as e:
            logger.error(f"Error in {event} callback: {e}", exc_info=True)

    async def close(self) -> None:
        """Stop reconnecting and close the current session."""
        self._closed = True
        task = self._reconnect_task
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self._reconnect_task = None
        self._reconnecting = False
        for callback in self.on_disconnected:
            self._run_callback(callback, "disconnected")
        session, self._session = self._session, None
        if session is not None:
            await self._teardown(session)
