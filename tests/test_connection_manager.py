"""
Tests for the connection manager's reconnect loop.
"""

import asyncio
import logging

import pytest
from conftest import FakeSession

from sftpsync.connections.sftp import SFTPConfig
from sftpsync.exceptions import RemoteConnectionError
from sftpsync.sync.connection_manager import ConnectionManager
from sftpsync.sync.types import SessionState


def factory_of(*sessions):
    it = iter(sessions)
    return lambda: next(it)


def make_manager(*sessions, delay=0.01):
    return ConnectionManager(
        SFTPConfig(host="sftp.example.com", username="user", password="secret"),
        reconnect_delay_s=delay,
        session_factory=factory_of(*sessions),
    )


class TestConnect:
    @pytest.mark.asyncio
    async def test_successful_connect_fires_callbacks(self):
        manager = make_manager(FakeSession())
        events = []
        manager.on_connected.append(lambda: events.append("up"))

        assert await manager.connect() is True

        assert manager.state is SessionState.CONNECTED
        assert events == ["up"]
        assert manager.reconnecting is False
        await manager.close()

    @pytest.mark.asyncio
    async def test_failed_connect_schedules_retry(self, caplog):
        first = FakeSession(fail_connect=True)
        second = FakeSession()
        manager = make_manager(first, second)
        events = []
        manager.on_connected.append(lambda: events.append("up"))

        with caplog.at_level(logging.INFO, logger="sftpsync"):
            assert await manager.connect() is False
            assert manager.reconnecting is True
            await manager._reconnect_task

        assert manager.connect_attempts == 2
        assert manager.session is second
        assert manager.state is SessionState.CONNECTED
        assert events == ["up"]
        assert "SFTP connection error: connection refused" in caplog.text
        assert "Trying to reconnect to SFTP" in caplog.text
        await manager.close()

    @pytest.mark.asyncio
    async def test_connect_once_raises_without_retry(self):
        manager = make_manager(FakeSession(fail_connect=True))

        with pytest.raises(RemoteConnectionError):
            await manager.connect_once()

        assert manager.reconnecting is False
        assert manager.session is None
        assert manager.state is SessionState.DISCONNECTED


class TestReconnect:
    @pytest.mark.asyncio
    async def test_second_reconnect_while_in_flight_is_ignored(self):
        manager = make_manager(FakeSession(), FakeSession())
        await manager.connect()

        task = manager.reconnect("list failed")
        assert task is not None
        assert manager.reconnect("download failed") is None

        await task
        assert manager.connect_attempts == 2
        await manager.close()

    @pytest.mark.asyncio
    async def test_session_is_replaced_and_old_one_closed(self):
        old = FakeSession()
        new = FakeSession()
        manager = make_manager(old, new)
        await manager.connect()

        task = manager.reconnect("socket closed")
        assert manager.session is None
        await task
        # Let the background teardown finish
        await asyncio.sleep(0)

        assert manager.session is new
        assert old.closed is True
        assert new.closed is False
        await manager.close()

    @pytest.mark.asyncio
    async def test_disconnected_callbacks_fire(self):
        manager = make_manager(FakeSession(), FakeSession())
        events = []
        manager.on_disconnected.append(lambda: events.append("down"))
        await manager.connect()

        await manager.reconnect("boom")

        assert events == ["down"]
        await manager.close()

    @pytest.mark.asyncio
    async def test_teardown_errors_are_ignored(self):
        class BrokenClose(FakeSession):
            async def close(self):
                raise OSError("already closed")

        manager = make_manager(BrokenClose(), FakeSession())
        await manager.connect()

        await manager.reconnect("boom")
        await asyncio.sleep(0)

        assert manager.state is SessionState.CONNECTED
        await manager.close()

    @pytest.mark.asyncio
    async def test_keeps_retrying_until_success(self):
        sessions = [FakeSession(fail_connect=True) for _ in range(3)] + [FakeSession()]
        manager = make_manager(*sessions)

        await manager.connect()
        for _ in range(50):
            if manager.state is SessionState.CONNECTED:
                break
            await asyncio.sleep(0.01)

        assert manager.state is SessionState.CONNECTED
        assert manager.connect_attempts == 4
        await manager.close()

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            ConnectionManager(SFTPConfig(host="h"), reconnect_delay_s=-1)


class TestClose:
    @pytest.mark.asyncio
    async def test_close_cancels_pending_reconnect(self):
        manager = make_manager(FakeSession(fail_connect=True), FakeSession(), delay=10)
        await manager.connect()
        task = manager._reconnect_task

        await manager.close()

        assert task.cancelled()
        assert manager.reconnecting is False
        assert manager.connect_attempts == 1

    @pytest.mark.asyncio
    async def test_reconnect_after_close_is_noop(self):
        session = FakeSession()
        manager = make_manager(session)
        await manager.connect()

        await manager.close()

        assert session.closed is True
        assert manager.reconnect("late failure") is None
        assert await manager.connect() is False
