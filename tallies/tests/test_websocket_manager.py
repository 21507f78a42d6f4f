"""Tests for WebSocket Connection Manager."""

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

pytest.importorskip("fastapi")

from tallies.web.websocket import manager as manager_module
from tallies.web.websocket.manager import (
    ConnectionManager,
    EventType,
    _log_publish_failure,
    broadcast_counters_changed,
    broadcast_theme_change,
    broadcast_undo_available,
    encode_event,
    get_connection_manager,
    publish,
    send_counters_state,
    set_server_loop,
)


def test_encode_event():
    message = encode_event(EventType.COUNTERS_CHANGED, {"kind": "updated", "ids": ["a"]})
    assert json.loads(message) == {
        "type": "counters_changed",
        "data": {"kind": "updated", "ids": ["a"]},
    }


class TestConnectionManager:
    """Test ConnectionManager class."""

    @pytest.fixture
    def manager(self):
        return ConnectionManager()

    @pytest.mark.asyncio
    async def test_connect_and_disconnect(self, manager):
        ws = AsyncMock()
        await manager.connect(ws)
        assert ws.accept.called
        assert ws in manager
        assert len(manager) == 1

        await manager.disconnect(ws)
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_disconnect_not_connected(self, manager):
        await manager.disconnect(AsyncMock())
        assert len(manager) == 0

    @pytest.mark.asyncio
    async def test_broadcast(self, manager):
        ws1, ws2 = AsyncMock(), AsyncMock()
        await manager.connect(ws1)
        await manager.connect(ws2)

        await manager.broadcast("hello")

        ws1.send_text.assert_called_once_with("hello")
        ws2.send_text.assert_called_once_with("hello")

    @pytest.mark.asyncio
    async def test_broadcast_drops_failed_clients(self, manager):
        ws_good, ws_bad = AsyncMock(), AsyncMock()
        ws_bad.send_text.side_effect = Exception("Connection closed")
        await manager.connect(ws_good)
        await manager.connect(ws_bad)

        await manager.broadcast("hello")

        assert ws_bad not in manager
        assert ws_good in manager

    @pytest.mark.asyncio
    async def test_broadcast_without_clients(self, manager):
        # Should not raise
        await manager.broadcast("hello")


class TestPublish:
    """Test module-level broadcast functions."""

    def setup_method(self):
        set_server_loop(None)

    def teardown_method(self):
        set_server_loop(None)

    def test_get_connection_manager_singleton(self):
        assert get_connection_manager() is get_connection_manager()

    def test_publish_without_loop(self):
        """Without a registered loop, events are dropped."""
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            publish(EventType.THEME_CHANGE, {})
            mock_run.assert_not_called()

    def test_publish_with_stopped_loop(self):
        loop = MagicMock()
        loop.is_running.return_value = False
        set_server_loop(loop)
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            publish(EventType.THEME_CHANGE, {})
            mock_run.assert_not_called()

    def test_publish_schedules_on_loop(self):
        loop = MagicMock()
        loop.is_running.return_value = True
        set_server_loop(loop)
        with patch("asyncio.run_coroutine_threadsafe") as mock_run:
            publish(EventType.THEME_CHANGE, {})
            mock_run.assert_called_once()
            assert mock_run.call_args[0][1] is loop
            # Close the coroutine we never awaited
            mock_run.call_args[0][0].close()

    def test_publish_closed_loop(self):
        loop = MagicMock()
        loop.is_running.return_value = True
        set_server_loop(loop)
        with patch("asyncio.run_coroutine_threadsafe", side_effect=RuntimeError("closed")) as mock_run:
            # Should not raise
            publish(EventType.THEME_CHANGE, {})
        mock_run.call_args[0][0].close()

    @pytest.mark.parametrize(
        "call, event_type, data",
        [
            (lambda: broadcast_counters_changed("deleted", ["a"]),
             EventType.COUNTERS_CHANGED, {"kind": "deleted", "ids": ["a"]}),
            (lambda: broadcast_undo_available("a", "Water", 4000),
             EventType.UNDO_AVAILABLE, {"id": "a", "name": "Water", "remaining_ms": 4000}),
            (lambda: broadcast_theme_change("dark"),
             EventType.THEME_CHANGE, {"theme": "dark"}),
        ],
    )
    def test_helpers_publish_events(self, call, event_type, data):
        with patch.object(manager_module, "publish") as mock_publish:
            call()
            mock_publish.assert_called_once_with(event_type, data)

    def test_publish_failure_is_logged(self):
        future = MagicMock()
        future.cancelled.return_value = False
        future.exception.return_value = RuntimeError("boom")
        # Should not raise
        _log_publish_failure(future)

    @pytest.mark.asyncio
    async def test_send_counters_state(self):
        ws = AsyncMock()
        await send_counters_state(ws, [{"id": "a"}])
        sent = json.loads(ws.send_text.call_args[0][0])
        assert sent == {"type": "counters_state", "data": {"counters": [{"id": "a"}]}}

    @pytest.mark.asyncio
    async def test_publish_from_thread_reaches_clients(self):
        """An event published from a worker thread is delivered on the server loop."""
        manager = get_connection_manager()
        ws = AsyncMock()
        await manager.connect(ws)
        set_server_loop(asyncio.get_running_loop())
        try:
            await asyncio.to_thread(broadcast_theme_change, "dark")
            for _ in range(50):
                if ws.send_text.called:
                    break
                await asyncio.sleep(0.01)
            sent = json.loads(ws.send_text.call_args[0][0])
            assert sent["data"] == {"theme": "dark"}
        finally:
            await manager.disconnect(ws)
