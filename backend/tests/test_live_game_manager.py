"""
Unit tests for the live game WebSocket manager.
Tests subscriptions, game pushes and stale connection cleanup.
"""

import json
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock
from datetime import timedelta
from backend.services.live_game_manager import (
    ALL_GAMES,
    LiveGameManager,
    get_live_game_manager,
    WEBSOCKET_TIMEOUT_SECONDS,
)
from backend.utils.datetime_utils import utcnow


@pytest_asyncio.fixture
async def manager():
    """Create a fresh live game manager for each test."""
    return LiveGameManager()


def _mock_websocket():
    ws = AsyncMock()
    ws.send_text = AsyncMock()
    ws.close = AsyncMock()
    return ws


@pytest.mark.asyncio
async def test_connect_and_disconnect(manager):
    """Connections are counted per subscription and removed on disconnect."""
    ws = _mock_websocket()

    await manager.connect(ws, 7)
    assert await manager.get_connection_count(7) == 1
    assert ws in manager.connection_timestamps

    await manager.disconnect(ws, 7)
    assert await manager.get_connection_count(7) == 0
    assert ws not in manager.connection_timestamps


@pytest.mark.asyncio
async def test_broadcast_reaches_game_and_all_games_subscribers(manager):
    """A push goes to followers of that game and to followers of every game."""
    follower = _mock_websocket()
    everything = _mock_websocket()
    other = _mock_websocket()

    await manager.connect(follower, 1)
    await manager.connect(everything, ALL_GAMES)
    await manager.connect(other, 2)

    delivered = await manager.broadcast_game({"id": 1, "status": "ACTIVE"})

    assert delivered == 2
    follower.send_text.assert_awaited_once()
    everything.send_text.assert_awaited_once()
    other.send_text.assert_not_awaited()

    message = json.loads(follower.send_text.call_args[0][0])
    assert message == {"type": "game", "game": {"id": 1, "status": "ACTIVE"}}


@pytest.mark.asyncio
async def test_broadcast_without_spectators(manager):
    assert await manager.broadcast_game({"id": 1}) == 0


@pytest.mark.asyncio
async def test_failed_connection_is_dropped(manager):
    """A send failure never reaches the caller and removes the connection."""
    broken = _mock_websocket()
    broken.send_text.side_effect = RuntimeError("connection closed")
    healthy = _mock_websocket()

    await manager.connect(broken, 1)
    await manager.connect(healthy, 1)

    delivered = await manager.broadcast_game({"id": 1})

    assert delivered == 1
    assert await manager.get_connection_count(1) == 1
    assert broken not in manager.connection_timestamps


@pytest.mark.asyncio
async def test_cleanup_stale_connections(manager):
    """Connections idle longer than the timeout are removed."""
    stale = _mock_websocket()
    fresh = _mock_websocket()

    await manager.connect(stale, ALL_GAMES)
    await manager.connect(fresh, ALL_GAMES)
    manager.connection_timestamps[stale] = utcnow() - timedelta(
        seconds=WEBSOCKET_TIMEOUT_SECONDS + 5
    )

    await manager.cleanup_stale_connections()

    assert await manager.get_connection_count(ALL_GAMES) == 1
    assert fresh in manager.connection_timestamps


@pytest.mark.asyncio
async def test_update_activity(manager):
    ws = _mock_websocket()
    await manager.connect(ws, 3)
    manager.connection_timestamps[ws] = utcnow() - timedelta(seconds=10)

    await manager.update_activity(ws)

    assert utcnow() - manager.connection_timestamps[ws] < timedelta(seconds=5)


def test_get_live_game_manager_is_shared():
    assert get_live_game_manager() is get_live_game_manager()
