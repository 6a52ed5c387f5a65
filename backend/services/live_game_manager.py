"""
WebSocket connection manager for live game broadcasts.

Spectators subscribe either to one game or to every live game. Whenever an
ACTIVE game changes, the full game document is pushed to its subscribers.
Delivery is at-least-once from the caller's point of view: a game may be
pushed several times with the same content and clients must treat pushes
as idempotent state replacements.
"""

import asyncio
import json
import logging
from typing import Dict, Optional, Set
from datetime import timedelta
from fastapi import WebSocket

from backend.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

# Timeout for WebSocket connections (30 seconds of inactivity)
WEBSOCKET_TIMEOUT_SECONDS = 30

# Subscription key for spectators following every live game
ALL_GAMES = None


class LiveGameManager:
    """Manages spectator WebSocket connections and pushes game updates."""

    def __init__(self):
        # Mapping of game id (or ALL_GAMES) to its subscribed connections
        self.subscriptions: Dict[Optional[int], Set[WebSocket]] = {}
        # Mapping of WebSocket to last activity timestamp
        self.connection_timestamps = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket, game_id: Optional[int] = ALL_GAMES):
        """
        Register a spectator connection.

        Args:
            websocket: WebSocket connection object
            game_id: Game to follow, or ALL_GAMES for every live game
        """
        async with self._lock:
            self.subscriptions.setdefault(game_id, set()).add(websocket)
            self.connection_timestamps[websocket] = utcnow()
            logger.info(
                f"Spectator connected to {game_id if game_id is not None else 'all games'} "
                f"(total: {len(self.subscriptions[game_id])})"
            )

    async def disconnect(self, websocket: WebSocket, game_id: Optional[int] = ALL_GAMES):
        """Remove a spectator connection."""
        async with self._lock:
            if game_id in self.subscriptions:
                self.subscriptions[game_id].discard(websocket)
                if not self.subscriptions[game_id]:
                    del self.subscriptions[game_id]
            self.connection_timestamps.pop(websocket, None)

    async def get_connection_count(self, game_id: Optional[int] = ALL_GAMES) -> int:
        async with self._lock:
            return len(self.subscriptions.get(game_id, ()))

    async def update_activity(self, websocket: WebSocket):
        """Record client activity (ping or other message)."""
        async with self._lock:
            if websocket in self.connection_timestamps:
                self.connection_timestamps[websocket] = utcnow()

    async def broadcast_game(self, game: dict) -> int:
        """
        Push a game to everyone following it or following all games.

        Failed connections are dropped; failures are never raised to the caller.

        Args:
            game: Serialized game (as returned by game_service.game_to_dict)

        Returns:
            Number of connections the game was delivered to
        """
        game_id = game.get("id")
        async with self._lock:
            targets = [
                (key, ws)
                for key in {game_id, ALL_GAMES}
                for ws in self.subscriptions.get(key, set()).copy()
            ]

        message = json.dumps({"type": "game", "game": game})
        delivered = 0
        dead = []

        # Send outside the lock to avoid blocking
        for key, websocket in targets:
            try:
                await websocket.send_text(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Error pushing game {game_id} to spectator: {e}")
                dead.append((key, websocket))

        for key, websocket in dead:
            await self.disconnect(websocket, key)

        return delivered

    async def cleanup_stale_connections(self):
        """Drop connections without activity within the timeout period."""
        threshold = utcnow() - timedelta(seconds=WEBSOCKET_TIMEOUT_SECONDS)

        async with self._lock:
            stale = [ws for ws, last in self.connection_timestamps.items() if last < threshold]
            stale_keys = [
                (key, ws) for key, conns in self.subscriptions.items() for ws in conns if ws in stale
            ]

        for key, websocket in stale_keys:
            await self.disconnect(websocket, key)
            logger.info("Cleaned up stale spectator connection")


# Global manager instance
_live_game_manager: Optional[LiveGameManager] = None


def get_live_game_manager() -> LiveGameManager:
    """
    Get the global live game manager instance.

    Returns:
        LiveGameManager instance
    """
    global _live_game_manager
    if _live_game_manager is None:
        _live_game_manager = LiveGameManager()
    return _live_game_manager
