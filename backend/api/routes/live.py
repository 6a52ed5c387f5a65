"""Live game websocket route."""

import asyncio
import logging
from datetime import timedelta

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from backend.services.live_game_manager import (
    ALL_GAMES,
    WEBSOCKET_TIMEOUT_SECONDS,
    get_live_game_manager,
)
from backend.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)
router = APIRouter()


@router.websocket("/api/ws/games/live")
async def websocket_live_games(websocket: WebSocket):
    """
    WebSocket endpoint pushing live game updates to spectators.

    Optional query parameter ``game_id`` follows a single game; without it
    every live game is pushed. Each push is ``{"type": "game", "game": {...}}``
    carrying the full game, so clients replace their state on every message.
    """
    await websocket.accept()

    game_id = ALL_GAMES
    raw_game_id = websocket.query_params.get("game_id")
    if raw_game_id:
        try:
            game_id = int(raw_game_id)
        except ValueError:
            await websocket.close(code=1008, reason="Invalid game id")
            return

    manager = get_live_game_manager()
    await manager.connect(websocket, game_id)

    try:
        # Keep connection alive and handle ping/pong with timeout
        last_activity = utcnow()

        while True:
            try:
                data = await asyncio.wait_for(
                    websocket.receive_text(), timeout=WEBSOCKET_TIMEOUT_SECONDS
                )

                last_activity = utcnow()
                await manager.update_activity(websocket)

                if data == "ping":
                    await websocket.send_text("pong")
            except asyncio.TimeoutError:
                # Also sweeps spectators whose sockets died without a close frame
                await manager.cleanup_stale_connections()
                if utcnow() - last_activity > timedelta(seconds=WEBSOCKET_TIMEOUT_SECONDS):
                    logger.info("Live game websocket timed out, closing connection")
                    await websocket.close(code=1000, reason="Connection timeout")
                    break
                try:
                    await websocket.send_text("ping")
                except Exception:
                    break
    except WebSocketDisconnect:
        logger.info("Live game spectator disconnected")
    except Exception as e:
        logger.error(f"Live game websocket error: {e}")
    finally:
        await manager.disconnect(websocket, game_id)
