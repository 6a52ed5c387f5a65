"""Game route handlers."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.auth_dependencies import require_admin, require_moderator
from backend.database.db import get_db_session
from backend.database.models import GameStatus
from backend.models.schemas import (
    AddGamePlayerRequest,
    GameResponse,
    GameUpdate,
    PaginatedGamesResponse,
    RemoveGamePlayerRequest,
)
from backend.services import game_service
from backend.services.exceptions import ServiceError
from backend.utils.constants import (
    DATABASE_MAX_ID,
    GAMES_PAGE_DEFAULT,
    MAX_SEASON,
    MIN_SEASON,
)

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/games", response_model=List[GameResponse])
async def list_games(session: AsyncSession = Depends(get_db_session)):
    """All games."""
    return await game_service.list_games(session)


@router.get("/api/games/latest", response_model=GameResponse)
async def get_latest_game(session: AsyncSession = Depends(get_db_session)):
    """The most recently created game."""
    return await game_service.get_latest_game(session)


@router.get("/api/games/active", response_model=GameResponse)
async def get_active_game(session: AsyncSession = Depends(get_db_session)):
    """The game that is currently live."""
    return await game_service.get_active_game(session)


@router.get("/api/games/season/{season}", response_model=PaginatedGamesResponse)
async def list_games_by_season(
    season: int = Path(..., ge=MIN_SEASON, le=MAX_SEASON),
    first: int = Query(GAMES_PAGE_DEFAULT),
    after: int = Query(0, ge=0),
    game_status: Optional[str] = Query(None, alias="status"),
    session: AsyncSession = Depends(get_db_session),
):
    """A page of a season's games, optionally filtered by status."""
    parsed_status = None
    if game_status:
        try:
            parsed_status = GameStatus(game_status.upper())
        except ValueError:
            raise HTTPException(status_code=400, detail=f"Unknown game status: {game_status}")
    return await game_service.list_games_by_season(
        session, season, first=first, after=after, status=parsed_status
    )


@router.get("/api/games/{game_id}", response_model=GameResponse)
async def get_game(
    game_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    players: bool = Query(False),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a game; ``players=true`` attaches each player's current user details."""
    return await game_service.get_game(session, game_id, include_players=players)


@router.patch("/api/games/{game_id}", response_model=GameResponse)
async def update_game(
    payload: GameUpdate,
    game_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """Merge changes into a game (moderator)."""
    try:
        return await game_service.update_game(session, game_id, payload)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating game {game_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating game")


@router.delete("/api/games/{game_id}", response_model=GameResponse)
async def remove_game(
    game_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a game; its schedule is kept (admin)."""
    try:
        return await game_service.remove_game(session, game_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error removing game {game_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error removing game")


@router.post("/api/games/{game_id}/activate", response_model=GameResponse)
async def activate_game(
    game_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """Force a game live (moderator)."""
    try:
        return await game_service.activate_game(session, game_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error activating game {game_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error activating game")


@router.post("/api/games/{game_id}/end", response_model=GameResponse)
async def end_game(
    game_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """End a live game and record its result (moderator)."""
    try:
        return await game_service.end_game(session, game_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error ending game {game_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error ending game")


@router.post("/api/games/{game_id}/auto-assign")
async def auto_assign_players(
    game_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """Fill the teams of a live game from its applicants (moderator)."""
    try:
        await game_service.auto_assign_players(session, game_id)
        return Response(status_code=200)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error auto-assigning players to game {game_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error auto-assigning players")


@router.post("/api/games/{game_id}/player", response_model=GameResponse)
async def add_game_player(
    payload: AddGamePlayerRequest,
    game_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """Put a user on a team (moderator)."""
    try:
        return await game_service.add_player(
            session, game_id, payload.user_id, payload.team, payload.language
        )
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error adding player to game {game_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error adding player")


@router.delete("/api/games/{game_id}/player", response_model=GameResponse)
async def remove_game_player(
    payload: RemoveGamePlayerRequest,
    game_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """Take a user out of a game (moderator)."""
    try:
        return await game_service.remove_player(session, game_id, payload.user_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error removing player from game {game_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error removing player")
