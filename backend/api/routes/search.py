"""Moderator search route handlers."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.auth_dependencies import require_moderator
from backend.database.db import get_db_session
from backend.models.schemas import UserSearchResult
from backend.services import user_service
from backend.services.exceptions import ServiceError

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/search/users", response_model=List[UserSearchResult])
async def search_users(
    username: Optional[str] = Query(None),
    email: Optional[str] = Query(None),
    limit: Optional[int] = Query(None),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """
    Find users by username or email fragment.

    The limit is clamped to 1..50 and defaults to 10.
    """
    try:
        return await user_service.search_users(session, username=username, email=email, limit=limit)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error searching users: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error searching users")
