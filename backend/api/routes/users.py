"""User profile, role and application route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.auth_dependencies import (
    ensure_owner_or_role,
    get_current_user,
    require_admin,
)
from backend.database.db import get_db_session
from backend.database.models import UserRole
from backend.models.schemas import (
    GameApplicationResponse,
    UpdateRoleRequest,
    UserProfileResponse,
    UserProfileUpdate,
    UserResponse,
)
from backend.services import application_service, profile_service, user_service
from backend.services.exceptions import ServiceError
from backend.utils.constants import DATABASE_MAX_ID

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/users/me/applications", response_model=List[GameApplicationResponse])
async def get_my_applications(
    user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_db_session)
):
    """Schedules the signed-in user applied to."""
    return await application_service.list_user_applications(session, user["id"])


@router.get("/api/users/{user_id}/profile", response_model=UserProfileResponse)
async def get_user_profile(
    user_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a profile. Readable by its owner and by moderators."""
    ensure_owner_or_role(user, user_id, UserRole.MODERATOR)
    try:
        return await profile_service.get_profile(session, user_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error getting profile of user {user_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error getting profile")


@router.patch("/api/users/{user_id}/profile", response_model=UserProfileResponse)
async def update_user_profile(
    payload: UserProfileUpdate,
    user_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Update a profile. Writable by its owner and by admins."""
    ensure_owner_or_role(user, user_id, UserRole.ADMIN)
    try:
        return await profile_service.update_profile(session, user_id, payload)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating profile of user {user_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating profile")


@router.patch("/api/users/{user_id}/role", response_model=UserResponse)
async def update_user_role(
    payload: UpdateRoleRequest,
    user_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_admin),
    session: AsyncSession = Depends(get_db_session),
):
    """Change a user's role (admin only)."""
    try:
        return await user_service.update_user_role(session, user_id, payload.role)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating role of user {user_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating role")
