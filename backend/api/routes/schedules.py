"""Game schedule and application route handlers."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.auth_dependencies import require_moderator, require_user
from backend.database.db import get_db_session
from backend.database.models import GameStatus
from backend.models.schemas import (
    GameApplicationResponse,
    ScheduleResponse,
    ScheduleSetup,
    ScheduleUpdate,
)
from backend.services import application_service, schedule_service
from backend.services.exceptions import ServiceError
from backend.utils.constants import DATABASE_MAX_ID

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/api/schedules", response_model=List[ScheduleResponse])
async def list_schedules(session: AsyncSession = Depends(get_db_session)):
    """All game schedules."""
    return await schedule_service.list_schedules(session)


@router.get("/api/schedules/latest", response_model=ScheduleResponse)
async def get_latest_schedule(session: AsyncSession = Depends(get_db_session)):
    """The schedule with the latest start time."""
    return await schedule_service.get_latest_schedule(session)


@router.get("/api/schedules/status/{schedule_status}", response_model=List[ScheduleResponse])
async def list_schedules_by_status(
    schedule_status: str, session: AsyncSession = Depends(get_db_session)
):
    """Schedules in one status (scheduled, active or ended)."""
    try:
        parsed = GameStatus(schedule_status.upper())
    except ValueError:
        raise HTTPException(
            status_code=400, detail=f"Unknown schedule status: {schedule_status}"
        )
    return await schedule_service.list_schedules_by_status(session, parsed)


@router.get("/api/schedules/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(
    schedule_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a schedule by id."""
    return await schedule_service.get_schedule(session, schedule_id)


@router.post("/api/schedules", response_model=ScheduleResponse)
async def create_schedule(
    payload: ScheduleSetup,
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a schedule (moderator)."""
    try:
        return await schedule_service.create_schedule(session, payload)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error creating schedule: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error creating schedule")


@router.patch("/api/schedules/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    payload: ScheduleUpdate,
    schedule_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """Change a schedule's setup (moderator)."""
    try:
        return await schedule_service.update_schedule(session, schedule_id, payload)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating schedule {schedule_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating schedule")


@router.delete("/api/schedules/{schedule_id}", status_code=status.HTTP_202_ACCEPTED)
async def delete_schedule(
    schedule_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a schedule that never went live (moderator)."""
    try:
        await schedule_service.delete_schedule(session, schedule_id)
        return Response(status_code=status.HTTP_202_ACCEPTED)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error deleting schedule {schedule_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error deleting schedule")


@router.post("/api/schedules/{schedule_id}/activate", response_model=ScheduleResponse)
async def activate_schedule(
    schedule_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """Take a schedule live, creating its game (moderator)."""
    try:
        return await schedule_service.activate_schedule(session, schedule_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error activating schedule {schedule_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error activating schedule")


@router.post("/api/schedules/{schedule_id}/end", response_model=ScheduleResponse)
async def end_schedule(
    schedule_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """End a live schedule and its game (moderator)."""
    try:
        return await schedule_service.end_schedule(session, schedule_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error ending schedule {schedule_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error ending schedule")


@router.get("/api/schedules/{schedule_id}/applications", response_model=List[GameApplicationResponse])
async def list_applications(
    schedule_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_moderator),
    session: AsyncSession = Depends(get_db_session),
):
    """Applications to a schedule (moderator)."""
    return await application_service.list_schedule_applications(session, schedule_id)


@router.post("/api/schedules/{schedule_id}/applications", response_model=GameApplicationResponse)
async def apply_to_schedule(
    schedule_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Apply to play in a scheduled game."""
    try:
        return await application_service.apply_to_schedule(session, user, schedule_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error applying to schedule {schedule_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error applying to schedule")


@router.delete("/api/schedules/{schedule_id}/applications", response_model=GameApplicationResponse)
async def withdraw_application(
    schedule_id: int = Path(..., ge=1, le=DATABASE_MAX_ID),
    user: dict = Depends(require_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Withdraw an application."""
    try:
        return await application_service.withdraw_application(session, user, schedule_id)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error withdrawing application to schedule {schedule_id}: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error withdrawing application")
