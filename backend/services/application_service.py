"""
Game application service layer: users applying to play in scheduled games.
"""

from typing import Dict, List
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from backend.database.models import GameApplication, GameSchedule, GameStatus, User
from backend.services.exceptions import ConflictError, NotFoundError, PreconditionFailedError
from backend.services.schedule_service import SCHEDULE_NOT_FOUND
from backend.utils.datetime_utils import isoformat

logger = logging.getLogger(__name__)

ALREADY_APPLIED = "You have already applied to this game schedule."


def _application_to_dict(application: GameApplication, username: str = None) -> Dict:
    return {
        "id": application.id,
        "user_id": application.user_id,
        "schedule_id": application.schedule_id,
        "username": username,
        "created_at": isoformat(application.created_at),
    }


async def _load_schedule(session: AsyncSession, schedule_id: int) -> GameSchedule:
    schedule = await session.get(GameSchedule, schedule_id)
    if schedule is None:
        raise NotFoundError(SCHEDULE_NOT_FOUND, "SCHEDULE_NOT_FOUND")
    return schedule


async def apply_to_schedule(session: AsyncSession, user: Dict, schedule_id: int) -> Dict:
    """
    Apply to play in a scheduled game.

    Args:
        session: Database session
        user: Applying user dictionary
        schedule_id: Target schedule

    Returns:
        Application dictionary

    Raises:
        NotFoundError: If the schedule does not exist
        PreconditionFailedError: If the schedule is no longer SCHEDULED
        ConflictError: If the user already applied
    """
    schedule = await _load_schedule(session, schedule_id)
    if schedule.status != GameStatus.SCHEDULED:
        raise PreconditionFailedError(
            "Applications are only accepted while the game is scheduled.",
            "SCHEDULE_NOT_SCHEDULED",
        )

    result = await session.execute(
        select(GameApplication.id).where(
            GameApplication.user_id == user["id"], GameApplication.schedule_id == schedule_id
        )
    )
    if result.scalar_one_or_none() is not None:
        raise ConflictError(ALREADY_APPLIED, "ALREADY_APPLIED")

    application = GameApplication(user_id=user["id"], schedule_id=schedule_id)
    session.add(application)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        raise ConflictError(ALREADY_APPLIED, "ALREADY_APPLIED")
    await session.commit()

    logger.info(f"User {user['id']} applied to schedule {schedule_id}")
    return _application_to_dict(application, user["username"])


async def withdraw_application(session: AsyncSession, user: Dict, schedule_id: int) -> Dict:
    """
    Withdraw an application while the schedule is still SCHEDULED.

    Raises:
        NotFoundError: If the schedule or the application does not exist
        PreconditionFailedError: If the schedule is no longer SCHEDULED
    """
    schedule = await _load_schedule(session, schedule_id)

    result = await session.execute(
        select(GameApplication).where(
            GameApplication.user_id == user["id"], GameApplication.schedule_id == schedule_id
        )
    )
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFoundError(
            "You have not applied to this game schedule.", "APPLICATION_NOT_FOUND"
        )
    if schedule.status != GameStatus.SCHEDULED:
        raise PreconditionFailedError(
            "Applications cannot be withdrawn once the game is live.", "SCHEDULE_NOT_SCHEDULED"
        )

    data = _application_to_dict(application, user["username"])
    await session.delete(application)
    await session.commit()
    return data


async def list_schedule_applications(session: AsyncSession, schedule_id: int) -> List[Dict]:
    """Applications to a schedule, oldest first, with applicant usernames."""
    await _load_schedule(session, schedule_id)

    result = await session.execute(
        select(GameApplication, User.username)
        .join(User, User.id == GameApplication.user_id)
        .where(GameApplication.schedule_id == schedule_id)
        .order_by(GameApplication.created_at, GameApplication.id)
    )
    return [_application_to_dict(application, username) for application, username in result.all()]


async def list_user_applications(session: AsyncSession, user_id: int) -> List[Dict]:
    """A user's applications, newest first."""
    result = await session.execute(
        select(GameApplication, User.username)
        .join(User, User.id == GameApplication.user_id)
        .where(GameApplication.user_id == user_id)
        .order_by(GameApplication.created_at.desc(), GameApplication.id.desc())
    )
    return [_application_to_dict(application, username) for application, username in result.all()]
