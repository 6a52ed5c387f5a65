"""
Game schedule service layer.

A schedule moves SCHEDULED -> ACTIVE -> ENDED. Activating it spawns its one
game; ending it also ends that game if it is still live. Every transition
is a single row-locked read-check-write committed once at the end.
"""

from typing import Dict, List
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import logging

from backend.database.models import GameApplication, GameSchedule, GameStatus
from backend.models.schemas import ScheduleSetup, ScheduleUpdate
from backend.services import game_service
from backend.services.exceptions import NotFoundError, PreconditionFailedError
from backend.utils.datetime_utils import isoformat

logger = logging.getLogger(__name__)

SCHEDULE_NOT_FOUND = "A game schedule does not exist for the given id."


def schedule_to_dict(schedule: GameSchedule, include_game: bool = False) -> Dict:
    """
    Serialize a schedule. Its game must already be loaded.

    Args:
        schedule: Schedule row
        include_game: Embed the full game instead of only its id
    """
    game = schedule.game
    return {
        "id": schedule.id,
        "status": schedule.status.value if schedule.status else None,
        "setup": ScheduleSetup.model_validate(schedule.setup).to_document(),
        "start_time": isoformat(schedule.start_time),
        "game_id": game.id if game is not None else None,
        "game": game_service.game_to_dict(game) if include_game and game is not None else None,
        "created_at": isoformat(schedule.created_at),
        "updated_at": isoformat(schedule.updated_at),
    }


async def _load_schedule(
    session: AsyncSession, schedule_id: int, for_update: bool = False
) -> GameSchedule:
    query = (
        select(GameSchedule)
        .options(selectinload(GameSchedule.game))
        .where(GameSchedule.id == schedule_id)
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    schedule = result.scalar_one_or_none()
    if schedule is None:
        raise NotFoundError(SCHEDULE_NOT_FOUND, "SCHEDULE_NOT_FOUND")
    return schedule


async def create_schedule(session: AsyncSession, setup: ScheduleSetup) -> Dict:
    """
    Create a SCHEDULED schedule.

    Args:
        session: Database session
        setup: Title, mode, season, start time, objectives and templates

    Returns:
        Schedule dictionary
    """
    schedule = GameSchedule(
        status=GameStatus.SCHEDULED,
        setup=setup.to_document(),
        start_time=setup.start_time,
    )
    session.add(schedule)
    await session.flush()
    schedule_id = schedule.id
    await session.commit()

    logger.info(f"Created schedule {schedule_id} ({setup.title})")
    return schedule_to_dict(await _load_schedule(session, schedule_id))


async def get_schedule(session: AsyncSession, schedule_id: int) -> Dict:
    """
    Get a schedule by id.

    Raises:
        NotFoundError: If the schedule does not exist
    """
    return schedule_to_dict(await _load_schedule(session, schedule_id))


async def list_schedules(session: AsyncSession) -> List[Dict]:
    """All schedules, newest first."""
    result = await session.execute(
        select(GameSchedule)
        .options(selectinload(GameSchedule.game))
        .order_by(GameSchedule.created_at.desc(), GameSchedule.id.desc())
    )
    return [schedule_to_dict(schedule) for schedule in result.scalars().all()]


async def get_latest_schedule(session: AsyncSession) -> Dict:
    """
    The schedule with the latest start time.

    Raises:
        NotFoundError: If there are no schedules
    """
    result = await session.execute(
        select(GameSchedule)
        .options(selectinload(GameSchedule.game))
        .order_by(GameSchedule.start_time.desc().nulls_last(), GameSchedule.id.desc())
        .limit(1)
    )
    schedule = result.scalar_one_or_none()
    if schedule is None:
        raise NotFoundError("Currently no game schedules exist.", "SCHEDULE_NOT_FOUND")
    return schedule_to_dict(schedule)


async def list_schedules_by_status(session: AsyncSession, status: GameStatus) -> List[Dict]:
    """Schedules in one status, soonest start first."""
    result = await session.execute(
        select(GameSchedule)
        .options(selectinload(GameSchedule.game))
        .where(GameSchedule.status == status)
        .order_by(GameSchedule.start_time.asc().nulls_last(), GameSchedule.id.asc())
    )
    return [schedule_to_dict(schedule) for schedule in result.scalars().all()]


async def update_schedule(session: AsyncSession, schedule_id: int, patch: ScheduleUpdate) -> Dict:
    """
    Shallow-merge changes into a schedule's setup.

    Raises:
        NotFoundError: If the schedule does not exist
    """
    schedule = await _load_schedule(session, schedule_id, for_update=True)
    setup = ScheduleSetup.model_validate(schedule.setup)

    for field in patch.model_fields_set:
        value = getattr(patch, field)
        if value is None and field in ("title", "mode", "objectives"):
            continue
        setattr(setup, field, value)

    schedule.setup = setup.to_document()
    schedule.start_time = setup.start_time
    await session.commit()

    return schedule_to_dict(schedule)


async def activate_schedule(session: AsyncSession, schedule_id: int) -> Dict:
    """
    Take a schedule live, creating its game.

    Returns:
        Schedule dictionary with the new game embedded

    Raises:
        NotFoundError: If the schedule does not exist
        PreconditionFailedError: If the schedule is not SCHEDULED or already has a game
    """
    schedule = await _load_schedule(session, schedule_id, for_update=True)
    if schedule.status != GameStatus.SCHEDULED:
        raise PreconditionFailedError(
            "schedule cannot be activated since its not in a scheduled state.",
            "SCHEDULE_NOT_SCHEDULED",
        )
    if schedule.game is not None:
        raise PreconditionFailedError(
            "schedule cannot be activated since game already exists", "SCHEDULE_HAS_GAME"
        )

    game = game_service.build_game(schedule)
    session.add(game)
    schedule.status = GameStatus.ACTIVE

    try:
        await session.flush()
    except IntegrityError:
        # Another activation linked a game to this schedule first
        await session.rollback()
        raise PreconditionFailedError(
            "schedule cannot be activated since game already exists", "SCHEDULE_HAS_GAME"
        )
    await session.commit()

    logger.info(f"Activated schedule {schedule.id}, created game {game.id}")
    await game_service.broadcast_game(game)
    return schedule_to_dict(schedule, include_game=True)


async def end_schedule(session: AsyncSession, schedule_id: int) -> Dict:
    """
    End a live schedule. Its game, if still ACTIVE, is ended and scored too.

    Raises:
        NotFoundError: If the schedule does not exist
        PreconditionFailedError: If the schedule is not ACTIVE
    """
    schedule = await _load_schedule(session, schedule_id, for_update=True)
    if schedule.status != GameStatus.ACTIVE:
        raise PreconditionFailedError(
            "Schedule cannot be ended since its not in a active state.", "SCHEDULE_NOT_ACTIVE"
        )

    game = schedule.game
    if game is not None and game.status == GameStatus.ACTIVE:
        await game_service.finish_game(session, game, schedule)
    schedule.status = GameStatus.ENDED
    await session.commit()

    logger.info(f"Ended schedule {schedule.id}")
    if game is not None:
        await game_service.broadcast_game(game)
    return schedule_to_dict(schedule, include_game=True)


async def delete_schedule(session: AsyncSession, schedule_id: int) -> None:
    """
    Delete a schedule that never went live, along with its applications.

    Raises:
        NotFoundError: If the schedule does not exist
        PreconditionFailedError: If the schedule is not SCHEDULED or has a game
    """
    schedule = await _load_schedule(session, schedule_id, for_update=True)
    if schedule.status != GameStatus.SCHEDULED:
        raise PreconditionFailedError(
            "Schedule cannot be deleted since its not in a scheduled state.",
            "SCHEDULE_NOT_SCHEDULED",
        )
    if schedule.game is not None:
        raise PreconditionFailedError(
            "Schedule cannot be deleted since it has a related game.", "SCHEDULE_HAS_GAME"
        )

    await session.execute(delete(GameApplication).where(GameApplication.schedule_id == schedule.id))
    await session.delete(schedule)
    await session.commit()

    logger.info(f"Deleted schedule {schedule_id}")
