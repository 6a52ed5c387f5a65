"""
Game service layer: reading games, merging moderator edits into the game
document, the ACTIVE -> ENDED transition with scoring, manual roster edits
and auto-assignment of applicants.

Every change to an ACTIVE game is pushed to live spectators.
"""

from typing import Dict, List, Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
import logging

from backend.database.models import (
    EditorLanguage,
    Game,
    GameSchedule,
    GameStatus,
    User,
    UserGameStats,
)
from backend.models.schemas import (
    Editor,
    GameMeta,
    GamePlayer,
    GameStorage,
    GameUpdate,
    Objective,
    ScheduleSetup,
    Team,
    TeamScore,
    migrate_storage,
)
from backend.services import assignment_service, user_service
from backend.services.assignment_service import RankingStrategy, default_ranking
from backend.services.exceptions import (
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
)
from backend.services.live_game_manager import get_live_game_manager
from backend.utils.constants import (
    CURRENT_SEASON,
    GAMES_PAGE_DEFAULT,
    GAMES_PAGE_MAX,
    MIN_AUTO_ASSIGN_APPLICANTS,
)
from backend.utils.datetime_utils import isoformat

logger = logging.getLogger(__name__)

GAME_NOT_FOUND = "A game does not exist by the provided game id."


def game_to_dict(game: Game) -> Dict:
    """Serialize a game; the storage document is always upgraded on read."""
    return {
        "id": game.id,
        "season": game.season,
        "mode": game.mode.value if game.mode else None,
        "status": game.status.value if game.status else None,
        "video_url": game.video_url,
        "schedule_id": game.schedule_id,
        "storage": migrate_storage(game.storage).to_document(),
        "created_at": isoformat(game.created_at),
        "updated_at": isoformat(game.updated_at),
    }


def build_game(schedule: GameSchedule) -> Game:
    """
    Create the game spawned by activating a schedule.

    Title, mode, objectives, templates and start time are copied from the
    schedule setup; teams start as blue/red with no players or editors.
    """
    setup = ScheduleSetup.model_validate(schedule.setup)
    storage = GameStorage(
        title=setup.title,
        mode=setup.mode,
        start_time=setup.start_time,
        templates=setup.templates,
        objectives=setup.objectives,
    )
    return Game(
        season=setup.season or CURRENT_SEASON,
        mode=setup.mode,
        status=GameStatus.ACTIVE,
        storage=storage.to_document(),
        schedule=schedule,
    )


async def broadcast_game(game: Game) -> None:
    """Push the current state of a game to live spectators."""
    delivered = await get_live_game_manager().broadcast_game(game_to_dict(game))
    logger.debug(f"Game {game.id} pushed to {delivered} spectator(s)")


async def _load_game(session: AsyncSession, game_id: int, for_update: bool = False) -> Game:
    query = select(Game).options(selectinload(Game.schedule)).where(Game.id == game_id)
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    game = result.scalar_one_or_none()
    if game is None:
        raise NotFoundError(GAME_NOT_FOUND, "GAME_NOT_FOUND")
    return game


async def get_game(session: AsyncSession, game_id: int, include_players: bool = False) -> Dict:
    """
    Get a game by id.

    Args:
        session: Database session
        game_id: Game ID
        include_players: Attach the current username and avatar of each player

    Returns:
        Game dictionary

    Raises:
        NotFoundError: If the game does not exist
    """
    game = await _load_game(session, game_id)
    data = game_to_dict(game)

    if include_players and data["storage"]["players"]:
        player_ids = [player["id"] for player in data["storage"]["players"].values()]
        result = await session.execute(select(User).where(User.id.in_(player_ids)))
        users = {user.id: user for user in result.scalars().all()}
        for player in data["storage"]["players"].values():
            user = users.get(player["id"])
            if user is not None:
                player["username"] = user.username
                player["avatarUrl"] = user.avatar_url

    return data


async def list_games(session: AsyncSession) -> List[Dict]:
    """All games, newest first."""
    result = await session.execute(select(Game).order_by(Game.created_at.desc(), Game.id.desc()))
    return [game_to_dict(game) for game in result.scalars().all()]


async def get_latest_game(session: AsyncSession) -> Dict:
    """
    The most recently created game.

    Raises:
        NotFoundError: If there are no games
    """
    result = await session.execute(
        select(Game).order_by(Game.created_at.desc(), Game.id.desc()).limit(1)
    )
    game = result.scalar_one_or_none()
    if game is None:
        raise NotFoundError("Currently no games exist.", "GAME_NOT_FOUND")
    return game_to_dict(game)


async def get_active_game(session: AsyncSession) -> Dict:
    """
    The currently live game (most recently updated, if several are ACTIVE).

    Raises:
        NotFoundError: If no game is ACTIVE
    """
    result = await session.execute(
        select(Game)
        .where(Game.status == GameStatus.ACTIVE)
        .order_by(Game.updated_at.desc(), Game.id.desc())
        .limit(1)
    )
    game = result.scalar_one_or_none()
    if game is None:
        raise NotFoundError("There currently is no active game.", "NO_ACTIVE_GAME")
    return game_to_dict(game)


async def list_games_by_season(
    session: AsyncSession,
    season: int,
    first: int = GAMES_PAGE_DEFAULT,
    after: int = 0,
    status: Optional[GameStatus] = None,
) -> Dict:
    """
    A page of a season's games, newest first.

    Args:
        session: Database session
        season: Season number
        first: Page size, clamped to 1..GAMES_PAGE_MAX
        after: Number of games to skip
        status: Only games in this status

    Returns:
        Dict with "data" (games) and "pagination" (offsets of the neighbouring
        pages, None at either end)
    """
    first = max(1, min(first, GAMES_PAGE_MAX))
    after = max(0, after)

    query = select(Game).where(Game.season == season)
    if status is not None:
        query = query.where(Game.status == status)
    query = query.order_by(Game.created_at.desc(), Game.id.desc()).offset(after).limit(first + 1)

    result = await session.execute(query)
    games = result.scalars().all()
    has_more = len(games) > first

    return {
        "data": [game_to_dict(game) for game in games[:first]],
        "pagination": {
            "before": str(max(0, after - first)) if after > 0 else None,
            "after": str(after + first) if has_more else None,
        },
    }


async def update_game(session: AsyncSession, game_id: int, patch: GameUpdate) -> Dict:
    """
    Shallow-merge a moderator's changes into the game document.

    Each field present in the patch replaces the stored value as a whole;
    omitted fields keep their value. ``mode`` also updates the mode column
    and ``video_url`` is stored on the game row.

    Raises:
        NotFoundError: If the game does not exist
    """
    game = await _load_game(session, game_id, for_update=True)
    storage = migrate_storage(game.storage)
    changed = patch.model_fields_set

    if "title" in changed and patch.title is not None:
        storage.title = patch.title
    if "mode" in changed and patch.mode is not None:
        storage.mode = patch.mode
        game.mode = patch.mode
    if "objectives" in changed and patch.objectives is not None:
        storage.objectives = patch.objectives
    if "teams" in changed and patch.teams is not None:
        storage.teams = patch.teams
    if "meta" in changed:
        storage.meta = patch.meta
    if "video_url" in changed:
        game.video_url = patch.video_url

    game.storage = storage.to_document()
    await session.commit()

    if game.status == GameStatus.ACTIVE:
        await broadcast_game(game)
    return game_to_dict(game)


async def activate_game(session: AsyncSession, game_id: int) -> Dict:
    """Force a game live and push it to spectators."""
    game = await _load_game(session, game_id, for_update=True)
    game.status = GameStatus.ACTIVE
    await session.commit()

    logger.info(f"Activated game {game.id}")
    await broadcast_game(game)
    return game_to_dict(game)


def _objective_points(objectives: Dict[str, Objective], team: Team) -> int:
    """Completed objectives; bonus objectives only count once every regular one is done."""
    completed = {key for key, state in team.objectives.items() if state == "complete"}
    regular = [key for key, objective in objectives.items() if not objective.is_bonus]
    bonus = [key for key, objective in objectives.items() if objective.is_bonus]

    points = sum(1 for key in regular if key in completed)
    if all(key in completed for key in regular):
        points += sum(1 for key in bonus if key in completed)
    return points


def compute_game_result(storage: GameStorage) -> GameMeta:
    """
    Score an ended game.

    Each team scores its completed objectives, plus one point for ui and one
    for ux when it received strictly more votes than the other team in that
    category. The higher total wins. Equal totals go to the only team whose
    tie flag is set; otherwise the game is a tie and team 0 is recorded as
    the winning team with ``tie`` set.
    """
    team_ids = sorted(storage.teams, key=int)
    teams = [storage.teams[key] for key in team_ids]
    scores = [
        TeamScore(objectives=_objective_points(storage.objectives, team), tie=team.votes.tie)
        for team in teams
    ]

    for category in ("ui", "ux"):
        votes = [getattr(team.votes, category) for team in teams]
        best = max(votes)
        if votes.count(best) == 1:
            setattr(scores[votes.index(best)], category, 1)

    totals = [score.total for score in scores]
    leaders = [index for index, total in enumerate(totals) if total == max(totals)]
    if len(leaders) == 1:
        return GameMeta(winning_team=teams[leaders[0]].id, team_scores=scores)

    flagged = [index for index in leaders if scores[index].tie]
    if len(flagged) == 1:
        return GameMeta(winning_team=teams[flagged[0]].id, team_scores=scores)

    return GameMeta(winning_team=teams[0].id, team_scores=scores, tie=True)


async def _record_results(session: AsyncSession, storage: GameStorage) -> None:
    """Add a win or loss to each assigned player's record."""
    meta = storage.meta
    if meta is None or meta.tie or not storage.players:
        return

    player_ids = [player.id for player in storage.players.values()]
    result = await session.execute(select(User.id).where(User.id.in_(player_ids)))
    existing_users = set(result.scalars().all())

    result = await session.execute(
        select(UserGameStats).where(UserGameStats.user_id.in_(list(existing_users)))
    )
    stats_by_user = {stats.user_id: stats for stats in result.scalars().all()}

    for player in storage.players.values():
        if player.id not in existing_users:
            continue
        stats = stats_by_user.get(player.id)
        if stats is None:
            stats = UserGameStats(user_id=player.id, wins=0, loss=0)
            session.add(stats)
            stats_by_user[player.id] = stats
        if player.team == meta.winning_team:
            stats.wins += 1
        else:
            stats.loss += 1


async def finish_game(
    session: AsyncSession, game: Game, schedule: Optional[GameSchedule] = None
) -> None:
    """
    Score an ACTIVE game and mark it (and its ACTIVE schedule) ENDED.

    Does not commit; callers commit once all their checks and writes are done.
    """
    storage = migrate_storage(game.storage)
    storage.meta = compute_game_result(storage)
    game.storage = storage.to_document()
    game.status = GameStatus.ENDED

    if schedule is not None and schedule.status == GameStatus.ACTIVE:
        schedule.status = GameStatus.ENDED

    await _record_results(session, storage)
    logger.info(
        f"Ended game {game.id}: winning team {storage.meta.winning_team}"
        f"{' (tie)' if storage.meta.tie else ''}"
    )


async def end_game(session: AsyncSession, game_id: int) -> Dict:
    """
    End a live game, computing its result.

    Raises:
        NotFoundError: If the game does not exist
        PreconditionFailedError: If the game is not ACTIVE
    """
    game = await _load_game(session, game_id, for_update=True)
    if game.status != GameStatus.ACTIVE:
        raise PreconditionFailedError(
            "Game cannot be ended since its not in a active state.", "GAME_NOT_ACTIVE"
        )

    await finish_game(session, game, game.schedule)
    await session.commit()

    await broadcast_game(game)
    return game_to_dict(game)


async def remove_game(session: AsyncSession, game_id: int) -> Dict:
    """
    Delete a game. Its schedule is kept and no longer has a game.

    Returns:
        The deleted game
    """
    game = await _load_game(session, game_id, for_update=True)
    data = game_to_dict(game)

    await session.delete(game)
    await session.commit()

    logger.info(f"Removed game {game_id}")
    return data


async def add_player(
    session: AsyncSession,
    game_id: int,
    user_id: int,
    team: int,
    language: Optional[EditorLanguage] = None,
) -> Dict:
    """
    Put a user on a team, optionally in the team's editor for a language.

    Raises:
        NotFoundError: If the game or user does not exist
        PreconditionFailedError: If the game has ended or the team does not exist
        ConflictError: If the user already plays or the editor slot is taken
    """
    game = await _load_game(session, game_id, for_update=True)
    if game.status == GameStatus.ENDED:
        raise PreconditionFailedError("Players cannot be added to an ended game.", "GAME_ENDED")

    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("A user does not exist by the provided id.", "USER_NOT_FOUND")

    storage = migrate_storage(game.storage)
    if str(team) not in storage.teams:
        raise PreconditionFailedError("The specified team does not exist.", "TEAM_NOT_FOUND")
    if str(user.id) in storage.players:
        raise ConflictError("The user is already a player in this game.", "PLAYER_ALREADY_IN_GAME")

    editor = None
    if language is not None:
        slot = assignment_service.editor_slot_id(team, EditorLanguage(language).value)
        current = storage.editors.get(str(slot))
        if current is not None and current.player is not None:
            raise ConflictError("The editor is already assigned to a player.", "EDITOR_TAKEN")
        editor = Editor(id=slot, team=team, language=language, player=user.id)

    storage.players[str(user.id)] = GamePlayer(id=user.id, username=user.username, team=team)
    if editor is not None:
        storage.editors[str(editor.id)] = editor

    game.storage = storage.to_document()
    await session.commit()

    if game.status == GameStatus.ACTIVE:
        await broadcast_game(game)
    return game_to_dict(game)


async def remove_player(session: AsyncSession, game_id: int, user_id: int) -> Dict:
    """
    Take a user out of a game along with any editor they hold.

    Raises:
        NotFoundError: If the game does not exist or the user is not playing
    """
    game = await _load_game(session, game_id, for_update=True)
    storage = migrate_storage(game.storage)

    if str(user_id) not in storage.players:
        raise NotFoundError("The user is not a player in this game.", "PLAYER_NOT_IN_GAME")

    del storage.players[str(user_id)]
    storage.editors = {
        key: editor for key, editor in storage.editors.items() if editor.player != user_id
    }

    game.storage = storage.to_document()
    await session.commit()

    if game.status == GameStatus.ACTIVE:
        await broadcast_game(game)
    return game_to_dict(game)


async def auto_assign_players(
    session: AsyncSession, game_id: int, ranking: RankingStrategy = default_ranking
) -> Dict:
    """
    Fill the teams and editors of a live game from its schedule's applicants.

    Args:
        session: Database session
        game_id: Game ID
        ranking: Applicant ordering strategy

    Returns:
        The updated game

    Raises:
        NotFoundError: If the game does not exist or has no schedule
        PreconditionFailedError: If the game is not ACTIVE or has too few applicants
        ConflictError: If editors are already assigned
    """
    game = await _load_game(session, game_id, for_update=True)
    if game.status != GameStatus.ACTIVE:
        raise PreconditionFailedError(
            "You cannot balance a game that is not active.", "GAME_NOT_ACTIVE"
        )
    if game.schedule is None:
        raise NotFoundError(
            "The game does not have a corresponding game schedule.", "GAME_HAS_NO_SCHEDULE"
        )

    storage = migrate_storage(game.storage)
    if storage.editors:
        raise ConflictError(
            "The game already has assigned players, auto-assignment cannot occur.",
            "PLAYERS_ALREADY_ASSIGNED",
        )

    applicants = await user_service.get_applicant_stats(session, game.schedule.id)
    distinct = {applicant.user_id for applicant in applicants}
    if len(distinct) < MIN_AUTO_ASSIGN_APPLICANTS:
        raise PreconditionFailedError(
            f"At least {MIN_AUTO_ASSIGN_APPLICANTS} applicants are required to auto-assign players.",
            "NOT_ENOUGH_APPLICANTS",
        )

    players, editors = assignment_service.assign_players(applicants, ranking)
    storage.players = {key: GamePlayer.model_validate(value) for key, value in players.items()}
    storage.editors = {key: Editor.model_validate(value) for key, value in editors.items()}

    game.storage = storage.to_document()
    await session.commit()

    logger.info(f"Auto-assigned {len(players)} players to game {game.id}")
    await broadcast_game(game)
    return game_to_dict(game)
