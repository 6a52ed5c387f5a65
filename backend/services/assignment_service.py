"""
Auto-assignment of applicants to teams and editor slots.

Applicants are ranked by a pluggable strategy, the best six are drafted
into two teams in snake order (0, 1, 1, 0, 0, 1) so the teams end up
balanced, and each team's players take the html, css and js editors in
rank order.

Editor slot ids are fixed: team 0 owns 0 (html), 1 (css), 2 (js) and
team 1 owns 3 (html), 4 (css), 5 (js).
"""

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Tuple

from backend.utils.constants import EDITOR_LANGUAGES, MAX_GAME_PLAYERS, PLAYERS_PER_TEAM

# Team for each rank position in the draft
SNAKE_ORDER = [0, 1, 1, 0, 0, 1]


@dataclass(frozen=True)
class ApplicantStats:
    """An applicant and their historical record."""

    user_id: int
    username: str
    wins: int = 0
    losses: int = 0

    @property
    def games_played(self) -> int:
        return self.wins + self.losses

    @property
    def win_rate(self) -> float:
        return self.wins / self.games_played if self.games_played else 0.0


RankingStrategy = Callable[[ApplicantStats], Tuple]


def default_ranking(applicant: ApplicantStats) -> Tuple:
    """
    Sort key: best win rate first, then most wins, then most experience.
    Remaining ties go to the lowest user id so the order is total.
    """
    return (
        -applicant.win_rate,
        -applicant.wins,
        -applicant.games_played,
        applicant.user_id,
    )


def rank_applicants(
    applicants: Iterable[ApplicantStats], ranking: RankingStrategy = default_ranking
) -> List[ApplicantStats]:
    """Drop duplicate users (first entry wins) and order by the ranking strategy."""
    distinct: Dict[int, ApplicantStats] = {}
    for applicant in applicants:
        distinct.setdefault(applicant.user_id, applicant)
    return sorted(distinct.values(), key=lambda a: (ranking(a), a.user_id))


def editor_slot_id(team: int, language: str) -> int:
    return team * PLAYERS_PER_TEAM + EDITOR_LANGUAGES.index(language)


def assign_players(
    applicants: Iterable[ApplicantStats], ranking: RankingStrategy = default_ranking
) -> Tuple[Dict[str, dict], Dict[str, dict]]:
    """
    Build the players and editors maps of a game from its applicants.

    Args:
        applicants: Applicants with their stats; duplicates are ignored
        ranking: Sort key strategy; lower keys are drafted first

    Returns:
        (players, editors) keyed by string id, ready to store on the game.
        Only filled editor slots are present.
    """
    chosen = rank_applicants(applicants, ranking)[:MAX_GAME_PLAYERS]

    teams: Dict[int, List[ApplicantStats]] = {0: [], 1: []}
    for position, applicant in enumerate(chosen):
        teams[SNAKE_ORDER[position]].append(applicant)

    players: Dict[str, dict] = {}
    editors: Dict[str, dict] = {}
    for team, members in teams.items():
        for applicant, language in zip(members, EDITOR_LANGUAGES):
            slot = editor_slot_id(team, language)
            players[str(applicant.user_id)] = {
                "id": applicant.user_id,
                "username": applicant.username,
                "team": team,
            }
            editors[str(slot)] = {
                "id": slot,
                "team": team,
                "language": language,
                "player": applicant.user_id,
            }

    return players, editors
