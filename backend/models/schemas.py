"""
Pydantic models for API request/response validation and for the JSON
documents stored on schedules (``setup``) and games (``storage``).
"""

import copy
import re
from datetime import date, datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from backend.database.models import EditorLanguage, GameMode, GameStatus, UserRole
from backend.utils.constants import (
    DEFAULT_TEAMS,
    GAME_STORAGE_VERSION,
    MAX_SEASON,
    MIN_SEASON,
    PASSWORD_MAX_LENGTH,
    PASSWORD_MIN_LENGTH,
    USERNAME_MAX_LENGTH,
    USERNAME_MIN_LENGTH,
)

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class DocumentModel(BaseModel):
    """Base for persisted JSON documents: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict:
        """Serialize for storage; unset optionals are omitted rather than null."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class PatchModel(DocumentModel):
    """Base for partial updates: unknown keys are rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


# Game documents


class Objective(DocumentModel):
    """A single game objective."""

    id: int
    description: str
    is_bonus: bool = False


class Templates(DocumentModel):
    """Starting code for each editor language."""

    html: Optional[str] = None
    css: Optional[str] = None
    js: Optional[str] = None


class TeamVotes(DocumentModel):
    """Audience votes collected for a team."""

    ui: int = 0
    ux: int = 0
    tie: bool = False


class Team(DocumentModel):
    """A team and its progress on the game objectives."""

    id: int
    name: str
    objectives: Dict[str, Literal["complete", "incomplete"]] = Field(default_factory=dict)
    votes: TeamVotes = Field(default_factory=TeamVotes)


class GamePlayer(DocumentModel):
    """A player on a team."""

    id: int
    username: str
    team: int


class Editor(DocumentModel):
    """One of the six (team, language) editor slots."""

    id: int
    team: int
    language: EditorLanguage
    player: Optional[int] = None


class TeamScore(DocumentModel):
    """Final score breakdown for one team."""

    objectives: int = 0
    ui: int = 0
    ux: int = 0
    tie: bool = False

    @property
    def total(self) -> int:
        return self.objectives + self.ui + self.ux


class GameMeta(DocumentModel):
    """Result of an ended game."""

    winning_team: Optional[int] = None
    team_scores: List[TeamScore] = Field(default_factory=list)
    tie: bool = False


def check_teams(teams: Dict[str, Team]) -> Dict[str, Team]:
    """A game always has exactly blue ("0") and red ("1"), keyed by their id."""
    if set(teams) != set(DEFAULT_TEAMS):
        raise ValueError('teams must have exactly the keys "0" and "1"')
    for key, team in teams.items():
        if team.id != int(key):
            raise ValueError(f"team {key} must have id {key}")
    return teams


class ScheduleSetup(DocumentModel):
    """Setup document of a game schedule; also the schedule creation request."""

    title: str = Field(..., min_length=1, max_length=124)
    mode: GameMode = GameMode.CLASSIC
    season: Optional[int] = Field(None, ge=MIN_SEASON, le=MAX_SEASON)
    start_time: Optional[datetime] = None
    objectives: Dict[str, Objective] = Field(default_factory=dict)
    templates: Optional[Templates] = None


class GameStorage(DocumentModel):
    """Storage document of a game."""

    version: int = GAME_STORAGE_VERSION
    title: str = ""
    mode: GameMode = GameMode.CLASSIC
    start_time: Optional[datetime] = None
    templates: Optional[Templates] = None
    objectives: Dict[str, Objective] = Field(default_factory=dict)
    teams: Dict[str, Team] = Field(
        default_factory=lambda: {key: Team(**team) for key, team in DEFAULT_TEAMS.items()}
    )
    players: Dict[str, GamePlayer] = Field(default_factory=dict)
    editors: Dict[str, Editor] = Field(default_factory=dict)
    meta: Optional[GameMeta] = None

    @field_validator("teams")
    @classmethod
    def validate_teams(cls, value: Dict[str, Team]) -> Dict[str, Team]:
        return check_teams(value)


def migrate_storage(raw: Optional[dict]) -> GameStorage:
    """
    Upgrade a stored game document to the current version and validate it.

    Version 0 documents (no ``version`` key) may lack teams, players and
    editors; those are filled with their defaults.

    Args:
        raw: Document as read from the database

    Returns:
        Validated GameStorage at GAME_STORAGE_VERSION
    """
    data = copy.deepcopy(raw) if raw else {}
    version = data.get("version", 0)

    if version < 1:
        data.setdefault("teams", copy.deepcopy(DEFAULT_TEAMS))
        data.setdefault("players", {})
        data.setdefault("editors", {})
        data.setdefault("objectives", {})
        # Legacy documents keyed some maps by integer
        for key in ("teams", "players", "editors", "objectives"):
            data[key] = {str(k): v for k, v in (data.get(key) or {}).items()}
        data["version"] = 1

    return GameStorage.model_validate(data)


# Patches


class GameUpdate(PatchModel):
    """Fields of a game that a moderator may change."""

    title: Optional[str] = Field(None, min_length=1, max_length=124)
    mode: Optional[GameMode] = None
    objectives: Optional[Dict[str, Objective]] = None
    teams: Optional[Dict[str, Team]] = None
    meta: Optional[GameMeta] = None
    video_url: Optional[str] = None

    @field_validator("teams")
    @classmethod
    def validate_teams(cls, value: Optional[Dict[str, Team]]) -> Optional[Dict[str, Team]]:
        if value is None:
            return value
        return check_teams(value)


class ScheduleUpdate(PatchModel):
    """Fields of a schedule setup that a moderator may change."""

    title: Optional[str] = Field(None, min_length=1, max_length=124)
    mode: Optional[GameMode] = None
    season: Optional[int] = Field(None, ge=MIN_SEASON, le=MAX_SEASON)
    start_time: Optional[datetime] = None
    objectives: Optional[Dict[str, Objective]] = None
    templates: Optional[Templates] = None


class AddGamePlayerRequest(BaseModel):
    """Request to place a user on a team, optionally in an editor slot."""

    user_id: int
    team: int = Field(..., ge=0, le=1)
    language: Optional[EditorLanguage] = None


class RemoveGamePlayerRequest(BaseModel):
    """Request to take a user out of a game."""

    user_id: int


# Game / schedule responses


class GameResponse(BaseModel):
    """Game response."""

    id: int
    season: int
    mode: str
    status: GameStatus
    video_url: Optional[str] = None
    schedule_id: Optional[int] = None
    storage: dict
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ScheduleResponse(BaseModel):
    """Game schedule response."""

    id: int
    status: GameStatus
    setup: dict
    start_time: Optional[str] = None
    game_id: Optional[int] = None
    game: Optional[GameResponse] = None  # Populated on activation
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Pagination(BaseModel):
    """Links to neighbouring pages."""

    before: Optional[str] = None
    after: Optional[str] = None


class PaginatedGamesResponse(BaseModel):
    """A page of games."""

    data: List[dict]
    pagination: Pagination


class GameApplicationResponse(BaseModel):
    """Game application response."""

    id: int
    user_id: int
    schedule_id: int
    username: Optional[str] = None
    created_at: Optional[str] = None


# Authentication schemas


class RegisterRequest(BaseModel):
    """Request to register a new account."""

    username: str
    email: str
    password: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        value = value.strip()
        if not USERNAME_MIN_LENGTH <= len(value) <= USERNAME_MAX_LENGTH:
            raise ValueError(
                f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters"
            )
        if not USERNAME_PATTERN.match(value):
            raise ValueError("Username may only contain letters, numbers, '.', '-' and '_'")
        return value

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("A valid email address is required")
        return value

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        value = value.strip()
        if not PASSWORD_MIN_LENGTH <= len(value) <= PASSWORD_MAX_LENGTH:
            raise ValueError(
                f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters"
            )
        return value


class LoginRequest(BaseModel):
    """Request to login with username or email and password."""

    identifier: str
    password: str


class UserResponse(BaseModel):
    """User information response. Never includes the password hash or token."""

    id: int
    username: str
    email: str
    role: UserRole
    avatar_url: Optional[str] = None
    last_sign_in: Optional[str] = None
    created_at: Optional[str] = None


class AuthResponse(BaseModel):
    """Authentication response with an opaque bearer token."""

    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class ForgotPasswordRequest(BaseModel):
    """Request to send a password reset email."""

    username_or_email: str


class ResetPasswordRequest(BaseModel):
    """Request to set a new password with a reset token."""

    token: str
    password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)


class UpdatePasswordRequest(BaseModel):
    """Request to change the current user's password."""

    old_password: str
    new_password: str = Field(..., min_length=PASSWORD_MIN_LENGTH, max_length=PASSWORD_MAX_LENGTH)


class UpdateEmailRequest(BaseModel):
    """Request to change the current user's email."""

    password: str
    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: str) -> str:
        value = value.strip()
        if not EMAIL_PATTERN.match(value):
            raise ValueError("A valid email address is required")
        return value


class UpdateRoleRequest(BaseModel):
    """Request to change a user's role."""

    role: UserRole


class UserSearchResult(BaseModel):
    """User returned by a moderator search."""

    id: int
    username: str
    email: str
    role: UserRole


# Profile schemas


class Skills(BaseModel):
    """Self-rated skill per language (0-5)."""

    html: int = Field(1, ge=0, le=5)
    css: int = Field(1, ge=0, le=5)
    js: int = Field(1, ge=0, le=5)


class UserProfileUpdate(BaseModel):
    """Profile fields a user may change; omitted fields keep their value."""

    model_config = ConfigDict(extra="forbid")

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    dob: Optional[date] = None
    sex: Optional[str] = None
    about: Optional[str] = None
    for_hire: Optional[bool] = None
    company: Optional[str] = None
    website_url: Optional[str] = None
    address_one: Optional[str] = None
    address_two: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    skills: Optional[Skills] = None

    @model_validator(mode="after")
    def validate_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("At least one profile field must be provided")
        return self


class UserProfileResponse(BaseModel):
    """User profile response."""

    id: int
    user_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    dob: Optional[str] = None
    sex: Optional[str] = None
    about: Optional[str] = None
    for_hire: bool = False
    company: Optional[str] = None
    website_url: Optional[str] = None
    address_one: Optional[str] = None
    address_two: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None
    skills: Skills
    updated_at: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
