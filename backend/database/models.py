"""
SQLAlchemy ORM models for the DevWars game platform.
"""

import enum
from sqlalchemy import (
    JSON,
    Column,
    Integer,
    String,
    Text,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    UniqueConstraint,
    Index,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from backend.database.db import Base
from backend.utils.datetime_utils import utcnow

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


class UserRole(str, enum.Enum):
    """User role enum, ordered from least to most privileged."""

    PENDING = "PENDING"
    USER = "USER"
    MODERATOR = "MODERATOR"
    ADMIN = "ADMIN"


class GameStatus(str, enum.Enum):
    """Lifecycle status shared by game schedules and games."""

    SCHEDULED = "SCHEDULED"
    ACTIVE = "ACTIVE"
    ENDED = "ENDED"


class GameMode(str, enum.Enum):
    """Game mode enum."""

    CLASSIC = "Classic"
    BLITZ = "Blitz"
    ZEN_GARDEN = "Zen Garden"


class EditorLanguage(str, enum.Enum):
    """Language of an editor slot."""

    HTML = "html"
    CSS = "css"
    JS = "js"


class User(Base):
    """User accounts with username/email + password authentication."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(25), nullable=False, unique=True)
    email = Column(String, nullable=False, unique=True)
    password_hash = Column(String, nullable=False)
    role = Column(Enum(UserRole), default=UserRole.PENDING, nullable=False)
    token = Column(String, nullable=True, unique=True)  # Opaque session credential
    avatar_url = Column(String, nullable=True)
    last_sign_in = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Relationships
    profile = relationship(
        "UserProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    stats = relationship(
        "UserStats", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    game_stats = relationship(
        "UserGameStats", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    verification = relationship(
        "EmailVerification", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    password_resets = relationship(
        "PasswordReset", back_populates="user", cascade="all, delete-orphan"
    )
    applications = relationship(
        "GameApplication", back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_users_username", "username"),
        Index("idx_users_email", "email"),
    )


class UserProfile(Base):
    """Personal profile details for a user."""

    __tablename__ = "user_profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    dob = Column(Date, nullable=True)
    sex = Column(String, nullable=True)
    about = Column(Text, nullable=True)
    for_hire = Column(Boolean, default=False, nullable=False)
    company = Column(String, nullable=True)
    website_url = Column(String, nullable=True)
    address_one = Column(String, nullable=True)
    address_two = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    zip = Column(String, nullable=True)
    country = Column(String, nullable=True)
    skills = Column(JSONDocument, nullable=False, default=lambda: {"html": 1, "css": 1, "js": 1})
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    user = relationship("User", back_populates="profile")


class UserStats(Base):
    """Platform progression stats (coins, xp, level)."""

    __tablename__ = "user_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    coins = Column(Integer, default=0, nullable=False)
    xp = Column(Integer, default=0, nullable=False)
    level = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    user = relationship("User", back_populates="stats")


class UserGameStats(Base):
    """Historical game record used for auto-assignment ranking."""

    __tablename__ = "user_game_stats"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    wins = Column(Integer, default=0, nullable=False)
    loss = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    user = relationship("User", back_populates="game_stats")


class EmailVerification(Base):
    """Pending email verification token for a user."""

    __tablename__ = "email_verifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    token = Column(String, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    user = relationship("User", back_populates="verification")

    __table_args__ = (Index("idx_email_verifications_token", "token"),)


class PasswordReset(Base):
    """Password reset tokens sent by email."""

    __tablename__ = "password_resets"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token = Column(String, nullable=False, unique=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    user = relationship("User", back_populates="password_resets")

    __table_args__ = (
        Index("idx_password_resets_user", "user_id"),
        Index("idx_password_resets_token", "token"),
    )


class GameSchedule(Base):
    """A planned game slot; spawns exactly one game when activated."""

    __tablename__ = "game_schedules"

    id = Column(Integer, primary_key=True, autoincrement=True)
    status = Column(Enum(GameStatus), default=GameStatus.SCHEDULED, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=True)  # Mirrors setup.startTime for ordering
    setup = Column(JSONDocument, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Relationships
    game = relationship("Game", back_populates="schedule", uselist=False)
    applications = relationship(
        "GameApplication", back_populates="schedule", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index("idx_game_schedules_status", "status"),
        Index("idx_game_schedules_start_time", "start_time"),
    )


class Game(Base):
    """A game created from an activated schedule."""

    __tablename__ = "games"

    id = Column(Integer, primary_key=True, autoincrement=True)
    season = Column(Integer, nullable=False)
    mode = Column(Enum(GameMode, values_callable=lambda e: [m.value for m in e]), nullable=False)
    status = Column(Enum(GameStatus), default=GameStatus.ACTIVE, nullable=False)
    video_url = Column(String, nullable=True)
    storage = Column(JSONDocument, nullable=False, default=dict)
    schedule_id = Column(
        Integer, ForeignKey("game_schedules.id", ondelete="SET NULL"), nullable=True, unique=True
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow)

    schedule = relationship("GameSchedule", back_populates="game")

    __table_args__ = (
        Index("idx_games_season", "season"),
        Index("idx_games_status", "status"),
    )


class GameApplication(Base):
    """A user's request to play in a scheduled game."""

    __tablename__ = "game_applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    schedule_id = Column(
        Integer, ForeignKey("game_schedules.id", ondelete="CASCADE"), nullable=False
    )
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    user = relationship("User", back_populates="applications")
    schedule = relationship("GameSchedule", back_populates="applications")

    __table_args__ = (
        UniqueConstraint("user_id", "schedule_id"),
        Index("idx_game_applications_schedule", "schedule_id"),
        Index("idx_game_applications_user", "user_id"),
    )
