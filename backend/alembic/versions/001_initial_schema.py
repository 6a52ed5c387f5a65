"""001_initial_schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 12:00:00.000000

Creates the full schema:
- Accounts: users, user_profiles, user_stats, user_game_stats
- Auth: email_verifications, password_resets
- Games: game_schedules, games, game_applications
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

user_role = postgresql.ENUM('PENDING', 'USER', 'MODERATOR', 'ADMIN', name='userrole', create_type=False)
game_status = postgresql.ENUM('SCHEDULED', 'ACTIVE', 'ENDED', name='gamestatus', create_type=False)
game_mode = postgresql.ENUM('Classic', 'Blitz', 'Zen Garden', name='gamemode', create_type=False)


def _timestamps(updated: bool = True):
    columns = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()))
    return columns


def upgrade() -> None:
    """Create all tables."""
    bind = op.get_bind()
    for enum_type in (user_role, game_status, game_mode):
        postgresql.ENUM(*enum_type.enums, name=enum_type.name).create(bind, checkfirst=True)

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('username', sa.String(25), nullable=False, unique=True),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.Column('role', user_role, nullable=False, server_default='PENDING'),
        sa.Column('token', sa.String(), nullable=True, unique=True),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('last_sign_in', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index('idx_users_username', 'users', ['username'])
    op.create_index('idx_users_email', 'users', ['email'])

    op.create_table(
        'user_profiles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('dob', sa.Date(), nullable=True),
        sa.Column('sex', sa.String(), nullable=True),
        sa.Column('about', sa.Text(), nullable=True),
        sa.Column('for_hire', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('company', sa.String(), nullable=True),
        sa.Column('website_url', sa.String(), nullable=True),
        sa.Column('address_one', sa.String(), nullable=True),
        sa.Column('address_two', sa.String(), nullable=True),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('state', sa.String(), nullable=True),
        sa.Column('zip', sa.String(), nullable=True),
        sa.Column('country', sa.String(), nullable=True),
        sa.Column('skills', postgresql.JSONB(), nullable=False),
        *_timestamps(),
    )

    op.create_table(
        'user_stats',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('coins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('xp', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('level', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
    )

    op.create_table(
        'user_game_stats',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('wins', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('loss', sa.Integer(), nullable=False, server_default='0'),
        *_timestamps(),
    )

    op.create_table(
        'email_verifications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('token', sa.String(), nullable=False, unique=True),
        *_timestamps(updated=False),
    )
    op.create_index('idx_email_verifications_token', 'email_verifications', ['token'])

    op.create_table(
        'password_resets',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token', sa.String(), nullable=False, unique=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        *_timestamps(updated=False),
    )
    op.create_index('idx_password_resets_user', 'password_resets', ['user_id'])
    op.create_index('idx_password_resets_token', 'password_resets', ['token'])

    op.create_table(
        'game_schedules',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('status', game_status, nullable=False, server_default='SCHEDULED'),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('setup', postgresql.JSONB(), nullable=False),
        *_timestamps(),
    )
    op.create_index('idx_game_schedules_status', 'game_schedules', ['status'])
    op.create_index('idx_game_schedules_start_time', 'game_schedules', ['start_time'])

    op.create_table(
        'games',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('season', sa.Integer(), nullable=False),
        sa.Column('mode', game_mode, nullable=False),
        sa.Column('status', game_status, nullable=False, server_default='ACTIVE'),
        sa.Column('video_url', sa.String(), nullable=True),
        sa.Column('storage', postgresql.JSONB(), nullable=False),
        sa.Column(
            'schedule_id',
            sa.Integer(),
            sa.ForeignKey('game_schedules.id', ondelete='SET NULL'),
            nullable=True,
            unique=True,
        ),
        *_timestamps(),
    )
    op.create_index('idx_games_season', 'games', ['season'])
    op.create_index('idx_games_status', 'games', ['status'])

    op.create_table(
        'game_applications',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column(
            'schedule_id',
            sa.Integer(),
            sa.ForeignKey('game_schedules.id', ondelete='CASCADE'),
            nullable=False,
        ),
        *_timestamps(updated=False),
        sa.UniqueConstraint('user_id', 'schedule_id', name='uq_game_applications_user_schedule'),
    )
    op.create_index('idx_game_applications_schedule', 'game_applications', ['schedule_id'])


def downgrade() -> None:
    """Drop all tables and enum types."""
    for table in (
        'game_applications',
        'games',
        'game_schedules',
        'password_resets',
        'email_verifications',
        'user_game_stats',
        'user_stats',
        'user_profiles',
        'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in (game_mode, game_status, user_role):
        postgresql.ENUM(name=enum_type.name).drop(bind, checkfirst=True)
