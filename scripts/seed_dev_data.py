#!/usr/bin/env python3
"""
Seed local dev database with users and an upcoming game for manual testing.

Creates an admin, a moderator and six verified players, schedules one game
and applies every player to it, so the schedule can be activated and
auto-assigned straight away.
Idempotent: skips users that already exist.

Usage:
    python scripts/seed_dev_data.py
"""

import asyncio
import os
import sys

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, project_root)

from sqlalchemy import select  # noqa: E402
from backend.database.db import AsyncSessionLocal  # noqa: E402
from backend.database.models import (  # noqa: E402
    GameApplication,
    User,
    UserGameStats,
    UserProfile,
    UserRole,
    UserStats,
)
from backend.models.schemas import ScheduleSetup  # noqa: E402
from backend.services import schedule_service  # noqa: E402
from backend.services.auth_service import hash_password  # noqa: E402

PASSWORD = "test1234"

# Easy to remember accounts
DEV_USERS = [
    {"username": "devadmin", "role": UserRole.ADMIN, "wins": 0, "losses": 0},
    {"username": "devmod", "role": UserRole.MODERATOR, "wins": 0, "losses": 0},
    {"username": "alice", "role": UserRole.USER, "wins": 9, "losses": 3},
    {"username": "bobby", "role": UserRole.USER, "wins": 4, "losses": 4},
    {"username": "carol", "role": UserRole.USER, "wins": 7, "losses": 1},
    {"username": "dave", "role": UserRole.USER, "wins": 0, "losses": 2},
    {"username": "erin", "role": UserRole.USER, "wins": 2, "losses": 0},
    {"username": "frank", "role": UserRole.USER, "wins": 5, "losses": 6},
]

DEV_SCHEDULE = {
    "title": "Dev Night",
    "mode": "Classic",
    "startTime": "2030-01-01T20:00:00Z",
    "objectives": {
        "1": {"id": 1, "description": "Build a navigation bar"},
        "2": {"id": 2, "description": "Add a hero section"},
        "3": {"id": 3, "description": "Animate the logo", "isBonus": True},
    },
}


async def main():
    """Create dev users, a schedule and applications."""
    print("\nSeeding dev data...\n")

    player_ids = []
    async with AsyncSessionLocal() as session:
        for user_data in DEV_USERS:
            result = await session.execute(select(User).where(User.username == user_data["username"]))
            existing_user = result.scalar_one_or_none()

            if existing_user:
                print(f"  - {user_data['username']} already exists (user #{existing_user.id})")
                if user_data["role"] == UserRole.USER:
                    player_ids.append(existing_user.id)
                continue

            new_user = User(
                username=user_data["username"],
                email=f"{user_data['username']}@devwars.test",
                password_hash=hash_password(PASSWORD),
                role=user_data["role"],
            )
            session.add(new_user)
            await session.flush()

            session.add_all(
                [
                    UserProfile(user_id=new_user.id, for_hire=False, skills={"html": 3, "css": 3, "js": 3}),
                    UserStats(user_id=new_user.id, coins=0, xp=0, level=1),
                    UserGameStats(user_id=new_user.id, wins=user_data["wins"], loss=user_data["losses"]),
                ]
            )
            if user_data["role"] == UserRole.USER:
                player_ids.append(new_user.id)

            print(f"  + Created {user_data['username']} ({user_data['role'].value}, user #{new_user.id})")

        await session.commit()

        schedule = await schedule_service.create_schedule(
            session, ScheduleSetup.model_validate(DEV_SCHEDULE)
        )
        session.add_all(
            [GameApplication(user_id=user_id, schedule_id=schedule["id"]) for user_id in player_ids]
        )
        await session.commit()
        print(f"  + Scheduled '{DEV_SCHEDULE['title']}' (schedule #{schedule['id']}) with {len(player_ids)} applicants")

    print("\nDev credentials (password for all: " + PASSWORD + ")")
    for u in DEV_USERS:
        print(f"  {u['username']:<10} {u['role'].value}")
    print()


if __name__ == "__main__":
    asyncio.run(main())
