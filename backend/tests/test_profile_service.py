"""
Tests for reading and editing user profiles.
"""

import pytest
from sqlalchemy import delete

from backend.database.models import UserProfile
from backend.models.schemas import UserProfileUpdate
from backend.services import profile_service
from backend.services.exceptions import NotFoundError
from backend.tests.factories import create_user


@pytest.mark.asyncio
async def test_get_profile_defaults(db_session, session_maker):
    user = await create_user(session_maker, "profiled")

    profile = await profile_service.get_profile(db_session, user["id"])

    assert profile["user_id"] == user["id"]
    assert profile["for_hire"] is False
    assert profile["skills"] == {"html": 1, "css": 1, "js": 1}
    assert profile["first_name"] is None


@pytest.mark.asyncio
async def test_update_profile_keeps_omitted_fields(db_session, session_maker):
    user = await create_user(session_maker, "editor")

    await profile_service.update_profile(
        db_session, user["id"], UserProfileUpdate(first_name="Ada", city="London")
    )
    updated = await profile_service.update_profile(
        db_session,
        user["id"],
        UserProfileUpdate(dob="1990-12-10", for_hire=True, skills={"html": 5, "css": 4, "js": 3}),
    )

    assert updated["first_name"] == "Ada"
    assert updated["city"] == "London"
    assert updated["dob"] == "1990-12-10"
    assert updated["for_hire"] is True
    assert updated["skills"] == {"html": 5, "css": 4, "js": 3}


def test_profile_update_validation():
    with pytest.raises(ValueError):
        UserProfileUpdate()
    with pytest.raises(ValueError):
        UserProfileUpdate(skills={"html": 9})
    with pytest.raises(ValueError):
        UserProfileUpdate(nickname="unknown field")


@pytest.mark.asyncio
async def test_unknown_user(db_session):
    with pytest.raises(NotFoundError) as exc:
        await profile_service.get_profile(db_session, 404)
    assert exc.value.code == "USER_NOT_FOUND"


@pytest.mark.asyncio
async def test_user_without_profile(db_session, session_maker):
    user = await create_user(session_maker, "noProfile")
    async with session_maker() as session:
        await session.execute(delete(UserProfile).where(UserProfile.user_id == user["id"]))
        await session.commit()

    with pytest.raises(NotFoundError) as exc:
        await profile_service.get_profile(db_session, user["id"])
    assert exc.value.code == "PROFILE_NOT_FOUND"
    assert exc.value.message == "The specified user noProfile does not have a profile"
