"""
User profile service layer.
"""

from typing import Dict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from backend.database.models import User, UserProfile
from backend.models.schemas import UserProfileUpdate
from backend.services.exceptions import NotFoundError
from backend.utils.datetime_utils import isoformat

logger = logging.getLogger(__name__)


def _profile_to_dict(profile: UserProfile) -> Dict:
    return {
        "id": profile.id,
        "user_id": profile.user_id,
        "first_name": profile.first_name,
        "last_name": profile.last_name,
        "dob": profile.dob.isoformat() if profile.dob else None,
        "sex": profile.sex,
        "about": profile.about,
        "for_hire": bool(profile.for_hire),
        "company": profile.company,
        "website_url": profile.website_url,
        "address_one": profile.address_one,
        "address_two": profile.address_two,
        "city": profile.city,
        "state": profile.state,
        "zip": profile.zip,
        "country": profile.country,
        "skills": profile.skills or {"html": 1, "css": 1, "js": 1},
        "updated_at": isoformat(profile.updated_at),
    }


async def _load_profile(session: AsyncSession, user_id: int) -> UserProfile:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("A user does not exist by the provided id.", "USER_NOT_FOUND")

    result = await session.execute(select(UserProfile).where(UserProfile.user_id == user_id))
    profile = result.scalar_one_or_none()
    if profile is None:
        raise NotFoundError(
            f"The specified user {user.username} does not have a profile", "PROFILE_NOT_FOUND"
        )
    return profile


async def get_profile(session: AsyncSession, user_id: int) -> Dict:
    """
    Get a user's profile.

    Raises:
        NotFoundError: If the user or their profile does not exist
    """
    return _profile_to_dict(await _load_profile(session, user_id))


async def update_profile(session: AsyncSession, user_id: int, patch: UserProfileUpdate) -> Dict:
    """
    Apply the non-null fields of a patch to a user's profile.

    Args:
        session: Database session
        user_id: Profile owner
        patch: Fields to change

    Returns:
        Updated profile dictionary
    """
    profile = await _load_profile(session, user_id)

    for field, value in patch.model_dump(exclude_none=True).items():
        setattr(profile, field, value)

    await session.commit()
    logger.info(f"Updated profile of user {user_id}")
    return _profile_to_dict(profile)
