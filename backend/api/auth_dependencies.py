"""
Authentication and role dependencies for FastAPI routes.

Role checks run before the target entity is loaded, so a request fails in
the order 401 -> 403 -> 404 -> 400/409.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from backend.database.db import get_db_session
from backend.database.models import UserRole
from backend.services import role_service, user_service
from backend.services.exceptions import ForbiddenError, UnauthenticatedError

INSUFFICIENT_ROLE = "Unauthorized, you currently don't meet the minimal requirement."

security = HTTPBearer(auto_error=False)


async def get_current_user(
    session: AsyncSession = Depends(get_db_session),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    Dependency to get the current authenticated user from the bearer token.

    Args:
        session: Database session
        credentials: HTTP Bearer token credentials

    Returns:
        User dictionary

    Raises:
        UnauthenticatedError: If the token is missing or unknown
    """
    if credentials is None or not credentials.credentials:
        raise UnauthenticatedError("Authentication is required.", "UNAUTHENTICATED")

    user = await user_service.get_user_by_token(session, credentials.credentials)
    if user is None:
        raise UnauthenticatedError("Invalid authentication token.", "INVALID_TOKEN")

    return user


def ensure_role(user: dict, role: UserRole) -> None:
    """Raise ForbiddenError unless the user holds at least the given role."""
    if not role_service.is_role_or_higher(user, role):
        raise ForbiddenError(INSUFFICIENT_ROLE, "INSUFFICIENT_ROLE")


def ensure_owner_or_role(user: dict, owner_id: int, role: UserRole) -> None:
    """Raise ForbiddenError unless the user is the owner or holds at least the given role."""
    if user["id"] != owner_id:
        ensure_role(user, role)


def make_require_minimum_role(role: UserRole):
    """Build a dependency that requires an authenticated user of at least ``role``."""

    async def _dep(user: dict = Depends(get_current_user)) -> dict:
        ensure_role(user, role)
        return user

    return _dep


require_user = make_require_minimum_role(UserRole.USER)
require_moderator = make_require_minimum_role(UserRole.MODERATOR)
require_admin = make_require_minimum_role(UserRole.ADMIN)
