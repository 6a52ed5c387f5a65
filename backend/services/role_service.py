"""
Role ranking checks.

Roles form a total order PENDING < USER < MODERATOR < ADMIN. The helpers
accept either a user dict (as returned by user_service) or a User row.
"""

from typing import Any, Union

from backend.database.models import UserRole

ROLE_RANK = {
    UserRole.PENDING: 0,
    UserRole.USER: 1,
    UserRole.MODERATOR: 2,
    UserRole.ADMIN: 3,
}


def _role_of(user: Any) -> UserRole:
    role = user.get("role") if isinstance(user, dict) else getattr(user, "role", None)
    return UserRole(role)


def role_rank(role: Union[UserRole, str]) -> int:
    """Rank of a role in the total order."""
    return ROLE_RANK[UserRole(role)]


def is_role_or_higher(user: Any, required_role: Union[UserRole, str]) -> bool:
    """True if the user's role rank is at least the required role's rank."""
    return role_rank(_role_of(user)) >= role_rank(required_role)


def is_role_higher(user: Any, required_role: Union[UserRole, str]) -> bool:
    """True if the user's role rank is strictly above the required role's rank.

    No role outranks ADMIN, so this is always False for an ADMIN requirement.
    """
    return role_rank(_role_of(user)) > role_rank(required_role)
