"""
User service layer: registration, sign in, verification, password and email
changes, role changes and moderator search.
"""

from datetime import timedelta
from typing import Dict, List, Optional
from sqlalchemy import select, delete, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
import logging

from backend.database.models import (
    EmailVerification,
    GameApplication,
    PasswordReset,
    User,
    UserGameStats,
    UserProfile,
    UserRole,
    UserStats,
)
from backend.services import auth_service, email_service
from backend.services.assignment_service import ApplicantStats
from backend.services.exceptions import (
    ConflictError,
    NotFoundError,
    PreconditionFailedError,
    UnauthenticatedError,
)
from backend.utils.constants import (
    PASSWORD_RESET_EXPIRATION_HOURS,
    SEARCH_DEFAULT_LIMIT,
    SEARCH_MAX_LIMIT,
)
from backend.utils.datetime_utils import as_utc, isoformat, utcnow

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "The provided username or password is not correct."


def _user_to_dict(user: User) -> Dict:
    """Public view of a user; the password hash and token are never included."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role.value if user.role else None,
        "avatar_url": user.avatar_url,
        "last_sign_in": isoformat(user.last_sign_in),
        "created_at": isoformat(user.created_at),
    }


async def _find_by_identifier(session: AsyncSession, identifier: str) -> Optional[User]:
    """Look up a user by username or email, case-insensitively."""
    value = (identifier or "").strip().lower()
    if not value:
        return None
    result = await session.execute(
        select(User)
        .where(or_(func.lower(User.username) == value, func.lower(User.email) == value))
        .limit(1)
    )
    return result.scalar_one_or_none()


async def _load_user(session: AsyncSession, user_id: int) -> User:
    user = await session.get(User, user_id)
    if user is None:
        raise NotFoundError("A user does not exist by the provided id.", "USER_NOT_FOUND")
    return user


async def _issue_verification(session: AsyncSession, user: User) -> str:
    """Replace any pending verification token of the user with a new one."""
    await session.execute(delete(EmailVerification).where(EmailVerification.user_id == user.id))
    token = auth_service.generate_token()
    session.add(EmailVerification(user_id=user.id, token=token))
    return token


async def get_user_by_id(session: AsyncSession, user_id: int) -> Dict:
    """
    Get a user by id.

    Raises:
        NotFoundError: If the user does not exist
    """
    return _user_to_dict(await _load_user(session, user_id))


async def get_user_by_token(session: AsyncSession, token: str) -> Optional[Dict]:
    """
    Resolve a bearer token to its user.

    Args:
        session: Database session
        token: Opaque token issued at sign in

    Returns:
        User dictionary or None if the token is unknown
    """
    if not token:
        return None
    result = await session.execute(select(User).where(User.token == token).limit(1))
    user = result.scalar_one_or_none()
    return _user_to_dict(user) if user else None


async def register_user(session: AsyncSession, username: str, email: str, password: str) -> Dict:
    """
    Create a PENDING account and send its verification email.

    The account starts with an empty profile, zeroed stats and a sign-in
    token, so registration also signs the user in.

    Args:
        session: Database session
        username: Requested username (already validated for length/charset)
        email: Email address
        password: Plain-text password

    Returns:
        Dict with "user" and "token"

    Raises:
        ConflictError: If the username is reserved or the username/email is taken
    """
    username = username.strip()
    email = auth_service.normalize_email(email)

    if auth_service.is_reserved_username(username):
        raise ConflictError("The provided username is reserved.", "USERNAME_RESERVED")

    result = await session.execute(
        select(User.id).where(func.lower(User.username) == username.lower()).limit(1)
    )
    if result.scalar_one_or_none() is not None:
        raise ConflictError("A user already exists with the provided username.", "USERNAME_TAKEN")

    result = await session.execute(select(User.id).where(func.lower(User.email) == email).limit(1))
    if result.scalar_one_or_none() is not None:
        raise ConflictError("A user already exists with the provided email.", "EMAIL_TAKEN")

    token = auth_service.generate_token()
    user = User(
        username=username,
        email=email,
        password_hash=auth_service.hash_password(password),
        role=UserRole.PENDING,
        token=token,
        last_sign_in=utcnow(),
    )
    session.add(user)
    await session.flush()

    session.add_all(
        [
            UserProfile(user_id=user.id, for_hire=False, skills={"html": 1, "css": 1, "js": 1}),
            UserStats(user_id=user.id, coins=0, xp=0, level=1),
            UserGameStats(user_id=user.id, wins=0, loss=0),
        ]
    )
    verification_token = await _issue_verification(session, user)
    await session.commit()

    logger.info(f"Registered user {user.id} ({user.username})")
    await email_service.send_verification_email(user.email, user.username, verification_token)

    return {"user": _user_to_dict(user), "token": token}


async def authenticate(session: AsyncSession, identifier: str, password: str) -> Dict:
    """
    Sign in with username or email and password, issuing a fresh token.

    Returns:
        Dict with "user" and "token"

    Raises:
        PreconditionFailedError: If the user is unknown or the password is wrong
    """
    user = await _find_by_identifier(session, identifier)
    if user is None or not auth_service.verify_password(password, user.password_hash):
        raise PreconditionFailedError(INVALID_CREDENTIALS, "INVALID_CREDENTIALS")

    user.token = auth_service.generate_token()
    user.last_sign_in = utcnow()
    await session.commit()

    return {"user": _user_to_dict(user), "token": user.token}


async def logout(session: AsyncSession, user_id: int) -> None:
    """Invalidate the user's current token."""
    user = await _load_user(session, user_id)
    user.token = None
    await session.commit()


async def verify_email(session: AsyncSession, token: str) -> Dict:
    """
    Consume a verification token, promoting a PENDING user to USER.

    Users already above PENDING keep their role.

    Raises:
        NotFoundError: If the token is unknown
    """
    result = await session.execute(
        select(EmailVerification).where(EmailVerification.token == token).limit(1)
    )
    verification = result.scalar_one_or_none()
    if verification is None:
        raise NotFoundError("The verification token is not valid.", "VERIFICATION_NOT_FOUND")

    user = await _load_user(session, verification.user_id)
    if user.role == UserRole.PENDING:
        user.role = UserRole.USER
    await session.delete(verification)
    await session.commit()

    logger.info(f"Verified email for user {user.id}")
    return _user_to_dict(user)


async def resend_verification(session: AsyncSession, user_id: int) -> bool:
    """
    Send a new verification email to a PENDING user.

    Returns:
        True if an email was issued, False if the user is already verified
    """
    user = await _load_user(session, user_id)
    if user.role != UserRole.PENDING:
        return False

    token = await _issue_verification(session, user)
    await session.commit()
    await email_service.send_verification_email(user.email, user.username, token)
    return True


async def request_password_reset(session: AsyncSession, identifier: str) -> None:
    """
    Email a password reset link.

    Raises:
        NotFoundError: If no user matches the username or email
    """
    user = await _find_by_identifier(session, identifier)
    if user is None:
        raise NotFoundError(
            "A user does not exist by the provided username or email.", "USER_NOT_FOUND"
        )

    token = auth_service.generate_token()
    session.add(
        PasswordReset(
            user_id=user.id,
            token=token,
            expires_at=utcnow() + timedelta(hours=PASSWORD_RESET_EXPIRATION_HOURS),
        )
    )
    await session.commit()
    await email_service.send_password_reset_email(user.email, user.username, token)


async def reset_password(session: AsyncSession, token: str, password: str) -> None:
    """
    Set a new password using a reset token. All of the user's reset tokens
    are consumed and the current sign-in token is invalidated.

    Raises:
        PreconditionFailedError: If the token is unknown
        UnauthenticatedError: If the token has expired
    """
    result = await session.execute(select(PasswordReset).where(PasswordReset.token == token).limit(1))
    reset = result.scalar_one_or_none()
    if reset is None:
        raise PreconditionFailedError("The password reset key is not valid.", "RESET_NOT_FOUND")
    if as_utc(reset.expires_at) < utcnow():
        raise UnauthenticatedError("The password reset key has expired.", "RESET_EXPIRED")

    user = await _load_user(session, reset.user_id)
    user.password_hash = auth_service.hash_password(password)
    user.token = None
    await session.execute(delete(PasswordReset).where(PasswordReset.user_id == user.id))
    await session.commit()
    logger.info(f"Password reset for user {user.id}")


async def update_password(
    session: AsyncSession, user_id: int, old_password: str, new_password: str
) -> None:
    """
    Change a signed-in user's password.

    Raises:
        PreconditionFailedError: If the old password does not match
    """
    user = await _load_user(session, user_id)
    if not auth_service.verify_password(old_password, user.password_hash):
        raise PreconditionFailedError(
            "The provided old password is not correct.", "INVALID_PASSWORD"
        )
    user.password_hash = auth_service.hash_password(new_password)
    await session.commit()


async def change_email(session: AsyncSession, user_id: int, password: str, email: str) -> Dict:
    """
    Change a signed-in user's email.

    PENDING and USER accounts return to PENDING and must verify the new
    address; moderators and admins keep their role.

    Returns:
        Dict with "user" and "verification_required"

    Raises:
        PreconditionFailedError: If the password does not match
        ConflictError: If the email is unchanged or belongs to another account
    """
    user = await _load_user(session, user_id)
    if not auth_service.verify_password(password, user.password_hash):
        raise PreconditionFailedError("The provided password is not correct.", "INVALID_PASSWORD")

    email = auth_service.normalize_email(email)
    if email == user.email.lower():
        raise ConflictError("The provided email is already your current email.", "EMAIL_UNCHANGED")

    result = await session.execute(select(User.id).where(func.lower(User.email) == email).limit(1))
    if result.scalar_one_or_none() is not None:
        raise ConflictError("A user already exists with the provided email.", "EMAIL_TAKEN")

    user.email = email
    verification_token = None
    if user.role in (UserRole.PENDING, UserRole.USER):
        user.role = UserRole.PENDING
        verification_token = await _issue_verification(session, user)
    await session.commit()

    if verification_token:
        await email_service.send_verification_email(user.email, user.username, verification_token)

    return {"user": _user_to_dict(user), "verification_required": verification_token is not None}


async def update_user_role(session: AsyncSession, user_id: int, role: UserRole) -> Dict:
    """Set a user's role."""
    user = await _load_user(session, user_id)
    previous = user.role
    user.role = role
    await session.commit()
    logger.info(f"Changed role of user {user.id} from {previous.value} to {role.value}")
    return _user_to_dict(user)


async def search_users(
    session: AsyncSession,
    username: Optional[str] = None,
    email: Optional[str] = None,
    limit: Optional[int] = None,
) -> List[Dict]:
    """
    Case-insensitive substring search over username and email.

    Args:
        session: Database session
        username: Username fragment
        email: Email fragment
        limit: Maximum results, clamped to 1..SEARCH_MAX_LIMIT

    Returns:
        List of {id, username, email, role}

    Raises:
        PreconditionFailedError: If both fragments are empty
    """
    username = (username or "").strip().lower()
    email = (email or "").strip().lower()
    if not username and not email:
        raise PreconditionFailedError(
            "One of the specified username or email within the query must not be empty.",
            "EMPTY_SEARCH",
        )

    limit = SEARCH_DEFAULT_LIMIT if limit is None else max(1, min(limit, SEARCH_MAX_LIMIT))

    conditions = []
    if username:
        conditions.append(func.lower(User.username).contains(username, autoescape=True))
    if email:
        conditions.append(func.lower(User.email).contains(email, autoescape=True))

    result = await session.execute(
        select(User).where(or_(*conditions)).order_by(User.username).limit(limit)
    )
    return [
        {"id": u.id, "username": u.username, "email": u.email, "role": u.role.value}
        for u in result.scalars().all()
    ]


async def get_applicant_stats(session: AsyncSession, schedule_id: int) -> List[ApplicantStats]:
    """
    Load a schedule's applicants with their win/loss record, in application order.

    Args:
        session: Database session
        schedule_id: Schedule the applications target

    Returns:
        List of ApplicantStats (users without a record count as 0-0)
    """
    result = await session.execute(
        select(User.id, User.username, UserGameStats.wins, UserGameStats.loss)
        .join(GameApplication, GameApplication.user_id == User.id)
        .outerjoin(UserGameStats, UserGameStats.user_id == User.id)
        .where(GameApplication.schedule_id == schedule_id)
        .order_by(GameApplication.created_at, GameApplication.id)
    )
    return [
        ApplicantStats(user_id=row.id, username=row.username, wins=row.wins or 0, losses=row.loss or 0)
        for row in result.all()
    ]
