"""Authentication route handlers."""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from backend.api.routes import limiter
from backend.api.auth_dependencies import get_current_user
from backend.database.db import get_db_session
from backend.models.schemas import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UpdateEmailRequest,
    UpdatePasswordRequest,
    UserResponse,
)
from backend.services import user_service
from backend.services.exceptions import ServiceError

logger = logging.getLogger(__name__)
router = APIRouter()


def _auth_response(result: Dict[str, Any]) -> AuthResponse:
    return AuthResponse(access_token=result["token"], user=UserResponse(**result["user"]))


@router.post("/api/auth/register", response_model=AuthResponse)
@limiter.limit("10/minute")
async def register(
    request: Request, payload: RegisterRequest, session: AsyncSession = Depends(get_db_session)
):
    """Create a PENDING account, send the verification email and sign in."""
    try:
        result = await user_service.register_user(
            session, payload.username, payload.email, payload.password
        )
        return _auth_response(result)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error during registration: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error during registration")


@router.post("/api/auth/login", response_model=AuthResponse)
@limiter.limit("10/minute")
async def login(
    request: Request, payload: LoginRequest, session: AsyncSession = Depends(get_db_session)
):
    """Login with username or email and password."""
    try:
        result = await user_service.authenticate(session, payload.identifier, payload.password)
        return _auth_response(result)
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error during login: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error during login")


@router.post("/api/auth/logout")
async def logout(
    user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_db_session)
):
    """Invalidate the current token."""
    await user_service.logout(session, user["id"])
    return {"status": "success", "message": "Logged out"}


@router.get("/api/auth/user", response_model=UserResponse)
async def get_authenticated_user(user: dict = Depends(get_current_user)):
    """Get the signed-in user."""
    return UserResponse(**user)


@router.get("/api/auth/verify")
async def verify_email(token: str, session: AsyncSession = Depends(get_db_session)):
    """Confirm an email address with the token from the verification email."""
    try:
        user = await user_service.verify_email(session, token)
        return {"status": "success", "message": "Email verified", "user": user}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error verifying email: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error verifying email")


@router.post("/api/auth/reverify")
async def resend_verification(
    user: dict = Depends(get_current_user), session: AsyncSession = Depends(get_db_session)
):
    """Send a new verification email to a PENDING user."""
    try:
        sent = await user_service.resend_verification(session, user["id"])
        if not sent:
            return {"status": "success", "message": "Your email is already verified"}
        return {"status": "success", "message": "Verification email sent"}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error resending verification: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error resending verification")


@router.post("/api/auth/forgot/password")
@limiter.limit("5/minute")
async def forgot_password(
    request: Request,
    payload: ForgotPasswordRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Email a password reset link."""
    try:
        await user_service.request_password_reset(session, payload.username_or_email)
        return {"status": "success", "message": "Password reset email sent"}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error requesting password reset: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error requesting password reset")


@router.post("/api/auth/reset/password")
@limiter.limit("10/minute")
async def reset_password(
    request: Request,
    payload: ResetPasswordRequest,
    session: AsyncSession = Depends(get_db_session),
):
    """Set a new password with a reset token."""
    try:
        await user_service.reset_password(session, payload.token, payload.password)
        return {"status": "success", "message": "Password has been reset"}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error resetting password: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error resetting password")


@router.put("/api/auth/reset/password")
async def update_password(
    payload: UpdatePasswordRequest,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Change the signed-in user's password."""
    try:
        await user_service.update_password(
            session, user["id"], payload.old_password, payload.new_password
        )
        return {"status": "success", "message": "Password updated"}
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating password: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating password")


@router.put("/api/auth/reset/email")
async def update_email(
    payload: UpdateEmailRequest,
    user: dict = Depends(get_current_user),
    session: AsyncSession = Depends(get_db_session),
):
    """Change the signed-in user's email; most accounts must verify it again."""
    try:
        result = await user_service.change_email(session, user["id"], payload.password, payload.email)
        return {
            "status": "success",
            "message": "Email updated",
            "verification_required": result["verification_required"],
            "user": result["user"],
        }
    except (HTTPException, ServiceError):
        raise
    except Exception as e:
        logger.error(f"Error updating email: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Error updating email")
