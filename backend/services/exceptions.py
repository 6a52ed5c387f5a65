"""
Service-level errors.

Each error carries the HTTP status it maps to and a stable machine-readable
code. Services raise them before mutating anything; the API layer renders
them as ``{"detail": message, "code": code}``.
"""

from typing import Optional


class ServiceError(Exception):
    """Base class for expected, request-scoped failures."""

    status_code = 400
    default_code = "BAD_REQUEST"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code}


class NotFoundError(ServiceError):
    status_code = 404
    default_code = "NOT_FOUND"


class PreconditionFailedError(ServiceError):
    status_code = 400
    default_code = "PRECONDITION_FAILED"


class UnauthenticatedError(ServiceError):
    status_code = 401
    default_code = "UNAUTHENTICATED"


class ForbiddenError(ServiceError):
    status_code = 403
    default_code = "FORBIDDEN"


class ConflictError(ServiceError):
    status_code = 409
    default_code = "CONFLICT"
