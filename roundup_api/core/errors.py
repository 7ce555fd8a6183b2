"""
Application error taxonomy

Every error a request can end in is an ``AppError`` carrying its HTTP status.
4xx errors render with ``status="fail"``, 5xx errors with ``status="error"``.
"""

from typing import Any, Dict


class AppError(Exception):
    """Base class for errors surfaced to API callers"""

    status_code: int = 500
    default_message: str = "Something went wrong!"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.status_code < 500 else "error"

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status, "message": self.message}


class InvalidInputError(AppError):
    status_code = 400
    default_message = "Invalid input"


class UnauthenticatedError(AppError):
    status_code = 401
    default_message = "Authentication required"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Not enough permissions"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Resource not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Resource already exists"


class InternalError(AppError):
    status_code = 500
