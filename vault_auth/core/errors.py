"""
Typed application errors raised by the service layer.
Each error carries the HTTP status the API boundary answers with.
"""

from typing import List, Optional


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(AppError):
    """Malformed input (400)."""
    status_code = 400

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class UnauthorizedError(AppError):
    """Bad credentials or missing/invalid token (401)."""
    status_code = 401


class ForbiddenError(AppError):
    """Authenticated but not allowed (403)."""
    status_code = 403


class NotFoundError(AppError):
    """Resource no longer exists (404)."""
    status_code = 404


class ConflictError(AppError):
    """Duplicate unique field (409)."""
    status_code = 409


class InternalError(AppError):
    """Unexpected collaborator failure (500)."""
    status_code = 500


__all__ = [
    "AppError",
    "ValidationError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "ConflictError",
    "InternalError",
]
