"""Shared (non-domain) exceptions."""

from __future__ import annotations

from enum import Enum


class ErrorType(str, Enum):
    VALIDATION = "validation"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    SERVER_ERROR = "server_error"


_DEFAULT_STATUS = {
    ErrorType.VALIDATION: 400,
    ErrorType.AUTHORIZATION: 403,
    ErrorType.NOT_FOUND: 404,
    ErrorType.CONFLICT: 409,
    ErrorType.SERVER_ERROR: 500,
}


class AppError(Exception):
    """Error carrying a user-facing message and an HTTP status."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.SERVER_ERROR,
        status_code: int | None = None,
    ):
        self.message = message
        self.error_type = error_type
        self.status_code = status_code or _DEFAULT_STATUS[error_type]
        super().__init__(message)


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, ErrorType.VALIDATION)


class NotFoundError(AppError):
    def __init__(self, message: str):
        super().__init__(message, ErrorType.NOT_FOUND)


class ForbiddenError(AppError):
    def __init__(self, message: str):
        super().__init__(message, ErrorType.AUTHORIZATION)


__all__ = [
    "AppError",
    "ErrorType",
    "ForbiddenError",
    "NotFoundError",
    "ValidationError",
]
