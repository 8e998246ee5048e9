"""Shared cross-layer types and exceptions."""

from siteops.shared.exceptions import AppError, ErrorType, ForbiddenError, NotFoundError, ValidationError

__all__ = ["AppError", "ErrorType", "ForbiddenError", "NotFoundError", "ValidationError"]
