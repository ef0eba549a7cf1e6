"""
Domain exceptions shared across services.

Routers never build error responses for these by hand: the handlers
registered in ``main.create_app`` translate each class to its status code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass(eq=False)
class AppError(Exception):
    message: str = "Application error"
    details: Optional[dict[str, Any]] = None
    code: str = "APP_ERROR"

    status_code = 500

    def __str__(self) -> str:
        return self.message


class ValidationError(AppError):
    status_code = 400

    def __init__(self, message: str = "Invalid input", details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message=message, details=details, code="VALIDATION_ERROR")


class AuthenticationError(AppError):
    status_code = 401

    def __init__(self, message: str = "Invalid credentials", details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message=message, details=details, code="AUTHENTICATION_FAILED")


class InvalidTokenError(AppError):
    status_code = 401

    def __init__(self, message: str = "Invalid token", details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message=message, details=details, code="INVALID_TOKEN")


class TokenExpiredError(AppError):
    status_code = 401

    def __init__(self, message: str = "Token has expired", details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message=message, details=details, code="TOKEN_EXPIRED")


class PermissionDeniedError(AppError):
    status_code = 403

    def __init__(self, message: str = "Insufficient permissions", details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message=message, details=details, code="INSUFFICIENT_PERMISSIONS")


class NotFoundError(AppError):
    status_code = 404

    def __init__(self, message: str = "Resource not found", details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message=message, details=details, code="NOT_FOUND")


class ConflictError(AppError):
    status_code = 409

    def __init__(self, message: str = "Conflicting state", details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message=message, details=details, code="CONFLICT")
