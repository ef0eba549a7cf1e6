"""
Authentication dependency for bearer JWT validation.

The current user is rebuilt from token claims on every request; storage is
not consulted, so a role change takes effect at the next login.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel, ConfigDict, Field

from crm_contacts.auth.jwt import JWTHandler
from crm_contacts.auth.models import RoleLevel
from crm_contacts.config import Settings, get_settings
from crm_contacts.shared.exceptions import InvalidTokenError, TokenExpiredError
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)


class CurrentUser(BaseModel):
    """Current authenticated user information."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(..., description="User ID")
    username: str = Field(..., description="Login name")
    email: str = Field(default="", description="User email")
    full_name: str = Field(default="", description="User display name")
    role: str = Field(..., description="Role name")
    role_level: RoleLevel = Field(..., description="Privilege tier")

    def has_level(self, required: RoleLevel) -> bool:
        return self.role_level.satisfies(required)


def _unauthorized(code: str, message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": code, "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_from_claims(payload: dict) -> CurrentUser:
    """Build a ``CurrentUser`` from validated access-token claims."""
    try:
        return CurrentUser(
            id=int(payload["sub"]),
            username=payload["username"],
            email=payload.get("email", "") or "",
            full_name=payload.get("full_name", "") or "",
            role=payload["role"],
            role_level=RoleLevel.from_value(payload.get("role_level")),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidTokenError(
            message="Token is missing required claims",
            details={"payload_keys": sorted(payload.keys())},
        ) from e


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)] = None,
    settings: Settings = Depends(get_settings),
) -> CurrentUser:
    """Extract and validate current user from the bearer JWT."""
    if credentials is None:
        logger.warning(
            "Missing authentication credentials",
            extra={
                "endpoint": str(request.url.path),
                "method": request.method,
                "client_ip": request.client.host if request.client else "unknown",
            },
        )
        raise _unauthorized("MISSING_CREDENTIALS", "Authentication credentials required")

    try:
        payload = JWTHandler(settings).validate_access_token(credentials.credentials)
        return user_from_claims(payload)
    except TokenExpiredError as e:
        logger.info(
            "Token expired",
            extra={"endpoint": str(request.url.path), "method": request.method},
        )
        raise _unauthorized(e.code, e.message)
    except InvalidTokenError as e:
        logger.warning(
            "Invalid token",
            extra={
                "endpoint": str(request.url.path),
                "method": request.method,
                "error": e.message,
            },
        )
        raise _unauthorized(e.code, e.message)


CurrentUserDep = Annotated[CurrentUser, Depends(get_current_user)]
