"""
Pydantic schemas for authentication and user profiles.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from crm_contacts.auth.models import User


class LoginRequest(BaseModel):
    """Username/password login payload."""

    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """Self-service registration payload."""

    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str = Field(default="", max_length=50)
    last_name: str = Field(default="", max_length=50)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str


class UserProfile(BaseModel):
    """User profile as exposed by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    full_name: str
    role_id: int
    role: str
    role_level: int
    is_active: bool
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserProfile":
        """Build a profile from a user whose role is loaded."""
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            full_name=user.full_name,
            role_id=user.role_id,
            role=user.role.name,
            role_level=user.role.level,
            is_active=user.is_active,
            created_at=user.created_at,
        )


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    user: UserProfile
