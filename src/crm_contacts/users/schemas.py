"""User administration payloads."""

from pydantic import BaseModel, EmailStr, Field

from crm_contacts.auth.schemas import UserProfile


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=6)
    first_name: str = Field(default="", max_length=50)
    last_name: str = Field(default="", max_length=50)
    role_id: int
    is_active: bool = True


class UserUpdate(BaseModel):
    """Partial update; omitted fields are left untouched."""

    email: EmailStr | None = None
    first_name: str | None = Field(default=None, max_length=50)
    last_name: str | None = Field(default=None, max_length=50)
    password: str | None = Field(default=None, min_length=6)
    role_id: int | None = None
    is_active: bool | None = None


class UserRoleUpdate(BaseModel):
    role_id: int


UserResponse = UserProfile
