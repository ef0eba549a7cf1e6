"""
Authentication API routes.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.auth.middleware import CurrentUserDep
from crm_contacts.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    UserProfile,
)
from crm_contacts.auth.service import AuthService
from crm_contacts.shared.database import get_db_session

router = APIRouter(prefix="/auth", tags=["auth"])


def get_auth_service(session: AsyncSession = Depends(get_db_session)) -> AuthService:
    return AuthService(session=session)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Exchange username and password for a bearer token."""
    return await service.login(request)


@router.post("/register", response_model=LoginResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    """Create a basic account and return a token for it."""
    return await service.register(request)


@router.get("/me", response_model=UserProfile)
async def me(
    current_user: CurrentUserDep,
    service: AuthService = Depends(get_auth_service),
) -> UserProfile:
    return await service.get_profile(current_user.id)


@router.post("/change-password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(
    request: ChangePasswordRequest,
    current_user: CurrentUserDep,
    service: AuthService = Depends(get_auth_service),
) -> None:
    await service.change_password(current_user.id, request)
