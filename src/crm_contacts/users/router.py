"""
User administration API routes.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.auth.middleware import CurrentUser, CurrentUserDep
from crm_contacts.auth.rbac import require_administrator, require_sales_manager
from crm_contacts.shared.database import get_db_session
from crm_contacts.users.schemas import UserCreate, UserResponse, UserRoleUpdate, UserUpdate
from crm_contacts.users.service import UserService

router = APIRouter(prefix="/users", tags=["users"])


def get_user_service(session: AsyncSession = Depends(get_db_session)) -> UserService:
    return UserService(session=session)


@router.get("", response_model=list[UserResponse])
async def list_users(
    include_inactive: bool = Query(default=False),
    current_user: CurrentUser = Depends(require_sales_manager),
    service: UserService = Depends(get_user_service),
) -> list[UserResponse]:
    users = await service.list_users(include_inactive=include_inactive)
    return [UserResponse.from_user(u) for u in users]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    current_user: CurrentUserDep,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return UserResponse.from_user(await service.get_user(current_user, user_id))


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    current_user: CurrentUser = Depends(require_sales_manager),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return UserResponse.from_user(await service.create_user(current_user, data))


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    current_user: CurrentUserDep,
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return UserResponse.from_user(await service.update_user(current_user, user_id, data))


@router.patch("/{user_id}/role", response_model=UserResponse)
async def change_user_role(
    user_id: int,
    data: UserRoleUpdate,
    current_user: CurrentUser = Depends(require_sales_manager),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return UserResponse.from_user(await service.change_role(current_user, user_id, data.role_id))


@router.patch("/{user_id}/activate", response_model=UserResponse)
async def activate_user(
    user_id: int,
    current_user: CurrentUser = Depends(require_sales_manager),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return UserResponse.from_user(await service.set_active(current_user, user_id, True))


@router.patch("/{user_id}/deactivate", response_model=UserResponse)
async def deactivate_user(
    user_id: int,
    current_user: CurrentUser = Depends(require_sales_manager),
    service: UserService = Depends(get_user_service),
) -> UserResponse:
    return UserResponse.from_user(await service.set_active(current_user, user_id, False))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    current_user: CurrentUser = Depends(require_administrator),
    service: UserService = Depends(get_user_service),
) -> None:
    await service.delete_user(current_user, user_id)
