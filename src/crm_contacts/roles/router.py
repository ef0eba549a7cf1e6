"""
Role management API routes.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.auth.middleware import CurrentUser, CurrentUserDep
from crm_contacts.auth.rbac import require_administrator
from crm_contacts.roles.schemas import RoleCreate, RoleResponse, RoleUpdate
from crm_contacts.roles.service import RoleService
from crm_contacts.shared.database import get_db_session

router = APIRouter(prefix="/roles", tags=["roles"])


def get_role_service(session: AsyncSession = Depends(get_db_session)) -> RoleService:
    return RoleService(session=session)


@router.get("", response_model=list[RoleResponse])
async def list_roles(
    current_user: CurrentUserDep,
    service: RoleService = Depends(get_role_service),
) -> list[RoleResponse]:
    roles = await service.list_roles()
    return [RoleResponse.model_validate(r) for r in roles]


@router.get("/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: int,
    current_user: CurrentUserDep,
    service: RoleService = Depends(get_role_service),
) -> RoleResponse:
    return RoleResponse.model_validate(await service.get_role(role_id))


@router.post("", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    data: RoleCreate,
    current_user: CurrentUser = Depends(require_administrator),
    service: RoleService = Depends(get_role_service),
) -> RoleResponse:
    return RoleResponse.model_validate(await service.create_role(data))


@router.put("/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: int,
    data: RoleUpdate,
    current_user: CurrentUser = Depends(require_administrator),
    service: RoleService = Depends(get_role_service),
) -> RoleResponse:
    return RoleResponse.model_validate(await service.update_role(role_id, data))


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: int,
    current_user: CurrentUser = Depends(require_administrator),
    service: RoleService = Depends(get_role_service),
) -> None:
    await service.delete_role(role_id)
