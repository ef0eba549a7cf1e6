"""
Role management service.
"""

from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.auth.models import Role
from crm_contacts.auth.repository import RoleRepository
from crm_contacts.roles.schemas import RoleCreate, RoleUpdate
from crm_contacts.shared.exceptions import ConflictError, NotFoundError
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)


class RoleService:
    """CRUD over roles; a role in use cannot be deleted."""

    def __init__(self, session: AsyncSession, repository: RoleRepository | None = None) -> None:
        self._session = session
        self._repository = repository or RoleRepository(session)

    async def list_roles(self) -> Sequence[Role]:
        return await self._repository.list_all()

    async def get_role(self, role_id: int) -> Role:
        role = await self._repository.get_by_id(role_id)
        if role is None:
            raise NotFoundError(f"Role {role_id} not found", details={"role_id": role_id})
        return role

    async def _ensure_name_free(self, name: str, exclude_id: int | None = None) -> None:
        existing = await self._repository.get_by_name(name)
        if existing is not None and existing.id != exclude_id:
            raise ConflictError(f"Role '{name}' already exists", details={"name": name})

    async def create_role(self, data: RoleCreate) -> Role:
        await self._ensure_name_free(data.name)
        role = await self._repository.add(
            Role(name=data.name, level=data.level, description=data.description)
        )
        await self._session.commit()
        logger.info("Role created", extra={"role_id": role.id, "level": role.level})
        return role

    async def update_role(self, role_id: int, data: RoleUpdate) -> Role:
        role = await self.get_role(role_id)
        if data.name is not None and data.name != role.name:
            await self._ensure_name_free(data.name, exclude_id=role_id)
            role.name = data.name
        if data.level is not None:
            role.level = data.level
        if "description" in data.model_fields_set:
            role.description = data.description

        role = await self._repository.save(role)
        await self._session.commit()
        logger.info("Role updated", extra={"role_id": role_id})
        return role

    async def delete_role(self, role_id: int) -> None:
        """Delete a role nobody holds.

        Raises:
            NotFoundError: Unknown role.
            ConflictError: At least one user references the role.
        """
        role = await self.get_role(role_id)
        in_use = await self._repository.count_users(role_id)
        if in_use:
            raise ConflictError(
                "Role is assigned to users and cannot be deleted",
                details={"role_id": role_id, "user_count": in_use},
            )
        await self._repository.delete(role)
        await self._session.commit()
        logger.info("Role deleted", extra={"role_id": role_id})
