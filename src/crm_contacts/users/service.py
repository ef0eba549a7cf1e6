"""
User administration service.

Route-level RBAC only gates who may reach an endpoint; the rules that depend
on the target user (self-edits, promotions to administrator, self-deactivation)
are enforced here.
"""

from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.auth.middleware import CurrentUser
from crm_contacts.auth.models import Role, RoleLevel, User
from crm_contacts.auth.passwords import hash_password
from crm_contacts.auth.repository import RoleRepository, UserRepository
from crm_contacts.shared.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from crm_contacts.shared.logging import get_logger
from crm_contacts.users.schemas import UserCreate, UserUpdate

logger = get_logger(__name__)


class UserService:
    """CRUD over users with actor-aware permission rules."""

    def __init__(
        self,
        session: AsyncSession,
        user_repository: UserRepository | None = None,
        role_repository: RoleRepository | None = None,
    ) -> None:
        self._session = session
        self._users = user_repository or UserRepository(session)
        self._roles = role_repository or RoleRepository(session)

    async def _get(self, user_id: int) -> User:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found", details={"user_id": user_id})
        return user

    async def _get_role(self, role_id: int) -> Role:
        role = await self._roles.get_by_id(role_id)
        if role is None:
            raise ValidationError(f"Role {role_id} does not exist", details={"role_id": role_id})
        return role

    @staticmethod
    def _check_can_grant(actor: CurrentUser, role: Role) -> None:
        if role.level >= RoleLevel.ADMINISTRATOR and not actor.has_level(RoleLevel.ADMINISTRATOR):
            raise PermissionDeniedError("Only administrators can grant the administrator level")

    @staticmethod
    def _check_can_manage(actor: CurrentUser, target: User) -> None:
        if not actor.has_level(RoleLevel.SALES_MANAGER):
            raise PermissionDeniedError("Insufficient permissions to manage users")
        if target.role.level >= RoleLevel.ADMINISTRATOR and not actor.has_level(RoleLevel.ADMINISTRATOR):
            raise PermissionDeniedError("Only administrators can modify administrators")

    @staticmethod
    def _check_not_self(actor: CurrentUser, user_id: int, action: str) -> None:
        if actor.id == user_id:
            raise PermissionDeniedError(f"You cannot {action} your own account")

    async def list_users(self, include_inactive: bool = False) -> Sequence[User]:
        return await self._users.list_all(include_inactive=include_inactive)

    async def get_user(self, actor: CurrentUser, user_id: int) -> User:
        if actor.id != user_id and not actor.has_level(RoleLevel.SALES_MANAGER):
            raise PermissionDeniedError("You can only view your own profile")
        return await self._get(user_id)

    async def create_user(self, actor: CurrentUser, data: UserCreate) -> User:
        role = await self._get_role(data.role_id)
        self._check_can_grant(actor, role)
        if await self._users.get_by_username(data.username) is not None:
            raise ConflictError("Username is already taken", details={"field": "username"})
        if await self._users.get_by_email(str(data.email)) is not None:
            raise ConflictError("Email is already registered", details={"field": "email"})

        user = await self._users.add(
            User(
                username=data.username,
                email=str(data.email),
                password_hash=hash_password(data.password),
                first_name=data.first_name,
                last_name=data.last_name,
                role_id=role.id,
                is_active=data.is_active,
            )
        )
        await self._session.commit()
        logger.info(
            "User created",
            extra={"user_id": user.id, "role_id": role.id, "created_by": actor.id},
        )
        return user

    async def update_user(self, actor: CurrentUser, user_id: int, data: UserUpdate) -> User:
        """Apply a partial update.

        A user may edit their own name, email and password; everything else
        requires the sales manager level.
        """
        user = await self._get(user_id)
        is_self = actor.id == user_id
        if not is_self:
            self._check_can_manage(actor, user)

        if data.role_id is not None and data.role_id != user.role_id:
            if is_self and not actor.has_level(RoleLevel.SALES_MANAGER):
                raise PermissionDeniedError("You cannot change your own role")
            role = await self._get_role(data.role_id)
            self._check_can_grant(actor, role)
            user.role_id = role.id

        if data.is_active is not None and data.is_active != user.is_active:
            if is_self:
                raise PermissionDeniedError("You cannot change the active state of your own account")
            user.is_active = data.is_active

        if data.email is not None and str(data.email) != user.email:
            existing = await self._users.get_by_email(str(data.email))
            if existing is not None and existing.id != user_id:
                raise ConflictError("Email is already registered", details={"field": "email"})
            user.email = str(data.email)
        if data.first_name is not None:
            user.first_name = data.first_name
        if data.last_name is not None:
            user.last_name = data.last_name
        if data.password is not None:
            user.password_hash = hash_password(data.password)

        user = await self._users.reload(user)
        await self._session.commit()
        logger.info("User updated", extra={"user_id": user_id, "updated_by": actor.id})
        return user

    async def change_role(self, actor: CurrentUser, user_id: int, role_id: int) -> User:
        self._check_not_self(actor, user_id, "change the role of")
        user = await self._get(user_id)
        self._check_can_manage(actor, user)
        role = await self._get_role(role_id)
        self._check_can_grant(actor, role)

        user.role_id = role.id
        user = await self._users.reload(user)
        await self._session.commit()
        logger.info(
            "User role changed",
            extra={"user_id": user_id, "role_id": role_id, "updated_by": actor.id},
        )
        return user

    async def set_active(self, actor: CurrentUser, user_id: int, active: bool) -> User:
        self._check_not_self(actor, user_id, "activate or deactivate")
        user = await self._get(user_id)
        self._check_can_manage(actor, user)

        user.is_active = active
        user = await self._users.reload(user)
        await self._session.commit()
        logger.info(
            "User activated" if active else "User deactivated",
            extra={"user_id": user_id, "updated_by": actor.id},
        )
        return user

    async def delete_user(self, actor: CurrentUser, user_id: int) -> None:
        self._check_not_self(actor, user_id, "delete")
        user = await self._get(user_id)
        await self._users.delete(user)
        await self._session.commit()
        logger.info("User deleted", extra={"user_id": user_id, "deleted_by": actor.id})
