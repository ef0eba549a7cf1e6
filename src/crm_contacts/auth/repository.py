"""
User and role repositories for database operations.
"""

from collections.abc import Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload

from crm_contacts.auth.models import Role, User
from crm_contacts.shared.exceptions import NotFoundError


class UserRepository:
    """Repository for user database operations.

    Every query loads the user's role eagerly; callers never trigger lazy loads.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    def _select(self):
        return select(User).options(joinedload(User.role))

    async def get_by_id(self, user_id: int) -> User | None:
        stmt = self._select().where(User.id == user_id).execution_options(populate_existing=True)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_username(self, username: str) -> User | None:
        result = await self._session.execute(self._select().where(User.username == username))
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        result = await self._session.execute(self._select().where(User.email == email))
        return result.scalar_one_or_none()

    async def list_all(self, include_inactive: bool = False) -> Sequence[User]:
        stmt = self._select()
        if not include_inactive:
            stmt = stmt.where(User.is_active.is_(True))
        result = await self._session.execute(stmt.order_by(User.username))
        return result.scalars().all()

    async def add(self, user: User) -> User:
        """Insert a user and return it with its role loaded."""
        self._session.add(user)
        await self._session.flush()
        return await self.reload(user)

    async def reload(self, user: User) -> User:
        """Flush pending changes and re-read the user with its current role."""
        await self._session.flush()
        refreshed = await self.get_by_id(user.id)
        if refreshed is None:
            raise NotFoundError("User not found", details={"user_id": user.id})
        return refreshed

    async def delete(self, user: User) -> None:
        await self._session.delete(user)
        await self._session.flush()


class RoleRepository:
    """Repository for role database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_by_id(self, role_id: int) -> Role | None:
        result = await self._session.execute(select(Role).where(Role.id == role_id))
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> Role | None:
        result = await self._session.execute(select(Role).where(Role.name == name))
        return result.scalar_one_or_none()

    async def get_lowest_at_level(self, level: int) -> Role | None:
        """Return the first role defined at the given level."""
        stmt = select(Role).where(Role.level == level).order_by(Role.id).limit(1)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_all(self) -> Sequence[Role]:
        result = await self._session.execute(select(Role).order_by(Role.level, Role.name))
        return result.scalars().all()

    async def count_users(self, role_id: int) -> int:
        stmt = select(func.count(User.id)).where(User.role_id == role_id)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def add(self, role: Role) -> Role:
        self._session.add(role)
        await self._session.flush()
        await self._session.refresh(role)
        return role

    async def save(self, role: Role) -> Role:
        await self._session.flush()
        await self._session.refresh(role)
        return role

    async def delete(self, role: Role) -> None:
        await self._session.delete(role)
        await self._session.flush()
