"""
Contact repository for database operations.
"""

from collections.abc import Sequence

from sqlalchemy import Select, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.contacts.models import Contact


class ContactRepository:
    """Repository for contact database operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async database session.
        """
        self._session = session

    @staticmethod
    def _ordered(stmt: Select, include_inactive: bool) -> Select:
        if not include_inactive:
            stmt = stmt.where(Contact.active.is_(True))
        return stmt.order_by(Contact.first_name, Contact.last_name, Contact.id)

    async def get_by_id(self, contact_id: int) -> Contact | None:
        result = await self._session.execute(select(Contact).where(Contact.id == contact_id))
        return result.scalar_one_or_none()

    async def get_by_national_id(self, national_id: str, active_only: bool = True) -> Contact | None:
        stmt = select(Contact).where(Contact.national_id == national_id)
        if active_only:
            stmt = stmt.where(Contact.active.is_(True))
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def exists_by_national_id(self, national_id: str, exclude_id: int | None = None) -> bool:
        """Check whether any contact, active or not, already holds this DPI.

        Args:
            national_id: DPI to look up.
            exclude_id: Contact to ignore (the one being updated).
        """
        stmt = select(func.count(Contact.id)).where(Contact.national_id == national_id)
        if exclude_id is not None:
            stmt = stmt.where(Contact.id != exclude_id)
        result = await self._session.execute(stmt)
        return (result.scalar() or 0) > 0

    async def list_all(self, include_inactive: bool = False) -> Sequence[Contact]:
        result = await self._session.execute(self._ordered(select(Contact), include_inactive))
        return result.scalars().all()

    async def list_by_category(self, category: str, include_inactive: bool = False) -> Sequence[Contact]:
        stmt = select(Contact).where(Contact.category == category)
        result = await self._session.execute(self._ordered(stmt, include_inactive))
        return result.scalars().all()

    async def list_by_municipality(
        self, municipality: str, include_inactive: bool = False
    ) -> Sequence[Contact]:
        stmt = select(Contact).where(Contact.municipality == municipality)
        result = await self._session.execute(self._ordered(stmt, include_inactive))
        return result.scalars().all()

    async def search(self, term: str, include_inactive: bool = False) -> Sequence[Contact]:
        """Case-insensitive substring search over names, email, phone, DPI and NIT."""
        escaped = term.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        pattern = f"%{escaped}%"
        columns = (
            Contact.first_name,
            Contact.last_name,
            Contact.email,
            Contact.phone,
            Contact.national_id,
            Contact.tax_id,
        )
        stmt = select(Contact).where(or_(*(func.lower(c).like(pattern, escape="\\") for c in columns)))
        result = await self._session.execute(self._ordered(stmt, include_inactive))
        return result.scalars().all()

    async def create(self, contact: Contact) -> Contact:
        """Create a single contact.

        Args:
            contact: Contact to create.

        Returns:
            Created contact with ID.
        """
        self._session.add(contact)
        await self._session.flush()
        await self._session.refresh(contact)
        return contact

    async def save(self, contact: Contact) -> Contact:
        """Flush pending changes to a contact and reload server-side values."""
        await self._session.flush()
        await self._session.refresh(contact)
        return contact
