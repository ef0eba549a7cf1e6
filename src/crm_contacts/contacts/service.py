"""
Contact service for business logic.

Contacts are never hard-deleted; every list operation hides inactive rows
unless the caller asks for them.
"""

from collections.abc import Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.contacts.models import Contact
from crm_contacts.contacts.repository import ContactRepository
from crm_contacts.contacts.schemas import ContactBase, ContactCreate, ContactUpdate
from crm_contacts.shared.database import utcnow
from crm_contacts.shared.exceptions import ConflictError, NotFoundError, ValidationError
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)

EDITABLE_FIELDS = (
    "first_name",
    "last_name",
    "phone",
    "email",
    "national_id",
    "tax_id",
    "address",
    "zone",
    "municipality",
    "department",
    "credit_days",
    "credit_limit",
    "category",
    "subcategory",
)


def _national_id_conflict(national_id: str) -> ConflictError:
    return ConflictError(
        f"A contact with national ID {national_id} already exists",
        details={"national_id": national_id},
    )


class ContactService:
    """Service for contact management operations.

    Mutating methods flush but do not commit, so callers composing several
    steps (verification, bulk import) decide the transaction boundary.
    """

    def __init__(
        self,
        session: AsyncSession,
        contact_repository: ContactRepository | None = None,
    ) -> None:
        """Initialize contact service.

        Args:
            session: Async database session.
            contact_repository: Optional contact repository (for DI).
        """
        self._session = session
        self._repository = contact_repository or ContactRepository(session)

    @property
    def repository(self) -> ContactRepository:
        return self._repository

    async def list_contacts(self, include_inactive: bool = False) -> Sequence[Contact]:
        return await self._repository.list_all(include_inactive=include_inactive)

    async def get_contact(self, contact_id: int) -> Contact:
        """Return a contact whatever its active flag.

        Raises:
            NotFoundError: If no row has this id.
        """
        contact = await self._repository.get_by_id(contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found", details={"contact_id": contact_id})
        return contact

    async def get_by_national_id(self, national_id: str) -> Contact:
        """Return the active contact holding a DPI."""
        contact = await self._repository.get_by_national_id(national_id, active_only=True)
        if contact is None:
            raise NotFoundError(
                f"No active contact with national ID {national_id}",
                details={"national_id": national_id},
            )
        return contact

    async def list_by_category(self, category: str, include_inactive: bool = False) -> Sequence[Contact]:
        return await self._repository.list_by_category(category, include_inactive)

    async def list_by_municipality(
        self, municipality: str, include_inactive: bool = False
    ) -> Sequence[Contact]:
        return await self._repository.list_by_municipality(municipality, include_inactive)

    async def search(self, term: str, include_inactive: bool = False) -> Sequence[Contact]:
        term = (term or "").strip()
        if not term:
            raise ValidationError("Search term must not be empty")
        return await self._repository.search(term, include_inactive)

    @staticmethod
    def _apply(contact: Contact, data: ContactBase) -> None:
        for field in EDITABLE_FIELDS:
            value = getattr(data, field)
            if field == "email" and value is not None:
                value = str(value)
            setattr(contact, field, value)

    async def _flush_unique(self, national_id: str, write) -> Contact:
        """Run a repository write, mapping a DPI unique-index race to ConflictError."""
        try:
            return await write
        except IntegrityError as e:
            await self._session.rollback()
            logger.warning(
                "Unique constraint violated",
                extra={"national_id": national_id, "error": str(e.orig)},
            )
            raise _national_id_conflict(national_id) from e

    async def create_contact(
        self,
        data: ContactCreate,
        user_id: int | None = None,
        *,
        active: bool = True,
    ) -> Contact:
        """Insert a contact.

        Args:
            data: Validated contact fields.
            user_id: Acting user, recorded as creator and updater.
            active: Initial active flag.

        Raises:
            ConflictError: The national ID belongs to another contact.
        """
        if await self._repository.exists_by_national_id(data.national_id):
            raise _national_id_conflict(data.national_id)

        now = utcnow()
        contact = Contact(created_by=user_id, updated_by=user_id, created_at=now, updated_at=now)
        self._apply(contact, data)
        contact.active = active
        contact.email_verified = False

        contact = await self._flush_unique(data.national_id, self._repository.create(contact))
        logger.info(
            "Contact created",
            extra={"contact_id": contact.id, "created_by": user_id, "active": contact.active},
        )
        return contact

    async def update_contact(
        self,
        contact_id: int,
        data: ContactUpdate,
        user_id: int | None = None,
    ) -> Contact:
        """Replace a contact's editable fields.

        Raises:
            NotFoundError: Unknown contact.
            ConflictError: The national ID belongs to a different contact.
        """
        contact = await self.get_contact(contact_id)
        if await self._repository.exists_by_national_id(data.national_id, exclude_id=contact_id):
            raise _national_id_conflict(data.national_id)

        self._apply(contact, data)
        if data.active is not None:
            contact.active = data.active
        contact.updated_by = user_id
        contact.updated_at = utcnow()

        contact = await self._flush_unique(data.national_id, self._repository.save(contact))
        logger.info("Contact updated", extra={"contact_id": contact_id, "updated_by": user_id})
        return contact

    async def set_active(self, contact_id: int, active: bool, user_id: int | None = None) -> bool:
        """Set the active flag; returns False when the contact does not exist."""
        contact = await self._repository.get_by_id(contact_id)
        if contact is None:
            return False

        contact.active = active
        contact.updated_by = user_id
        contact.updated_at = utcnow()
        await self._repository.save(contact)
        logger.info(
            "Contact activated" if active else "Contact soft-deleted",
            extra={"contact_id": contact_id, "updated_by": user_id},
        )
        return True

    async def soft_delete(self, contact_id: int, user_id: int | None = None) -> bool:
        return await self.set_active(contact_id, False, user_id)

    async def commit(self) -> None:
        await self._session.commit()
