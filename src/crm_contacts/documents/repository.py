"""
Document repository for database operations.
"""

from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.documents.models import ContactDocument


class DocumentRepository:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, document: ContactDocument) -> ContactDocument:
        self._session.add(document)
        await self._session.flush()
        await self._session.refresh(document)
        return document

    async def get_by_id(self, document_id: int) -> ContactDocument | None:
        result = await self._session.execute(
            select(ContactDocument).where(ContactDocument.id == document_id)
        )
        return result.scalar_one_or_none()

    async def list_for_contact(self, contact_id: int) -> Sequence[ContactDocument]:
        stmt = (
            select(ContactDocument)
            .where(ContactDocument.contact_id == contact_id)
            .order_by(ContactDocument.uploaded_at.desc(), ContactDocument.id.desc())
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def delete(self, document: ContactDocument) -> None:
        await self._session.delete(document)
        await self._session.flush()
