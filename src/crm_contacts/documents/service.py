"""
Document service: attach, list, fetch and remove contact documents.
"""

from collections.abc import Sequence
from pathlib import Path
from typing import BinaryIO

from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.config import Settings, get_settings
from crm_contacts.contacts.repository import ContactRepository
from crm_contacts.documents.models import ContactDocument
from crm_contacts.documents.repository import DocumentRepository
from crm_contacts.documents.storage import LocalDocumentStorage
from crm_contacts.shared.database import utcnow
from crm_contacts.shared.exceptions import NotFoundError, ValidationError
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class DocumentService:
    def __init__(
        self,
        session: AsyncSession,
        storage: LocalDocumentStorage | None = None,
        settings: Settings | None = None,
        document_repository: DocumentRepository | None = None,
        contact_repository: ContactRepository | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._storage = storage or LocalDocumentStorage(self._settings)
        self._documents = document_repository or DocumentRepository(session)
        self._contacts = contact_repository or ContactRepository(session)

    def _validated_extension(self, filename: str | None) -> str:
        if not filename:
            raise ValidationError("A file is required")
        extension = Path(filename).suffix.lower()
        allowed = self._settings.allowed_upload_extensions_set
        if extension not in allowed:
            raise ValidationError(
                f"File type '{extension or filename}' is not allowed",
                details={"allowed": sorted(allowed)},
            )
        return extension

    async def upload(
        self,
        contact_id: int,
        source: BinaryIO | None,
        filename: str | None,
        content_type: str | None,
        uploaded_by: str,
        description: str | None = None,
    ) -> ContactDocument:
        """Store a file for an existing contact and record its metadata.

        Raises:
            NotFoundError: Unknown contact.
            ValidationError: Missing, empty, oversized or disallowed file.
        """
        if await self._contacts.get_by_id(contact_id) is None:
            raise NotFoundError(f"Contact {contact_id} not found", details={"contact_id": contact_id})
        if source is None:
            raise ValidationError("A file is required")
        extension = self._validated_extension(filename)

        stored = self._storage.save(source, extension)
        try:
            document = await self._documents.create(
                ContactDocument(
                    contact_id=contact_id,
                    stored_filename=stored.stored_filename,
                    original_filename=filename,
                    storage_path=str(stored.path),
                    content_type=content_type or DEFAULT_CONTENT_TYPE,
                    size_bytes=stored.size_bytes,
                    uploaded_by=uploaded_by,
                    uploaded_at=utcnow(),
                    description=description,
                )
            )
            await self._session.commit()
        except Exception:
            self._storage.remove(stored.path)
            raise

        logger.info(
            "Document uploaded",
            extra={
                "document_id": document.id,
                "contact_id": contact_id,
                "size_bytes": stored.size_bytes,
                "uploaded_by": uploaded_by,
            },
        )
        return document

    async def list_for_contact(self, contact_id: int) -> Sequence[ContactDocument]:
        return await self._documents.list_for_contact(contact_id)

    async def get_for_download(self, document_id: int) -> ContactDocument:
        """Return a document whose file is still on disk.

        Raises:
            NotFoundError: Unknown document or missing physical file.
        """
        document = await self._documents.get_by_id(document_id)
        if document is None:
            raise NotFoundError(f"Document {document_id} not found", details={"document_id": document_id})
        if not self._storage.exists(document.storage_path):
            logger.error(
                "Document file missing on disk",
                extra={"document_id": document_id, "storage_path": document.storage_path},
            )
            raise NotFoundError("Document file not found", details={"document_id": document_id})
        return document

    async def delete(self, document_id: int, deleted_by: str | None = None) -> bool:
        document = await self._documents.get_by_id(document_id)
        if document is None:
            return False

        file_removed = self._storage.remove(document.storage_path)
        await self._documents.delete(document)
        await self._session.commit()
        logger.info(
            "Document deleted",
            extra={"document_id": document_id, "file_removed": file_removed, "deleted_by": deleted_by},
        )
        return True
