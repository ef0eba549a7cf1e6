"""
Local filesystem storage for uploaded documents.

Files are written synchronously under generated names (``<uuid4><ext>``);
the original filename only survives in the database row.
"""

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from crm_contacts.config import Settings, get_settings
from crm_contacts.shared.exceptions import ValidationError
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class StoredFile:
    stored_filename: str
    path: Path
    size_bytes: int


class LocalDocumentStorage:
    """Writes, locates and removes document files in one directory."""

    def __init__(self, settings: Settings | None = None, base_dir: Path | None = None) -> None:
        self._settings = settings or get_settings()
        self._base_dir = Path(base_dir or self._settings.upload_dir)
        self._max_bytes = self._settings.max_upload_bytes

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def save(self, source: BinaryIO, extension: str) -> StoredFile:
        """Copy ``source`` to a new file, enforcing the size limit.

        Raises:
            ValidationError: The content is empty or larger than allowed.
        """
        self._base_dir.mkdir(parents=True, exist_ok=True)
        stored_filename = f"{uuid.uuid4()}{extension.lower()}"
        path = self._base_dir / stored_filename

        size = 0
        try:
            with path.open("wb") as target:
                while chunk := source.read(CHUNK_SIZE):
                    size += len(chunk)
                    if size > self._max_bytes:
                        raise ValidationError(
                            f"File exceeds the maximum size of {self._max_bytes} bytes",
                            details={"max_bytes": self._max_bytes},
                        )
                    target.write(chunk)
        except ValidationError:
            path.unlink(missing_ok=True)
            raise

        if size == 0:
            path.unlink(missing_ok=True)
            raise ValidationError("Uploaded file is empty")

        logger.debug("Document stored", extra={"stored_filename": stored_filename, "size_bytes": size})
        return StoredFile(stored_filename=stored_filename, path=path, size_bytes=size)

    def exists(self, path: str | Path) -> bool:
        return Path(path).is_file()

    def remove(self, path: str | Path) -> bool:
        """Delete a stored file; returns False if it was already gone."""
        target = Path(path)
        if not target.is_file():
            return False
        target.unlink()
        return True
