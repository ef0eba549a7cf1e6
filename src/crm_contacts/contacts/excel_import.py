"""
Excel parsing and bulk creation of contacts.

The sheet layout is positional: row 1 is a header that is never inspected,
data starts on row 2 with the columns listed in ``COLUMNS``.
"""

import io
import zipfile
from collections.abc import Generator
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from pydantic import ValidationError as PydanticValidationError

from crm_contacts.contacts.schemas import ContactCreate
from crm_contacts.contacts.verification import VerificationService
from crm_contacts.shared.exceptions import AppError, ValidationError
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)

COLUMNS = (
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
REQUIRED_COLUMNS = ("first_name", "last_name", "national_id")
FIRST_DATA_ROW = 2


def cell_to_text(value: Any) -> str | None:
    """Render a cell as text; integral floats lose their ``.0``."""
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def parse_int(value: Any) -> int:
    """Parse an integer cell, defaulting to 0."""
    text = cell_to_text(value)
    if text is None:
        return 0
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return 0
    return int(parsed) if parsed.is_finite() else 0


def parse_decimal(value: Any) -> Decimal:
    """Parse a decimal cell, defaulting to 0."""
    text = cell_to_text(value)
    if text is None:
        return Decimal("0")
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return Decimal("0")
    return parsed if parsed.is_finite() else Decimal("0")


@dataclass
class ParsedRow:
    row_number: int
    data: dict[str, Any]


class ExcelContactParser:
    """Reads contact rows from the first sheet of an ``.xlsx`` workbook."""

    def parse(self, content: bytes) -> Generator[ParsedRow, None, None]:
        """Yield rows that carry the required fields.

        Rows missing a first name, last name or national ID are skipped
        without being reported.

        Raises:
            ValidationError: The content is not a readable workbook.
        """
        try:
            workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError, ValueError) as e:
            logger.warning("Unreadable workbook", extra={"error": str(e)})
            raise ValidationError("File is not a readable Excel workbook", details={"error": str(e)}) from e

        try:
            sheet = workbook.worksheets[0]
            for row_number, values in enumerate(
                sheet.iter_rows(min_row=FIRST_DATA_ROW, values_only=True),
                start=FIRST_DATA_ROW,
            ):
                row = self._row_to_dict(values)
                if any(not row[name] for name in REQUIRED_COLUMNS):
                    continue
                yield ParsedRow(row_number=row_number, data=row)
        finally:
            workbook.close()

    @staticmethod
    def _row_to_dict(values: tuple) -> dict[str, Any]:
        padded = list(values[: len(COLUMNS)]) + [None] * (len(COLUMNS) - len(values))
        row: dict[str, Any] = {}
        for name, value in zip(COLUMNS, padded):
            if name == "credit_days":
                row[name] = parse_int(value)
            elif name == "credit_limit":
                row[name] = parse_decimal(value)
            else:
                row[name] = cell_to_text(value)
        return row


def _format_validation_error(row_number: int, error: PydanticValidationError) -> str:
    parts = []
    for item in error.errors():
        loc = ".".join(str(p) for p in item.get("loc", ())) or "row"
        parts.append(f"{loc}: {item.get('msg', 'invalid value')}")
    return f"Row {row_number}: " + "; ".join(parts)


@dataclass
class ImportResult:
    total_rows: int = 0
    success_count: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)


class BulkImportService:
    """Creates contacts row by row through the verification workflow.

    Each successful row is committed on its own; a failing row never undoes
    earlier ones.
    """

    def __init__(
        self,
        verification_service: VerificationService,
        parser: ExcelContactParser | None = None,
    ) -> None:
        self._verification = verification_service
        self._parser = parser or ExcelContactParser()

    async def import_contacts(self, content: bytes, user_id: int | None = None) -> ImportResult:
        if not content:
            raise ValidationError("Uploaded file is empty")

        result = ImportResult()
        for parsed in self._parser.parse(content):
            result.total_rows += 1
            try:
                data = ContactCreate.model_validate(parsed.data)
            except PydanticValidationError as e:
                result.errors.append(_format_validation_error(parsed.row_number, e))
                continue

            try:
                await self._verification.create_contact(data, user_id)
            except AppError as e:
                result.errors.append(f"Row {parsed.row_number}: {e.message}")
                continue
            result.success_count += 1

        logger.info(
            "Contact import completed",
            extra={
                "total_rows": result.total_rows,
                "success_count": result.success_count,
                "error_count": result.error_count,
                "imported_by": user_id,
            },
        )
        return result
