"""
Pydantic schemas for contact management.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

# Upper bound of the 32-bit credit_days column.
MAX_CREDIT_DAYS = 2_147_483_647


class ContactBase(BaseModel):
    """Fields shared by create and update payloads."""

    first_name: str = Field(..., min_length=1, max_length=50, description="Given name")
    last_name: str = Field(..., min_length=1, max_length=50, description="Surname")
    phone: str | None = Field(default=None, max_length=15)
    email: EmailStr | None = Field(default=None, description="Address used for verification")
    national_id: str = Field(..., min_length=1, max_length=20, description="DPI, unique per contact")
    tax_id: str | None = Field(default=None, max_length=20, description="NIT")
    address: str | None = Field(default=None, max_length=255)
    zone: str | None = Field(default=None, max_length=10)
    municipality: str | None = Field(default=None, max_length=50)
    department: str | None = Field(default=None, max_length=50)
    credit_days: int = Field(default=0, ge=0, le=MAX_CREDIT_DAYS)
    credit_limit: Decimal = Field(default=Decimal("0.00"), ge=0, max_digits=10, decimal_places=2)
    category: str | None = Field(default=None, max_length=50)
    subcategory: str | None = Field(default=None, max_length=50)

    @field_validator("first_name", "last_name", "national_id", mode="before")
    @classmethod
    def strip_required(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator(
        "phone", "email", "tax_id", "address", "zone",
        "municipality", "department", "category", "subcategory",
        mode="before",
    )
    @classmethod
    def blank_to_none(cls, v):
        """Treat blank optional strings as missing."""
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @field_validator("email", mode="after")
    @classmethod
    def check_email_length(cls, v: str | None) -> str | None:
        if v is not None and len(v) > 100:
            raise ValueError("email must be at most 100 characters")
        return v


class ContactCreate(ContactBase):
    """Schema for creating a contact."""


class ContactUpdate(ContactBase):
    """Full replacement of a contact's editable fields.

    ``active`` is only applied when supplied.
    """

    active: bool | None = None


class ContactResponse(BaseModel):
    """Schema for contact response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    phone: str | None
    email: str | None
    national_id: str
    tax_id: str | None
    address: str | None
    zone: str | None
    municipality: str | None
    department: str | None
    credit_days: int
    credit_limit: Decimal
    category: str | None
    subcategory: str | None
    created_at: datetime | None
    updated_at: datetime | None
    created_by: int | None
    updated_by: int | None
    active: bool
    email_verified: bool
    verification_sent_at: datetime | None
    verified_at: datetime | None


class ContactCreatedResponse(ContactResponse):
    """Created contact plus the outcome of the verification email."""

    verification_email_sent: bool | None = Field(
        default=None,
        description="None when the contact has no email and no message was attempted",
    )


class VerificationDispatchResponse(BaseModel):
    """Result of a resend or correct-and-resend request."""

    contact_id: int
    email: str | None
    email_sent: bool
    verification_sent_at: datetime | None
    message: str


class ImportResultResponse(BaseModel):
    """Outcome of a bulk import."""

    total_rows: int = Field(..., description="Rows queued for creation")
    success_count: int
    error_count: int
    errors: list[str] = Field(default_factory=list)
