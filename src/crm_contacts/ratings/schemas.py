"""
Pydantic schemas for ratings and contact profiles.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from crm_contacts.contacts.schemas import ContactResponse


class RatingCreate(BaseModel):
    score: Decimal = Field(..., ge=0, le=5, max_digits=3, decimal_places=2)
    module: str = Field(..., min_length=1, max_length=50, description="Module the rating comes from")
    comment: str | None = Field(default=None, max_length=1000)
    rated_by: int | None = Field(
        default=None,
        description="Rating author; defaults to the authenticated user",
    )

    @field_validator("module", mode="before")
    @classmethod
    def strip_module(cls, v):
        return v.strip() if isinstance(v, str) else v


class RatingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    contact_id: int
    score: Decimal
    module: str
    comment: str | None
    rated_by: int | None
    rated_at: datetime


class ModuleStats(BaseModel):
    module: str
    average_score: Decimal
    total_ratings: int


class RatedContact(ContactResponse):
    """Contact enriched with rating summary and audit user names."""

    created_by_name: str | None = None
    updated_by_name: str | None = None
    average_rating: Decimal = Decimal("0")
    total_ratings: int = 0
    last_rated_at: datetime | None = None


class ContactProfileResponse(BaseModel):
    contact: RatedContact
    rating_history: list[RatingResponse]
    module_stats: dict[str, ModuleStats]
