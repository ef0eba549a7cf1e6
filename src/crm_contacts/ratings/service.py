"""
Rating service: record ratings and aggregate contact profiles.
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.auth.repository import UserRepository
from crm_contacts.contacts.repository import ContactRepository
from crm_contacts.ratings.models import ContactRating
from crm_contacts.ratings.repository import RatingRepository
from crm_contacts.ratings.schemas import (
    ContactProfileResponse,
    ModuleStats,
    RatedContact,
    RatingCreate,
    RatingResponse,
)
from crm_contacts.shared.database import utcnow
from crm_contacts.shared.exceptions import NotFoundError
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 10
TWO_PLACES = Decimal("0.01")


def round_score(value: Any) -> Decimal:
    """Round a mean to two decimals; backends return floats or decimals."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def mean_score(ratings: Sequence[ContactRating]) -> Decimal:
    if not ratings:
        return Decimal("0.00")
    total = sum((Decimal(r.score) for r in ratings), Decimal("0"))
    return round_score(total / len(ratings))


class RatingService:
    """Service for contact ratings."""

    def __init__(
        self,
        session: AsyncSession,
        rating_repository: RatingRepository | None = None,
        contact_repository: ContactRepository | None = None,
        user_repository: UserRepository | None = None,
    ) -> None:
        self._session = session
        self._ratings = rating_repository or RatingRepository(session)
        self._contacts = contact_repository or ContactRepository(session)
        self._users = user_repository or UserRepository(session)

    async def _require_contact(self, contact_id: int):
        contact = await self._contacts.get_by_id(contact_id)
        if contact is None:
            raise NotFoundError(f"Contact {contact_id} not found", details={"contact_id": contact_id})
        return contact

    async def create_rating(
        self,
        contact_id: int,
        data: RatingCreate,
        user_id: int | None = None,
    ) -> ContactRating:
        """Record a rating for an existing contact.

        Raises:
            NotFoundError: If the contact does not exist.
        """
        await self._require_contact(contact_id)
        rating = await self._ratings.create(
            ContactRating(
                contact_id=contact_id,
                score=data.score,
                module=data.module,
                comment=data.comment,
                rated_by=data.rated_by if data.rated_by is not None else user_id,
                rated_at=utcnow(),
            )
        )
        await self._session.commit()
        logger.info(
            "Rating created",
            extra={
                "rating_id": rating.id,
                "contact_id": contact_id,
                "module": rating.module,
                "rated_by": rating.rated_by,
            },
        )
        return rating

    async def history(self, contact_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[ContactRating]:
        return await self._ratings.latest(contact_id, limit)

    async def module_stats(self, contact_id: int) -> dict[str, ModuleStats]:
        aggregates = await self._ratings.module_aggregates(contact_id)
        return {
            module: ModuleStats(module=module, average_score=round_score(avg), total_ratings=count)
            for module, avg, count in aggregates
        }

    async def _username(self, user_id: int | None) -> str | None:
        if user_id is None:
            return None
        user = await self._users.get_by_id(user_id)
        return user.username if user is not None else None

    async def profile(self, contact_id: int, limit: int = DEFAULT_HISTORY_LIMIT) -> ContactProfileResponse:
        """Build a contact profile.

        The average and count cover only the latest ``limit`` ratings;
        per-module statistics cover every rating.
        """
        contact = await self._require_contact(contact_id)
        recent = await self._ratings.latest(contact_id, limit)

        summary = RatedContact.model_validate(contact)
        summary.average_rating = mean_score(recent)
        summary.total_ratings = len(recent)
        summary.last_rated_at = recent[0].rated_at if recent else None
        summary.created_by_name = await self._username(contact.created_by)
        summary.updated_by_name = await self._username(contact.updated_by)

        return ContactProfileResponse(
            contact=summary,
            rating_history=[RatingResponse.model_validate(r) for r in recent],
            module_stats=await self.module_stats(contact_id),
        )

    async def delete_rating(self, contact_id: int, rating_id: int) -> bool:
        """Delete a rating of a contact; False when there is no such rating."""
        rating = await self._ratings.get_for_contact(rating_id, contact_id)
        if rating is None:
            return False
        await self._ratings.delete(rating)
        await self._session.commit()
        logger.info("Rating deleted", extra={"rating_id": rating_id, "contact_id": contact_id})
        return True
