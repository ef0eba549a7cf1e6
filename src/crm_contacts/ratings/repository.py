"""
Rating repository for database operations.
"""

from collections.abc import Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_contacts.ratings.models import ContactRating


class RatingRepository:
    """Repository for rating database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, rating: ContactRating) -> ContactRating:
        self._session.add(rating)
        await self._session.flush()
        await self._session.refresh(rating)
        return rating

    async def get_for_contact(self, rating_id: int, contact_id: int) -> ContactRating | None:
        stmt = select(ContactRating).where(
            ContactRating.id == rating_id,
            ContactRating.contact_id == contact_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def latest(self, contact_id: int, limit: int) -> Sequence[ContactRating]:
        """Most recent ratings first; ties broken by insertion order."""
        stmt = (
            select(ContactRating)
            .where(ContactRating.contact_id == contact_id)
            .order_by(ContactRating.rated_at.desc(), ContactRating.id.desc())
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def module_aggregates(self, contact_id: int) -> list[tuple[str, Any, int]]:
        """Return ``(module, mean score, count)`` over every rating of a contact."""
        stmt = (
            select(
                ContactRating.module,
                func.avg(ContactRating.score),
                func.count(ContactRating.id),
            )
            .where(ContactRating.contact_id == contact_id)
            .group_by(ContactRating.module)
            .order_by(ContactRating.module)
        )
        result = await self._session.execute(stmt)
        return [(module, avg, count) for module, avg, count in result.all()]

    async def delete(self, rating: ContactRating) -> None:
        await self._session.delete(rating)
        await self._session.flush()
