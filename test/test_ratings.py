"""
Tests for contact ratings and rating profiles.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import SeededUser, contact_create, contact_payload
from crm_contacts.contacts.models import Contact
from crm_contacts.contacts.service import ContactService
from crm_contacts.ratings.models import ContactRating
from crm_contacts.ratings.schemas import RatingCreate
from crm_contacts.ratings.service import RatingService, mean_score, round_score
from crm_contacts.shared.database import utcnow
from crm_contacts.shared.exceptions import NotFoundError


@pytest.fixture
def service(db_session: AsyncSession) -> RatingService:
    return RatingService(session=db_session)


async def _contact(db_session: AsyncSession, user_id: int | None = None) -> Contact:
    contacts = ContactService(db_session)
    contact = await contacts.create_contact(contact_create(email=None), user_id=user_id)
    await contacts.commit()
    return contact


async def _rate(service: RatingService, contact_id: int, score: str, module: str = "sales", user_id: int = 1):
    return await service.create_rating(
        contact_id,
        RatingCreate(score=Decimal(score), module=module),
        user_id=user_id,
    )


class TestScoreMath:
    def test_round_score(self) -> None:
        assert round_score(None) == Decimal("0.00")
        assert round_score(4.0) == Decimal("4.00")
        assert round_score(Decimal("3.335")) == Decimal("3.34")
        assert round_score(10 / 3) == Decimal("3.33")

    def test_mean_score_empty(self) -> None:
        assert mean_score([]) == Decimal("0.00")


class TestRatingService:
    @pytest.mark.asyncio
    async def test_create_defaults_author_to_current_user(
        self,
        service: RatingService,
        db_session: AsyncSession,
    ) -> None:
        contact = await _contact(db_session)

        rating = await _rate(service, contact.id, "4.5", user_id=8)

        assert rating.id is not None
        assert rating.rated_by == 8
        assert rating.rated_at is not None

    @pytest.mark.asyncio
    async def test_explicit_author_kept(self, service: RatingService, db_session: AsyncSession) -> None:
        contact = await _contact(db_session)

        rating = await service.create_rating(
            contact.id,
            RatingCreate(score=Decimal("3"), module="support", rated_by=99),
            user_id=8,
        )

        assert rating.rated_by == 99

    @pytest.mark.asyncio
    async def test_create_for_unknown_contact(self, service: RatingService) -> None:
        with pytest.raises(NotFoundError):
            await _rate(service, 404, "3")

    @pytest.mark.asyncio
    async def test_profile_average_of_three(self, service: RatingService, db_session: AsyncSession) -> None:
        contact = await _contact(db_session)
        for score in ("3", "4", "5"):
            await _rate(service, contact.id, score)

        profile = await service.profile(contact.id)

        assert profile.contact.average_rating == Decimal("4.00")
        assert profile.contact.total_ratings == 3
        assert profile.module_stats["sales"].average_score == Decimal("4.00")
        assert profile.module_stats["sales"].total_ratings == 3
        assert len(profile.rating_history) == 3

    @pytest.mark.asyncio
    async def test_profile_without_ratings(self, service: RatingService, db_session: AsyncSession) -> None:
        contact = await _contact(db_session)

        profile = await service.profile(contact.id)

        assert profile.contact.average_rating == Decimal("0.00")
        assert profile.contact.total_ratings == 0
        assert profile.contact.last_rated_at is None
        assert profile.rating_history == []
        assert profile.module_stats == {}

    @pytest.mark.asyncio
    async def test_profile_window_and_module_stats(
        self,
        service: RatingService,
        db_session: AsyncSession,
    ) -> None:
        """The average covers the latest window; module stats cover everything."""
        contact = await _contact(db_session)
        base = utcnow() - timedelta(days=10)
        for offset, (score, module) in enumerate(
            [("1", "sales"), ("2", "sales"), ("5", "support"), ("4", "support")]
        ):
            db_session.add(
                ContactRating(
                    contact_id=contact.id,
                    score=Decimal(score),
                    module=module,
                    rated_by=1,
                    rated_at=base + timedelta(days=offset),
                )
            )
        await db_session.commit()

        profile = await service.profile(contact.id, limit=2)

        assert [r.score for r in profile.rating_history] == [Decimal("4.00"), Decimal("5.00")]
        assert profile.contact.average_rating == Decimal("4.50")
        assert profile.contact.total_ratings == 2
        assert profile.module_stats["sales"].average_score == Decimal("1.50")
        assert profile.module_stats["sales"].total_ratings == 2
        assert profile.module_stats["support"].total_ratings == 2

    @pytest.mark.asyncio
    async def test_profile_resolves_audit_usernames(
        self,
        service: RatingService,
        db_session: AsyncSession,
        manager: SeededUser,
    ) -> None:
        contact = await _contact(db_session, user_id=manager.id)

        profile = await service.profile(contact.id)

        assert profile.contact.created_by_name == "sales_manager"
        assert profile.contact.updated_by_name == "sales_manager"

    @pytest.mark.asyncio
    async def test_delete_rating(self, service: RatingService, db_session: AsyncSession) -> None:
        contact = await _contact(db_session)
        rating = await _rate(service, contact.id, "2")

        assert await service.delete_rating(contact.id, rating.id) is True
        assert await service.delete_rating(contact.id, rating.id) is False
        assert await service.history(contact.id) == []

    @pytest.mark.asyncio
    async def test_delete_rating_of_other_contact(
        self,
        service: RatingService,
        db_session: AsyncSession,
    ) -> None:
        contact = await _contact(db_session)
        rating = await _rate(service, contact.id, "2")

        assert await service.delete_rating(contact.id + 1, rating.id) is False


class TestRatingEndpoints:
    async def _contact_id(self, client: AsyncClient, manager: SeededUser) -> int:
        response = await client.post(
            "/api/v1/contacts",
            json=contact_payload(email=None),
            headers=manager.headers,
        )
        return response.json()["id"]

    @pytest.mark.asyncio
    async def test_rate_and_read_profile(
        self,
        async_client: AsyncClient,
        manager: SeededUser,
        seller: SeededUser,
    ) -> None:
        contact_id = await self._contact_id(async_client, manager)
        for score in (3, 4, 5):
            response = await async_client.post(
                f"/api/v1/contacts/{contact_id}/ratings",
                json={"score": score, "module": "sales", "comment": "ok"},
                headers=seller.headers,
            )
            assert response.status_code == status.HTTP_201_CREATED
            assert response.json()["rated_by"] == seller.id

        history = await async_client.get(f"/api/v1/contacts/{contact_id}/ratings", headers=seller.headers)
        profile = await async_client.get(f"/api/v1/contacts/{contact_id}/profile", headers=seller.headers)

        assert len(history.json()) == 3
        body = profile.json()
        assert Decimal(body["contact"]["average_rating"]) == Decimal("4.00")
        assert body["contact"]["total_ratings"] == 3
        assert body["contact"]["created_by_name"] == "sales_manager"
        assert body["module_stats"]["sales"]["total_ratings"] == 3

    @pytest.mark.asyncio
    async def test_score_out_of_range(
        self,
        async_client: AsyncClient,
        manager: SeededUser,
    ) -> None:
        contact_id = await self._contact_id(async_client, manager)

        response = await async_client.post(
            f"/api/v1/contacts/{contact_id}/ratings",
            json={"score": 5.5, "module": "sales"},
            headers=manager.headers,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY

    @pytest.mark.asyncio
    async def test_delete_requires_manager(
        self,
        async_client: AsyncClient,
        manager: SeededUser,
        seller: SeededUser,
    ) -> None:
        contact_id = await self._contact_id(async_client, manager)
        created = await async_client.post(
            f"/api/v1/contacts/{contact_id}/ratings",
            json={"score": 4, "module": "sales"},
            headers=seller.headers,
        )
        url = f"/api/v1/contacts/{contact_id}/ratings/{created.json()['id']}"

        forbidden = await async_client.delete(url, headers=seller.headers)
        deleted = await async_client.delete(url, headers=manager.headers)
        missing = await async_client.delete(url, headers=manager.headers)

        assert forbidden.status_code == status.HTTP_403_FORBIDDEN
        assert deleted.status_code == status.HTTP_204_NO_CONTENT
        assert missing.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_profile_of_unknown_contact(self, async_client: AsyncClient, seller: SeededUser) -> None:
        response = await async_client.get("/api/v1/contacts/999/profile", headers=seller.headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
