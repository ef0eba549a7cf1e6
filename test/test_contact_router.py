"""
Tests for contact API endpoints.
"""

from decimal import Decimal

import pytest
from fastapi import status
from httpx import AsyncClient

from conftest import RecordingEmailProvider, SeededUser, contact_payload


async def _create(client: AsyncClient, user: SeededUser, **overrides) -> dict:
    response = await client.post("/api/v1/contacts", json=contact_payload(**overrides), headers=user.headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


class TestCreateContact:
    @pytest.mark.asyncio
    async def test_create_with_email_starts_pending(
        self,
        async_client: AsyncClient,
        manager: SeededUser,
        email_provider: RecordingEmailProvider,
    ) -> None:
        data = await _create(async_client, manager)

        assert data["active"] is False
        assert data["email_verified"] is False
        assert data["verification_sent_at"] is not None
        assert data["verification_email_sent"] is True
        assert data["created_by"] == manager.id
        assert Decimal(data["credit_limit"]) == Decimal("1500.00")
        assert "verification_token" not in data
        assert [m.to for m in email_provider.sent] == ["ana.lopez@example.com"]

    @pytest.mark.asyncio
    async def test_create_without_email_is_active(
        self,
        async_client: AsyncClient,
        manager: SeededUser,
        email_provider: RecordingEmailProvider,
    ) -> None:
        data = await _create(async_client, manager, email=None)

        assert data["active"] is True
        assert data["email_verified"] is False
        assert data["verification_email_sent"] is None
        assert email_provider.sent == []

    @pytest.mark.asyncio
    async def test_email_failure_keeps_contact(
        self,
        async_client: AsyncClient,
        manager: SeededUser,
        email_provider: RecordingEmailProvider,
    ) -> None:
        email_provider.succeed = False

        data = await _create(async_client, manager)
        fetched = await async_client.get(f"/api/v1/contacts/{data['id']}", headers=manager.headers)

        assert data["verification_email_sent"] is False
        assert fetched.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_duplicate_national_id(self, async_client: AsyncClient, manager: SeededUser) -> None:
        await _create(async_client, manager)

        response = await async_client.post(
            "/api/v1/contacts",
            json=contact_payload(first_name="Otra"),
            headers=manager.headers,
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert "1234567890101" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_field_constraints_are_422(self, async_client: AsyncClient, manager: SeededUser) -> None:
        response = await async_client.post(
            "/api/v1/contacts",
            json=contact_payload(first_name="", credit_days=-1),
            headers=manager.headers,
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        fields = {error["field"] for error in response.json()["detail"]["errors"]}
        assert {"body.first_name", "body.credit_days"} <= fields


class TestReadContacts:
    @pytest.mark.asyncio
    async def test_get_unknown_contact(self, async_client: AsyncClient, seller: SeededUser) -> None:
        response = await async_client.get("/api/v1/contacts/999", headers=seller.headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json() == {"detail": "Contact 999 not found"}

    @pytest.mark.asyncio
    async def test_list_filters_and_search(
        self,
        async_client: AsyncClient,
        manager: SeededUser,
        seller: SeededUser,
    ) -> None:
        first = await _create(async_client, manager, email=None)
        await _create(
            async_client,
            manager,
            email=None,
            first_name="Bruno",
            national_id="5555",
            category="Wholesale",
            municipality="Mixco",
        )

        listed = await async_client.get("/api/v1/contacts", headers=seller.headers)
        category = await async_client.get("/api/v1/contacts/category/Retail", headers=seller.headers)
        municipality = await async_client.get("/api/v1/contacts/municipality/Mixco", headers=seller.headers)
        search = await async_client.get("/api/v1/contacts/search", params={"q": "bruno"}, headers=seller.headers)
        by_dpi = await async_client.get("/api/v1/contacts/national-id/1234567890101", headers=seller.headers)

        assert [c["first_name"] for c in listed.json()] == ["Ana", "Bruno"]
        assert [c["id"] for c in category.json()] == [first["id"]]
        assert [c["first_name"] for c in municipality.json()] == ["Bruno"]
        assert [c["first_name"] for c in search.json()] == ["Bruno"]
        assert by_dpi.json()["id"] == first["id"]

    @pytest.mark.asyncio
    async def test_pending_contacts_hidden_by_default(
        self,
        async_client: AsyncClient,
        manager: SeededUser,
    ) -> None:
        pending = await _create(async_client, manager)

        default = await async_client.get("/api/v1/contacts", headers=manager.headers)
        everything = await async_client.get(
            "/api/v1/contacts",
            params={"include_inactive": True},
            headers=manager.headers,
        )

        assert default.json() == []
        assert [c["id"] for c in everything.json()] == [pending["id"]]


class TestModifyContacts:
    @pytest.mark.asyncio
    async def test_update_returns_204(self, async_client: AsyncClient, manager: SeededUser) -> None:
        created = await _create(async_client, manager, email=None)

        response = await async_client.put(
            f"/api/v1/contacts/{created['id']}",
            json=contact_payload(email=None, phone="44445555"),
            headers=manager.headers,
        )
        fetched = await async_client.get(f"/api/v1/contacts/{created['id']}", headers=manager.headers)

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert fetched.json()["phone"] == "44445555"

    @pytest.mark.asyncio
    async def test_delete_is_soft(self, async_client: AsyncClient, manager: SeededUser) -> None:
        created = await _create(async_client, manager, email=None)

        deleted = await async_client.delete(f"/api/v1/contacts/{created['id']}", headers=manager.headers)
        fetched = await async_client.get(f"/api/v1/contacts/{created['id']}", headers=manager.headers)

        assert deleted.status_code == status.HTTP_204_NO_CONTENT
        assert fetched.status_code == status.HTTP_200_OK
        assert fetched.json()["active"] is False

    @pytest.mark.asyncio
    async def test_activate_and_deactivate(self, async_client: AsyncClient, manager: SeededUser) -> None:
        created = await _create(async_client, manager)
        url = f"/api/v1/contacts/{created['id']}"

        activated = await async_client.patch(f"{url}/activate", headers=manager.headers)
        assert activated.status_code == status.HTTP_204_NO_CONTENT
        assert (await async_client.get(url, headers=manager.headers)).json()["active"] is True

        deactivated = await async_client.patch(f"{url}/deactivate", headers=manager.headers)
        assert deactivated.status_code == status.HTTP_204_NO_CONTENT
        assert (await async_client.get(url, headers=manager.headers)).json()["active"] is False

    @pytest.mark.asyncio
    async def test_delete_unknown_is_404(self, async_client: AsyncClient, manager: SeededUser) -> None:
        response = await async_client.delete("/api/v1/contacts/777", headers=manager.headers)

        assert response.status_code == status.HTTP_404_NOT_FOUND
