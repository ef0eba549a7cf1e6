"""
Tests for authentication dependencies, role checks and request correlation.
"""

import pytest
from fastapi import status
from httpx import AsyncClient

from conftest import SeededUser, contact_payload


class TestAuthMiddleware:
    """Tests for bearer authentication."""

    @pytest.mark.asyncio
    async def test_protected_endpoint_without_token(self, async_client: AsyncClient) -> None:
        """Test that protected endpoints require authentication."""
        response = await async_client.get("/api/v1/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"]["code"] == "MISSING_CREDENTIALS"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_protected_endpoint_with_garbage_token(self, async_client: AsyncClient) -> None:
        response = await async_client.get(
            "/api/v1/auth/me",
            headers={"Authorization": "Bearer not-a-jwt"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json()["detail"]["code"] == "INVALID_TOKEN"

    @pytest.mark.asyncio
    async def test_protected_endpoint_with_valid_token(
        self,
        async_client: AsyncClient,
        seller: SeededUser,
    ) -> None:
        """Test that valid tokens allow access."""
        response = await async_client.get("/api/v1/auth/me", headers=seller.headers)

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["username"] == "seller"
        assert data["role"] == "seller"
        assert data["role_level"] == 2


class TestRBAC:
    """Role-level thresholds on contact endpoints."""

    @pytest.mark.asyncio
    async def test_basic_user_cannot_read_contacts(
        self,
        async_client: AsyncClient,
        basic_user: SeededUser,
    ) -> None:
        response = await async_client.get("/api/v1/contacts", headers=basic_user.headers)

        assert response.status_code == status.HTTP_403_FORBIDDEN
        detail = response.json()["detail"]
        assert detail["code"] == "INSUFFICIENT_PERMISSIONS"
        assert detail["required_level"] == 2
        assert detail["current_level"] == 1

    @pytest.mark.asyncio
    async def test_seller_reads_but_cannot_create(
        self,
        async_client: AsyncClient,
        seller: SeededUser,
    ) -> None:
        listed = await async_client.get("/api/v1/contacts", headers=seller.headers)
        created = await async_client.post(
            "/api/v1/contacts",
            json=contact_payload(),
            headers=seller.headers,
        )

        assert listed.status_code == status.HTTP_200_OK
        assert created.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_higher_level_passes_lower_threshold(
        self,
        async_client: AsyncClient,
        admin: SeededUser,
    ) -> None:
        response = await async_client.post(
            "/api/v1/contacts",
            json=contact_payload(email=None),
            headers=admin.headers,
        )

        assert response.status_code == status.HTTP_201_CREATED

    @pytest.mark.asyncio
    async def test_anonymous_request_is_rejected_before_role_check(
        self,
        async_client: AsyncClient,
    ) -> None:
        response = await async_client.delete("/api/v1/contacts/1")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestCorrelationId:
    @pytest.mark.asyncio
    async def test_request_id_echoed(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health", headers={"X-Request-ID": "req-123"})

        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"status": "healthy"}
        assert response.headers["X-Request-ID"] == "req-123"

    @pytest.mark.asyncio
    async def test_request_id_generated(self, async_client: AsyncClient) -> None:
        response = await async_client.get("/health")

        assert response.headers["X-Request-ID"]
