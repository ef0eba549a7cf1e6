"""
Tests for login, registration and password changes.
"""

import pytest
from fastapi import status
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import TEST_PASSWORD, SeededUser
from crm_contacts.auth.models import RoleLevel
from crm_contacts.auth.repository import UserRepository


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_returns_token_and_profile(
        self,
        async_client: AsyncClient,
        manager: SeededUser,
    ) -> None:
        response = await async_client.post(
            "/api/v1/auth/login",
            json={"username": "sales_manager", "password": TEST_PASSWORD},
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["token_type"] == "Bearer"
        assert data["expires_in"] > 0
        assert data["user"]["id"] == manager.id
        assert data["user"]["role_level"] == 3

        me = await async_client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {data['access_token']}"},
        )
        assert me.status_code == status.HTTP_200_OK
        assert me.json()["username"] == "sales_manager"

    @pytest.mark.asyncio
    async def test_wrong_password(self, async_client: AsyncClient, users) -> None:
        response = await async_client.post(
            "/api/v1/auth/login",
            json={"username": "seller", "password": "wrong-password"},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"detail": "Invalid username or password"}

    @pytest.mark.asyncio
    async def test_unknown_user(self, async_client: AsyncClient, users) -> None:
        response = await async_client.post(
            "/api/v1/auth/login",
            json={"username": "nobody", "password": TEST_PASSWORD},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_inactive_user_cannot_login(
        self,
        async_client: AsyncClient,
        db_session: AsyncSession,
        seller: SeededUser,
    ) -> None:
        user = await UserRepository(db_session).get_by_id(seller.id)
        user.is_active = False
        await db_session.commit()

        response = await async_client.post(
            "/api/v1/auth/login",
            json={"username": "seller", "password": TEST_PASSWORD},
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_creates_basic_user(self, async_client: AsyncClient, roles) -> None:
        response = await async_client.post(
            "/api/v1/auth/register",
            json={
                "username": "newcomer",
                "email": "newcomer@example.com",
                "password": "abcdef",
                "first_name": "New",
                "last_name": "Comer",
            },
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["access_token"]
        assert data["user"]["role_level"] == int(RoleLevel.USER)
        assert data["user"]["full_name"] == "New Comer"

    @pytest.mark.asyncio
    async def test_register_short_password(self, async_client: AsyncClient, roles) -> None:
        response = await async_client.post(
            "/api/v1/auth/register",
            json={"username": "shorty", "email": "shorty@example.com", "password": "abc"},
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_register_duplicate_username(self, async_client: AsyncClient, users) -> None:
        response = await async_client.post(
            "/api/v1/auth/register",
            json={"username": "seller", "email": "other@example.com", "password": "abcdef"},
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.asyncio
    async def test_register_invalid_email_is_422(self, async_client: AsyncClient, roles) -> None:
        response = await async_client.post(
            "/api/v1/auth/register",
            json={"username": "bademail", "email": "not-an-email", "password": "abcdef"},
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        detail = response.json()["detail"]
        assert detail["code"] == "VALIDATION_ERROR"
        assert any(error["field"] == "body.email" for error in detail["errors"])


class TestChangePassword:
    @pytest.mark.asyncio
    async def test_change_password(self, async_client: AsyncClient, seller: SeededUser) -> None:
        response = await async_client.post(
            "/api/v1/auth/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": "brand-new-pass"},
            headers=seller.headers,
        )
        assert response.status_code == status.HTTP_204_NO_CONTENT

        old = await async_client.post(
            "/api/v1/auth/login",
            json={"username": "seller", "password": TEST_PASSWORD},
        )
        new = await async_client.post(
            "/api/v1/auth/login",
            json={"username": "seller", "password": "brand-new-pass"},
        )
        assert old.status_code == status.HTTP_401_UNAUTHORIZED
        assert new.status_code == status.HTTP_200_OK

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, async_client: AsyncClient, seller: SeededUser) -> None:
        response = await async_client.post(
            "/api/v1/auth/change-password",
            json={"current_password": "nope", "new_password": "brand-new-pass"},
            headers=seller.headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json() == {"detail": "Current password is incorrect"}

    @pytest.mark.asyncio
    async def test_new_password_too_short(self, async_client: AsyncClient, seller: SeededUser) -> None:
        response = await async_client.post(
            "/api/v1/auth/change-password",
            json={"current_password": TEST_PASSWORD, "new_password": "123"},
            headers=seller.headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
