"""
HTTP client for the external sales API.

The API issues bearer tokens from ``POST /Auth/login``. One token is cached
per process and refreshed by a single writer: concurrent callers that find it
expired wait on the same lock and reuse the token the first one fetched.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import httpx

from crm_contacts.config import Settings, get_settings
from crm_contacts.shared.database import utcnow
from crm_contacts.shared.exceptions import AppError
from crm_contacts.shared.logging import get_logger

logger = get_logger(__name__)


class SalesApiError(AppError):
    status_code = 502

    def __init__(self, message: str = "Sales API request failed", details: dict[str, Any] | None = None) -> None:
        super().__init__(message=message, details=details, code="SALES_API_ERROR")


class TokenCache:
    """A single ``(token, expires_at)`` entry with its refresh lock."""

    def __init__(self, ttl: timedelta, clock: Callable[[], datetime] = utcnow) -> None:
        self._ttl = ttl
        self._clock = clock
        self._token: str | None = None
        self._expires_at: datetime | None = None
        self.lock = asyncio.Lock()

    def get(self) -> str | None:
        if self._token is None or self._expires_at is None:
            return None
        if self._clock() >= self._expires_at:
            return None
        return self._token

    def set(self, token: str) -> None:
        self._token = token
        self._expires_at = self._clock() + self._ttl

    def invalidate(self, token: str | None = None) -> None:
        """Drop the cached token.

        With ``token`` given, only drop it if it is still the cached one, so a
        stale 401 cannot discard a token another request just refreshed.
        """
        if token is not None and token != self._token:
            return
        self._token = None
        self._expires_at = None


class SalesApiClient:
    """Authenticated access to the sales API with one retry after re-login."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        token_cache: TokenCache | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._owns_client = http_client is None
        self._cache = token_cache or TokenCache(timedelta(hours=self._settings.sales_token_ttl_hours))

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._settings.sales_api_base_url,
                timeout=self._settings.sales_timeout_seconds,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client if owned."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def _login(self) -> str:
        response = await self._get_http_client().post(
            "/Auth/login",
            json={
                "username": self._settings.sales_api_username,
                "password": self._settings.sales_api_password,
            },
        )
        if not response.is_success:
            logger.error("Sales API login rejected", extra={"status_code": response.status_code})
            raise SalesApiError(
                "Sales API authentication failed",
                details={"status_code": response.status_code},
            )
        token = response.json().get("token")
        if not token:
            raise SalesApiError("Sales API login response has no token")
        logger.info("Sales API authenticated")
        return token

    async def get_token(self) -> str:
        """Return a valid token, logging in at most once across concurrent callers."""
        token = self._cache.get()
        if token is not None:
            return token
        async with self._cache.lock:
            token = self._cache.get()
            if token is None:
                token = await self._login()
                self._cache.set(token)
            return token

    async def request(self, method: str, path: str, params: dict[str, Any] | None = None) -> httpx.Response:
        """Send an authenticated request.

        A 401 invalidates the token used, triggers one re-authentication and
        exactly one retry; the retry's response is returned whatever it is.
        """
        client = self._get_http_client()
        token = await self.get_token()
        response = await client.request(
            method, path, params=params, headers={"Authorization": f"Bearer {token}"}
        )
        if response.status_code != httpx.codes.UNAUTHORIZED:
            return response

        logger.info("Sales API token rejected, re-authenticating", extra={"path": path})
        self._cache.invalidate(token)
        token = await self.get_token()
        return await client.request(
            method, path, params=params, headers={"Authorization": f"Bearer {token}"}
        )

    async def get_json(self, path: str, params: dict[str, Any] | None = None) -> Any | None:
        """GET a JSON body; None for a non-success status."""
        response = await self.request("GET", path, params=params)
        if not response.is_success:
            logger.warning(
                "Sales API request unsuccessful",
                extra={"path": path, "status_code": response.status_code},
            )
            return None
        return response.json()


_client: SalesApiClient | None = None


def get_sales_client() -> SalesApiClient:
    """Process-wide sales client (FastAPI dependency)."""
    global _client
    if _client is None:
        _client = SalesApiClient()
    return _client


async def close_sales_client() -> None:
    global _client
    if _client is not None:
        await _client.close()
        _client = None
