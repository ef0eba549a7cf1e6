"""
Pytest configuration and shared fixtures.

Every test gets a fresh in-memory SQLite database, seeded with one role and
one user per privilege level. API tests share the test's session with the
application so data written through HTTP is visible to assertions.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Callable
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from crm_contacts.auth.jwt import JWTHandler
from crm_contacts.auth.models import Role, RoleLevel, User
from crm_contacts.auth.passwords import hash_password
from crm_contacts.auth.repository import UserRepository
from crm_contacts.config import Settings
from crm_contacts.contacts.schemas import ContactCreate
from crm_contacts.main import app
from crm_contacts.notifications.email import EmailGateway, EmailMessage, get_email_provider
from crm_contacts.sales.client import SalesApiClient, get_sales_client
from crm_contacts.shared.database import Base, get_db_session

TEST_PASSWORD = "secret123"
SALES_BASE_URL = "https://sales.test/api"

ROLE_NAMES = {
    RoleLevel.USER: "user",
    RoleLevel.SELLER: "seller",
    RoleLevel.SALES_MANAGER: "sales_manager",
    RoleLevel.ADMINISTRATOR: "administrator",
}


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    """Pin settings that tests depend on; get_settings() re-reads them per call."""
    monkeypatch.setenv("JWT_SECRET_KEY", "test-secret-key-for-testing-only")
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite://")
    monkeypatch.setenv("PUBLIC_BASE_URL", "http://testserver")
    monkeypatch.setenv("API_PREFIX", "/api/v1")
    monkeypatch.setenv("EMAIL_API_URL", "https://mail.test/emails")
    monkeypatch.setenv("EMAIL_API_KEY", "mail-test-key")
    monkeypatch.setenv("SALES_API_BASE_URL", SALES_BASE_URL)
    monkeypatch.setenv("SALES_API_USERNAME", "contactos")
    monkeypatch.setenv("SALES_API_PASSWORD", "sales-pass")
    monkeypatch.setenv("UPLOAD_DIR", str(tmp_path / "uploads"))
    monkeypatch.setenv("MAX_UPLOAD_BYTES", "1024")
    monkeypatch.setenv("VERIFICATION_TOKEN_TTL_HOURS", "24")


@pytest.fixture
def test_settings(test_env: None) -> Settings:
    return Settings()


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine() -> AsyncGenerator[Any, None]:
    """Create test database engine."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine: Any) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    session_factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Users and tokens
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SeededUser:
    id: int
    username: str
    role_id: int
    level: RoleLevel
    token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}


@pytest_asyncio.fixture
async def roles(db_session: AsyncSession) -> dict[RoleLevel, int]:
    """One role per level; maps level to role id."""
    created = {}
    for level, name in ROLE_NAMES.items():
        role = Role(name=name, level=int(level), description=f"{name} role")
        db_session.add(role)
        await db_session.flush()
        created[level] = role.id
    await db_session.commit()
    return created


@pytest_asyncio.fixture
async def users(
    db_session: AsyncSession,
    roles: dict[RoleLevel, int],
    test_settings: Settings,
) -> dict[str, SeededUser]:
    """One active user per level, keyed by role name."""
    repository = UserRepository(db_session)
    jwt_handler = JWTHandler(test_settings)
    password_hash = hash_password(TEST_PASSWORD)

    seeded = {}
    for level, name in ROLE_NAMES.items():
        user = await repository.add(
            User(
                username=name,
                email=f"{name}@example.com",
                password_hash=password_hash,
                first_name=name.replace("_", " ").title(),
                last_name="Tester",
                role_id=roles[level],
                is_active=True,
            )
        )
        seeded[name] = SeededUser(
            id=user.id,
            username=user.username,
            role_id=user.role_id,
            level=level,
            token=jwt_handler.create_access_token(user),
        )
    await db_session.commit()
    return seeded


@pytest.fixture
def seller(users: dict[str, SeededUser]) -> SeededUser:
    return users["seller"]


@pytest.fixture
def manager(users: dict[str, SeededUser]) -> SeededUser:
    return users["sales_manager"]


@pytest.fixture
def admin(users: dict[str, SeededUser]) -> SeededUser:
    return users["administrator"]


@pytest.fixture
def basic_user(users: dict[str, SeededUser]) -> SeededUser:
    return users["user"]


# ---------------------------------------------------------------------------
# Outbound collaborators
# ---------------------------------------------------------------------------

class RecordingEmailProvider:
    """Email provider that keeps messages instead of sending them."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.sent: list[EmailMessage] = []

    async def send(self, message: EmailMessage) -> bool:
        self.sent.append(message)
        return self.succeed


class FakeClock:
    """Settable clock for expiry tests."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def email_provider() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def email_gateway(email_provider: RecordingEmailProvider, test_settings: Settings) -> EmailGateway:
    return EmailGateway(provider=email_provider, settings=test_settings)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


SalesHandler = Callable[[httpx.Request], httpx.Response]


def make_sales_client(handler: SalesHandler, settings: Settings) -> SalesApiClient:
    """Sales client whose HTTP traffic is answered by ``handler``."""
    http_client = httpx.AsyncClient(
        base_url=settings.sales_api_base_url,
        transport=httpx.MockTransport(handler),
    )
    return SalesApiClient(settings=settings, http_client=http_client)


@pytest.fixture
def sales_unavailable(test_settings: Settings) -> SalesApiClient:
    """Sales client whose every request fails at the transport level."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("sales API unreachable", request=request)

    return make_sales_client(handler, test_settings)


# ---------------------------------------------------------------------------
# Data helpers
# ---------------------------------------------------------------------------

def contact_payload(**overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "first_name": "Ana",
        "last_name": "Lopez",
        "phone": "55512345",
        "email": "ana.lopez@example.com",
        "national_id": "1234567890101",
        "tax_id": "1234567-8",
        "address": "5a avenida 10-20",
        "zone": "10",
        "municipality": "Guatemala",
        "department": "Guatemala",
        "credit_days": 30,
        "credit_limit": "1500.00",
        "category": "Retail",
        "subcategory": "Minorista",
    }
    payload.update(overrides)
    return payload


def contact_create(**overrides: Any) -> ContactCreate:
    return ContactCreate.model_validate(contact_payload(**overrides))


# ---------------------------------------------------------------------------
# HTTP client
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def async_client(
    db_session: AsyncSession,
    email_provider: RecordingEmailProvider,
    sales_unavailable: SalesApiClient,
) -> AsyncGenerator[AsyncClient, None]:
    """Create async HTTP client for API tests."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = override_get_db
    app.dependency_overrides[get_email_provider] = lambda: email_provider
    app.dependency_overrides[get_sales_client] = lambda: sales_unavailable

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client

    app.dependency_overrides.clear()
