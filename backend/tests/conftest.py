"""Shared test fixtures.

Database tests run against a file-backed SQLite database (aiosqlite),
created fresh per test from Base.metadata. API tests talk to the app
through httpx ASGITransport with get_db overridden to that database.
"""

import os
import uuid
from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

# Settings are validated at import and require an identity salt.
os.environ.setdefault("IP_HASH_SALT", "test-identity-salt-0123456789")  # nosec B105

from access_gate.core.config import settings
from access_gate.core.rate_limiting import limiter
from access_gate.models import (
    SUCCESSFUL_JOIN,
    AccessLogEntry,
    AccessRequest,
    AccessToken,
    Base,
    RequestStatus,
    TokenStatus,
    VerificationMethod,
)
from access_gate.models.base import utc_now
from access_gate.services.submission_limits import reset_limiters

# Security: test-only secrets. Production values come from env.
TEST_SALT = "test-identity-salt-0123456789"  # nosec B105  # gitleaks:allow
TEST_COMMITTEE_KEY = "test-committee-key"  # nosec B105  # gitleaks:allow
TEST_JOIN_URL = "https://chat.whatsapp.com/TestInviteCode"


# =============================================================================
# Settings and process-local state
# =============================================================================


@pytest.fixture(autouse=True)
def test_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Configure secrets and URLs for every test; restored afterwards."""
    monkeypatch.setattr(settings, "ip_hash_salt", SecretStr(TEST_SALT))
    monkeypatch.setattr(settings, "turnstile_secret_key", SecretStr("turnstile-test"))
    monkeypatch.setattr(settings, "resend_api_key", SecretStr("re_test"))
    monkeypatch.setattr(settings, "committee_api_key", SecretStr(TEST_COMMITTEE_KEY))
    monkeypatch.setattr(settings, "base_url", "https://club.example.org")
    monkeypatch.setattr(settings, "community_join_url", TEST_JOIN_URL)
    monkeypatch.setattr(settings, "trust_forwarded_for", False)


@pytest.fixture(autouse=True)
def fresh_limiters():
    """Reset submission limiters and disable slowapi between tests."""
    reset_limiters()
    original_enabled = limiter.enabled
    limiter.enabled = False
    yield
    limiter.enabled = original_enabled
    limiter.reset()
    reset_limiters()


# =============================================================================
# Database
# =============================================================================


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a SQLite test database with all tables."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'access_gate_test.db'}",
        echo=False,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


# =============================================================================
# Row factories
# =============================================================================


@pytest.fixture
def make_token(db_session: AsyncSession):
    """Insert an AccessToken row directly, bypassing the repository."""

    async def _make(
        *,
        email: str = "alice@manchester.ac.uk",
        phone: str | None = "+447911123123",
        status: TokenStatus = TokenStatus.ACTIVE,
        created_at: datetime | None = None,
        ttl: timedelta = timedelta(hours=24),
        method: VerificationMethod = VerificationMethod.AC_UK_EMAIL,
    ) -> AccessToken:
        created = created_at or utc_now()
        record = AccessToken(
            token=uuid.uuid4().hex + uuid.uuid4().hex,
            email=email,
            phone=phone,
            verification_method=method.value,
            status=status.value,
            created_at=created,
            expires_at=created + ttl,
        )
        db_session.add(record)
        await db_session.flush()
        return record

    return _make


@pytest.fixture
def make_log_entry(db_session: AsyncSession):
    """Insert an AccessLogEntry row with a chosen age."""

    async def _make(
        *,
        email: str = "alice@manchester.ac.uk",
        phone: str | None = "+447911123123",
        age: timedelta = timedelta(days=10),
        status: str = SUCCESSFUL_JOIN,
    ) -> AccessLogEntry:
        entry = AccessLogEntry(
            email=email,
            phone=phone,
            verification_method=VerificationMethod.AC_UK_EMAIL.value,
            token="f" * 64,
            status=status,
            created_at=utc_now() - age,
        )
        db_session.add(entry)
        await db_session.flush()
        return entry

    return _make


@pytest.fixture
def make_access_request(db_session: AsyncSession):
    """Insert an AccessRequest row with a chosen status and age."""

    async def _make(
        *,
        email: str = "bob@gmail.com",
        phone: str = "+447911123456",
        status: RequestStatus = RequestStatus.PENDING,
        age: timedelta = timedelta(days=1),
        first_name: str = "Bob",
    ) -> AccessRequest:
        request = AccessRequest(
            first_name=first_name,
            surname="Walker",
            email=email,
            phone=phone,
            user_type="alumni",
            status=status.value,
            created_at=utc_now() - age,
        )
        db_session.add(request)
        await db_session.flush()
        return request

    return _make


# =============================================================================
# HTTP client
# =============================================================================


@pytest_asyncio.fixture
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client against the app with the test database.

    Yields:
        AsyncClient for making API requests.
    """
    from access_gate.core.database import get_db
    from access_gate.main import app

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def committee_headers() -> dict[str, str]:
    """Authorization header carrying the committee API key."""
    return {"Authorization": f"Bearer {TEST_COMMITTEE_KEY}"}
