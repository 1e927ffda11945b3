"""
Pytest configuration and shared fixtures for the job application tracker tests.
"""
import os
from urllib.parse import parse_qs, urlparse

# Settings are cached on first use, so the test environment must be in place
# before anything from the app package is imported.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SESSION_BACKEND", "memory")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("CLIENT_URL", "http://client.test/")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-client-secret")

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.models.base import Base, get_db
from app.dependencies.auth import get_session_store
from app.services.google_oauth import (
    ExternalProfile,
    IdentityProvider,
    IdentityProviderError,
    get_identity_provider,
)
from app.services.session_store import MemorySessionStore

CLIENT_URL = os.environ["CLIENT_URL"]


class FakeIdentityProvider(IdentityProvider):
    """Hands out pre-registered profiles keyed by authorization code."""

    def __init__(self):
        self.profiles: dict[str, ExternalProfile] = {}
        self.calls = 0

    def register(self, code: str, profile: ExternalProfile) -> None:
        self.profiles[code] = profile

    def authorization_url(self, state: str) -> str:
        return f"https://provider.test/authorize?state={state}"

    async def authenticate(self, params):
        self.calls += 1
        if params.get("error"):
            raise IdentityProviderError(params["error"])
        profile = self.profiles.get(params.get("code", ""))
        if profile is None:
            raise IdentityProviderError("unknown code")
        return profile


# Database Setup
@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite shared by every connection of a single test."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def session_store():
    return MemorySessionStore(max_age=3600)


@pytest.fixture
def identity_provider():
    return FakeIdentityProvider()


@pytest_asyncio.fixture
async def make_client(session_factory, session_store, identity_provider):
    """Factory for independent browsers (separate cookie jars) against one app."""

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_store] = lambda: session_store
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider

    clients = []

    def _make():
        client = httpx.AsyncClient(
            transport=httpx.ASGITransport(app=app),
            base_url="http://testserver",
        )
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(make_client):
    return make_client()


@pytest.fixture
def login(identity_provider):
    """Run the redirect + callback dance for ``profile`` on ``client``."""

    async def _login(client: httpx.AsyncClient, profile: ExternalProfile, code: str | None = None):
        code = code or f"code-{profile.external_id}"
        identity_provider.register(code, profile)

        start = await client.get("/auth/external-login")
        assert start.status_code == 303
        state = parse_qs(urlparse(start.headers["location"]).query)["state"][0]

        return await client.get(
            "/auth/external-login/callback", params={"code": code, "state": state}
        )

    return _login


@pytest.fixture
def alice():
    return ExternalProfile(
        external_id="google-alice",
        display_name="Alice Example",
        email="alice@example.com",
        refresh_token="alice-refresh-1",
    )


@pytest.fixture
def bob():
    return ExternalProfile(
        external_id="google-bob",
        display_name="Bob Example",
        email="bob@example.com",
        refresh_token="bob-refresh-1",
    )
