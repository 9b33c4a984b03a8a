"""
Volunteer API — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (SQLite database, API client,
       users with tokens, app factory with custom settings).
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy:
    Function-scoped:
    ├── database:     tables created on the SQLite test database, dropped after
    ├── make_app:     builds an app from Settings overrides and an optional store
    ├── client:       HTTPX AsyncClient over ASGITransport (default settings)
    └── make_user:    inserts a user and returns (user, bearer headers)

Note: ASGITransport does not run the lifespan, so the database fixture
creates the schema and the upload directories are created below.
"""

import os
import tempfile
from pathlib import Path

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Must run BEFORE anything imports volunteer_api: settings and the engine are
# built at import time.
TEST_ROOT = tempfile.mkdtemp(prefix="volunteer_api_test_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_ROOT}/test.db"
os.environ["UPLOAD_ROOT"] = TEST_ROOT
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["STRICT_ENVIRONMENT"] = "false"
os.environ["JWT_SECRET"] = "test-secret-not-for-production"
os.environ["TRUST_PROXY"] = "0"
os.environ["ALLOWED_ORIGINS"] = "http://localhost:5173,https://project-100-front.onrender.com"
os.environ["REQUEST_TIMEOUT"] = "10"

for _name in ("uploads", "uploadsfile"):
    (Path(TEST_ROOT) / _name).mkdir(parents=True, exist_ok=True)

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from volunteer_api.config import Settings  # noqa: E402
from volunteer_api.database import Base, async_session_factory, engine  # noqa: E402
from volunteer_api.main import create_app  # noqa: E402
from volunteer_api.models import User  # noqa: E402
from volunteer_api.services.auth_service import create_access_token, hash_password  # noqa: E402

ALLOWED_ORIGIN = "http://localhost:5173"


# ══════════════════════════════════════════════════════════════════════════
# Fixtures
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def database():
    """Fresh tables for one test; the engine is disposed so no pooled
    connection outlives the test's event loop."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def make_app():
    """
    Builds an app from Settings overrides.

    Usage:
        app = make_app(rate_limit_max=3)
        app = make_app(store=my_store)
    """

    def _make(store=None, **overrides):
        config = Settings(_env_file=None, **overrides)
        return create_app(config, rate_limit_store=store)

    return _make


def client_for(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest_asyncio.fixture
async def client():
    async with client_for(create_app()) as test_client:
        yield test_client


@pytest.fixture
def make_user(database):
    """
    Inserts a user directly and returns (user, headers) with a valid token.

    A low PBKDF2 iteration count keeps the suite fast; verification reads the
    count from the stored hash.
    """
    counter = {"n": 0}

    async def _make(role: str = "student", password: str = "secret123", **fields):
        counter["n"] += 1
        n = counter["n"]
        async with async_session_factory() as session:
            user = User(
                email=fields.pop("email", f"user{n}@example.com"),
                username=fields.pop("username", f"user{n}"),
                password_hash=hash_password(password, iterations=1000),
                role=role,
                **fields,
            )
            session.add(user)
            await session.commit()
        token = create_access_token(user)
        return user, {"Authorization": f"Bearer {token}"}

    return _make
