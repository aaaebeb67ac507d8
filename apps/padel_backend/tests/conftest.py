"""
Shared pytest configuration for backend tests.

Service tests run against an in-memory SQLite database through aiosqlite,
so no database server is needed. TEST_DATABASE_URL can point the suite at
PostgreSQL instead.

SAFETY: a PostgreSQL URL is REFUSED unless the database name contains the
substring "test", so a misconfigured environment can never touch a
development or production database.
"""

import os

# Must be set before the app modules are imported
os.environ.setdefault("ENV", "test")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-padel-backend-tests")

import pytest_asyncio  # noqa: E402
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from padel_backend.database.db import Base  # noqa: E402

SQLITE_MEMORY_URL = "sqlite+aiosqlite:///:memory:"


def _resolve_test_database_url() -> str:
    """Build the test database URL with safety checks.

    Raises ``RuntimeError`` if a non-SQLite URL does not point to a database
    whose name contains "test".
    """
    url = os.getenv("TEST_DATABASE_URL", SQLITE_MEMORY_URL)
    if url.startswith("sqlite"):
        return url

    db_name = url.rsplit("/", 1)[-1].split("?")[0]  # strip query params
    if "test" not in db_name.lower():
        raise RuntimeError(
            f"\n{'=' * 70}\n"
            f"  SAFETY: Refusing to run tests against database '{db_name}'.\n"
            f"  The database name must contain 'test' to prevent accidental\n"
            f"  data loss in development or production databases.\n\n"
            f"  Resolved URL: {url}\n"
            f"{'=' * 70}"
        )
    return url


# Validated at import time so pytest fails immediately with a clear message
TEST_DATABASE_URL = _resolve_test_database_url()


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a fresh database engine with all tables for one test."""
    if TEST_DATABASE_URL.startswith("sqlite"):
        # A single shared connection keeps the in-memory database alive
        engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    else:
        engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine):
    """Create a test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with async_session_maker() as session:
        yield session
