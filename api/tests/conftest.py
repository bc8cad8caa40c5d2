"""Pytest configuration and shared fixtures.

This module provides:
- Test database setup with an in-memory SQLite database (aiosqlite)
- Async session fixtures for repository tests
- Transaction manager fixtures (SQLAlchemy and in-memory) for service tests
- Settings cache reset between tests
"""

# Set environment variables BEFORE any imports that trigger Settings validation
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from collections.abc import AsyncGenerator, Generator

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession

from core.config import Settings, clear_settings_cache
from core.database import create_engine, create_session_maker, create_tables
from repositories.transaction import (
    InMemoryTransactionManager,
    SqlTransactionManager,
    TransactionManager,
)

# =============================================================================
# Test Settings
# =============================================================================

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def test_settings() -> Settings:
    return Settings(database_url=TEST_DATABASE_URL, debug=True)


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def test_engine(test_settings: Settings) -> AsyncGenerator[AsyncEngine]:
    """Fresh in-memory database with all tables, one per test."""
    engine = create_engine(test_settings)
    await create_tables(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session for repository tests. Rolled back at the end of the test."""
    session_maker = create_session_maker(test_engine)
    async with session_maker() as session:
        try:
            yield session
        finally:
            await session.rollback()


# =============================================================================
# Transaction Manager Fixtures
# =============================================================================


@pytest.fixture
def memory_trx_manager() -> InMemoryTransactionManager:
    return InMemoryTransactionManager()


@pytest.fixture
def sql_trx_manager(test_engine: AsyncEngine) -> SqlTransactionManager:
    return SqlTransactionManager(create_session_maker(test_engine))


@pytest.fixture(params=["memory", "sql"])
def trx_manager(request: pytest.FixtureRequest) -> TransactionManager:
    """Run a service test once per storage backend."""
    if request.param == "memory":
        return request.getfixturevalue("memory_trx_manager")
    return request.getfixturevalue("sql_trx_manager")


# =============================================================================
# Utility Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Generator[None]:
    """Reset settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
