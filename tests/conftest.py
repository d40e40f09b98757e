"""
Test fixtures for the ledger test suite.

This module provides shared fixtures used across all test files:

  - db_engine / session_factory: Fresh SQLite database for each test
  - ledger: The bare ledger engine bound to the test database
  - client: Async HTTP test client whose requests reach the same engine
    (wrapped in its logging decorator, as in production)
  - register_user: Registers a user with default profile fields
  - alice / bob: Registered users, each with a zero-balance account

Key design decisions:
  - Each test gets its own database FILE under tmp_path rather than an
    in-memory database. An in-memory SQLite database lives on a single
    shared connection, so two concurrent atomic units would interleave on
    it; a file gives every unit its own connection and real locking, which
    the concurrency tests depend on.
  - The engine is built with ledger.database.build_engine(), so tests run
    with exactly the transaction hooks (BEGIN IMMEDIATE, foreign keys) the
    application uses.
  - The client overrides the get_ledger dependency, so requests hit the
    test database instead of the configured one.
"""

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ledger.database import Base, build_engine
from ledger.dependencies import get_ledger
from ledger.main import app
from ledger.services.ledger_service import LedgerService
from ledger.services.logging_ledger import LoggingLedger
from ledger.store import LedgerStore


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Create a fresh async engine with all tables for each test."""
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def ledger(session_factory):
    """The ledger engine bound to the test database."""
    return LedgerService(LedgerStore(session_factory), default_timeout=5.0)


@pytest_asyncio.fixture
async def client(ledger):
    """
    Async HTTP test client with the test ledger injected.

    The override returns the same decorated ledger for every request, just
    as the lifespan does in production.
    """
    logged = LoggingLedger(ledger)
    app.dependency_overrides[get_ledger] = lambda: logged

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def register_user(ledger):
    """Register a user with sensible defaults; keyword args override fields."""

    async def _register(phone_number: str, **overrides):
        fields = {
            "first_name": "Test",
            "last_name": "User",
            "phone_number": phone_number,
            "password": "SecurePass123!",
        }
        fields.update(overrides)
        return await ledger.register(**fields)

    return _register


@pytest_asyncio.fixture
async def alice(register_user):
    return await register_user(
        "5550000001", first_name="Alice", last_name="Chen", email="alice@example.com"
    )


@pytest_asyncio.fixture
async def bob(register_user):
    return await register_user(
        "5550000002", first_name="Bob", last_name="Martinez", email="bob@example.com"
    )
