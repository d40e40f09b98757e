"""
Database engine, session factory, and base model class.

This module sets up SQLAlchemy 2.0 with async support:

  - build_engine(): creates an async engine and, for SQLite, installs the
    event hooks the ledger's locking model depends on
  - engine / AsyncSessionLocal: the application's engine and session factory
  - Base: declarative base class that all ORM models inherit from

SQLite and locking:
  SQLite has no SELECT ... FOR UPDATE, and the stock driver only emits a
  deferred BEGIN right before the first write. Two transfers could then both
  read the same balance before either writes. build_engine() takes over
  transaction control and opens every transaction with BEGIN IMMEDIATE, which
  takes the database write lock up front: a second unit waits (up to the
  driver's busy timeout) until the first commits, then reads fresh balances.
  On PostgreSQL none of this is installed; with_for_update() row locks in the
  store do the same job per account.

  Foreign keys are off by default in SQLite; the connect hook turns them on
  so deleting a user cascades to its account.
"""

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from ledger.config import settings


def build_engine(url: str, **kwargs) -> AsyncEngine:
    """
    Create an async engine for `url`.

    Extra keyword arguments go straight to create_async_engine(). Tests use
    this too, so they run against the same transaction behaviour as the app.
    """
    engine = create_async_engine(url, **kwargs)

    if engine.dialect.name == "sqlite":
        @event.listens_for(engine.sync_engine, "connect")
        def _on_connect(dbapi_connection, connection_record):
            # Stop the driver from emitting its own BEGIN; _on_begin does it
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine.sync_engine, "begin")
        def _on_begin(conn):
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


# echo=True in debug mode logs all SQL statements
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# expire_on_commit=False keeps returned rows readable after their unit
# commits; otherwise attribute access would trigger a lazy load outside it.
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy ORM models."""
    pass
