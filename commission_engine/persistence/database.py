"""
Database setup: declarative base, engine and session factory.
"""

import os

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker


class Base(DeclarativeBase):
    pass


def make_engine(url: str | None = None, echo: bool = False):
    """Create an engine for DATABASE_URL (in-memory SQLite when unset)."""
    url = url or os.environ.get("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    kwargs = {"echo": echo}
    if url.startswith("sqlite") and ":memory:" in url:
        # Single shared connection so every session sees the same in-memory database
        from sqlalchemy.pool import StaticPool

        kwargs.update(connect_args={"check_same_thread": False}, poolclass=StaticPool)
    return create_engine(url, **kwargs)


def make_session_factory(engine, create_tables: bool = True) -> sessionmaker:
    """
    Session factory used by the recalculation service.

    Objects stay readable after commit so callers can render the
    recalculated plan once the transaction is closed.
    """
    if create_tables:
        # Import registers the mapped tables on Base.metadata
        from . import tables  # noqa: F401

        Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, expire_on_commit=False)
