"""Mini README: Engine and session management for the relational store.

Structure:
    * build_engine - create a SQLAlchemy engine for a database URL.
    * build_session_factory - sessionmaker bound to an engine.
    * init_db - create all tables declared on ``Base``.
    * session_scope - context manager committing or rolling back a unit of work.

SQLite is the default backend. Foreign keys are switched on per connection so
``ON DELETE`` clauses behave the same as on PostgreSQL, and in-memory URLs
share a single connection so tests see one database.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..logging_utils import get_logger
from .models import Base

LOGGER = get_logger(__name__)


def _is_memory_url(database_url: str) -> bool:
    return database_url in {"sqlite://", "sqlite:///:memory:"} or "mode=memory" in database_url


def build_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create an engine with SQLite specific connection handling."""

    kwargs = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_url(database_url):
            kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, **kwargs)

    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record) -> None:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    LOGGER.debug("Engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create missing tables."""

    Base.metadata.create_all(bind=engine)
    LOGGER.info("Database schema ensured (%s tables)", len(Base.metadata.tables))


@contextmanager
def session_scope(factory: sessionmaker) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
