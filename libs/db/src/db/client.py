"""SQLAlchemy engine/session helpers for the workspace.

Usage
-----
from db.client import make_engine, make_session_factory, session_scope

engine = make_engine("sqlite+pysqlite:///finance.db")
factory = make_session_factory(engine)
with session_scope(factory) as s:
    s.execute(...)

Engines are created by the caller and passed around explicitly; this module
keeps no process-wide state.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

_URL_ENV_VARS = ("FINANCE_TRACKER_DATABASE_URL", "DATABASE_URL")


def resolve_database_url(override: str | None = None) -> str:
    """Return ``override`` or the first database URL found in the environment."""

    url = override or next((os.getenv(v) for v in _URL_ENV_VARS if os.getenv(v)), None)
    if not url:
        raise RuntimeError(
            "FINANCE_TRACKER_DATABASE_URL (or DATABASE_URL) is not set; "
            "cannot initialize database client"
        )
    return url


def _is_memory_sqlite(url: str) -> bool:
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


def make_engine(database_url: str | None = None) -> Engine:
    """Create an engine for ``database_url`` (or the environment's URL)."""

    url = resolve_database_url(database_url)
    if _is_memory_sqlite(url):
        # One shared connection, otherwise each worker thread sees its own
        # empty in-memory database.
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, pool_pre_ping=True)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, expire_on_commit=False, class_=Session)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
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


__all__ = [
    "resolve_database_url",
    "make_engine",
    "make_session_factory",
    "session_scope",
]
