"""
Engine and session factory for the battery catalog database.

The module-level ``engine``/``SessionLocal`` pair is bound to
:func:`get_database_url`; tests build their own pair with
:func:`create_catalog_engine` and :func:`create_session_factory`.
"""

from __future__ import annotations

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import get_database_url

Base = declarative_base()


def _is_in_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (":memory:" in url or url.rstrip("/").endswith(":"))


def create_catalog_engine(url: str | None = None, *, echo: bool = False) -> Engine:
    """
    Create an engine for the catalog store.

    SQLite connections are shared across the API's worker threads, and an
    in-memory SQLite database is pinned to a single connection so every
    session sees the same tables.
    """
    url = url or get_database_url()
    kwargs = {"echo": echo, "future": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_in_memory_sqlite(url):
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def create_session_factory(bind: Engine) -> sessionmaker:
    # Catalog rows are converted to BatterySpec after commit
    return sessionmaker(
        bind=bind,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def init_db(bind: Engine | None = None) -> None:
    """Create the battery catalog tables when missing."""
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


DATABASE_URL = get_database_url()
engine = create_catalog_engine(DATABASE_URL)
SessionLocal = create_session_factory(engine)
