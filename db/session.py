"""
db/session.py

Lazily built engine and session factory for the load-profile store.

Nothing connects at import time; the first caller of ``get_engine`` pays for
URL resolution and pool creation.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from functools import lru_cache
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from db.config import resolve_database_url


def _env_flag(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, ""))
    except ValueError:
        return default


def _engine_options() -> dict[str, Any]:
    return {
        "echo": _env_flag("SQL_ECHO"),
        "pool_pre_ping": True,
        "pool_recycle": _env_int("DB_POOL_RECYCLE", 1800),
        "pool_size": _env_int("DB_POOL_SIZE", 5),
        "max_overflow": _env_int("DB_MAX_OVERFLOW", 10),
    }


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    """
    Shared PostgreSQL engine.

    Raises:
        RuntimeError: No URL is configured or it is not a PostgreSQL URL.
    """

    database_url = resolve_database_url()
    if not database_url.startswith("postgresql"):
        raise RuntimeError("Load profiles are stored in PostgreSQL; got a non-PostgreSQL URL.")
    return create_engine(database_url, **_engine_options())


@lru_cache(maxsize=1)
def get_session_factory() -> sessionmaker:
    return sessionmaker(
        bind=get_engine(),
        class_=Session,
        autoflush=False,
        expire_on_commit=False,
    )


def SessionLocal() -> Session:
    """Open a new session on the shared engine."""
    return get_session_factory()()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency: one session per request, always closed."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
