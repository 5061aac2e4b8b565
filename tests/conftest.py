"""
tests/conftest.py

Shared fixtures: synthetic meter exports and an in-memory database.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  registers all ORM models on Base.metadata
from db.base import Base


def build_hourly_export(
    *,
    days: int = 14,
    start: date = date(2024, 1, 1),
    peak_hour: int = 18,
    base_value: float = 1.0,
    peak_value: float = 3.0,
    header: str = "Date,Time,kWh",
    preamble: str | None = None,
) -> str:
    lines = [preamble] if preamble else []
    lines.append(header)
    for offset in range(days):
        day = start + timedelta(days=offset)
        for hour in range(24):
            value = peak_value if hour == peak_hour else base_value
            lines.append(f"{day.isoformat()},{hour:02d}:00,{value}")
    return "\n".join(lines) + "\n"


def build_two_column_export(*, days: int = 3, preamble: str | None = None) -> str:
    """Two energy columns; ``kWh B`` peaks at 07:00, ``kWh A`` is auto-detected."""
    lines = [preamble] if preamble else []
    lines.append("Date,Time,kWh A,kWh B")
    start = date(2024, 1, 1)
    for offset in range(days):
        day = start + timedelta(days=offset)
        for hour in range(24):
            a = 1.0 + (hour % 3)
            b = 5.0 if hour == 7 else 0.5
            lines.append(f"{day.isoformat()},{hour:02d}:00,{a},{b}")
    return "\n".join(lines) + "\n"


@pytest.fixture()
def hourly_export() -> Callable[..., str]:
    """Factory for hourly exports; defaults to two weeks from Monday 2024-01-01."""
    return build_hourly_export


@pytest.fixture()
def two_column_export() -> Callable[..., str]:
    return build_two_column_export


@pytest.fixture()
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, class_=Session, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()
