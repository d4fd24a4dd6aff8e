"""
Shared fixtures: an in-memory SQLite store behind a RelationalSink.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401  registers models on Base.metadata
from app.repositories.submission_repository import SubmissionRepository
from app.services.relational_sink import RelationalSink
from db.base import Base
from db.models.submission_record import SubmissionRecord


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@pytest.fixture()
def sink(session_factory: sessionmaker[Session]) -> RelationalSink:
    return RelationalSink(session_factory=session_factory)


@pytest.fixture()
def list_records(session_factory: sessionmaker[Session]) -> Callable[[], list[SubmissionRecord]]:
    """Committed rows, read through a fresh session."""

    def _list() -> list[SubmissionRecord]:
        with session_factory() as session:
            return SubmissionRepository(session).list_records()

    return _list
