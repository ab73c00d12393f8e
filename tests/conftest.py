# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from inkognito.api.v1.dependencies import get_change_feed_dep
from inkognito.core.security import create_access_token
from inkognito.core.settings import settings
from inkognito.db.session import Base
from inkognito.db.session import get_db as app_get_session
from inkognito.main import app as fastapi_app
from inkognito.models import Comment, Confession
from inkognito.services.change_feed import ChangeFeed
from inkognito.services.slug import slugify

TEST_DB_URL = "sqlite://"

# Fixed reference instant; tests place rows relative to it.
BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def at(minutes: float) -> datetime:
    """Return BASE_TIME shifted by `minutes`."""
    return BASE_TIME + timedelta(minutes=minutes)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    SessionLocal = sessionmaker(
        bind=connection,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    session.begin_nested()

    @event.listens_for(session, "after_transaction_end")
    def restart_savepoint(sess: Session, trans) -> None:  # pragma: no cover - SQLAlchemy internals
        if trans.nested and not getattr(trans._parent, "nested", False):
            session.begin_nested()

    try:
        yield session
    finally:
        event.remove(session, "after_transaction_end", restart_savepoint)
        session.close()

        if transaction.is_active:
            transaction.rollback()
        connection.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def change_feed(app: FastAPI) -> Iterator[ChangeFeed]:
    """Give each test its own change hub for the API to publish to."""
    hub = ChangeFeed()
    app.dependency_overrides[get_change_feed_dep] = lambda: hub
    try:
        yield hub
    finally:
        app.dependency_overrides.pop(get_change_feed_dep, None)


@pytest.fixture()
def client(app: FastAPI, change_feed: ChangeFeed) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def moderator_token() -> str:
    return create_access_token("moderator", role=settings.moderator_role)


@pytest.fixture()
def moderator_headers(moderator_token: str) -> dict[str, str]:
    """Return authorization headers carrying the moderator capability."""
    return {"Authorization": f"Bearer {moderator_token}"}


@pytest.fixture()
def make_confession(db_session: Session) -> Callable[..., Confession]:
    """Persist a confession with an explicit timestamp."""

    def _make(
        *,
        created_at: datetime,
        title: str = "Тайна",
        content: str = "Нещо, което никой не знае.",
        category: str = "Други",
        gender: str = "incognito",
        likes: int = 0,
    ) -> Confession:
        confession = Confession(
            title=title,
            content=content,
            gender=gender,
            category=category,
            likes=likes,
            slug=slugify(title),
            created_at=created_at,
        )
        db_session.add(confession)
        db_session.flush()
        db_session.refresh(confession)
        return confession

    return _make


@pytest.fixture()
def make_comment(db_session: Session) -> Callable[..., Comment]:
    """Persist a comment with an explicit timestamp."""

    def _make(
        confession: Confession,
        *,
        created_at: datetime,
        content: str = "Разбирам те.",
        gender: str = "female",
    ) -> Comment:
        comment = Comment(
            confession_id=confession.id,
            content=content,
            gender=gender,
            created_at=created_at,
        )
        db_session.add(comment)
        db_session.flush()
        db_session.refresh(comment)
        return comment

    return _make


def auth_headers(token: str) -> dict[str, Any]:
    return {"Authorization": f"Bearer {token}"}
