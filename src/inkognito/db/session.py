"""Engine, session factory and schema creation for the confession store."""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from inkognito.core.settings import settings


class Base(DeclarativeBase):
    """Declarative base for confession and comment rows."""


# Model modules register their tables on Base.metadata when imported.
import inkognito.models  # noqa: E402,F401


def _engine_options(url: str) -> dict[str, object]:
    # SQLite connections are shared between the request thread pool workers.
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine = create_engine(
    settings.database_url,
    echo=settings.sql_debug,
    **_engine_options(settings.database_url),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session, closed once the response is sent."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables() -> None:
    """Create the confession and comment tables if they are missing."""
    Base.metadata.create_all(bind=engine)
