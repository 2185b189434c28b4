"""
Database engine and session helpers for stored forecasts.
"""

from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import NullPool, StaticPool

from finengine.config import get_settings
from finengine.db.models import Base

settings = get_settings()


def build_engine(database_url: str) -> Engine:
    """
    Create an engine suited to the database URL.

    Postgres runs without a pool (serverless hosts drop idle connections).
    SQLite connections may be shared across threads; an in-memory database
    is pinned to a single connection so every session sees the same tables.
    """
    if database_url.startswith("postgresql"):
        return create_engine(database_url, poolclass=NullPool)

    connect_args = {"check_same_thread": False}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(database_url, connect_args=connect_args, poolclass=StaticPool)
    return create_engine(database_url, connect_args=connect_args)


engine = build_engine(settings.database_url)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind: Optional[Engine] = None):
    """Create the forecast tables if they do not exist."""
    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
