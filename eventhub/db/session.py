"""Engine, session factory and declarative base shared by every model."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker

from ..core.config import settings

# SQLite connections are handed between FastAPI's threadpool workers.
CONNECT_ARGS = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

engine = create_engine(settings.database_url, connect_args=CONNECT_ARGS)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def utcnow_iso() -> str:
    """Timestamp format shared by every ``created_at``/``updated_at`` column."""

    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S") + "Z"


def get_db():
    """Request-scoped session, closed once the response is sent."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
