"""Engine and session factory for the subscription store."""

from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from recurring.core.config import settings


def _connect_args(dsn: str) -> dict[str, Any]:
    # Sessions hand SQLite connections between threads
    if dsn.startswith("sqlite"):
        return {"check_same_thread": False}
    return {}


engine = create_engine(
    settings.APP_DATABASE_DSN,
    connect_args=_connect_args(settings.APP_DATABASE_DSN),
    echo=settings.DEBUG,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
