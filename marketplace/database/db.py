"""Engine and session factories for the marketplace database."""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from marketplace.core.config import get_config

logger = logging.getLogger(__name__)

config = get_config()
DATABASE_URL = config.DATABASE_URL


def _build_engine(database_url: str):
    options: dict = {"echo": config.DEBUG, "pool_pre_ping": True}
    if database_url.startswith("sqlite"):
        options["connect_args"] = {"check_same_thread": False}
    else:
        # Purchases hold row locks briefly; keep enough connections for bursts.
        options.update(pool_recycle=1800, pool_size=10, max_overflow=20)
    return create_engine(database_url, **options)


engine = _build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def get_engine():
    return engine


def get_active_database_url() -> str:
    return DATABASE_URL


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """Session for scripts and background jobs; callers own commits."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session for FastAPI dependencies."""
    with get_db_session() as db:
        yield db


def verify_database_connection() -> bool:
    """Run `SELECT 1` against the configured database."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning(
            "database.connection_failed",
            extra={
                "event": "database.connection_failed",
                "database_url_scheme": DATABASE_URL.split("://", 1)[0],
                "reason": str(exc),
            },
        )
        return False
    return True
