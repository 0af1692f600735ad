"""Dependency providers for API handlers and background workers."""

from __future__ import annotations

from collections.abc import Generator

from sqlalchemy.orm import Session

from marketplace.auth.identity import identity_from_token, resolve_vendor, select_token
from marketplace.core.config import Config, get_config
from marketplace.database.db import get_db
from marketplace.models.vendor import Vendor


def get_settings() -> Config:
    """Return validated application configuration."""
    return get_config()


def get_db_session() -> Generator[Session, None, None]:
    """Yield SQLAlchemy session for dependency injection."""
    yield from get_db()


def get_current_vendor(
    session: Session,
    authorization: str | None = None,
    cookie_token: str | None = None,
    settings: Config | None = None,
) -> Vendor:
    """Resolve the calling vendor from a bearer token or the session cookie.

    Raises AuthenticationError when no token is present, the token is invalid,
    or no vendor matches its claims.
    """
    cfg = settings or get_settings()
    token = select_token(authorization, cookie_token)
    identity = identity_from_token(token, cfg)
    return resolve_vendor(session, identity)
