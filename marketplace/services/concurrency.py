"""Row locking and retry helpers for contended writes."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Query, Session
from sqlalchemy.orm.exc import StaleDataError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def lock_for_update(query: Query) -> Query:
    """Apply row-level locking; SQLite ignores FOR UPDATE, PostgreSQL honors it."""
    return query.with_for_update()


def run_with_retry(
    session: Session,
    func: Callable[[], T],
    *,
    attempts: int = 3,
    backoff_base: float = 0.1,
) -> T:
    """Run a transactional unit, retrying on lock/serialization failures."""
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning(
                "db.retry",
                extra={"event": "db.retry", "attempt": attempt + 1, "error": type(exc).__name__},
            )
            time.sleep(backoff_base * (2**attempt))
    raise RuntimeError("run_with_retry exhausted without result")  # pragma: no cover
