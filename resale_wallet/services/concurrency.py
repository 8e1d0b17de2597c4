# Overview: Transaction, retry and row-locking helpers for database-backed mutations.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)

# lock waits/deadlocks and optimistic version_id conflicts
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_in_transaction(func, *, session=None, attempts: int = 3, backoff_base: float = 0.1, label: str | None = None):
    """
    Run func as one unit of work on session.

    - Any exception rolls the session back before it leaves here, so a
      failed write never leaves pending state behind.
    - RETRYABLE_ERRORS re-run func from scratch (fresh reads) up to
      `attempts` times with exponential backoff; the last one propagates.
    - Everything else (domain errors included) propagates after one rollback.

    func is expected to commit on success.
    """
    session = session if session is not None else db.session
    name = label or getattr(func, "__name__", "operation")

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            session.rollback()
            if attempt == attempts:
                logger.error("%s failed after %d attempts: %s", name, attempts, type(exc).__name__)
                raise
            delay = backoff_base * (2 ** (attempt - 1))
            logger.warning(
                "%s hit %s (attempt %d/%d), retrying in %.2fs",
                name, type(exc).__name__, attempt, attempts, delay,
            )
            time.sleep(delay)
        except Exception:
            session.rollback()
            raise
