# Overview: Row locking and retry helpers for stock and balance mutations.

from __future__ import annotations

import logging
import time

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db

logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the rows a write depends on
    (inventory quantities for a sale, the balance of a loan invoice).

    SQLite ignores the clause; PostgreSQL/MySQL honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Run func, rolling back and retrying on lock contention
    (OperationalError) or stale rows (StaleDataError).

    Domain errors raised by func propagate immediately.
    """
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError):
            db.session.rollback()
            if attempt >= attempts - 1:
                raise
            logger.warning("Retrying after database contention (attempt %s of %s)", attempt + 1, attempts)
            time.sleep(backoff_base * (2 ** attempt))
