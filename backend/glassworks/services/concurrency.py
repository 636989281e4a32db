# Overview: Transaction helpers shared by the allocator and document writers.

from __future__ import annotations

import logging
import time

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


logger = logging.getLogger(__name__)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write_transaction()
    takes the database write lock there instead.
    """
    return query.with_for_update()


def begin_write_transaction(session=None) -> None:
    """
    Serialize writers on SQLite by starting the transaction with
    BEGIN IMMEDIATE. Must run before any write in the transaction.
    Other dialects rely on row locks from lock_for_update().
    """
    session = session or db.session
    if session.get_bind().dialect.name == "sqlite":
        session.execute(text("BEGIN IMMEDIATE"))


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1, session=None):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, "database is locked") and
    StaleDataError (optimistic locking conflicts). The whole operation is
    re-run from the top, so func must not carry state between attempts.
    """
    session = session or db.session
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            logger.info("Retrying after concurrency failure (attempt %s): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
