# Overview: Row locking and retry helpers shared by the service layer.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db


# Busy/locked database and version_id mismatches; business errors are never retried
RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    SELECT ... FOR UPDATE on the given query.

    SQLite has no row locks and ignores the clause; PostgreSQL and MySQL honour it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Call func, retrying on RETRYABLE_ERRORS with exponential backoff.

    The session is rolled back before each new attempt, so func has to
    repeat its own reads. The last failure is re-raised.
    """
    attempt = 1
    while True:
        try:
            return func()
        except RETRYABLE_ERRORS as exc:
            db.session.rollback()
            if attempt >= attempts:
                raise
            current_app.logger.warning(
                "Retrying after %s (attempt %s of %s)",
                exc.__class__.__name__, attempt, attempts,
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
            attempt += 1
