# Overview: Service-layer operations for concurrency; transaction setup, row locks, retries.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConflictError, InvoicingError, TransientStorageError
from ..extensions import db

# lock_not_available, deadlock_detected, serialization_failure
_PG_CONFLICT_CODES = {"55P03", "40P01", "40001"}
_CONFLICT_MARKERS = ("database is locked", "database table is locked", "deadlock", "lock timeout")


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE; begin_write_transaction takes
    the database write lock up front there instead.
    """
    return query.with_for_update()


def begin_write_transaction(lock_timeout_seconds: float | None = None) -> None:
    """
    Open the atomic unit for a write path that must serialize with peers.

    - SQLite: BEGIN IMMEDIATE, so concurrent writers queue on the database
      lock (bounded by the connection's busy timeout) instead of failing late.
    - PostgreSQL: bound lock waits for the rest of this transaction.
    """
    if lock_timeout_seconds is None:
        lock_timeout_seconds = current_app.config["LOCK_TIMEOUT_SECONDS"]

    dialect = db.session.get_bind().dialect.name
    if dialect == "sqlite":
        db.session.execute(text("BEGIN IMMEDIATE"))
    elif dialect == "postgresql":
        timeout_ms = max(int(lock_timeout_seconds * 1000), 1)
        db.session.execute(text(f"SET LOCAL lock_timeout = '{timeout_ms}ms'"))


def is_lock_conflict(exc: Exception) -> bool:
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) in _PG_CONFLICT_CODES:
        return True
    message = str(orig if orig is not None else exc).lower()
    return any(marker in message for marker in _CONFLICT_MARKERS)


def classify_storage_error(exc: Exception) -> InvoicingError:
    """Map a SQLAlchemy failure to the caller-facing taxonomy."""
    if isinstance(exc, (IntegrityError, StaleDataError)):
        return ConflictError("Concurrent update conflict, retry the request")
    if isinstance(exc, OperationalError) and is_lock_conflict(exc):
        return ConflictError("Timed out waiting for a lock held by another transaction, retry the request")
    return TransientStorageError("Storage temporarily unavailable, retry the request")


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). Every attempt starts from a rolled back
    session, so func must redo all of its work.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except (OperationalError, StaleDataError) as exc:
            db.session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            current_app.logger.warning(
                "Retrying transaction after %s (attempt %d of %d)",
                type(exc).__name__, attempt + 1, attempts,
            )
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc


def run_atomic(func, *, attempts: int | None = None, backoff_base: float = 0.1):
    """
    Run func as one all-or-nothing unit and commit it.

    Any exception rolls the whole unit back. Lock conflicts are retried;
    storage failures that remain are re-raised as ConflictError or
    TransientStorageError. Domain errors raised by func pass through unchanged.
    """
    if attempts is None:
        attempts = current_app.config.get("TRANSACTION_RETRY_ATTEMPTS", 3)

    def _op():
        try:
            result = func()
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    try:
        return run_with_retry(_op, attempts=attempts, backoff_base=backoff_base)
    except (DBAPIError, StaleDataError) as exc:
        raise classify_storage_error(exc) from exc
