# Overview: Service-layer operations for invoice numbering; atomic per-user daily serials.

"""
Invoice Sequence Invariants (authoritative)

- One counter row per (user_id, business_date); created on the first invoice
  of the day, only ever incremented, never deleted.
- allocate_serial must run inside the caller's atomic unit. The increment is
  rolled back with that unit, so serials of committed invoices for a given
  user and day form the contiguous run 1..N.
- The upsert and the read of the new value are one statement; there is no
  read-then-write window in which two callers could see the same serial.
- SELECT MAX(serial) + 1 style numbering is never used.
"""

from __future__ import annotations

from datetime import date

from flask import current_app
from sqlalchemy import func, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import InvoiceSequenceCounter

_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def format_invoice_no(
    user_id: int,
    business_date: date,
    serial: int,
    *,
    prefix: str | None = None,
    width: int | None = None,
) -> str:
    """PREFIX-YYYYMMDD-<user_id>-<serial zero padded>."""
    if prefix is None:
        prefix = current_app.config["INVOICE_PREFIX"]
    if width is None:
        width = current_app.config["INVOICE_SERIAL_WIDTH"]
    return f"{prefix}-{business_date:%Y%m%d}-{user_id}-{serial:0{width}d}"


def allocate_serial(user_id: int, business_date: date) -> int:
    """
    Atomically allocate the next serial for (user_id, business_date).

    First call of the day inserts next_serial=2 and returns 1; later calls
    increment and return the pre-increment value.
    """
    dialect = db.session.get_bind().dialect.name
    insert_fn = _UPSERT_INSERTS.get(dialect)
    if insert_fn is None:
        return _allocate_serial_portable(user_id, business_date)

    stmt = insert_fn(InvoiceSequenceCounter).values(
        user_id=user_id,
        business_date=business_date,
        next_serial=2,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "business_date"],
        set_={
            "next_serial": InvoiceSequenceCounter.next_serial + 1,
            "updated_at": func.now(),
        },
    ).returning(InvoiceSequenceCounter.next_serial)

    next_serial = db.session.execute(stmt).scalar_one()
    return next_serial - 1


def _allocate_serial_portable(user_id: int, business_date: date) -> int:
    # For engines without INSERT .. ON CONFLICT: UPDATE takes the row lock,
    # and a losing INSERT race falls back to the UPDATE inside a savepoint.
    stmt = (
        update(InvoiceSequenceCounter)
        .where(
            InvoiceSequenceCounter.user_id == user_id,
            InvoiceSequenceCounter.business_date == business_date,
        )
        .values(next_serial=InvoiceSequenceCounter.next_serial + 1)
    )

    result = db.session.execute(stmt)
    if not result.rowcount:
        try:
            with db.session.begin_nested():
                db.session.add(InvoiceSequenceCounter(
                    user_id=user_id,
                    business_date=business_date,
                    next_serial=2,
                ))
            return 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise

    current = (
        db.session.query(InvoiceSequenceCounter.next_serial)
        .filter_by(user_id=user_id, business_date=business_date)
        .scalar()
    )
    return current - 1


def peek_next_serial(user_id: int, business_date: date) -> int:
    """Serial the next allocation would return. Informational; takes no lock."""
    current = (
        db.session.query(InvoiceSequenceCounter.next_serial)
        .filter_by(user_id=user_id, business_date=business_date)
        .scalar()
    )
    return current or 1


def preview_invoice_no(user_id: int, business_date: date) -> str:
    return format_invoice_no(user_id, business_date, peek_next_serial(user_id, business_date))
