# Overview: Service-layer operations for invoices; one atomic unit for numbering, stock and sales.

"""
Invoice Transaction Coordinator

Before the transaction opens, input is validated and amounts are computed:

- line amount = round_half_up(quantity * rate, 2); subtotal = sum of amounts
- tax_amount = round(subtotal * tax_rate / 100, 2); total = subtotal + tax
- every value must fit its NUMERIC column, otherwise InvalidInputError

create_invoice then runs every step below in a single database transaction:

1. business_date = today in BUSINESS_TIMEZONE
2. serial = allocate_serial(user, business_date)
3. invoice_no = PREFIX-YYYYMMDD-<user>-<serial:04d>
4. insert the invoice header
5. per line, in input order: insert the line item, lock + decrement the
   matched item, insert a SalePosting
6. commit

Any failure rolls back the counter increment, header, lines, stock
decrements and postings together. There is no idempotency key: each call
consumes a serial.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from flask import current_app
from sqlalchemy.orm import joinedload

from ..errors import InvalidInputError, NotFoundError
from ..extensions import db
from ..models import Invoice, InvoiceLineItem, SalePosting
from ..money import (
    MONEY_NUMERIC,
    QUANTITY_NUMERIC,
    RATE_NUMERIC,
    decimal_places,
    fits_numeric,
    round_money,
    to_decimal,
)
from ..time_utils import business_date as business_date_for
from .concurrency import begin_write_transaction, run_atomic
from .sequence_service import allocate_serial, format_invoice_no, preview_invoice_no
from .settings_service import get_tax_rate
from .stock_service import reserve_and_decrement

_CUSTOMER_FIELD_LIMITS = {
    "name": 255,
    "contact": 64,
    "address": 2000,
    "tax_id": 64,
}
_DESCRIPTION_LIMIT = 255
_QUANTITY_PLACES = 3
_RATE_PLACES = 4
_INVOICE_NO_STRIP = " \t\r\n'\"`‘’“”"


@dataclass(frozen=True)
class CustomerInfo:
    name: str | None = None
    contact: str | None = None
    address: str | None = None
    tax_id: str | None = None


@dataclass(frozen=True)
class InvoiceLineInput:
    description: str
    quantity: Decimal
    rate: Decimal


@dataclass(frozen=True)
class InvoiceAmounts:
    line_amounts: list[Decimal]
    subtotal: Decimal
    tax_rate: Decimal
    tax_amount: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class CreatedInvoice:
    invoice_id: int
    invoice_no: str
    business_date: date

    def to_dict(self) -> dict:
        return {
            "invoice_id": self.invoice_id,
            "invoice_no": self.invoice_no,
            "business_date": self.business_date.isoformat(),
        }


def parse_customer(data: dict | CustomerInfo | None) -> CustomerInfo:
    """Normalize customer fields; blanks become None. Raises InvalidInputError."""
    if isinstance(data, CustomerInfo):
        return data
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise InvalidInputError("customer must be an object")

    values = {}
    for field, limit in _CUSTOMER_FIELD_LIMITS.items():
        value = data.get(field)
        if value is None and field == "name":
            value = data.get("customer_name")
        if value is None and field == "tax_id":
            value = data.get("gst_no")
        if value is not None:
            value = str(value).strip() or None
        if value is not None and len(value) > limit:
            raise InvalidInputError(f"{field} must be at most {limit} characters")
        values[field] = value
    return CustomerInfo(**values)


def parse_lines(raw_lines) -> list[InvoiceLineInput]:
    """
    Validate invoice lines.

    Requires a non-empty list; each line needs a non-blank description,
    quantity > 0 and rate >= 0. Errors name the offending line (1-based).
    """
    if not isinstance(raw_lines, (list, tuple)) or not raw_lines:
        raise InvalidInputError("At least one line item is required")

    lines = []
    for index, raw in enumerate(raw_lines, start=1):
        if isinstance(raw, InvoiceLineInput):
            raw = {"description": raw.description, "quantity": raw.quantity, "rate": raw.rate}
        if not isinstance(raw, dict):
            raise InvalidInputError(f"Line {index} must be an object", details={"line": index})

        description = raw.get("description")
        if not isinstance(description, str) or not description.strip():
            raise InvalidInputError(f"Line {index}: description is required", details={"line": index})
        description = description.strip()
        if len(description) > _DESCRIPTION_LIMIT:
            raise InvalidInputError(
                f"Line {index}: description must be at most {_DESCRIPTION_LIMIT} characters",
                details={"line": index},
            )

        try:
            quantity = to_decimal(raw.get("quantity"))
        except ValueError:
            raise InvalidInputError(f"Line {index}: quantity must be a number", details={"line": index})
        if quantity <= 0:
            raise InvalidInputError(f"Line {index}: quantity must be greater than zero", details={"line": index})
        if decimal_places(quantity) > _QUANTITY_PLACES:
            raise InvalidInputError(
                f"Line {index}: quantity supports at most {_QUANTITY_PLACES} decimal places",
                details={"line": index},
            )
        if not fits_numeric(quantity, *QUANTITY_NUMERIC):
            raise InvalidInputError(f"Line {index}: quantity is too large", details={"line": index})

        try:
            rate = to_decimal(raw.get("rate"))
        except ValueError:
            raise InvalidInputError(f"Line {index}: rate must be a number", details={"line": index})
        if rate < 0:
            raise InvalidInputError(f"Line {index}: rate must not be negative", details={"line": index})
        if decimal_places(rate) > _RATE_PLACES:
            raise InvalidInputError(
                f"Line {index}: rate supports at most {_RATE_PLACES} decimal places",
                details={"line": index},
            )
        if not fits_numeric(rate, *RATE_NUMERIC):
            raise InvalidInputError(f"Line {index}: rate is too large", details={"line": index})
        if not fits_numeric(round_money(quantity * rate), *MONEY_NUMERIC):
            raise InvalidInputError(f"Line {index}: amount is too large", details={"line": index})

        lines.append(InvoiceLineInput(description=description, quantity=quantity, rate=rate))
    return lines


def compute_amounts(lines: list[InvoiceLineInput], tax_rate: Decimal) -> InvoiceAmounts:
    """Round each line, then tax and total. Raises InvalidInputError if the total overflows."""
    line_amounts = [round_money(line.quantity * line.rate) for line in lines]
    subtotal = round_money(sum(line_amounts, Decimal("0")))
    tax_amount = round_money(subtotal * tax_rate / Decimal(100))
    total_amount = round_money(subtotal + tax_amount)
    if not fits_numeric(total_amount, *MONEY_NUMERIC):
        raise InvalidInputError("Invoice total is too large")
    return InvoiceAmounts(
        line_amounts=line_amounts,
        subtotal=subtotal,
        tax_rate=tax_rate,
        tax_amount=tax_amount,
        total_amount=total_amount,
    )


def _today(now: datetime | None) -> date:
    return business_date_for(current_app.config["BUSINESS_TIMEZONE"], now)


def preview_next_invoice_no(user_id: int, *, now: datetime | None = None) -> tuple[str, date]:
    """Number the next invoice would get right now. Writes nothing."""
    today = _today(now)
    return preview_invoice_no(user_id, today), today


def _create_invoice_locked(
    user_id: int,
    customer: CustomerInfo,
    lines: list[InvoiceLineInput],
    amounts: InvoiceAmounts,
    now: datetime | None,
) -> CreatedInvoice:
    begin_write_transaction()

    today = _today(now)
    serial = allocate_serial(user_id, today)
    invoice_no = format_invoice_no(user_id, today, serial)

    invoice = Invoice(
        invoice_no=invoice_no,
        user_id=user_id,
        serial=serial,
        customer_name=customer.name,
        contact=customer.contact,
        address=customer.address,
        tax_id=customer.tax_id,
        subtotal=amounts.subtotal,
        tax_rate=amounts.tax_rate,
        tax_amount=amounts.tax_amount,
        total_amount=amounts.total_amount,
        business_date=today,
    )
    db.session.add(invoice)
    db.session.flush()

    for position, (line, amount) in enumerate(zip(lines, amounts.line_amounts), start=1):
        db.session.add(InvoiceLineItem(
            invoice_id=invoice.id,
            position=position,
            description=line.description,
            quantity=line.quantity,
            rate=line.rate,
            amount=amount,
        ))

        item_id = reserve_and_decrement(user_id, line.description, line.quantity)

        db.session.add(SalePosting(
            user_id=user_id,
            item_id=item_id,
            invoice_id=invoice.id,
            quantity=line.quantity,
            unit_price=line.rate,
            total_price=amount,
            business_date=today,
        ))

    db.session.flush()
    return CreatedInvoice(invoice_id=invoice.id, invoice_no=invoice_no, business_date=today)


def create_invoice(
    user_id: int,
    customer: dict | CustomerInfo | None,
    lines: list,
    *,
    now: datetime | None = None,
) -> CreatedInvoice:
    """
    Create an invoice, decrement stock and post sales as one atomic unit.

    Raises InvalidInputError (before any transaction), ItemNotFoundError,
    InsufficientStockError, ConflictError or TransientStorageError. On any
    error nothing from this call is persisted.
    """
    customer_info = parse_customer(customer)
    parsed_lines = parse_lines(lines)
    amounts = compute_amounts(parsed_lines, get_tax_rate(user_id))

    return run_atomic(lambda: _create_invoice_locked(user_id, customer_info, parsed_lines, amounts, now))


def clean_invoice_no(raw: str | None) -> str:
    """Strip whitespace and stray quotes left by copy/paste."""
    if raw is None:
        return ""
    return raw.strip(_INVOICE_NO_STRIP)


def get_invoice(user_id: int, invoice_no: str) -> Invoice:
    """Invoice with its lines, scoped to user_id. Raises NotFoundError."""
    cleaned = clean_invoice_no(invoice_no)
    if not cleaned:
        raise NotFoundError("Invoice not found")

    invoice = (
        db.session.query(Invoice)
        .options(joinedload(Invoice.lines))
        .filter(Invoice.user_id == user_id, Invoice.invoice_no == cleaned)
        .first()
    )
    if invoice is None:
        raise NotFoundError("Invoice not found", details={"invoice_no": cleaned})
    return invoice
