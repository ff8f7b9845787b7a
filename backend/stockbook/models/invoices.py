from __future__ import annotations

from ..extensions import db
from stockbook.money import (
    MONEY_NUMERIC,
    QUANTITY_NUMERIC,
    RATE_NUMERIC,
    TAX_RATE_NUMERIC,
    format_money,
    format_quantity,
    format_rate,
)
from stockbook.time_utils import to_utc_z


class InvoiceSequenceCounter(db.Model):
    """
    Atomic per-user, per-business-day invoice serials.

    WHY: Prevent duplicate serials when invoices are created concurrently.
    `next_serial` is the serial the next allocation will hand out; the row is
    created by the first invoice of the day and only ever incremented.
    """
    __tablename__ = "invoice_sequence_counters"
    __table_args__ = (
        db.UniqueConstraint("user_id", "business_date", name="uq_invoice_counters_user_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    business_date = db.Column(db.Date, nullable=False)
    next_serial = db.Column(db.Integer, nullable=False, default=1)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "business_date": self.business_date.isoformat(),
            "next_serial": self.next_serial,
            "updated_at": to_utc_z(self.updated_at),
        }


class Invoice(db.Model):
    """
    Invoice header. Created once per successful invoice transaction and
    immutable afterwards.

    invoice_no is PREFIX-YYYYMMDD-<user_id>-<serial:04d>, unique per user.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.UniqueConstraint("user_id", "invoice_no", name="uq_invoices_user_invoice_no"),
        db.Index("ix_invoices_user_business_date", "user_id", "business_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_no = db.Column(db.String(64), nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    serial = db.Column(db.Integer, nullable=False)

    # Customer snapshot
    customer_name = db.Column(db.String(255), nullable=True)
    contact = db.Column(db.String(64), nullable=True)
    address = db.Column(db.Text, nullable=True)
    tax_id = db.Column(db.String(64), nullable=True)

    subtotal = db.Column(db.Numeric(*MONEY_NUMERIC), nullable=False)
    tax_rate = db.Column(db.Numeric(*TAX_RATE_NUMERIC), nullable=False)
    tax_amount = db.Column(db.Numeric(*MONEY_NUMERIC), nullable=False)
    total_amount = db.Column(db.Numeric(*MONEY_NUMERIC), nullable=False)

    business_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "InvoiceLineItem",
        backref="invoice",
        lazy=True,
        order_by="InvoiceLineItem.position",
        cascade="all, delete-orphan",
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice_no": self.invoice_no,
            "user_id": self.user_id,
            "serial": self.serial,
            "customer_name": self.customer_name,
            "contact": self.contact,
            "address": self.address,
            "tax_id": self.tax_id,
            "subtotal": format_money(self.subtotal),
            "tax_rate": format_rate(self.tax_rate),
            "tax_amount": format_money(self.tax_amount),
            "total_amount": format_money(self.total_amount),
            "business_date": self.business_date.isoformat(),
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["items"] = [line.to_dict() for line in self.lines]
        return data


class InvoiceLineItem(db.Model):
    """Individual line items on an invoice, kept in input order."""
    __tablename__ = "invoice_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)

    description = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Numeric(*QUANTITY_NUMERIC), nullable=False)
    rate = db.Column(db.Numeric(*RATE_NUMERIC), nullable=False)
    amount = db.Column(db.Numeric(*MONEY_NUMERIC), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "position": self.position,
            "description": self.description,
            "quantity": format_quantity(self.quantity),
            "rate": format_rate(self.rate),
            "amount": format_money(self.amount),
        }
