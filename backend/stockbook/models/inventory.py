from __future__ import annotations

from ..extensions import db
from stockbook.money import MONEY_NUMERIC, QUANTITY_NUMERIC, RATE_NUMERIC, format_money, format_quantity, format_rate
from stockbook.time_utils import to_utc_z


def normalize_item_name(name: str) -> str:
    """Matching key for item names: trimmed and case-folded."""
    return name.strip().casefold()


class Item(db.Model):
    """
    Stock item owned by one user.

    Names are unique per user after normalization (see normalize_item_name);
    invoice lines are matched against `name_key`, not the display name.
    Quantity on hand is a mutable column guarded by a row lock during invoicing
    and by a CHECK constraint that keeps it non-negative.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.UniqueConstraint("user_id", "name_key", name="uq_items_user_name_key"),
        db.CheckConstraint("quantity >= 0", name="ck_items_quantity_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    name_key = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Numeric(*QUANTITY_NUMERIC), nullable=False, default=0)
    buying_rate = db.Column(db.Numeric(*MONEY_NUMERIC), nullable=False, default=0)
    selling_rate = db.Column(db.Numeric(*MONEY_NUMERIC), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "name": self.name,
            "quantity": format_quantity(self.quantity),
            "buying_rate": format_money(self.buying_rate),
            "selling_rate": format_money(self.selling_rate),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SalePosting(db.Model):
    """
    One row per invoice line, written in the same transaction as the invoice.

    Append-only. This is the data contract sales reports consume.
    """
    __tablename__ = "sale_postings"
    __table_args__ = (
        db.Index("ix_sale_postings_user_business_date", "user_id", "business_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=False, index=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True, index=True)

    quantity = db.Column(db.Numeric(*QUANTITY_NUMERIC), nullable=False)
    unit_price = db.Column(db.Numeric(*RATE_NUMERIC), nullable=False)
    total_price = db.Column(db.Numeric(*MONEY_NUMERIC), nullable=False)

    business_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    item = db.relationship("Item", backref=db.backref("sale_postings", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "item_id": self.item_id,
            "invoice_id": self.invoice_id,
            "quantity": format_quantity(self.quantity),
            "unit_price": format_rate(self.unit_price),
            "total_price": format_money(self.total_price),
            "business_date": self.business_date.isoformat() if self.business_date else None,
            "created_at": to_utc_z(self.created_at),
        }
