from __future__ import annotations

from ..extensions import db
from stockbook.money import TAX_RATE_NUMERIC, format_rate
from stockbook.time_utils import to_utc_z


class ShopSetting(db.Model):
    """
    Per-user shop profile printed on invoices, including the tax rate applied
    to new invoices. A null tax_rate falls back to DEFAULT_TAX_RATE.
    """
    __tablename__ = "shop_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    shop_name = db.Column(db.String(255), nullable=True)
    shop_address = db.Column(db.Text, nullable=True)
    tax_id = db.Column(db.String(64), nullable=True)
    tax_rate = db.Column(db.Numeric(*TAX_RATE_NUMERIC), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "shop_name": self.shop_name,
            "shop_address": self.shop_address,
            "tax_id": self.tax_id,
            "tax_rate": format_rate(self.tax_rate),
            "updated_at": to_utc_z(self.updated_at),
        }
