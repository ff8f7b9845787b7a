# Overview: Service-layer operations for sales reporting; read-only queries over committed postings.

from __future__ import annotations

from datetime import date
from decimal import Decimal

from ..errors import InvalidInputError
from ..extensions import db
from ..models import Item, SalePosting
from ..money import format_money, format_quantity, format_rate, round_money
from ..time_utils import to_utc_z

MAX_REPORT_DAYS = 366


def sales_report(user_id: int, date_from: date, date_to: date) -> dict:
    """
    Sale postings for user_id with business_date in [date_from, date_to].

    Rows carry the item name so PDF/Excel renderers need no further lookups.
    """
    if date_from is None or date_to is None:
        raise InvalidInputError("Missing date range")
    if date_from > date_to:
        raise InvalidInputError("from must be on or before to")
    if (date_to - date_from).days >= MAX_REPORT_DAYS:
        raise InvalidInputError(f"Date range must not exceed {MAX_REPORT_DAYS} days")

    rows = (
        db.session.query(SalePosting, Item.name)
        .join(Item, Item.id == SalePosting.item_id)
        .filter(
            SalePosting.user_id == user_id,
            SalePosting.business_date >= date_from,
            SalePosting.business_date <= date_to,
        )
        .order_by(SalePosting.created_at.asc(), SalePosting.id.asc())
        .all()
    )

    total_quantity = Decimal("0")
    total_sales = Decimal("0")
    report_rows = []
    for posting, item_name in rows:
        total_quantity += Decimal(posting.quantity)
        total_sales += Decimal(posting.total_price)
        report_rows.append({
            "created_at": to_utc_z(posting.created_at),
            "business_date": posting.business_date.isoformat(),
            "invoice_id": posting.invoice_id,
            "item_name": item_name,
            "quantity": format_quantity(posting.quantity),
            "unit_price": format_rate(posting.unit_price),
            "total_price": format_money(posting.total_price),
        })

    return {
        "from": date_from.isoformat(),
        "to": date_to.isoformat(),
        "rows": report_rows,
        "totals": {
            "postings": len(report_rows),
            "quantity": format_quantity(total_quantity),
            "total_price": format_money(round_money(total_sales)),
        },
    }
