# Overview: Service-layer operations for stock; encapsulates item lookups and quantity changes.

"""
Stock Ledger Invariants (authoritative)

- Items are per user; a user can never read or move another user's stock.
- Item names match case-insensitively after trimming (normalize_item_name).
- quantity >= 0 after every committed transaction (also a DB CHECK).
- reserve_and_decrement locks the item row (SELECT ... FOR UPDATE) before
  reading the quantity, so concurrent invoices on the same item serialize.
  The decrement is only visible to others once the enclosing unit commits.
"""

from __future__ import annotations

from decimal import Decimal

from ..errors import InsufficientStockError, InvalidInputError, ItemNotFoundError, NotFoundError
from ..extensions import db
from ..models import Item, normalize_item_name
from ..money import MONEY_NUMERIC, QUANTITY_NUMERIC, fits_numeric, to_decimal
from .concurrency import begin_write_transaction, lock_for_update, run_atomic

_NAME_LIMIT = 255


def _find_item(user_id: int, name: str, *, lock: bool = False) -> Item | None:
    query = db.session.query(Item).filter_by(user_id=user_id, name_key=normalize_item_name(name))
    if lock:
        query = lock_for_update(query).populate_existing()
    return query.first()


def reserve_and_decrement(user_id: int, item_name: str, quantity: Decimal) -> int:
    """
    Validate and decrement stock for one invoice line. Returns the item id.

    Must be called inside an open atomic unit; the caller commits or rolls back.
    Raises ItemNotFoundError / InsufficientStockError naming item_name.
    """
    if quantity <= 0:
        raise InvalidInputError(
            f"Quantity must be greater than zero: {item_name}",
            details={"description": item_name},
        )

    item = _find_item(user_id, item_name, lock=True)
    if item is None:
        raise ItemNotFoundError(
            f"Item not found: {item_name}",
            details={"description": item_name},
        )

    on_hand = Decimal(item.quantity)
    if on_hand < quantity:
        raise InsufficientStockError(
            f"Insufficient stock: {item_name}",
            details={
                "description": item_name,
                "requested_quantity": str(quantity),
                "on_hand": str(on_hand),
            },
        )

    item.quantity = on_hand - quantity
    db.session.flush()
    return item.id


def add_stock(
    user_id: int,
    name: str,
    quantity,
    buying_rate,
    selling_rate,
) -> tuple[Item, bool]:
    """
    Add stock to an existing item (matched by normalized name) or create it.

    Rates on an existing item are replaced with the new ones.
    Returns (item, created).
    """
    display_name = name.strip() if isinstance(name, str) else ""
    if not display_name:
        raise InvalidInputError("name is required")
    if len(display_name) > _NAME_LIMIT:
        raise InvalidInputError(f"name must be at most {_NAME_LIMIT} characters")

    try:
        qty = to_decimal(quantity)
        buy = to_decimal(buying_rate)
        sell = to_decimal(selling_rate)
    except ValueError:
        raise InvalidInputError("quantity, buying_rate and selling_rate must be numbers")

    if qty <= 0:
        raise InvalidInputError("quantity must be greater than zero")
    if buy < 0 or sell < 0:
        raise InvalidInputError("rates must not be negative")
    if not fits_numeric(qty, *QUANTITY_NUMERIC):
        raise InvalidInputError(
            f"quantity must have at most {QUANTITY_NUMERIC[1]} decimal places and "
            f"{QUANTITY_NUMERIC[0] - QUANTITY_NUMERIC[1]} integer digits"
        )
    if not (fits_numeric(buy, *MONEY_NUMERIC) and fits_numeric(sell, *MONEY_NUMERIC)):
        raise InvalidInputError(
            f"rates must have at most {MONEY_NUMERIC[1]} decimal places and "
            f"{MONEY_NUMERIC[0] - MONEY_NUMERIC[1]} integer digits"
        )

    def _op():
        begin_write_transaction()
        item = _find_item(user_id, display_name, lock=True)
        if item is not None:
            new_quantity = Decimal(item.quantity) + qty
            if not fits_numeric(new_quantity, *QUANTITY_NUMERIC):
                raise InvalidInputError("quantity on hand would exceed the storable maximum")
            item.quantity = new_quantity
            item.buying_rate = buy
            item.selling_rate = sell
            db.session.flush()
            return item, False

        item = Item(
            user_id=user_id,
            name=display_name,
            name_key=normalize_item_name(display_name),
            quantity=qty,
            buying_rate=buy,
            selling_rate=sell,
        )
        db.session.add(item)
        db.session.flush()
        return item, True

    return run_atomic(_op)


def list_item_names(user_id: int) -> list[str]:
    rows = (
        db.session.query(Item.name)
        .filter_by(user_id=user_id)
        .order_by(Item.name_key.asc())
        .all()
    )
    return [name for (name,) in rows]


def get_item_info(user_id: int, name: str) -> Item:
    if not isinstance(name, str) or not name.strip():
        raise InvalidInputError("Missing item name")

    item = _find_item(user_id, name)
    if item is None:
        raise NotFoundError("Item not found", details={"name": name.strip()})
    return item
