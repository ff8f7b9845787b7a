# Overview: Service-layer operations for shop settings; read-mostly per-user profile and tax rate.

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from ..errors import InvalidInputError
from ..extensions import db
from ..models import ShopSetting
from ..money import TAX_RATE_NUMERIC, decimal_places, to_decimal
from .concurrency import begin_write_transaction, run_atomic

# field -> max length (None for TEXT columns)
_TEXT_FIELDS = {"shop_name": 255, "shop_address": None, "tax_id": 64}
_TAX_RATE_PLACES = TAX_RATE_NUMERIC[1]


def _find_setting(user_id: int) -> ShopSetting | None:
    return db.session.query(ShopSetting).filter_by(user_id=user_id).first()


def get_tax_rate(user_id: int) -> Decimal:
    """Configured tax rate in percent, or DEFAULT_TAX_RATE when unset."""
    rate = (
        db.session.query(ShopSetting.tax_rate)
        .filter_by(user_id=user_id)
        .scalar()
    )
    if rate is None:
        return to_decimal(current_app.config["DEFAULT_TAX_RATE"])
    return Decimal(rate)


def get_shop_info(user_id: int) -> dict:
    setting = _find_setting(user_id)
    return setting.to_dict() if setting else {}


def _coerce_tax_rate(value) -> Decimal | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        rate = to_decimal(value)
    except ValueError:
        raise InvalidInputError("tax_rate must be a number")
    if rate < 0 or rate > 100:
        raise InvalidInputError("tax_rate must be between 0 and 100")
    if decimal_places(rate) > _TAX_RATE_PLACES:
        raise InvalidInputError(f"tax_rate supports at most {_TAX_RATE_PLACES} decimal places")
    return rate


def upsert_shop_info(user_id: int, data: dict) -> ShopSetting:
    """
    Replace the user's shop profile. Missing text fields are cleared.

    Raises InvalidInputError for a malformed body or tax rate, ConflictError
    when a concurrent first save for the same user wins the insert.
    """
    if not isinstance(data, dict):
        raise InvalidInputError("Shop info must be an object")

    tax_rate = _coerce_tax_rate(data.get("tax_rate", data.get("gst_rate")))

    values = {}
    for field, limit in _TEXT_FIELDS.items():
        value = data.get(field)
        if field == "tax_id" and value is None:
            value = data.get("gst_no")
        if value is not None:
            value = str(value).strip() or None
        if value is not None and limit is not None and len(value) > limit:
            raise InvalidInputError(f"{field} must be at most {limit} characters")
        values[field] = value

    def _op():
        begin_write_transaction()
        setting = _find_setting(user_id)
        if setting is None:
            setting = ShopSetting(user_id=user_id)
            db.session.add(setting)
        for field, value in values.items():
            setattr(setting, field, value)
        setting.tax_rate = tax_rate
        db.session.flush()
        return setting

    return run_atomic(_op)
