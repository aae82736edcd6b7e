"""
Coercion helpers for values read back from the row store.

Depending on the driver a money column comes back as ``Decimal``, ``float``
or ``int`` and a date column as ``date`` or ISO string.
"""

from datetime import date, datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional

from bizledger.app.core.config import settings

CENT = Decimal(1).scaleb(-settings.currency_decimal_places)


def to_decimal(value: Any) -> Decimal:
    """Best-effort numeric parse; unparseable input counts as zero."""
    if value is None or isinstance(value, bool):
        return Decimal(0)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    try:
        text = str(value).strip()
        return Decimal(text) if text else Decimal(0)
    except InvalidOperation:
        return Decimal(0)


def to_money(value: Any) -> Decimal:
    """Parse and round half-up to the currency's minor unit."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def to_int(value: Any) -> int:
    return int(to_decimal(value))


def to_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def is_truthy(value: Any) -> bool:
    """Flags come back as bool, 0/1 or strings depending on the store."""
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "t", "yes")
    return bool(value)
