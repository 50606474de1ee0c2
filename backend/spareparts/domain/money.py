# backend/spareparts/domain/money.py
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional

from ..core.errors import ValidationError

MONEY_PLACES = Decimal("0.01")


def to_money(val, field: str = "Amount") -> Decimal:
    try:
        d = val if isinstance(val, Decimal) else Decimal(str(val))
        d = d.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(f"{field} must be a decimal number.")
    if d < 0:
        raise ValidationError(f"{field} cannot be negative.")
    return d


def optional_money(val, field: str = "Amount") -> Optional[Decimal]:
    if val is None or (isinstance(val, str) and not val.strip()):
        return None
    return to_money(val, field)
