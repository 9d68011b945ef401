"""
价格计算 - discount validity and final price for a product.

Discounts are evaluated on every read against the current clock; nothing
here is cached or written back to the store.
"""

from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Mapping, Optional, Union

Number = Union[int, float]

# Marker for a date field that is present but cannot be parsed
_MALFORMED = object()


def utcnow() -> datetime:
    """Single clock source for pricing."""
    return datetime.now(timezone.utc)


def parse_instant(value: Any) -> Any:
    """Parse a discount bound into an aware UTC datetime.

    Returns None when the bound is unset and ``_MALFORMED`` when it is set
    but unusable. Naive datetimes (as returned by pymongo) are read as UTC.
    """
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith('Z'):
            raw = raw[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return _MALFORMED
    else:
        return _MALFORMED
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def discount_percentage(discount: Optional[Dict[str, Any]]) -> Optional[int]:
    """Percentage clamped to [0, 100], or None when it is not a number."""
    if not isinstance(discount, Mapping) or not discount:
        return None
    raw = discount.get('percentage', 0)
    if isinstance(raw, bool):
        return None
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return int(min(Decimal(100), max(Decimal(0), value)))


def is_discount_valid(discount: Optional[Dict[str, Any]], now: Optional[datetime] = None) -> bool:
    """Whether ``discount`` applies at ``now``.

    The window is inclusive on both ends; either bound may be missing.
    """
    if not isinstance(discount, Mapping) or not discount.get('isActive'):
        return False

    percentage = discount_percentage(discount)
    if not percentage:
        return False

    current = parse_instant(now) if now is not None else utcnow()
    if current is _MALFORMED:
        return False

    start = parse_instant(discount.get('startDate'))
    end = parse_instant(discount.get('endDate'))
    if start is _MALFORMED or end is _MALFORMED:
        return False

    if start is not None and current < start:
        return False
    if end is not None and current > end:
        return False
    return True


def round_half_up(value: Decimal) -> int:
    """Round to the nearest integer unit, .5 going up (away from zero)."""
    return int(value.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def final_price(base_price: Number, discount: Optional[Dict[str, Any]],
                now: Optional[datetime] = None) -> Number:
    """Price after the discount, or ``base_price`` when none applies."""
    if not is_discount_valid(discount, now):
        return base_price

    percentage = discount_percentage(discount)
    factor = 1 - Decimal(percentage) / 100
    return round_half_up(Decimal(str(base_price)) * factor)


def savings(base_price: Number, discount: Optional[Dict[str, Any]],
            now: Optional[datetime] = None) -> Number:
    if not is_discount_valid(discount, now):
        return 0
    return max(0, base_price - final_price(base_price, discount, now))
