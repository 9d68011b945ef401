"""
Product enrichment - attaches the derived pricing and stock fields that the
API returns alongside every stored product.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from . import pricing

logger = logging.getLogger(__name__)

DERIVED_FIELDS = ('finalPrice', 'hasActiveDiscount', 'savings', 'availableStock')


def available_stock(product: Dict[str, Any]) -> int:
    return (product.get('stock') or 0) - (product.get('reserved') or 0)


def enrich(product: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Return a copy of ``product`` with finalPrice, hasActiveDiscount,
    savings and availableStock. The input record is left untouched."""
    current = now or pricing.utcnow()
    base_price = product['basePrice']
    discount = product.get('discount')

    has_discount = pricing.is_discount_valid(discount, current)
    price = pricing.final_price(base_price, discount, current)

    enriched = dict(product)
    enriched['finalPrice'] = price
    enriched['hasActiveDiscount'] = has_discount
    enriched['savings'] = max(0, base_price - price) if has_discount else 0
    enriched['availableStock'] = available_stock(product)
    return enriched


def enrich_many(products: Iterable[Dict[str, Any]],
                now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Enrich a page of products against one timestamp.

    A record that cannot be priced is logged and passed through unchanged so
    one bad document does not fail the whole page.
    """
    current = now or pricing.utcnow()
    enriched = []
    for product in products:
        try:
            enriched.append(enrich(product, current))
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            logger.warning("Could not enrich product %s: %r", product.get('_id'), e)
            enriched.append(product)
    return enriched
