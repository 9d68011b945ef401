"""
产品过滤器 - turns raw catalog query parameters into the MongoDB filter
document plus sort and pagination settings.

This layer is permissive: unknown enum values and unparseable numbers are
dropped instead of rejected. Strict checks live in ``validators``.
"""

import math
import re
from typing import Any, Dict, List, Mapping, Optional, Union

ASCENDING = 1
DESCENDING = -1

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 10

# Lower-cased query value -> stored productType
PRODUCT_TYPE_MAP = {
    'collar': 'Collar',
    'aros': 'Aros',
    'pulsera': 'Pulsera',
    'anillo': 'Anillo',
}

SORT_FIELDS = {
    'basePrice': 'basePrice',
    'price': 'basePrice',
    'name': 'name',
    'category': 'category',
}
DEFAULT_SORT_FIELD = 'createdAt'

_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')

RawValue = Union[str, List[str], None]


def _first(value: Any) -> Any:
    """Collapse a repeated query parameter to its first value."""
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def parse_number(value: Any) -> Optional[Union[int, float]]:
    """Coerce a price bound to a number; None when it is not one."""
    value = _first(value)
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    else:
        raw = str(value).strip()
        if not raw:
            return None
        try:
            number = float(raw)
        except ValueError:
            return None
    if isinstance(number, float):
        if not math.isfinite(number):
            return None
        if number.is_integer():
            return int(number)
    return number


def parse_int(value: Any, default: int) -> int:
    """Leading-integer parse ("2abc" -> 2), falling back to ``default``."""
    value = _first(value)
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    match = _LEADING_INT.match(str(value)) if value is not None else None
    if not match:
        return default
    return int(match.group(1))


def parse_tags(value: RawValue) -> List[str]:
    """Split comma-joined or repeated tags into a de-duplicated list."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(',')
    elif isinstance(value, (list, tuple)):
        parts = []
        for item in value:
            if isinstance(item, str):
                parts.extend(item.split(','))
    else:
        return []

    tags: List[str] = []
    for part in parts:
        tag = part.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def normalize_product_type(value: Any) -> Optional[str]:
    value = _first(value)
    if not value:
        return None
    return PRODUCT_TYPE_MAP.get(str(value).strip().lower())


def build_filters(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Build the MongoDB filter document for a catalog search."""
    filters: Dict[str, Any] = {}

    # Inclusion only: any non-empty value means "active products only"
    if _first(params.get('isActive')):
        filters['isActive'] = True

    product_type = normalize_product_type(params.get('productType'))
    if product_type:
        filters['productType'] = product_type

    category = _first(params.get('category'))
    if category:
        filters['category'] = category

    min_price = parse_number(params.get('minPrice'))
    max_price = parse_number(params.get('maxPrice'))
    price_range: Dict[str, Any] = {}
    if min_price is not None:
        price_range['$gte'] = min_price
    if max_price is not None:
        price_range['$lte'] = max_price
    if price_range:
        filters['basePrice'] = price_range

    tags = parse_tags(params.get('tags'))
    if tags:
        filters['tags'] = {'$in': tags}

    if _first(params.get('sale')) == 'true':
        filters['discount.isActive'] = True
        filters['discount.percentage'] = {'$gt': 0}

    return filters


def build_sort(sort_by: Any = None, sort_order: Any = None) -> Dict[str, Any]:
    """Resolve sortBy/sortOrder; unknown or missing sortBy means newest first."""
    field = SORT_FIELDS.get(_first(sort_by) or '')
    if not field:
        return {'field': DEFAULT_SORT_FIELD, 'direction': DESCENDING}
    direction = ASCENDING if _first(sort_order) == 'asc' else DESCENDING
    return {'field': field, 'direction': direction}


def paginate(page: Any = None, per_page: Any = None,
             default_per_page: int = DEFAULT_PER_PAGE) -> Dict[str, int]:
    page = max(1, parse_int(page, DEFAULT_PAGE))
    per_page = max(1, parse_int(per_page, default_per_page))
    return {
        'page': page,
        'perPage': per_page,
        'skip': (page - 1) * per_page,
        'limit': per_page,
    }


def total_pages(total: int, per_page: int) -> int:
    return math.ceil(total / per_page) if per_page else 0


def build_catalog_query(params: Mapping[str, Any],
                        default_per_page: int = DEFAULT_PER_PAGE) -> Dict[str, Any]:
    """Compose filters, sort and pagination for one catalog request."""
    query = {
        'filters': build_filters(params),
        'sort': build_sort(params.get('sortBy'), params.get('sortOrder')),
    }
    query.update(paginate(params.get('page'), params.get('perPage'), default_per_page))
    return query


def build_filter_summary(params: Mapping[str, Any]) -> Dict[str, Any]:
    """Echo of the received filter state for the list response.

    ``priceRange`` keeps the raw strings and only the keys that were sent,
    which existing clients rely on.
    """
    min_price = _first(params.get('minPrice'))
    max_price = _first(params.get('maxPrice'))
    price_range = None
    if min_price or max_price:
        price_range = {}
        if min_price is not None:
            price_range['min'] = min_price
        if max_price is not None:
            price_range['max'] = max_price

    raw_tags = params.get('tags')
    tags = parse_tags(raw_tags) if raw_tags is not None else []

    return {
        'productType': _first(params.get('productType')) or None,
        'category': _first(params.get('category')) or None,
        'priceRange': price_range,
        'tags': tags or None,
        'onSale': _first(params.get('sale')) == 'true',
        'sortBy': _first(params.get('sortBy')) or DEFAULT_SORT_FIELD,
        'sortOrder': _first(params.get('sortOrder')) or 'desc',
    }


def build_related_filter(product: Dict[str, Any]) -> Dict[str, Any]:
    """Other active products sharing category, type or at least one tag."""
    return {
        '_id': {'$ne': product.get('_id')},
        'isActive': True,
        '$or': [
            {'category': product.get('category')},
            {'productType': product.get('productType')},
            {'tags': {'$in': list(product.get('tags') or [])}},
        ],
    }
