"""
产品数据仓库 - catalog storage behind a small query contract.

``MongoProductRepository`` runs the filter documents built by
``product_filters`` against the products collection.
``InMemoryProductRepository`` evaluates the same documents in Python and
backs the app when no MONGO_URI is configured (and in tests).
"""

import json
import logging
import os
from collections import Counter
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

logger = logging.getLogger(__name__)

# Fields returned for related products
RELATED_PROJECTION = [
    'name', 'description', 'basePrice', 'discount', 'images',
    'productType', 'category', 'tags', 'stock', 'reserved',
]


def _mongo_uri_configured() -> bool:
    """Whether MONGO_URI is explicitly configured."""
    return bool(os.getenv('MONGO_URI'))


def _now() -> datetime:
    return datetime.now(timezone.utc)


# 示例数据（当没有种子文件时使用）
SAMPLE_PRODUCTS = [
    {
        'name': 'Anillo Solitario Aurora',
        'description': 'Anillo de plata 950 con circón central talla brillante.',
        'basePrice': 45000,
        'productType': 'Anillo',
        'images': [
            'https://cdn.joyeria.cl/aurora-1.jpg',
            'https://cdn.joyeria.cl/aurora-2.jpg',
            'https://cdn.joyeria.cl/aurora-3.jpg',
        ],
        'stock': 12,
        'reserved': 2,
        'category': 'anillos',
        'tags': ['plata', 'regalo', 'compromiso'],
        'isActive': True,
        'discount': {'percentage': 15, 'isActive': True},
        'attributes': {'size': '12', 'material': 'plata', 'gemstone': 'circón'},
    },
    {
        'name': 'Collar Luna Creciente',
        'description': 'Collar de cadena rolo con colgante de luna en baño de oro.',
        'basePrice': 32000,
        'productType': 'Collar',
        'images': [
            'https://cdn.joyeria.cl/luna-1.jpg',
            'https://cdn.joyeria.cl/luna-2.jpg',
            'https://cdn.joyeria.cl/luna-3.jpg',
        ],
        'stock': 8,
        'reserved': 0,
        'category': 'collares',
        'tags': ['oro', 'minimalista'],
        'isActive': True,
        'discount': {'percentage': 0, 'isActive': False},
        'attributes': {'length': '45cm', 'material': 'baño de oro',
                       'claspType': 'mosquetón', 'chainType': 'rolo'},
    },
    {
        'name': 'Pulsera Eslabones Mar',
        'description': 'Pulsera de eslabones de plata con cierre de caja.',
        'basePrice': 28000,
        'productType': 'Pulsera',
        'images': [
            'https://cdn.joyeria.cl/mar-1.jpg',
            'https://cdn.joyeria.cl/mar-2.jpg',
            'https://cdn.joyeria.cl/mar-3.jpg',
        ],
        'stock': 5,
        'reserved': 1,
        'category': 'pulseras',
        'tags': ['plata', 'minimalista'],
        'isActive': True,
        'discount': {'percentage': 10, 'isActive': True},
        'attributes': {'length': '18cm', 'material': 'plata',
                       'claspType': 'caja', 'style': 'cadena'},
    },
    {
        'name': 'Aros Gota Cuarzo',
        'description': 'Aros colgantes con cuarzo rosa y gancho de plata.',
        'basePrice': 19000,
        'productType': 'Aros',
        'images': [
            'https://cdn.joyeria.cl/gota-1.jpg',
            'https://cdn.joyeria.cl/gota-2.jpg',
            'https://cdn.joyeria.cl/gota-3.jpg',
        ],
        'stock': 20,
        'reserved': 0,
        'category': 'aros',
        'tags': ['cuarzo', 'regalo'],
        'isActive': True,
        'discount': {'percentage': 0, 'isActive': False},
        'attributes': {'type': 'drop', 'material': 'plata',
                       'backType': 'gancho', 'length': '3cm'},
    },
]


# ========== Filter evaluation (in-memory) ==========

_MISSING = object()


def _get_path(document: Dict[str, Any], path: str) -> Any:
    current: Any = document
    for part in path.split('.'):
        if not isinstance(current, dict) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _comparable(a: Any, b: Any) -> bool:
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool)
    numeric = (int, float)
    if isinstance(a, numeric) and isinstance(b, numeric):
        return True
    return type(a) is type(b)


def _match_operator(value: Any, operator: str, operand: Any) -> bool:
    candidates = value if isinstance(value, list) else [value]
    if operator == '$in':
        return any(v in operand for v in candidates if v is not _MISSING)
    if operator == '$nin':
        return not any(v in operand for v in candidates if v is not _MISSING)
    if operator == '$ne':
        return not _match_value(value, operand)
    if operator in ('$gt', '$gte', '$lt', '$lte'):
        for v in candidates:
            if v is _MISSING or v is None or not _comparable(v, operand):
                continue
            if operator == '$gt' and v > operand:
                return True
            if operator == '$gte' and v >= operand:
                return True
            if operator == '$lt' and v < operand:
                return True
            if operator == '$lte' and v <= operand:
                return True
        return False
    raise ValueError(f"Unsupported filter operator: {operator}")


def _match_value(value: Any, expected: Any) -> bool:
    """Equality with MongoDB array semantics (array fields match any element)."""
    if value is _MISSING:
        return expected is None
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def matches(document: Dict[str, Any], filters: Dict[str, Any]) -> bool:
    """Evaluate a MongoDB-style filter document against ``document``."""
    for key, condition in filters.items():
        if key == '$or':
            if not any(matches(document, clause) for clause in condition):
                return False
            continue
        if key == '$and':
            if not all(matches(document, clause) for clause in condition):
                return False
            continue

        value = _get_path(document, key)
        if isinstance(condition, dict) and condition and all(k.startswith('$') for k in condition):
            if not all(_match_operator(value, op, operand) for op, operand in condition.items()):
                return False
        elif not _match_value(value, condition):
            return False
    return True


def _sort_key(value: Any) -> Tuple[int, Any]:
    """MongoDB's BSON type order: null < numbers < strings < objects <
    arrays < ObjectId < booleans < dates."""
    if value is _MISSING or value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (6, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, dict):
        return (3, repr(sorted(value.items(), key=repr)))
    if isinstance(value, (list, tuple)):
        return (4, repr(value))
    if isinstance(value, ObjectId):
        return (5, str(value))
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return (7, value)
    return (8, repr(value))


def _sort_documents(documents: List[Dict[str, Any]], field: str, direction: int) -> List[Dict[str, Any]]:
    """Sort like MongoDB: missing/null values are the smallest."""
    return sorted(documents, key=lambda d: _sort_key(_get_path(d, field)), reverse=direction < 0)


def _project(document: Dict[str, Any], projection: Optional[List[str]]) -> Dict[str, Any]:
    if not projection:
        return dict(document)
    projected = {'_id': document.get('_id')}
    for field in projection:
        if field in document:
            projected[field] = document[field]
    return projected


class InMemoryProductRepository:
    """Product store kept in a dict, evaluating MongoDB-style filters."""

    def __init__(self, products: Optional[List[Dict[str, Any]]] = None):
        self._products: Dict[str, Dict[str, Any]] = {}
        for product in products or []:
            self.insert(product)

    @classmethod
    def from_seed_file(cls, path: str) -> 'InMemoryProductRepository':
        """Load products from a JSON seed file, falling back to sample data."""
        if not os.path.exists(path):
            logger.info("Seed file %s not found, using sample products", path)
            return cls([dict(p) for p in SAMPLE_PRODUCTS])
        try:
            with open(path, 'r', encoding='utf-8') as f:
                products = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not load seed file %s: %s, using sample products", path, e)
            return cls([dict(p) for p in SAMPLE_PRODUCTS])
        logger.info("Loaded %d products from %s", len(products), path)
        return cls(products)

    def _all(self) -> List[Dict[str, Any]]:
        return list(self._products.values())

    def count(self, filters: Dict[str, Any]) -> int:
        return sum(1 for p in self._all() if matches(p, filters))

    def find(self, filters: Dict[str, Any], sort: Optional[Dict[str, Any]] = None,
             skip: int = 0, limit: int = 0,
             projection: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        results = [p for p in self._all() if matches(p, filters)]
        if sort:
            results = _sort_documents(results, sort['field'], sort['direction'])
        results = results[skip:]
        if limit:
            results = results[:limit]
        return [_project(p, projection) for p in results]

    def find_by_id(self, product_id: str) -> Optional[Dict[str, Any]]:
        product = self._products.get(str(product_id))
        return dict(product) if product else None

    def category_counts(self) -> List[Dict[str, Any]]:
        counts = Counter(p.get('category') for p in self._all() if p.get('isActive'))
        return [
            {'category': category, 'productCount': count}
            for category, count in counts.most_common()
        ]

    def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(document)
        stored['_id'] = str(stored.get('_id') or ObjectId())
        now = _now()
        stored.setdefault('createdAt', now)
        stored.setdefault('updatedAt', now)
        self._products[stored['_id']] = stored
        return dict(stored)

    def update(self, product_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        stored = self._products.get(str(product_id))
        if stored is None:
            return None
        stored.update(changes)
        stored['updatedAt'] = _now()
        return dict(stored)

    def delete(self, product_id: str) -> bool:
        return self._products.pop(str(product_id), None) is not None


def _to_object_id(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return ObjectId(value)
        except InvalidId:
            return value
    return value


def _serialize(document: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if document is None:
        return None
    if isinstance(document.get('_id'), ObjectId):
        document['_id'] = str(document['_id'])
    return document


class MongoProductRepository:
    """Product store backed by a pymongo collection."""

    def __init__(self, collection):
        self.collection = collection

    @staticmethod
    def _prepare(filters: Dict[str, Any]) -> Dict[str, Any]:
        """Convert string ids in an ``_id`` clause to ObjectId."""
        if '_id' not in filters:
            return filters
        prepared = dict(filters)
        condition = prepared['_id']
        if isinstance(condition, dict):
            prepared['_id'] = {
                op: [_to_object_id(v) for v in operand] if isinstance(operand, list) else _to_object_id(operand)
                for op, operand in condition.items()
            }
        else:
            prepared['_id'] = _to_object_id(condition)
        return prepared

    def count(self, filters: Dict[str, Any]) -> int:
        return self.collection.count_documents(self._prepare(filters))

    def find(self, filters: Dict[str, Any], sort: Optional[Dict[str, Any]] = None,
             skip: int = 0, limit: int = 0,
             projection: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        cursor = self.collection.find(self._prepare(filters), projection or None)
        if sort:
            cursor = cursor.sort(sort['field'], sort['direction'])
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        return [_serialize(doc) for doc in cursor]

    def find_by_id(self, product_id: str) -> Optional[Dict[str, Any]]:
        if not ObjectId.is_valid(product_id):
            return None
        return _serialize(self.collection.find_one({'_id': ObjectId(product_id)}))

    def category_counts(self) -> List[Dict[str, Any]]:
        pipeline = [
            {'$match': {'isActive': True}},
            {'$group': {'_id': '$category', 'productCount': {'$sum': 1}}},
            {'$project': {'_id': 0, 'category': '$_id', 'productCount': 1}},
            {'$sort': {'productCount': -1}},
        ]
        return list(self.collection.aggregate(pipeline))

    def insert(self, document: Dict[str, Any]) -> Dict[str, Any]:
        stored = dict(document)
        stored.pop('_id', None)
        now = _now()
        stored.setdefault('createdAt', now)
        stored.setdefault('updatedAt', now)
        result = self.collection.insert_one(stored)
        stored['_id'] = str(result.inserted_id)
        return stored

    def update(self, product_id: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not ObjectId.is_valid(product_id):
            return None
        updated = self.collection.find_one_and_update(
            {'_id': ObjectId(product_id)},
            {'$set': dict(changes, updatedAt=_now())},
            return_document=ReturnDocument.AFTER,
        )
        return _serialize(updated)

    def delete(self, product_id: str) -> bool:
        if not ObjectId.is_valid(product_id):
            return False
        return self.collection.delete_one({'_id': ObjectId(product_id)}).deleted_count > 0
