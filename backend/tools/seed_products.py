#!/usr/bin/env python3
"""
Load a JSON product file into MongoDB and ensure the catalog indexes.

Usage:
    python tools/seed_products.py --file data/products.json     # Insert products
    python tools/seed_products.py --file data/products.json --drop
    python tools/seed_products.py --dry-run                     # Validate only
    python tools/seed_products.py --ensure-indexes              # Only ensure indexes
"""

import argparse
import json
import logging
import os
import sys
from typing import Any, Dict, List, Tuple

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from pymongo import ASCENDING, TEXT, MongoClient  # noqa: E402
from pymongo.errors import PyMongoError  # noqa: E402

from config import Config  # noqa: E402
from store.errors import ValidationError  # noqa: E402
from store.models.product import Product  # noqa: E402
from store.services.validators import (  # noqa: E402
    validate_discount_payload,
    validate_product_payload,
)

logger = logging.getLogger("seed_products")

PRODUCT_INDEXES = [
    [('tags', ASCENDING)],
    [('productType', ASCENDING), ('isActive', ASCENDING)],
    [('category', ASCENDING), ('isActive', ASCENDING)],
    [('discount.isActive', ASCENDING), ('discount.endDate', ASCENDING)],
    [('name', TEXT), ('description', TEXT)],
]


def get_mongo_db(mongo_uri: str):
    """Connect and ping; returns None when MongoDB is unreachable."""
    try:
        client = MongoClient(mongo_uri, serverSelectionTimeoutMS=5000)
        client.admin.command("ping")
        db = client.get_database()
        logger.info("Connected to MongoDB: %s", db.name)
        return db
    except PyMongoError as e:
        logger.error("MongoDB connection failed: %s", e)
        return None


def load_json(filepath: str) -> List[Dict[str, Any]]:
    if not os.path.exists(filepath):
        logger.error("File not found: %s", filepath)
        return []
    with open(filepath, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = [data]
    return [item for item in data if isinstance(item, dict)]


def prepare_products(raw: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], List[str]]:
    """Validate raw entries and build storable documents.

    Returns the documents and one message per rejected entry.
    """
    documents = []
    rejected = []
    for idx, item in enumerate(raw):
        try:
            payload = validate_product_payload(item)
            if item.get("discount"):
                # stored as dates, not strings
                payload["discount"] = validate_discount_payload(item["discount"])
            reserved = item.get("reserved", 0)
            if isinstance(reserved, bool) or not isinstance(reserved, int) \
                    or not 0 <= reserved <= payload["stock"]:
                raise ValidationError.for_field(
                    "reserved", "Las unidades reservadas deben estar entre 0 y el stock"
                )
        except ValidationError as e:
            fields = ", ".join(err.get("field", "?") for err in e.errors)
            rejected.append(f"#{idx + 1} {item.get('name') or '<sin nombre>'}: {fields}")
            continue
        documents.append(Product.from_dict(payload).to_dict())
    return documents, rejected


def ensure_indexes(db, dry_run: bool = False) -> None:
    collection = db["products"]
    for keys in PRODUCT_INDEXES:
        if dry_run:
            logger.info("[DRY RUN] Would create index %s", keys)
            continue
        name = collection.create_index(keys)
        logger.info("Index ready: %s", name)


def seed_products(db, documents: List[Dict[str, Any]], drop: bool = False,
                  dry_run: bool = False) -> Dict[str, int]:
    collection = db["products"]
    stats = {"removed": 0, "inserted": 0}
    if dry_run:
        stats["inserted"] = len(documents)
        return stats
    if drop:
        stats["removed"] = collection.delete_many({}).deleted_count
    if documents:
        stats["inserted"] = len(collection.insert_many(documents).inserted_ids)
    return stats


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Seed the products collection",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--file", "-f", default=Config.DATA_PATH, help="JSON product file")
    parser.add_argument("--mongo-uri", default=Config.MONGO_URI, help="MongoDB URI")
    parser.add_argument("--drop", action="store_true", help="Remove existing products first")
    parser.add_argument("--dry-run", action="store_true", help="Validate without writing")
    parser.add_argument("--ensure-indexes", action="store_true", help="Only ensure indexes")
    args = parser.parse_args(argv)

    logging.basicConfig(level=Config.LOG_LEVEL, format="  %(levelname)s %(message)s")

    if not args.ensure_indexes:
        documents, rejected = prepare_products(load_json(args.file))
        for message in rejected:
            logger.warning("Rejected %s", message)
        logger.info("Valid products: %d, rejected: %d", len(documents), len(rejected))
        if args.dry_run:
            logger.info("[DRY RUN] No changes made")
            return 0 if documents else 1

    db = get_mongo_db(args.mongo_uri)
    if db is None:
        return 1

    if not args.ensure_indexes:
        stats = seed_products(db, documents, drop=args.drop)
        logger.info("Removed: %d, inserted: %d", stats["removed"], stats["inserted"])

    ensure_indexes(db, dry_run=args.dry_run)
    return 0


if __name__ == "__main__":
    sys.exit(main())
