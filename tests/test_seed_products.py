"""
Tests for the product seeding tool (MongoDB mocked).
"""

import json
import os
import sys
from datetime import datetime, timezone
from unittest import mock

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(PROJECT_ROOT, "backend"))

from tools import seed_products  # noqa: E402


def _raw_product(name="Aros Gota", **overrides):
    product = {
        "name": name,
        "description": "Aros colgantes de plata",
        "basePrice": 19000,
        "productType": "Aros",
        "images": [
            "https://cdn.joyeria.cl/gota-1.jpg",
            "https://cdn.joyeria.cl/gota-2.jpg",
            "https://cdn.joyeria.cl/gota-3.jpg",
        ],
        "stock": 20,
        "category": "aros",
        "tags": ["plata"],
        "attributes": {"type": "drop", "material": "plata", "backType": "gancho"},
    }
    product.update(overrides)
    return product


def test_prepare_products_splits_valid_and_rejected():
    documents, rejected = seed_products.prepare_products([
        _raw_product(),
        _raw_product("Sin imágenes", images=[]),
    ])

    assert len(documents) == 1
    document = documents[0]
    assert document["reserved"] == 0
    assert document["isActive"] is True
    assert document["discount"] == {"percentage": 0, "isActive": False}
    assert "createdAt" in document
    assert rejected == ["#2 Sin imágenes: images"]


def test_prepare_products_parses_discount_dates():
    documents, rejected = seed_products.prepare_products([
        _raw_product(discount={"percentage": 20, "isActive": True, "endDate": "2025-12-01T23:59:59Z"}),
        _raw_product("Descuento roto", discount={"percentage": 120, "isActive": True}),
    ])

    assert documents[0]["discount"]["endDate"] == datetime(2025, 12, 1, 23, 59, 59, tzinfo=timezone.utc)
    assert rejected == ["#2 Descuento roto: percentage"]


def test_prepare_products_checks_reserved_against_stock():
    documents, rejected = seed_products.prepare_products([
        _raw_product(stock=5, reserved=2, createdAt="2020-01-01"),
        _raw_product("Sobre reservado", stock=2, reserved=50),
    ])

    assert documents[0]["reserved"] == 2
    assert not isinstance(documents[0]["createdAt"], str)
    assert rejected == ["#2 Sobre reservado: reserved"]


def test_load_json_accepts_single_object_and_missing_file(tmp_path):
    path = tmp_path / "one.json"
    path.write_text(json.dumps(_raw_product()), encoding="utf-8")
    assert len(seed_products.load_json(str(path))) == 1
    assert seed_products.load_json(str(tmp_path / "missing.json")) == []


def test_seed_products_drop_and_insert():
    db = mock.MagicMock()
    collection = db["products"]
    collection.delete_many.return_value.deleted_count = 4
    collection.insert_many.return_value.inserted_ids = ["a", "b"]

    stats = seed_products.seed_products(db, [{"name": "a"}, {"name": "b"}], drop=True)

    assert stats == {"removed": 4, "inserted": 2}
    collection.delete_many.assert_called_once_with({})


def test_seed_products_dry_run_writes_nothing():
    db = mock.MagicMock()
    stats = seed_products.seed_products(db, [{"name": "a"}], drop=True, dry_run=True)
    assert stats == {"removed": 0, "inserted": 1}
    db["products"].delete_many.assert_not_called()
    db["products"].insert_many.assert_not_called()


def test_ensure_indexes_creates_catalog_indexes():
    db = mock.MagicMock()
    seed_products.ensure_indexes(db)
    assert db["products"].create_index.call_count == len(seed_products.PRODUCT_INDEXES)

    dry = mock.MagicMock()
    seed_products.ensure_indexes(dry, dry_run=True)
    dry["products"].create_index.assert_not_called()


def test_main_dry_run_does_not_connect(tmp_path):
    path = tmp_path / "products.json"
    path.write_text(json.dumps([_raw_product()]), encoding="utf-8")

    with mock.patch.object(seed_products, "get_mongo_db") as get_db:
        assert seed_products.main(["--file", str(path), "--dry-run"]) == 0
    get_db.assert_not_called()


def test_main_seeds_and_indexes(tmp_path):
    path = tmp_path / "products.json"
    path.write_text(json.dumps([_raw_product(), _raw_product("Aros Aro")]), encoding="utf-8")
    db = mock.MagicMock()
    db["products"].insert_many.return_value.inserted_ids = ["a", "b"]

    with mock.patch.object(seed_products, "get_mongo_db", return_value=db):
        assert seed_products.main(["--file", str(path), "--mongo-uri", "mongodb://test/joyeria"]) == 0

    inserted = db["products"].insert_many.call_args[0][0]
    assert [doc["name"] for doc in inserted] == ["Aros Gota", "Aros Aro"]
    assert db["products"].create_index.call_count == len(seed_products.PRODUCT_INDEXES)


def test_main_fails_when_mongo_is_unreachable(tmp_path):
    path = tmp_path / "products.json"
    path.write_text(json.dumps([_raw_product()]), encoding="utf-8")

    with mock.patch.object(seed_products, "get_mongo_db", return_value=None):
        assert seed_products.main(["--file", str(path)]) == 1
