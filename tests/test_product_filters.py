"""
Tests for catalog query building.
"""

import os
import sys

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(PROJECT_ROOT, "backend"))

from store.services import product_filters as filters  # noqa: E402


def test_no_params_builds_empty_filter():
    assert filters.build_filters({}) == {}


def test_product_type_is_mapped_case_insensitively():
    assert filters.build_filters({"productType": "COLLAR"}) == {"productType": "Collar"}
    assert filters.build_filters({"productType": "anillo"}) == {"productType": "Anillo"}
    assert filters.build_filters({"productType": "Collares"}) == {}


def test_category_is_exact_match():
    assert filters.build_filters({"category": "collares"}) == {"category": "collares"}
    assert filters.build_filters({"category": ""}) == {}


def test_price_range_bounds():
    assert filters.build_filters({"minPrice": "20000", "maxPrice": "50000"}) == {
        "basePrice": {"$gte": 20000, "$lte": 50000}
    }
    assert filters.build_filters({"minPrice": "20000"}) == {"basePrice": {"$gte": 20000}}
    assert filters.build_filters({"maxPrice": "10.5"}) == {"basePrice": {"$lte": 10.5}}
    assert filters.build_filters({"minPrice": "abc", "maxPrice": ""}) == {}


def test_tags_are_split_trimmed_and_deduplicated():
    assert filters.build_filters({"tags": "yellow, blue,,yellow"}) == {
        "tags": {"$in": ["yellow", "blue"]}
    }
    assert filters.build_filters({"tags": ["gold", "silver,red"]}) == {
        "tags": {"$in": ["gold", "silver", "red"]}
    }
    assert filters.build_filters({"tags": ",,,"}) == {}


def test_sale_only_for_literal_true():
    assert filters.build_filters({"sale": "true"}) == {
        "discount.isActive": True,
        "discount.percentage": {"$gt": 0},
    }
    for value in ("True", "1", "false", ""):
        assert filters.build_filters({"sale": value}) == {}


def test_is_active_is_inclusion_only():
    assert filters.build_filters({"isActive": "true"}) == {"isActive": True}
    assert filters.build_filters({"isActive": "false"}) == {"isActive": True}
    assert filters.build_filters({"isActive": ""}) == {}


def test_filters_combine():
    result = filters.build_filters({
        "isActive": "true",
        "productType": "pulsera",
        "category": "pulseras",
        "minPrice": "1000",
        "tags": "plata",
        "sale": "true",
    })
    assert result == {
        "isActive": True,
        "productType": "Pulsera",
        "category": "pulseras",
        "basePrice": {"$gte": 1000},
        "tags": {"$in": ["plata"]},
        "discount.isActive": True,
        "discount.percentage": {"$gt": 0},
    }


def test_default_sort_is_newest_first_regardless_of_order():
    newest = {"field": "createdAt", "direction": filters.DESCENDING}
    assert filters.build_sort() == newest
    assert filters.build_sort(None, "asc") == newest
    assert filters.build_sort("rating", "asc") == newest


def test_sort_by_known_fields():
    assert filters.build_sort("price", "asc") == {"field": "basePrice", "direction": 1}
    assert filters.build_sort("basePrice") == {"field": "basePrice", "direction": -1}
    assert filters.build_sort("name", "asc") == {"field": "name", "direction": 1}
    assert filters.build_sort("category", "desc") == {"field": "category", "direction": -1}


def test_pagination_defaults_and_floor():
    assert filters.paginate() == {"page": 1, "perPage": 10, "skip": 0, "limit": 10}
    assert filters.paginate("3", "5") == {"page": 3, "perPage": 5, "skip": 10, "limit": 5}
    assert filters.paginate("0", "-4") == {"page": 1, "perPage": 1, "skip": 0, "limit": 1}
    assert filters.paginate("abc", None)["page"] == 1
    assert filters.paginate("2abc", "7") == {"page": 2, "perPage": 7, "skip": 7, "limit": 7}


def test_total_pages():
    assert filters.total_pages(0, 10) == 0
    assert filters.total_pages(10, 10) == 1
    assert filters.total_pages(11, 10) == 2


def test_catalog_query_composes_parts():
    query = filters.build_catalog_query({"category": "aros", "sortBy": "name", "page": "2", "perPage": "3"})
    assert query["filters"] == {"category": "aros"}
    assert query["sort"] == {"field": "name", "direction": -1}
    assert (query["page"], query["perPage"], query["skip"], query["limit"]) == (2, 3, 3, 3)


def test_filter_summary_echoes_raw_values():
    summary = filters.build_filter_summary({
        "category": "collares",
        "minPrice": "20000",
        "maxPrice": "50000",
        "sortBy": "basePrice",
        "sortOrder": "asc",
        "isActive": "true",
    })
    assert summary == {
        "productType": None,
        "category": "collares",
        "priceRange": {"min": "20000", "max": "50000"},
        "tags": None,
        "onSale": False,
        "sortBy": "basePrice",
        "sortOrder": "asc",
    }


def test_filter_summary_defaults_and_partial_price_range():
    assert filters.build_filter_summary({}) == {
        "productType": None,
        "category": None,
        "priceRange": None,
        "tags": None,
        "onSale": False,
        "sortBy": "createdAt",
        "sortOrder": "desc",
    }
    summary = filters.build_filter_summary({"minPrice": "100", "tags": "yellow,blue", "sale": "true"})
    assert summary["priceRange"] == {"min": "100"}
    assert summary["tags"] == ["yellow", "blue"]
    assert summary["onSale"] is True


def test_related_filter_excludes_self_and_matches_any_shared_trait():
    product = {"_id": "abc", "category": "collares", "productType": "Collar", "tags": ["oro"]}
    assert filters.build_related_filter(product) == {
        "_id": {"$ne": "abc"},
        "isActive": True,
        "$or": [
            {"category": "collares"},
            {"productType": "Collar"},
            {"tags": {"$in": ["oro"]}},
        ],
    }


def test_pagination_default_page_size_is_configurable():
    assert filters.paginate(None, None, 3) == {"page": 1, "perPage": 3, "skip": 0, "limit": 3}
    assert filters.paginate("2", "5", 3)["perPage"] == 5
    assert filters.build_catalog_query({}, 4)["limit"] == 4
