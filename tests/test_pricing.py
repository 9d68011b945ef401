"""
Tests for discount validity and final price calculation.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from unittest import mock

PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.join(PROJECT_ROOT, "backend"))

from store.services import pricing  # noqa: E402

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def _discount(percentage=10, is_active=True, **dates):
    discount = {"percentage": percentage, "isActive": is_active}
    discount.update(dates)
    return discount


def test_missing_or_inactive_discount_keeps_base_price():
    for discount in (None, {}, {"percentage": 0, "isActive": False}, _discount(25, False)):
        assert pricing.is_discount_valid(discount, NOW) is False
        assert pricing.final_price(20000, discount, NOW) == 20000
        assert pricing.savings(20000, discount, NOW) == 0


def test_active_discount_without_dates_applies():
    discount = _discount(10)
    assert pricing.is_discount_valid(discount, NOW) is True
    assert pricing.final_price(100000, discount, NOW) == 90000
    assert pricing.savings(100000, discount, NOW) == 10000


def test_zero_percentage_is_not_a_discount():
    assert pricing.is_discount_valid(_discount(0), NOW) is False
    assert pricing.final_price(100000, _discount(0), NOW) == 100000


def test_window_bounds_are_inclusive():
    assert pricing.is_discount_valid(_discount(startDate=NOW), NOW) is True
    assert pricing.is_discount_valid(_discount(endDate=NOW), NOW) is True
    assert pricing.is_discount_valid(_discount(startDate=NOW, endDate=NOW), NOW) is True


def test_window_outside_now_is_invalid():
    future = NOW + timedelta(seconds=1)
    past = NOW - timedelta(seconds=1)
    assert pricing.is_discount_valid(_discount(startDate=future), NOW) is False
    assert pricing.is_discount_valid(_discount(endDate=past), NOW) is False
    assert pricing.final_price(50000, _discount(startDate=future), NOW) == 50000


def test_iso_strings_and_naive_datetimes_are_read_as_utc():
    assert pricing.is_discount_valid(
        _discount(startDate="2025-06-01T00:00:00Z", endDate="2025-06-30T23:59:59Z"), NOW
    ) is True
    assert pricing.is_discount_valid(_discount(endDate="2025-06-30"), NOW) is True
    # pymongo hands back naive datetimes
    assert pricing.is_discount_valid(_discount(endDate=datetime(2025, 6, 15, 12, 0)), NOW) is True
    assert pricing.is_discount_valid(_discount(endDate=datetime(2025, 6, 15, 11, 59)), NOW) is False


def test_malformed_dates_invalidate_the_discount():
    assert pricing.is_discount_valid(_discount(startDate="not-a-date"), NOW) is False
    assert pricing.is_discount_valid(_discount(endDate=12345), NOW) is False
    assert pricing.final_price(30000, _discount(endDate="31/12/2025"), NOW) == 30000


def test_empty_date_strings_mean_unbounded():
    assert pricing.is_discount_valid(_discount(startDate="", endDate=None), NOW) is True


def test_rounding_is_half_up():
    assert pricing.final_price(50, _discount(5), NOW) == 48
    assert pricing.final_price(15, _discount(50), NOW) == 8
    assert pricing.final_price(45, _discount(10), NOW) == 41
    assert pricing.final_price(12345, _discount(15), NOW) == 10493


def test_percentage_is_clamped():
    assert pricing.discount_percentage(_discount(150)) == 100
    assert pricing.discount_percentage(_discount(-10)) == 0
    assert pricing.final_price(20000, _discount(150), NOW) == 0
    assert pricing.savings(20000, _discount(150), NOW) == 20000
    assert pricing.final_price(20000, _discount(-10), NOW) == 20000


def test_non_numeric_percentage_is_ignored():
    assert pricing.discount_percentage(_discount("20")) == 20
    assert pricing.discount_percentage(_discount("abc")) is None
    assert pricing.discount_percentage(_discount(True)) is None
    assert pricing.discount_percentage(_discount(float("nan"))) is None
    assert pricing.is_discount_valid(_discount("abc"), NOW) is False


def test_final_price_stays_within_base_price():
    for base_price in (0, 1, 99, 12345, 100000):
        for percentage in range(0, 101, 7):
            price = pricing.final_price(base_price, _discount(percentage), NOW)
            assert 0 <= price <= base_price


def test_default_now_comes_from_the_pricing_clock():
    discount = _discount(endDate=NOW)
    with mock.patch.object(pricing, "utcnow", return_value=NOW - timedelta(days=1)):
        assert pricing.is_discount_valid(discount) is True
    with mock.patch.object(pricing, "utcnow", return_value=NOW + timedelta(days=1)):
        assert pricing.is_discount_valid(discount) is False


def test_naive_now_is_accepted():
    assert pricing.is_discount_valid(_discount(endDate=NOW), datetime(2025, 6, 15, 12, 0)) is True


def test_non_mapping_discount_is_not_valid():
    for discount in ("oops", 10, ["percentage", 10], True):
        assert pricing.is_discount_valid(discount, NOW) is False
        assert pricing.discount_percentage(discount) is None
        assert pricing.final_price(20000, discount, NOW) == 20000
        assert pricing.savings(20000, discount, NOW) == 0
