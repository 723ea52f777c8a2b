"""
Tests for booking price calculation.

Verifies that:
- The platform fee is 12% rounded half up to whole kronor
- The customer total is base + fee and the venue payout is the base
- The agent quote prefers packages, honours minimum spend and picks the
  venue tier from the event length
"""

import pytest
from types import SimpleNamespace

from venue_booking.services.pricing import (
    base_price_for_duration,
    base_price_for_venue,
    calculate_pricing,
    format_price,
    quote_price,
)


def make_venue(**prices):
    tiers = {"price_per_hour": None, "price_half_day": None, "price_full_day": None, "price_evening": None}
    tiers.update(prices)
    return SimpleNamespace(**tiers)


class TestCalculatePricing:
    def test_full_day_price(self):
        """18 000 kr base: 2 160 kr fee, 20 160 kr total, 18 000 kr payout."""
        pricing = calculate_pricing(18000)

        assert pricing.platform_fee == 2160
        assert pricing.total_price == 20160
        assert pricing.venue_payout == 18000

    def test_fee_rounds_half_up(self):
        # 12% of 125 is 15.0, of 130 is 15.6, of 129 is 15.48
        assert calculate_pricing(125).platform_fee == 15
        assert calculate_pricing(130).platform_fee == 16
        assert calculate_pricing(129).platform_fee == 15

    def test_fee_rounds_exact_half_up(self):
        # 10% of 3125 is 312.5
        assert calculate_pricing(3125, fee_rate=0.1).platform_fee == 313
        assert calculate_pricing(3125, fee_rate=0.1).total_price == 3438

    def test_total_is_base_plus_fee(self):
        for base in (1, 99, 4500, 123457):
            pricing = calculate_pricing(base)
            assert pricing.total_price == pricing.base_price + pricing.platform_fee
            assert pricing.venue_payout == base

    def test_rejects_non_positive_base(self):
        with pytest.raises(ValueError):
            calculate_pricing(0)


class TestVenueTiers:
    def test_full_day_is_preferred(self):
        venue = make_venue(price_full_day=18000, price_half_day=9000, price_per_hour=2000)
        assert base_price_for_venue(venue) == 18000

    def test_hourly_only_assumes_eight_hours(self):
        assert base_price_for_venue(make_venue(price_per_hour=1500)) == 12000

    def test_no_prices(self):
        assert base_price_for_venue(make_venue()) == 0

    def test_duration_picks_tier(self):
        venue = make_venue(price_per_hour=2000, price_half_day=7000, price_evening=9000, price_full_day=15000)

        assert base_price_for_duration(venue, 3) == 6000
        assert base_price_for_duration(venue, 5) == 7000
        assert base_price_for_duration(venue, 6) == 9000
        assert base_price_for_duration(venue, 10) == 15000


class TestQuotePrice:
    def test_package_per_person(self):
        venue = make_venue(price_full_day=18000)
        package = SimpleNamespace(name="Middagspaket", price_per_person=450, base_price=None)

        quote = quote_price(venue, guest_count=40, duration_hours=5, package=package)

        assert quote.package_name == "Middagspaket"
        assert quote.base_price == 18000
        assert quote.total_price == 20160

    def test_minimum_spend_lifts_base(self):
        venue = make_venue(price_per_hour=1000)

        quote = quote_price(venue, guest_count=10, duration_hours=2, minimum_spend=5000)

        assert quote.base_price == 5000
        assert quote.minimum_spend_applied is True

    def test_unpriced_venue(self):
        assert quote_price(make_venue(), guest_count=10, duration_hours=4) is None


def test_format_price():
    assert format_price(20160) == "20 160 kr"
    assert format_price(950) == "950 kr"
