"""Tests for nisab service."""
import math

import pytest

from zakat_engine.constants import NISAB_GOLD_GRAMS, NISAB_SILVER_GRAMS
from zakat_engine.errors import InvalidPolicy
from zakat_engine.services.fx import RateTable
from zakat_engine.services.nisab import (
    MetalPrices,
    evaluate_both,
    evaluate_nisab,
    lower_threshold,
)


class TestMetalPrices:
    """Tests for MetalPrices validation."""

    def test_non_positive_prices_are_unavailable(self):
        """Zero and negative prices become None, not 0."""
        prices = MetalPrices(gold=0, silver=-1.0)
        assert prices.gold is None
        assert prices.silver is None

    def test_non_finite_prices_are_unavailable(self):
        """NaN and infinity become None."""
        prices = MetalPrices(gold=math.nan, silver=math.inf)
        assert prices.gold is None
        assert prices.silver is None

    def test_currency_normalized(self):
        """The price currency is lowercased."""
        assert MetalPrices(gold=90.0, currency='EUR').currency == 'eur'

    def test_from_dict(self):
        """from_dict reads prices, currency and source."""
        prices = MetalPrices.from_dict({'gold': 93.98, 'silver': 1.05, 'currency': 'USD', 'source': 'feed'})
        assert prices.gold == 93.98
        assert prices.silver == 1.05
        assert prices.currency == 'usd'
        assert prices.source == 'feed'


class TestEvaluateNisab:
    """Tests for evaluate_nisab function."""

    def test_gold_threshold_direct_price(self, metal_prices):
        """Gold nisab is 85g times the per-gram price in the same currency."""
        status = evaluate_nisab('gold', metal_prices, None, 'usd')
        assert status.grams == NISAB_GOLD_GRAMS
        assert status.threshold_value == pytest.approx(7988.30)
        assert status.is_direct_price is True
        assert status.is_available is True

    def test_silver_threshold(self, metal_prices):
        """Silver nisab is 595g times the per-gram price."""
        status = evaluate_nisab('silver', metal_prices, None, 'usd')
        assert status.grams == NISAB_SILVER_GRAMS
        assert status.threshold_value == pytest.approx(595 * 1.05)

    def test_converted_price_not_direct(self, metal_prices, rate_table):
        """A price converted from another currency is flagged as indirect."""
        status = evaluate_nisab('gold', metal_prices, rate_table, 'CAD')
        assert status.currency == 'cad'
        assert status.is_direct_price is False
        assert status.threshold_value == pytest.approx(85 * 93.98 * 1.38)

    def test_meets_nisab_with_value(self, metal_prices):
        """A value at or above the threshold meets nisab."""
        assert evaluate_nisab('gold', metal_prices, None, 'usd', value=8000).meets_nisab is True
        assert evaluate_nisab('gold', metal_prices, None, 'usd', value=7000).meets_nisab is False

    def test_meets_nisab_false_without_value(self, metal_prices):
        """Without a value meets_nisab stays False."""
        assert evaluate_nisab('gold', metal_prices, None, 'usd').meets_nisab is False

    def test_missing_rate_gives_unavailable_threshold(self, metal_prices):
        """A missing conversion never raises; threshold is 0 and never met."""
        status = evaluate_nisab('gold', metal_prices, RateTable(), 'eur', value=1_000_000)
        assert status.is_available is False
        assert status.threshold_value == 0
        assert status.meets_nisab is False
        assert status.is_direct_price is False

    def test_missing_price_gives_unavailable_threshold(self):
        """A missing metal price gives an unavailable threshold."""
        status = evaluate_nisab('silver', MetalPrices(gold=93.98), None, 'usd', value=1_000_000)
        assert status.is_available is False
        assert status.threshold_value == 0
        assert status.meets_nisab is False

    def test_no_prices_at_all(self):
        """No prices at all never meets nisab."""
        status = evaluate_nisab('gold', None, None, 'usd', value=100)
        assert status.is_available is False
        assert status.meets_nisab is False

    def test_invalid_threshold_type(self, metal_prices):
        """Only gold and silver are thresholds."""
        with pytest.raises(InvalidPolicy):
            evaluate_nisab('platinum', metal_prices, None, 'usd')

    def test_check_reuses_threshold(self, metal_prices):
        """check compares a value against the computed threshold."""
        status = evaluate_nisab('gold', metal_prices, None, 'usd')
        assert status.check(7988.31) is True
        assert status.check(7988.0) is False


class TestLowerThreshold:
    """Tests for choosing the lower of the two thresholds."""

    def test_silver_usually_lower(self, metal_prices):
        """At typical prices silver gives the lower threshold."""
        statuses = evaluate_both(metal_prices, None, 'usd')
        assert lower_threshold(statuses).threshold_type == 'silver'

    def test_skips_unavailable(self):
        """Unavailable thresholds are skipped."""
        statuses = evaluate_both(MetalPrices(gold=93.98), None, 'usd')
        assert lower_threshold(statuses).threshold_type == 'gold'

    def test_none_when_nothing_available(self):
        """None when neither threshold is available."""
        assert lower_threshold(evaluate_both(None, None, 'usd')) is None
