"""Tests for src/core/currency.py -- conversion and currency resolution."""

import pytest

from src.core.currency import (
    DEFAULT_EXCHANGE_RATE,
    convert_currency,
    currency_for_market,
    default_base_currency,
    resolve_original_currency,
)
from src.core.models import Holding


class TestConvertCurrency:
    def test_same_currency_unchanged(self):
        assert convert_currency(123.45, "USD", "USD", 32) == 123.45
        assert convert_currency(123.45, "TWD", "TWD", 32) == 123.45

    def test_usd_to_twd_multiplies(self):
        assert convert_currency(100, "USD", "TWD", 32) == pytest.approx(3200)

    def test_twd_to_usd_divides(self):
        assert convert_currency(650000, "TWD", "USD", 32) == pytest.approx(20312.5)

    def test_default_rate_is_32(self):
        assert DEFAULT_EXCHANGE_RATE == 32.0
        assert convert_currency(1, "USD", "TWD") == pytest.approx(32.0)

    @pytest.mark.parametrize("rate", [0.01, 1.0, 29.85, 32.0, 1000.0])
    def test_round_trip(self, rate):
        x = 1234.5678
        there = convert_currency(x, "USD", "TWD", rate)
        back = convert_currency(there, "TWD", "USD", rate)
        assert back == pytest.approx(x)

    @pytest.mark.parametrize("rate", [0, -1.0, None])
    def test_non_positive_rate_raises(self, rate):
        with pytest.raises(ValueError):
            convert_currency(100, "TWD", "USD", rate)

    def test_bad_rate_ignored_for_same_currency(self):
        assert convert_currency(100, "USD", "USD", 0) == 100

    def test_unsupported_currency_raises(self):
        with pytest.raises(ValueError, match="Unsupported currency"):
            convert_currency(100, "JPY", "USD", 32)
        with pytest.raises(ValueError, match="Unsupported currency"):
            convert_currency(100, "USD", "EUR", 32)

    def test_negative_amount_converted(self):
        assert convert_currency(-3200, "TWD", "USD", 32) == pytest.approx(-100)


class TestCurrencyResolution:
    def test_currency_for_market(self):
        assert currency_for_market("TW") == "TWD"
        assert currency_for_market("US") == "USD"
        assert currency_for_market("MIXED") == "USD"
        assert currency_for_market(None) == "USD"

    def test_holding_market_wins_over_profile(self):
        h = Holding(id="1", symbol="2330", quantity=1, cost_basis=1, market="TW")
        assert resolve_original_currency(h, "US") == "TWD"
        h_us = Holding(id="2", symbol="AAPL", quantity=1, cost_basis=1, market="US")
        assert resolve_original_currency(h_us, "TW") == "USD"

    def test_profile_market_used_without_holding_tag(self):
        h = Holding(id="1", symbol="2330", quantity=1, cost_basis=1)
        assert resolve_original_currency(h, "TW") == "TWD"
        assert resolve_original_currency(h, "US") == "USD"
        assert resolve_original_currency(h, "MIXED") == "USD"

    def test_default_base_currency(self):
        assert default_base_currency("US") == "USD"
        assert default_base_currency("TW") == "TWD"
        assert default_base_currency("TW", "USD") == "TWD"
        assert default_base_currency("MIXED") == "USD"
        assert default_base_currency("MIXED", "TWD") == "TWD"

    def test_default_base_currency_rejects_unknown(self):
        with pytest.raises(ValueError):
            default_base_currency("MIXED", "JPY")
