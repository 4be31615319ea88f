"""Tests for pipwatch.pricing.pips — pip sizes, distances and performance."""

import pytest

from pipwatch.analysis.models import Direction
from pipwatch.pricing.pips import (
    is_jpy_pair,
    normalize_symbol,
    percentage_change,
    pip_multiplier,
    pip_value,
    pips_between,
    price_offset,
    signal_performance,
    signed_pips,
    to_instrument,
)


class TestSymbols:
    def test_normalize_symbol_strips_separators(self):
        assert normalize_symbol("eur_jpy") == "EURJPY"
        assert normalize_symbol("EUR/JPY") == "EURJPY"
        assert normalize_symbol("EURJPY") == "EURJPY"

    def test_to_instrument(self):
        assert to_instrument("EURUSD") == "EUR_USD"
        assert to_instrument("gbp/jpy") == "GBP_JPY"

    def test_jpy_detection(self):
        assert is_jpy_pair("USDJPY")
        assert is_jpy_pair("EUR_JPY")
        assert not is_jpy_pair("EURUSD")


class TestPipSize:
    def test_pip_value(self):
        assert pip_value("USDJPY") == 0.01
        assert pip_value("EURUSD") == 0.0001

    def test_pip_multiplier(self):
        assert pip_multiplier("EURJPY") == 100
        assert pip_multiplier("GBPUSD") == 10000


class TestPipsBetween:
    def test_jpy_pair_distance(self):
        """165.00 → 165.50 on EURJPY is 50 pips."""
        assert pips_between(165.00, 165.50, "EURJPY") == 50

    def test_standard_pair_distance(self):
        assert pips_between(1.1000, 1.1050, "EURUSD") == 50

    def test_distance_is_unsigned(self):
        assert pips_between(1.1050, 1.1000, "EURUSD") == 50

    def test_zero_distance(self):
        assert pips_between(1.2345, 1.2345, "EURUSD") == 0


class TestSignedPips:
    def test_buy_profit_positive(self):
        assert signed_pips(1.1000, 1.1050, "BUY", "EURUSD") == 50

    def test_buy_loss_negative(self):
        assert signed_pips(1.1000, 1.0950, "BUY", "EURUSD") == -50

    def test_sell_profit_positive(self):
        assert signed_pips(1.1000, 1.0950, "SELL", "EURUSD") == 50

    def test_accepts_direction_enum(self):
        assert signed_pips(150.00, 149.50, Direction.SELL, "USDJPY") == 50

    def test_lowercase_direction(self):
        assert signed_pips(1.1000, 1.1020, "buy", "EURUSD") == 20

    def test_invalid_direction_raises(self):
        with pytest.raises(ValueError, match="direction"):
            signed_pips(1.1, 1.2, "HOLD", "EURUSD")


class TestOffsetsAndPerformance:
    def test_price_offset_down(self):
        assert price_offset(1.1000, -10, "EURUSD") == pytest.approx(1.0990)

    def test_price_offset_jpy(self):
        assert price_offset(150.00, 25, "USDJPY") == pytest.approx(150.25)

    def test_percentage_change_sell(self):
        assert percentage_change(100.0, 99.0, "SELL") == pytest.approx(1.0)

    def test_percentage_change_zero_entry(self):
        assert percentage_change(0.0, 1.0, "BUY") == 0.0

    def test_performance_in_profit(self):
        perf = signal_performance(1.1000, 1.1030, "BUY", "EURUSD")
        assert perf.pips == 30
        assert perf.is_profit is True
        assert perf.price_delta == pytest.approx(0.003)

    def test_performance_missing_price(self):
        perf = signal_performance(1.1000, None, "BUY", "EURUSD")
        assert perf.pips == 0
        assert perf.is_profit is False
