"""Tests for pipwatch.analysis.confluence — multi-timeframe alignment scoring."""

import itertools

import pytest

from pipwatch.analysis.confluence import (
    ALL_THREE,
    DAILY_FOUR_HOUR,
    WEEKLY_DAILY,
    analyze_multi_timeframe,
    determine_entry_timeframe,
    score_alignment,
)
from pipwatch.analysis.models import TradingBias, Trend


class TestScoreAlignment:
    def test_all_bullish_scores_100(self):
        result = score_alignment(Trend.BULLISH, Trend.BULLISH, Trend.BULLISH)
        assert result.confluence_score == 100
        assert result.trading_bias == TradingBias.BUY
        assert result.aligned_pairs == {WEEKLY_DAILY, DAILY_FOUR_HOUR, ALL_THREE}

    def test_weekly_daily_only(self):
        result = score_alignment(Trend.BEARISH, Trend.BEARISH, Trend.BULLISH)
        assert result.confluence_score == 40
        assert result.trading_bias == TradingBias.SELL

    def test_daily_four_hour_only(self):
        result = score_alignment(Trend.NEUTRAL, Trend.BULLISH, Trend.BULLISH)
        assert result.confluence_score == 30
        assert result.trading_bias == TradingBias.BUY

    def test_all_neutral_no_trade(self):
        result = score_alignment(Trend.NEUTRAL, Trend.NEUTRAL, Trend.NEUTRAL)
        assert result.confluence_score == 0
        assert result.trading_bias == TradingBias.NO_TRADE

    def test_weekly_four_hour_agreement_does_not_count(self):
        result = score_alignment(Trend.BULLISH, Trend.BEARISH, Trend.BULLISH)
        assert result.confluence_score == 0
        assert result.trading_bias == TradingBias.NO_TRADE

    @pytest.mark.parametrize(
        "weekly,daily,four_hour",
        list(itertools.product(list(Trend), repeat=3)),
    )
    def test_score_bounded(self, weekly, daily, four_hour):
        result = score_alignment(weekly, daily, four_hour)
        assert 0 <= result.confluence_score <= 100
        if result.confluence_score == 0:
            assert result.trading_bias == TradingBias.NO_TRADE

    def test_to_dict(self):
        data = score_alignment(Trend.BULLISH, Trend.BULLISH, Trend.NEUTRAL).to_dict()
        assert data["weekly"] == "bullish"
        assert data["four_hour"] == "neutral"
        assert data["trading_bias"] == "BUY"
        assert data["aligned"] == [WEEKLY_DAILY]


class TestAnalyzeMultiTimeframe:
    def test_short_histories_are_neutral(self):
        result = analyze_multi_timeframe([], [], [])
        assert result.confluence_score == 0
        assert result.trading_bias == TradingBias.NO_TRADE


class TestEntryTimeframe:
    def test_weekly_daily_uses_four_hour(self):
        analysis = score_alignment(Trend.BULLISH, Trend.BULLISH, Trend.NEUTRAL)
        assert determine_entry_timeframe(analysis, 50) == "4H"

    def test_daily_four_hour_with_deep_history(self):
        analysis = score_alignment(Trend.NEUTRAL, Trend.BULLISH, Trend.BULLISH)
        assert determine_entry_timeframe(analysis, 150) == "4H"

    def test_daily_four_hour_with_shallow_history(self):
        analysis = score_alignment(Trend.NEUTRAL, Trend.BULLISH, Trend.BULLISH)
        assert determine_entry_timeframe(analysis, 100) == "1H"

    def test_nothing_aligned(self):
        analysis = score_alignment(Trend.NEUTRAL, Trend.NEUTRAL, Trend.NEUTRAL)
        assert determine_entry_timeframe(analysis, 200) is None
