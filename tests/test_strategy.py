"""Tests for pipwatch.strategy — strategies, registry, validity and the generator."""

import dataclasses
from datetime import datetime, timezone

import pytest

from pipwatch.analysis.confluence import score_alignment
from pipwatch.analysis.indicators import calculate_indicator_snapshot
from pipwatch.analysis.models import (
    AOIZone,
    CandleData,
    Direction,
    MarketStructure,
    StructureKind,
    StructurePoint,
    TimeframeTrend,
    Trend,
    ZoneKind,
    ZoneOverlap,
    ZoneSet,
)
from pipwatch.analysis.zones import find_zone_overlaps
from pipwatch.patterns.candlesticks import CandlestickPattern
from pipwatch.patterns.head_and_shoulders import HeadAndShouldersPattern, PatternPoint
from pipwatch.strategy.base import SignalContext
from pipwatch.strategy.generator import SignalGenerator, is_valid_signal
from pipwatch.strategy.head_and_shoulders import HeadAndShouldersStrategy
from pipwatch.strategy.models import GeneratedSignal, StrategyTag, clamp_confidence
from pipwatch.strategy.registry import default_strategies, get_strategy
from pipwatch.strategy.trend_continuation import TrendContinuationStrategy


# ── Fixtures ─────────────────────────────────────────────────────────────


def _point(kind: StructureKind, price: float, index: int) -> StructurePoint:
    return StructurePoint(kind=kind, price=price, timestamp=f"t{index}", sequence_index=index)


def _zone(kind: ZoneKind, level: float, strength: int = 3) -> AOIZone:
    return AOIZone(
        kind=kind,
        price_level=level,
        width_pips=20.0,
        strength=strength,
        touch_count=3,
        first_seen="t0",
        last_tested="t9",
        low=level - 0.0010,
        high=level + 0.0010,
    )


def _flat_candles(n: int = 60, price: float = 1.1000) -> list[CandleData]:
    return [
        CandleData(f"t{i}", price, price + 0.0010, price - 0.0010, price)
        for i in range(n)
    ]


def _indicators(ema50: float):
    return dataclasses.replace(calculate_indicator_snapshot(_flat_candles()), ema50=ema50)


UP_STRUCTURE = MarketStructure(
    trend=Trend.BULLISH,
    points=(
        _point(StructureKind.LL, 1.0900, 2),
        _point(StructureKind.HH, 1.1100, 6),
        _point(StructureKind.HL, 1.0970, 10),
        _point(StructureKind.HH, 1.1200, 14),
        _point(StructureKind.HL, 1.0980, 18),
        _point(StructureKind.HH, 1.1300, 22),
    ),
    current_high=1.1300,
    current_low=1.0900,
)

SUPPORT = _zone(ZoneKind.SUPPORT, 1.1000)


def _make_context(**overrides) -> SignalContext:
    """Bullish W+D context sitting on a support zone, with no overlap."""
    four_hour = TimeframeTrend(trend=Trend.BULLISH, structure=UP_STRUCTURE, confidence=80)
    defaults = dict(
        symbol="EURUSD",
        current_price=1.1000,
        analysis=score_alignment(Trend.BULLISH, Trend.BULLISH, Trend.NEUTRAL),
        daily=four_hour,
        four_hour=four_hour,
        zones=ZoneSet(support=(SUPPORT,)),
        overlap=ZoneOverlap(),
        indicators=_indicators(ema50=1.0900),
        entry_timeframe="4H",
        active_zone=SUPPORT,
    )
    defaults.update(overrides)
    return SignalContext(**defaults)


def _signal(**overrides) -> GeneratedSignal:
    defaults = dict(
        symbol="EURUSD",
        direction=Direction.BUY,
        entry_price=1.1000,
        stop_loss=1.0980,
        take_profits=(1.1040, 1.1060),
        confidence=70,
        strategy_tag=StrategyTag.TREND_CONTINUATION,
        entry_timeframe="4H",
    )
    defaults.update(overrides)
    return GeneratedSignal(**defaults)


def _sell_pattern(confirmed: bool = True) -> HeadAndShouldersPattern:
    return HeadAndShouldersPattern(
        kind="bearish_hs",
        left_shoulder=PatternPoint(1.2100, 10),
        head=PatternPoint(1.2200, 20),
        right_shoulder=PatternPoint(1.2050, 30),
        neckline=1.2000,
        target_price=1.1800,
        is_confirmed=confirmed,
        is_retest_setup=True,
    )


class _FixedStrategy:
    """Strategy stub returning a canned signal."""

    def __init__(self, signal, eligible: bool = True, name: str = "fixed") -> None:
        self.name = name
        self._signal = signal
        self._eligible = eligible
        self.built = 0

    def is_eligible(self, ctx) -> bool:
        return self._eligible

    def build(self, ctx):
        self.built += 1
        return self._signal


# ── Models ───────────────────────────────────────────────────────────────


class TestModels:
    def test_clamp_confidence(self):
        assert clamp_confidence(120) == 95
        assert clamp_confidence(-5) == 0
        assert clamp_confidence(72.6) == 73

    def test_at_zone(self):
        assert _make_context().at_zone is True
        assert _make_context(active_zone=None).at_zone is False


# ── Trend continuation ───────────────────────────────────────────────────


class TestTrendContinuation:
    def test_eligible_at_zone_with_bias(self):
        assert TrendContinuationStrategy().is_eligible(_make_context())

    def test_not_eligible_away_from_zone(self):
        assert not TrendContinuationStrategy().is_eligible(_make_context(active_zone=None))

    def test_not_eligible_below_min_score(self):
        ctx = _make_context(analysis=score_alignment(Trend.NEUTRAL, Trend.BULLISH, Trend.BULLISH))
        assert ctx.analysis.confluence_score == 30
        assert not TrendContinuationStrategy().is_eligible(ctx)

    def test_not_eligible_without_bias(self):
        ctx = _make_context(analysis=score_alignment(Trend.NEUTRAL, Trend.NEUTRAL, Trend.NEUTRAL))
        assert not TrendContinuationStrategy().is_eligible(ctx)

    def test_buy_signal_levels(self):
        signal = TrendContinuationStrategy().build(_make_context())
        assert signal is not None
        assert signal.direction == Direction.BUY
        assert signal.stop_loss == pytest.approx(1.0970)
        assert signal.take_profits == pytest.approx((1.1100, 1.1200, 1.1300))
        assert signal.strategy_tag == StrategyTag.TREND_CONTINUATION
        assert is_valid_signal(signal)

    def test_confidence_includes_ema_bonus(self):
        # 40 (W+D) + 5 (price above EMA50)
        assert TrendContinuationStrategy().build(_make_context()).confidence == 45

    def test_zone_overlap_adds_ten(self):
        """Weekly and daily support 8 pips apart earn the +10 overlap bonus."""
        weekly = ZoneSet(support=(_zone(ZoneKind.SUPPORT, 1.1000),))
        daily = ZoneSet(support=(_zone(ZoneKind.SUPPORT, 1.1008),))
        overlap = find_zone_overlaps(weekly, daily, "EURUSD")
        assert overlap.pair_count == 1

        base = TrendContinuationStrategy().build(_make_context())
        boosted = TrendContinuationStrategy().build(_make_context(overlap=overlap))
        assert boosted.confidence - base.confidence == 10

    def test_candlestick_bonus(self):
        hammer = CandlestickPattern("Hammer", "bullish", 75, "high")
        signal = TrendContinuationStrategy().build(_make_context(candlestick_patterns=(hammer,)))
        assert signal.confidence == 50

    def test_confidence_clamped(self):
        hammer = CandlestickPattern("Hammer", "bullish", 75, "high")
        ctx = _make_context(
            analysis=score_alignment(Trend.BULLISH, Trend.BULLISH, Trend.BULLISH),
            overlap=ZoneOverlap(support=(SUPPORT,), bonus_score=10),
            candlestick_patterns=(hammer,),
        )
        assert TrendContinuationStrategy().build(ctx).confidence == 95

    def test_no_protective_swing(self):
        structure = MarketStructure(
            trend=Trend.BULLISH,
            points=(_point(StructureKind.HH, 1.1100, 6),),
        )
        four_hour = TimeframeTrend(trend=Trend.BULLISH, structure=structure, confidence=62)
        assert TrendContinuationStrategy().build(_make_context(four_hour=four_hour)) is None

    def test_snapshots_attached(self):
        signal = TrendContinuationStrategy().build(_make_context())
        assert signal.confluence_snapshot["confluence_score"] == 40
        assert signal.confluence_snapshot["active_zone"]["kind"] == "support"
        assert signal.structure_snapshot["trend"] == "bullish"


# ── Head and shoulders ───────────────────────────────────────────────────


class TestHeadAndShouldersStrategy:
    def _ctx(self, **overrides) -> SignalContext:
        defaults = dict(
            current_price=1.1990,
            head_and_shoulders=_sell_pattern(),
            indicators=_indicators(ema50=1.2100),
            active_zone=None,
            analysis=score_alignment(Trend.NEUTRAL, Trend.NEUTRAL, Trend.NEUTRAL),
        )
        defaults.update(overrides)
        return _make_context(**defaults)

    def test_requires_confirmed_pattern(self):
        strategy = HeadAndShouldersStrategy()
        assert strategy.is_eligible(self._ctx())
        assert not strategy.is_eligible(self._ctx(head_and_shoulders=_sell_pattern(confirmed=False)))
        assert not strategy.is_eligible(self._ctx(head_and_shoulders=None))

    def test_sell_levels(self):
        signal = HeadAndShouldersStrategy().build(self._ctx())
        assert signal.direction == Direction.SELL
        assert signal.stop_loss == pytest.approx(1.2060)
        assert signal.take_profits == (1.1800,)
        assert signal.confidence == 75
        assert signal.strategy_tag == StrategyTag.HEAD_AND_SHOULDERS_REVERSAL
        assert signal.pattern["kind"] == "bearish_hs"
        assert is_valid_signal(signal)

    def test_zone_overlay_becomes_confluence_reversal(self):
        resistance = _zone(ZoneKind.RESISTANCE, 1.1990)
        signal = HeadAndShouldersStrategy().build(self._ctx(active_zone=resistance))
        assert signal.strategy_tag == StrategyTag.CONFLUENCE_REVERSAL
        assert signal.confidence == 85

    def test_insufficient_reward(self):
        # Entry far below the neckline leaves too little room to the target.
        assert HeadAndShouldersStrategy().build(self._ctx(current_price=1.1850)) is None


# ── Registry ─────────────────────────────────────────────────────────────


class TestRegistry:
    def test_priority_order(self):
        names = [s.name for s in default_strategies()]
        assert names == ["trend_continuation", "head_and_shoulders_reversal"]

    def test_get_strategy(self):
        assert isinstance(get_strategy("trend_continuation"), TrendContinuationStrategy)

    def test_unknown_strategy(self):
        with pytest.raises(KeyError, match="Unknown strategy"):
            get_strategy("martingale")


# ── Signal validity ──────────────────────────────────────────────────────


class TestSignalValidity:
    def test_valid_buy(self):
        assert is_valid_signal(_signal())

    def test_no_take_profits(self):
        assert not is_valid_signal(_signal(take_profits=()))

    def test_too_many_take_profits(self):
        tps = tuple(1.1040 + i * 0.0010 for i in range(6))
        assert not is_valid_signal(_signal(take_profits=tps))

    def test_target_on_wrong_side(self):
        assert not is_valid_signal(_signal(take_profits=(1.0990, 1.1060)))

    def test_stop_on_wrong_side(self):
        assert not is_valid_signal(_signal(stop_loss=1.1010))

    def test_needs_two_to_one(self):
        assert not is_valid_signal(_signal(take_profits=(1.1020,)))

    def test_sell(self):
        signal = _signal(direction=Direction.SELL, stop_loss=1.1020, take_profits=(1.0960,))
        assert is_valid_signal(signal)

    def test_confidence_out_of_range(self):
        assert not is_valid_signal(_signal(confidence=96))


# ── Generator ────────────────────────────────────────────────────────────


def _zigzag(n: int, swing: float = 0.0030) -> list[CandleData]:
    wave = [0, 1, 2, 3, 4, 3, 2, 1]
    candles = []
    for i in range(n):
        close = 1.1000 + i * 0.0005 + wave[i % len(wave)] * swing
        candles.append(CandleData(f"t{i}", close, close + 0.0005, close - 0.0005, close))
    return candles


def _history(n: int = 60) -> dict[str, list[CandleData]]:
    return {"W": _zigzag(n), "D": _zigzag(n), "4H": _zigzag(n)}


LONDON = datetime(2025, 3, 10, 10, 0, tzinfo=timezone.utc)
ASIA = datetime(2025, 3, 10, 3, 0, tzinfo=timezone.utc)


class TestSignalGenerator:
    def test_short_history_returns_none(self):
        history = _history()
        history["W"] = _zigzag(10)
        generator = SignalGenerator(strategies=[_FixedStrategy(_signal())])
        assert generator.generate("EURUSD", history, 1.1000, LONDON) is None

    def test_missing_timeframe_returns_none(self):
        history = _history()
        del history["D"]
        generator = SignalGenerator(strategies=[_FixedStrategy(_signal())])
        assert generator.generate("EURUSD", history, 1.1000, LONDON) is None

    def test_no_price_returns_none(self):
        generator = SignalGenerator(strategies=[_FixedStrategy(_signal())])
        assert generator.generate("EURUSD", _history(), 0.0, LONDON) is None

    def test_timeframe_aliases(self):
        history = _history()
        aliased = {"1W": history["W"], "1D": history["D"], "H4": history["4H"]}
        ctx = SignalGenerator().build_context("EURUSD", aliased, 1.1200)
        assert ctx is not None
        assert ctx.symbol == "EURUSD"

    def test_first_eligible_strategy_wins(self):
        skipped = _FixedStrategy(_signal(confidence=90), eligible=False, name="skipped")
        winner = _FixedStrategy(_signal(confidence=70), name="winner")
        later = _FixedStrategy(_signal(confidence=80), name="later")
        generator = SignalGenerator(strategies=[skipped, winner, later])
        signal = generator.generate("EURUSD", _history(), 1.1000, LONDON)
        assert signal.confidence == 70
        assert skipped.built == 0
        assert later.built == 0

    def test_invalid_signal_skipped(self):
        bad = _FixedStrategy(_signal(take_profits=(1.0990,)), name="bad")
        good = _FixedStrategy(_signal(), name="good")
        generator = SignalGenerator(strategies=[bad, good])
        signal = generator.generate("EURUSD", _history(), 1.1000, LONDON)
        assert signal is not None
        assert signal.take_profits == (1.1040, 1.1060)

    def test_unfavorable_session_derates(self):
        generator = SignalGenerator(strategies=[_FixedStrategy(_signal(confidence=70))])
        signal = generator.generate("EURUSD", _history(), 1.1000, ASIA)
        assert signal.confidence == 60

    def test_extreme_volatility_blocks(self):
        history = _history()
        history["4H"] = [
            CandleData(c.time, c.open, c.close * 1.03, c.close * 0.97, c.close)
            for c in history["4H"]
        ]
        generator = SignalGenerator(strategies=[_FixedStrategy(_signal())])
        assert generator.generate("EURUSD", history, 1.1000, LONDON) is None

    def test_no_strategy_builds(self):
        generator = SignalGenerator(strategies=[_FixedStrategy(None)])
        assert generator.generate("EURUSD", _history(), 1.1000, LONDON) is None
