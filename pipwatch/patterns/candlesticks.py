"""Candlestick pattern recognition — single, double and triple bar formations."""

from dataclasses import dataclass
from typing import Callable, Literal, Sequence

from pipwatch.analysis.models import CandleData

PatternBias = Literal["bullish", "bearish", "neutral"]

_SINGLE_LOOKBACK = 5


@dataclass(frozen=True)
class CandlestickPattern:
    """A recognised formation and how much weight it carries."""

    name: str
    bias: PatternBias
    confidence: int
    reliability: Literal["high", "medium", "low"]
    description: str = ""


def _body(c: CandleData) -> float:
    return abs(c.close - c.open)


def _range(c: CandleData) -> float:
    return c.high - c.low


def _upper_shadow(c: CandleData) -> float:
    return c.high - max(c.open, c.close)


def _lower_shadow(c: CandleData) -> float:
    return min(c.open, c.close) - c.low


def _is_bullish(c: CandleData) -> bool:
    return c.close > c.open


def _is_bearish(c: CandleData) -> bool:
    return c.close < c.open


# ── Single-bar ───────────────────────────────────────────────────────────


def _doji(c: CandleData) -> CandlestickPattern | None:
    if _body(c) / _range(c) < 0.1:
        return CandlestickPattern("Doji", "neutral", 70, "medium", "Indecision, potential reversal")
    return None


def _hammer(c: CandleData) -> CandlestickPattern | None:
    body = _body(c)
    if _lower_shadow(c) > body * 2 and _upper_shadow(c) < body * 0.5:
        return CandlestickPattern("Hammer", "bullish", 75, "high", "Bullish rejection of lows")
    return None


def _shooting_star(c: CandleData) -> CandlestickPattern | None:
    body = _body(c)
    if _upper_shadow(c) > body * 2 and _lower_shadow(c) < body * 0.5:
        return CandlestickPattern("Shooting Star", "bearish", 75, "high", "Bearish rejection of highs")
    return None


def _marubozu(c: CandleData) -> CandlestickPattern | None:
    if _body(c) / _range(c) > 0.95:
        bias: PatternBias = "bullish" if _is_bullish(c) else "bearish"
        return CandlestickPattern("Marubozu", bias, 80, "high", f"Strong {bias} momentum")
    return None


def _spinning_top(c: CandleData) -> CandlestickPattern | None:
    body = _body(c)
    if _upper_shadow(c) > body and _lower_shadow(c) > body:
        return CandlestickPattern("Spinning Top", "neutral", 60, "medium", "Indecision")
    return None


_SINGLE_BAR: tuple[Callable[[CandleData], CandlestickPattern | None], ...] = (
    _doji,
    _hammer,
    _shooting_star,
    _marubozu,
    _spinning_top,
)


# ── Multi-bar ────────────────────────────────────────────────────────────


def _engulfing(candles: Sequence[CandleData]) -> CandlestickPattern | None:
    prev, cur = candles[-2], candles[-1]
    if (
        not _is_bullish(prev)
        and _is_bullish(cur)
        and cur.open < prev.close
        and cur.close > prev.open
    ):
        return CandlestickPattern("Bullish Engulfing", "bullish", 85, "high")
    if (
        _is_bullish(prev)
        and not _is_bullish(cur)
        and cur.open > prev.close
        and cur.close < prev.open
    ):
        return CandlestickPattern("Bearish Engulfing", "bearish", 85, "high")
    return None


def _harami(candles: Sequence[CandleData]) -> CandlestickPattern | None:
    prev, cur = candles[-2], candles[-1]
    if (
        _body(cur) < _body(prev) * 0.5
        and cur.high < max(prev.open, prev.close)
        and cur.low > min(prev.open, prev.close)
    ):
        if _is_bullish(prev):
            return CandlestickPattern("Bearish Harami", "bearish", 70, "medium")
        return CandlestickPattern("Bullish Harami", "bullish", 70, "medium")
    return None


def _morning_star(candles: Sequence[CandleData]) -> CandlestickPattern | None:
    first, middle, last = candles[-3], candles[-2], candles[-1]
    if (
        _is_bearish(first)
        and _is_bullish(last)
        and _body(middle) < _body(first) * 0.3
        and middle.high < first.close
        and last.close > (first.open + first.close) / 2
    ):
        return CandlestickPattern("Morning Star", "bullish", 90, "high")
    return None


def _evening_star(candles: Sequence[CandleData]) -> CandlestickPattern | None:
    first, middle, last = candles[-3], candles[-2], candles[-1]
    if (
        _is_bullish(first)
        and _is_bearish(last)
        and _body(middle) < _body(first) * 0.3
        and middle.low > first.close
        and last.close < (first.open + first.close) / 2
    ):
        return CandlestickPattern("Evening Star", "bearish", 90, "high")
    return None


def _three_white_soldiers(candles: Sequence[CandleData]) -> CandlestickPattern | None:
    a, b, c = candles[-3:]
    if all(_is_bullish(x) for x in (a, b, c)) and a.close < b.close < c.close:
        return CandlestickPattern("Three White Soldiers", "bullish", 85, "high")
    return None


def _three_black_crows(candles: Sequence[CandleData]) -> CandlestickPattern | None:
    a, b, c = candles[-3:]
    if all(_is_bearish(x) for x in (a, b, c)) and a.close > b.close > c.close:
        return CandlestickPattern("Three Black Crows", "bearish", 85, "high")
    return None


_MULTI_BAR: tuple[Callable[[Sequence[CandleData]], CandlestickPattern | None], ...] = (
    _engulfing,
    _harami,
    _morning_star,
    _evening_star,
    _three_white_soldiers,
    _three_black_crows,
)


def detect_candlestick_patterns(candles: Sequence[CandleData]) -> list[CandlestickPattern]:
    """Scan the tail of *candles* for known formations.

    Single-bar patterns are checked on each of the last five candles
    (zero-range bars are skipped); multi-bar patterns on the last two or
    three.  Fewer than three candles returns an empty list.
    """
    if len(candles) < 3:
        return []

    found: list[CandlestickPattern] = []
    for candle in candles[-_SINGLE_LOOKBACK:]:
        if _range(candle) <= 0:
            continue
        for detector in _SINGLE_BAR:
            pattern = detector(candle)
            if pattern is not None:
                found.append(pattern)

    for multi in _MULTI_BAR:
        pattern = multi(candles)
        if pattern is not None:
            found.append(pattern)
    return found


def has_confirming_pattern(
    patterns: Sequence[CandlestickPattern],
    bias: PatternBias,
    min_confidence: int = 70,
) -> bool:
    """True when any pattern points the same way with enough confidence."""
    return any(p.bias == bias and p.confidence >= min_confidence for p in patterns)
