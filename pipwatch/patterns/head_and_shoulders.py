"""Head-and-shoulders detection over classified structure points."""

from dataclasses import dataclass
from typing import Literal, Sequence

from pipwatch.analysis.models import CandleData, StructurePoint, Trend
from pipwatch.patterns.candlesticks import CandlestickPattern, has_confirming_pattern
from pipwatch.pricing.pips import pip_value

RETEST_DISTANCE_PIPS = 10


@dataclass(frozen=True)
class PatternPoint:
    price: float
    index: int


@dataclass(frozen=True)
class HeadAndShouldersPattern:
    """A completed H&S (bearish) or inverse H&S (bullish) formation.

    ``target_price`` is the neckline projected by the head-to-neckline
    height in the breakout direction.
    """

    kind: Literal["bearish_hs", "bullish_inverted_hs"]
    left_shoulder: PatternPoint
    head: PatternPoint
    right_shoulder: PatternPoint
    neckline: float
    target_price: float
    is_confirmed: bool
    is_retest_setup: bool

    @property
    def direction(self) -> Literal["BUY", "SELL"]:
        return "SELL" if self.kind == "bearish_hs" else "BUY"


def _lowest_between(candles: Sequence[CandleData], start: int, end: int) -> float:
    return min(c.low for c in candles[start:end + 1])


def _highest_between(candles: Sequence[CandleData], start: int, end: int) -> float:
    return max(c.high for c in candles[start:end + 1])


def _in_range(candles: Sequence[CandleData], *points: StructurePoint) -> bool:
    return all(0 <= p.sequence_index < len(candles) for p in points)


def detect_head_and_shoulders(
    candles: Sequence[CandleData],
    trend: Trend,
    points: Sequence[StructurePoint],
    symbol: str,
) -> HeadAndShouldersPattern | None:
    """Find the earliest H&S reversal against the prevailing *trend*.

    In a bullish trend, three consecutive HH/LH peaks where the middle one
    is highest and the right-hand reaction low undercuts the left form a
    bearish H&S.  A bearish trend mirrors this over LL/HL troughs.

    Args:
        candles: Candle history the points were taken from.
        trend: Prevailing structure trend; neutral never matches.
        points: Classified structure points, ordered by index.
        symbol: Instrument, used for the retest distance.

    Returns:
        The pattern, or ``None`` when no formation exists.
    """
    if len(points) < 3 or not candles:
        return None

    close = candles[-1].close
    retest_distance = RETEST_DISTANCE_PIPS * pip_value(symbol)

    if trend == Trend.BULLISH:
        peaks = [p for p in points if p.kind.is_high]
        for left, head, right in zip(peaks, peaks[1:], peaks[2:]):
            if not (head.price > left.price and head.price > right.price):
                continue
            if not _in_range(candles, left, head, right):
                continue
            left_low = _lowest_between(candles, left.sequence_index, head.sequence_index)
            right_low = _lowest_between(candles, head.sequence_index, right.sequence_index)
            if right_low >= left_low:
                continue
            neckline = (left_low + right_low) / 2
            return HeadAndShouldersPattern(
                kind="bearish_hs",
                left_shoulder=PatternPoint(left.price, left.sequence_index),
                head=PatternPoint(head.price, head.sequence_index),
                right_shoulder=PatternPoint(right.price, right.sequence_index),
                neckline=neckline,
                target_price=neckline - (head.price - neckline),
                is_confirmed=close < neckline,
                is_retest_setup=abs(close - neckline) <= retest_distance,
            )

    elif trend == Trend.BEARISH:
        troughs = [p for p in points if p.kind.is_low]
        for left, head, right in zip(troughs, troughs[1:], troughs[2:]):
            if not (head.price < left.price and head.price < right.price):
                continue
            if not _in_range(candles, left, head, right):
                continue
            left_high = _highest_between(candles, left.sequence_index, head.sequence_index)
            right_high = _highest_between(candles, head.sequence_index, right.sequence_index)
            if right_high <= left_high:
                continue
            neckline = (left_high + right_high) / 2
            return HeadAndShouldersPattern(
                kind="bullish_inverted_hs",
                left_shoulder=PatternPoint(left.price, left.sequence_index),
                head=PatternPoint(head.price, head.sequence_index),
                right_shoulder=PatternPoint(right.price, right.sequence_index),
                neckline=neckline,
                target_price=neckline + (neckline - head.price),
                is_confirmed=close > neckline,
                is_retest_setup=abs(close - neckline) <= retest_distance,
            )

    return None


def is_retest_valid(
    pattern: HeadAndShouldersPattern,
    candlestick_patterns: Sequence[CandlestickPattern],
) -> bool:
    """A neckline retest backed by a same-bias candlestick pattern (≥70)."""
    if not pattern.is_retest_setup:
        return False
    bias = "bearish" if pattern.kind == "bearish_hs" else "bullish"
    return has_confirming_pattern(candlestick_patterns, bias)
