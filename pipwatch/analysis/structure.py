"""Market structure — swing detection and HH/HL/LH/LL classification.

Pure functions, no I/O.  Inputs are never mutated; every call returns a
fresh ``MarketStructure``.
"""

from typing import Sequence

from pipwatch.analysis.indicators import calculate_atr
from pipwatch.analysis.models import (
    CandleData,
    MarketStructure,
    StructureKind,
    StructurePoint,
    TimeframeTrend,
    Trend,
)

_SWING_SPAN = 2
_MIN_POINTS_FOR_TREND = 4
_UPPER_RANGE_RATIO = 0.99


def _is_swing_high(candles: Sequence[CandleData], i: int) -> bool:
    high = candles[i].high
    return all(
        high > candles[i - j].high and high > candles[i + j].high
        for j in range(1, _SWING_SPAN + 1)
    )


def _is_swing_low(candles: Sequence[CandleData], i: int) -> bool:
    low = candles[i].low
    return all(
        low < candles[i - j].low and low < candles[i + j].low
        for j in range(1, _SWING_SPAN + 1)
    )


def identify_structure_points(
    candles: Sequence[CandleData],
    atr: float,
) -> list[StructurePoint]:
    """Find swing highs and lows that are at least half an ATR apart.

    A swing high at ``i`` has a high strictly above the highs of the two
    candles on each side; swing lows mirror that.  Raw swing highs are
    tagged ``HH`` and swing lows ``LL`` until classified.

    Args:
        candles: Candle history, oldest-first.
        atr: Average True Range of the same history.

    Returns:
        Points ordered by ``sequence_index``.
    """
    min_distance = atr * 0.5
    points: list[StructurePoint] = []

    for i in range(_SWING_SPAN, len(candles) - _SWING_SPAN):
        candle = candles[i]
        if _is_swing_high(candles, i):
            if not points or abs(candle.high - points[-1].price) >= min_distance:
                points.append(
                    StructurePoint(StructureKind.HH, candle.high, candle.time, i)
                )
        if _is_swing_low(candles, i):
            if not points or abs(candle.low - points[-1].price) >= min_distance:
                points.append(
                    StructurePoint(StructureKind.LL, candle.low, candle.time, i)
                )
    return points


def _trend_from_points(points: Sequence[StructurePoint]) -> Trend:
    recent = points[-_MIN_POINTS_FOR_TREND:]
    bullish = sum(1 for p in recent if p.kind in (StructureKind.HH, StructureKind.HL))
    bearish = sum(1 for p in recent if p.kind in (StructureKind.LL, StructureKind.LH))
    if bullish >= 3:
        return Trend.BULLISH
    if bearish >= 3:
        return Trend.BEARISH
    return Trend.NEUTRAL


def classify_structure(
    points: Sequence[StructurePoint],
    current_price: float,
) -> MarketStructure:
    """Label each point relative to the extremes of the points before it.

    Rules:
        - Points above 99 % of *current_price* are in the upper range:
          ``HH`` when above every prior point, otherwise ``LH``.
        - Other points are ``HL`` when above the lowest prior point,
          otherwise ``LL``.
        - The first point keeps its raw swing label.
        - Trend is bullish when at least 3 of the last 4 points are
          HH/HL, bearish when at least 3 are LL/LH, else neutral.
        - Fewer than 4 points is always neutral.
    """
    if len(points) < _MIN_POINTS_FOR_TREND:
        return MarketStructure(trend=Trend.NEUTRAL, points=tuple(points))

    classified: list[StructurePoint] = [points[0]]
    running_high = points[0].price
    running_low = points[0].price
    threshold = current_price * _UPPER_RANGE_RATIO

    for point in points[1:]:
        if point.price > threshold:
            kind = StructureKind.HH if point.price > running_high else StructureKind.LH
        else:
            kind = StructureKind.HL if point.price > running_low else StructureKind.LL
        classified.append(
            StructurePoint(kind, point.price, point.timestamp, point.sequence_index)
        )
        running_high = max(running_high, point.price)
        running_low = min(running_low, point.price)

    highs = [p.price for p in classified if p.kind.is_high]
    lows = [p.price for p in classified if p.kind.is_low]

    return MarketStructure(
        trend=_trend_from_points(classified),
        points=tuple(classified),
        current_high=max(highs) if highs else 0.0,
        current_low=min(lows) if lows else 0.0,
    )


def analyze_structure(candles: Sequence[CandleData]) -> MarketStructure:
    """ATR, swing points and classification for one candle series.

    Series too short to form a swing produce a neutral structure.
    """
    if len(candles) < 2 * _SWING_SPAN + 1:
        return MarketStructure(trend=Trend.NEUTRAL)

    atr = calculate_atr(candles, 14)
    points = identify_structure_points(candles, atr)
    return classify_structure(points, candles[-1].close)


def analyze_timeframe(
    candles: Sequence[CandleData],
    min_candles: int = 50,
) -> TimeframeTrend:
    """Structure trend of one timeframe with a point-count confidence.

    Confidence is ``min(95, 60 + 2 × points)``; fewer than *min_candles*
    candles yields a neutral trend with confidence 0.
    """
    if len(candles) < min_candles:
        return TimeframeTrend(
            trend=Trend.NEUTRAL,
            structure=MarketStructure(trend=Trend.NEUTRAL),
            confidence=0,
        )

    structure = analyze_structure(candles)
    confidence = min(95, 60 + 2 * len(structure.points))
    return TimeframeTrend(trend=structure.trend, structure=structure, confidence=confidence)
