"""Chart pattern detection — double tops/bottoms, triangles and key levels."""

from dataclasses import dataclass
from typing import Literal, Sequence

from pipwatch.analysis.models import CandleData

_DOUBLE_WINDOW = 20
_TRIANGLE_WINDOW = 10
_LEVEL_TOLERANCE = 0.002
_NEAR_LEVEL_RATIO = 0.01


@dataclass(frozen=True)
class ChartPattern:
    """A multi-bar price formation with an optional projected target."""

    name: str
    bias: Literal["bullish", "bearish", "neutral"]
    confidence: int
    reliability: Literal["high", "medium", "low"]
    description: str = ""
    target: float | None = None


def _double_bottom(lows: list[float], current_price: float) -> ChartPattern | None:
    if len(lows) < _DOUBLE_WINDOW:
        return None
    recent = lows[-_DOUBLE_WINDOW:]
    floor = min(recent)
    touches = [i for i, low in enumerate(recent) if abs(low - floor) < floor * _LEVEL_TOLERANCE]
    if len(touches) >= 2 and touches[-1] - touches[0] > 5:
        return ChartPattern(
            name="Double Bottom",
            bias="bullish",
            confidence=75 if current_price > floor * 1.01 else 60,
            reliability="high",
            description=f"Double bottom at {floor:.5f}",
            target=floor * 1.02,
        )
    return None


def _double_top(highs: list[float], current_price: float) -> ChartPattern | None:
    if len(highs) < _DOUBLE_WINDOW:
        return None
    recent = highs[-_DOUBLE_WINDOW:]
    ceiling = max(recent)
    touches = [i for i, high in enumerate(recent) if abs(high - ceiling) < ceiling * _LEVEL_TOLERANCE]
    if len(touches) >= 2 and touches[-1] - touches[0] > 5:
        return ChartPattern(
            name="Double Top",
            bias="bearish",
            confidence=75 if current_price < ceiling * 0.99 else 60,
            reliability="high",
            description=f"Double top at {ceiling:.5f}",
            target=ceiling * 0.98,
        )
    return None


def _ascending_triangle(highs: list[float], lows: list[float]) -> ChartPattern | None:
    recent_highs = highs[-_TRIANGLE_WINDOW:]
    recent_lows = lows[-_TRIANGLE_WINDOW:]
    top = max(recent_highs)
    flat_highs = top > 0 and (top - min(recent_highs)) / top < 0.005
    half = _TRIANGLE_WINDOW // 2
    rising_lows = min(recent_lows[half:]) > min(recent_lows[:half])
    if flat_highs and rising_lows:
        return ChartPattern(
            name="Ascending Triangle",
            bias="bullish",
            confidence=65,
            reliability="medium",
            description=f"Ascending triangle under {top:.5f}",
            target=top * 1.01,
        )
    return None


def _near_key_level(
    highs: list[float],
    lows: list[float],
    current_price: float,
) -> ChartPattern | None:
    resistance = max(highs[-_DOUBLE_WINDOW:])
    support = min(lows[-_DOUBLE_WINDOW:])
    if (resistance - current_price) / current_price < _NEAR_LEVEL_RATIO:
        return ChartPattern(
            name="Near Resistance",
            bias="bearish",
            confidence=80,
            reliability="medium",
            description=f"Price near resistance at {resistance:.5f}",
        )
    if (current_price - support) / current_price < _NEAR_LEVEL_RATIO:
        return ChartPattern(
            name="Near Support",
            bias="bullish",
            confidence=80,
            reliability="medium",
            description=f"Price near support at {support:.5f}",
        )
    return None


def detect_chart_patterns(
    candles: Sequence[CandleData],
    current_price: float,
) -> list[ChartPattern]:
    """Detect chart formations over the recent window.

    Fewer than 10 candles (or a non-positive price) returns an empty list.
    """
    if len(candles) < _TRIANGLE_WINDOW or current_price <= 0:
        return []

    highs = [c.high for c in candles]
    lows = [c.low for c in candles]

    candidates = (
        _double_bottom(lows, current_price),
        _double_top(highs, current_price),
        _ascending_triangle(highs, lows),
        _near_key_level(highs, lows, current_price),
    )
    return [p for p in candidates if p is not None]
