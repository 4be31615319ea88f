"""Strategy protocol and the shared analysis context.

Defines the interface that all strategies must implement and the
confidence bonuses they share.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

from pipwatch.analysis.indicators import IndicatorSnapshot
from pipwatch.analysis.models import (
    AOIZone,
    Direction,
    MultiTimeframeAnalysis,
    TimeframeTrend,
    ZoneOverlap,
    ZoneSet,
)
from pipwatch.patterns.candlesticks import CandlestickPattern, has_confirming_pattern
from pipwatch.patterns.chart import ChartPattern
from pipwatch.patterns.head_and_shoulders import HeadAndShouldersPattern
from pipwatch.strategy.models import GeneratedSignal

EMA_ALIGNMENT_BONUS = 5
CANDLESTICK_BONUS = 5
ZONE_OVERLAP_BONUS = 10


@dataclass(frozen=True)
class SignalContext:
    """Everything the analysis layer knows about one symbol right now.

    Built once per generation pass so strategies don't need to know which
    indicator or detector produced each input.
    """

    symbol: str
    current_price: float
    analysis: MultiTimeframeAnalysis
    daily: TimeframeTrend
    four_hour: TimeframeTrend
    zones: ZoneSet
    overlap: ZoneOverlap
    indicators: IndicatorSnapshot
    entry_timeframe: Optional[str] = None
    active_zone: Optional[AOIZone] = None
    candlestick_patterns: tuple[CandlestickPattern, ...] = field(default_factory=tuple)
    chart_patterns: tuple[ChartPattern, ...] = field(default_factory=tuple)
    head_and_shoulders: Optional[HeadAndShouldersPattern] = None

    @property
    def at_zone(self) -> bool:
        return self.active_zone is not None


@runtime_checkable
class StrategyProtocol(Protocol):
    """Interface that all signal strategies must satisfy."""

    name: str

    def is_eligible(self, ctx: SignalContext) -> bool:
        """Cheap precondition check before any levels are computed."""
        ...

    def build(self, ctx: SignalContext) -> Optional[GeneratedSignal]:
        """Construct a signal or return None when no valid setup exists."""
        ...


def ema_alignment_bonus(ctx: SignalContext, direction: Direction) -> int:
    """+5 when price sits on the trend side of EMA(50)."""
    ema50 = ctx.indicators.ema50
    if ema50 <= 0:
        return 0
    if direction == Direction.BUY and ctx.current_price > ema50:
        return EMA_ALIGNMENT_BONUS
    if direction == Direction.SELL and ctx.current_price < ema50:
        return EMA_ALIGNMENT_BONUS
    return 0


def candlestick_bonus(ctx: SignalContext, direction: Direction) -> int:
    """+5 for a same-direction candlestick pattern of confidence ≥ 70."""
    bias = "bullish" if direction == Direction.BUY else "bearish"
    if has_confirming_pattern(ctx.candlestick_patterns, bias):
        return CANDLESTICK_BONUS
    return 0


def zone_overlap_bonus(ctx: SignalContext) -> int:
    """+10 when any weekly and daily zones coincide."""
    return ZONE_OVERLAP_BONUS if ctx.overlap.pair_count > 0 else 0


def structure_snapshot(ctx: SignalContext) -> dict:
    """JSON-ready summary of the 4H structure behind a signal."""
    structure = ctx.four_hour.structure
    return {
        "trend": structure.trend.value,
        "current_high": structure.current_high,
        "current_low": structure.current_low,
        "points": [
            {"kind": p.kind.value, "price": p.price, "time": p.timestamp}
            for p in structure.points[-8:]
        ],
    }


def confluence_snapshot(ctx: SignalContext) -> dict:
    """JSON-ready summary of the confluence and indicator state."""
    snapshot = ctx.analysis.to_dict()
    snapshot.update(
        {
            "zone_overlap_bonus": ctx.overlap.bonus_score,
            "active_zone": (
                {
                    "kind": ctx.active_zone.kind.value,
                    "price_level": ctx.active_zone.price_level,
                    "strength": ctx.active_zone.strength,
                }
                if ctx.active_zone
                else None
            ),
            "rsi": round(ctx.indicators.rsi, 2),
            "atr": ctx.indicators.atr,
            "ema50": ctx.indicators.ema50,
            "volatility": ctx.indicators.volatility,
            "regime": ctx.indicators.regime.regime,
            "candlesticks": [p.name for p in ctx.candlestick_patterns],
            "chart_patterns": [p.name for p in ctx.chart_patterns],
        }
    )
    return snapshot
