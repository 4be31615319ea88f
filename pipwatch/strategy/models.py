"""Strategy data models — typed representations for generated signals."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pipwatch.analysis.models import Direction


class StrategyTag(str, Enum):
    TREND_CONTINUATION = "trend_continuation"
    HEAD_AND_SHOULDERS_REVERSAL = "head_and_shoulders_reversal"
    CONFLUENCE_REVERSAL = "confluence_reversal"


MAX_CONFIDENCE = 95
MAX_TAKE_PROFITS = 5


@dataclass(frozen=True)
class GeneratedSignal:
    """A trade idea produced by a strategy, ready to persist.

    ``take_profits`` are ordered nearest-first and ``confidence`` is an
    integer in [0, 95].
    """

    symbol: str
    direction: Direction
    entry_price: float
    stop_loss: float
    take_profits: tuple[float, ...]
    confidence: int
    strategy_tag: StrategyTag
    entry_timeframe: str
    confluence_snapshot: dict[str, Any] = field(default_factory=dict)
    structure_snapshot: dict[str, Any] = field(default_factory=dict)
    pattern: dict[str, Any] | None = None


def clamp_confidence(value: float) -> int:
    """Round and clamp a raw score into [0, 95]."""
    return int(max(0, min(MAX_CONFIDENCE, round(value))))
