"""Analysis data models — typed representations of candles, structure and zones."""

from dataclasses import dataclass, field
from enum import Enum


class Trend(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"


class StructureKind(str, Enum):
    HH = "HH"
    HL = "HL"
    LH = "LH"
    LL = "LL"

    @property
    def is_high(self) -> bool:
        return self in (StructureKind.HH, StructureKind.LH)

    @property
    def is_low(self) -> bool:
        return self in (StructureKind.HL, StructureKind.LL)


class ZoneKind(str, Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"


class Direction(str, Enum):
    BUY = "BUY"
    SELL = "SELL"

    @property
    def opposite(self) -> "Direction":
        return Direction.SELL if self == Direction.BUY else Direction.BUY


class TradingBias(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    NO_TRADE = "NO_TRADE"


@dataclass(frozen=True)
class CandleData:
    """A single candlestick bar, sequences are ordered oldest-first."""

    time: str
    open: float
    high: float
    low: float
    close: float
    volume: int = 0


@dataclass(frozen=True)
class StructurePoint:
    """A classified swing point.

    ``sequence_index`` is the position of the forming candle in the analysed
    series; points are always ordered by it.
    """

    kind: StructureKind
    price: float
    timestamp: str
    sequence_index: int


@dataclass(frozen=True)
class MarketStructure:
    """Derived structure snapshot for one timeframe."""

    trend: Trend
    points: tuple[StructurePoint, ...] = ()
    current_high: float = 0.0
    current_low: float = 0.0

    def last_of(self, kind: StructureKind) -> StructurePoint | None:
        """Most recent point of *kind*, or ``None``."""
        for point in reversed(self.points):
            if point.kind == kind:
                return point
        return None


@dataclass(frozen=True)
class TimeframeTrend:
    """Structure analysis of one timeframe with a confidence estimate."""

    trend: Trend
    structure: MarketStructure
    confidence: int


@dataclass(frozen=True)
class AOIZone:
    """An Area of Interest — a clustered support or resistance band."""

    kind: ZoneKind
    price_level: float
    width_pips: float
    strength: int  # 1..5
    touch_count: int
    first_seen: str
    last_tested: str
    low: float
    high: float


@dataclass(frozen=True)
class ZoneSet:
    """Zones of one timeframe split by kind."""

    support: tuple[AOIZone, ...] = ()
    resistance: tuple[AOIZone, ...] = ()

    @property
    def all(self) -> tuple[AOIZone, ...]:
        return self.support + self.resistance

    def merged(self, other: "ZoneSet") -> "ZoneSet":
        return ZoneSet(
            support=self.support + other.support,
            resistance=self.resistance + other.resistance,
        )


@dataclass(frozen=True)
class ZoneOverlap:
    """Weekly/daily zones that coincide, with the confluence bonus they earn."""

    support: tuple[AOIZone, ...] = ()
    resistance: tuple[AOIZone, ...] = ()
    bonus_score: int = 0

    @property
    def pair_count(self) -> int:
        return len(self.support) + len(self.resistance)


@dataclass(frozen=True)
class MultiTimeframeAnalysis:
    """Trend agreement across Weekly, Daily and 4-Hour structure."""

    weekly: Trend
    daily: Trend
    four_hour: Trend
    trading_bias: TradingBias
    confluence_score: int
    aligned_pairs: frozenset[str] = field(default_factory=frozenset)

    def to_dict(self) -> dict:
        return {
            "weekly": self.weekly.value,
            "daily": self.daily.value,
            "four_hour": self.four_hour.value,
            "trading_bias": self.trading_bias.value,
            "confluence_score": self.confluence_score,
            "aligned": sorted(self.aligned_pairs),
        }
