"""Feed data models — typed representations of OANDA v20 market data."""

from dataclasses import dataclass
from typing import Protocol

from pipwatch.analysis.models import CandleData

# Analysis timeframe → OANDA granularity
TIMEFRAME_GRANULARITY: dict[str, str] = {
    "W": "W",
    "D": "D",
    "1D": "D",
    "4H": "H4",
    "1H": "H1",
    "15M": "M15",
    "5M": "M5",
    "1M": "M1",
}


def granularity_for(timeframe: str) -> str:
    """Map an analysis timeframe to its OANDA granularity.

    Raises:
        ValueError: If *timeframe* is not supported.
    """
    try:
        return TIMEFRAME_GRANULARITY[timeframe.upper()]
    except KeyError:
        raise ValueError(
            f"Unsupported timeframe '{timeframe}'. "
            f"Available: {', '.join(TIMEFRAME_GRANULARITY)}"
        ) from None


@dataclass(frozen=True)
class PriceQuote:
    """Best bid/ask for one instrument."""

    instrument: str
    bid: float
    ask: float
    time: str

    @property
    def mid(self) -> float:
        return (self.bid + self.ask) / 2

    @property
    def spread(self) -> float:
        return self.ask - self.bid


class CandleFeed(Protocol):
    """Source of candle history."""

    async def fetch_candles(
        self, symbol: str, timeframe: str, count: int = 200
    ) -> list[CandleData]:
        ...
