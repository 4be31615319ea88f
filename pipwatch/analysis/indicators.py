"""Technical indicators — ATR, EMA/SMA, RSI, MACD, Bollinger, momentum, pivots,
Fibonacci, volatility and regime. Pure functions, no I/O.

Every function degrades to a neutral default when the window is shorter than
its lookback instead of raising; short history is normal at start-up and on
freshly listed symbols.
"""

import math
from dataclasses import dataclass
from typing import Literal, Sequence

import numpy as np

from pipwatch.analysis.models import CandleData

VolatilityProfile = Literal["low", "normal", "high", "extreme"]

FIB_RETRACEMENTS = (0.236, 0.382, 0.5, 0.618, 0.786)
FIB_EXTENSIONS = (1.272, 1.414, 1.618, 2.0, 2.618)


@dataclass(frozen=True)
class MACDResult:
    line: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float
    position: Literal["above", "below", "within"]
    squeeze: bool
    bandwidth: float


@dataclass(frozen=True)
class PivotPoints:
    pivot: float
    support1: float
    support2: float
    support3: float
    resistance1: float
    resistance2: float
    resistance3: float


@dataclass(frozen=True)
class FibonacciLevels:
    retracements: tuple[tuple[float, float], ...]  # (ratio, price)
    extensions: tuple[tuple[float, float], ...]


@dataclass(frozen=True)
class MarketRegime:
    regime: Literal["trending", "ranging", "volatile"]
    direction: Literal["bullish", "bearish", "neutral"]
    strength: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    """All indicators for the latest bar of a candle window."""

    rsi: float
    macd: MACDResult
    bollinger: BollingerBands
    atr: float
    ema20: float
    ema50: float
    ema200: float
    stochastic: float
    williams_r: float
    roc: float
    pivots: PivotPoints
    fibonacci: FibonacciLevels
    volatility: VolatilityProfile
    regime: MarketRegime


def closes_of(candles: Sequence[CandleData]) -> list[float]:
    return [c.close for c in candles]


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(values: Sequence[float], period: int) -> float:
    """Simple moving average of the last *period* values.

    Returns the last value when fewer than *period* values exist, and
    ``0.0`` for an empty window.
    """
    if not values:
        return 0.0
    if len(values) < period:
        return float(values[-1])
    window = values[-period:]
    return sum(window) / period


def calculate_ema_series(values: Sequence[float], period: int) -> list[float]:
    """Calculate an Exponential Moving Average series.

    Uses the standard EMA formula:
        ``EMA_today = value × k + EMA_yesterday × (1 - k)``
    where ``k = 2 / (period + 1)``.

    The first EMA value is seeded with the SMA of the first *period* values.
    Returns a list the same length as *values*; entries before the seed
    are ``float('nan')``.  Shorter input returns all-``nan``.
    """
    ema: list[float] = [float("nan")] * len(values)
    if len(values) < period or period <= 0:
        return ema

    k = 2.0 / (period + 1)
    ema[period - 1] = sum(values[:period]) / period
    for i in range(period, len(values)):
        ema[i] = values[i] * k + ema[i - 1] * (1 - k)
    return ema


def calculate_ema(values: Sequence[float], period: int) -> float:
    """Latest EMA value; falls back to the last value on short input."""
    if not values:
        return 0.0
    if len(values) < period:
        return float(values[-1])
    return calculate_ema_series(values, period)[-1]


# ── RSI ──────────────────────────────────────────────────────────────────


def calculate_rsi(closes: Sequence[float], period: int = 14) -> float:
    """Calculate Wilder's Relative Strength Index for the latest close.

    Algorithm (Wilder-smoothed):
        1. delta = close[i] - close[i-1]
        2. Seed average gain/loss = SMA of the first *period* deltas.
        3. Subsequent: avg = (prev_avg × (period-1) + current) / period
        4. RSI = 100 - 100 / (1 + avg_gain / avg_loss)

    Returns ``50.0`` (neutral) when fewer than ``period + 1`` closes exist
    and ``100.0`` when there were no losses at all.
    """
    if len(closes) < period + 1:
        return 50.0

    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    gains = [max(d, 0.0) for d in deltas]
    losses = [abs(min(d, 0.0)) for d in deltas]

    avg_gain = sum(gains[:period]) / period
    avg_loss = sum(losses[:period]) / period

    for i in range(period, len(deltas)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period

    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


# ── MACD ─────────────────────────────────────────────────────────────────


def calculate_macd(
    closes: Sequence[float],
    fast: int = 12,
    slow: int = 26,
    signal_period: int = 9,
) -> MACDResult:
    """MACD line, signal and histogram for the latest close.

    The line is ``EMA(fast) - EMA(slow)`` evaluated across the whole
    history; the signal is an EMA(*signal_period*) over those historical
    line values.  Fewer than *slow* closes returns zeros.
    """
    if len(closes) < slow:
        return MACDResult(line=0.0, signal=0.0, histogram=0.0)

    fast_series = calculate_ema_series(closes, fast)
    slow_series = calculate_ema_series(closes, slow)
    line_series = [
        f - s for f, s in zip(fast_series[slow - 1:], slow_series[slow - 1:])
    ]

    line = line_series[-1]
    signal = calculate_ema(line_series, signal_period)
    return MACDResult(line=line, signal=signal, histogram=line - signal)


# ── Bollinger Bands ──────────────────────────────────────────────────────


def calculate_bollinger(
    closes: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
    squeeze_threshold: float = 0.002,
) -> BollingerBands:
    """Bollinger Bands over the trailing *period* closes.

    Middle = SMA(close, *period*), Upper/Lower = middle ± *std_dev* × σ.
    ``squeeze`` is set when ``(upper - lower) / middle`` is below
    *squeeze_threshold* (0.2 % of the mean).  Short input yields a flat
    band at the mean of what is available.
    """
    if not closes:
        return BollingerBands(0.0, 0.0, 0.0, "within", False, 0.0)
    if len(closes) < period:
        avg = sum(closes) / len(closes)
        return BollingerBands(avg, avg, avg, "within", False, 0.0)

    window = np.asarray(closes[-period:], dtype=float)
    middle = float(window.mean())
    sigma = float(window.std())  # population σ
    upper = middle + std_dev * sigma
    lower = middle - std_dev * sigma

    price = closes[-1]
    position: Literal["above", "below", "within"] = "within"
    if price > upper:
        position = "above"
    elif price < lower:
        position = "below"

    bandwidth = (upper - lower) / middle if middle else 0.0
    return BollingerBands(
        upper=upper,
        middle=middle,
        lower=lower,
        position=position,
        squeeze=bandwidth < squeeze_threshold,
        bandwidth=bandwidth,
    )


# ── ATR ──────────────────────────────────────────────────────────────────


def true_ranges(candles: Sequence[CandleData]) -> list[float]:
    """TR = max(high - low, |high - prev_close|, |low - prev_close|)."""
    ranges: list[float] = []
    for i in range(1, len(candles)):
        high = candles[i].high
        low = candles[i].low
        prev_close = candles[i - 1].close
        ranges.append(max(high - low, abs(high - prev_close), abs(low - prev_close)))
    return ranges


def calculate_atr(candles: Sequence[CandleData], period: int = 14) -> float:
    """Average True Range with Wilder smoothing.

    Seeds with the mean of the first *period* true ranges, then applies
    ``ATR = (prev × (period-1) + TR) / period`` to the rest.  With fewer
    than *period* true ranges the plain mean of what exists is returned;
    fewer than two candles returns ``0.0``.
    """
    ranges = true_ranges(candles)
    if not ranges:
        return 0.0
    if len(ranges) < period:
        return sum(ranges) / len(ranges)

    atr = sum(ranges[:period]) / period
    for tr in ranges[period:]:
        atr = (atr * (period - 1) + tr) / period
    return atr


# ── Momentum ─────────────────────────────────────────────────────────────


def calculate_stochastic(candles: Sequence[CandleData], period: int = 14) -> float:
    """%K of the latest close within the *period* high/low range (50 if unknown)."""
    if len(candles) < period:
        return 50.0
    window = candles[-period:]
    highest = max(c.high for c in window)
    lowest = min(c.low for c in window)
    if highest == lowest:
        return 50.0
    return (candles[-1].close - lowest) / (highest - lowest) * 100.0


def calculate_williams_r(candles: Sequence[CandleData], period: int = 14) -> float:
    """Williams %R in [-100, 0] (-50 if unknown)."""
    if len(candles) < period:
        return -50.0
    window = candles[-period:]
    highest = max(c.high for c in window)
    lowest = min(c.low for c in window)
    if highest == lowest:
        return -50.0
    return (highest - candles[-1].close) / (highest - lowest) * -100.0


def calculate_roc(closes: Sequence[float], period: int = 12) -> float:
    """Rate of change in percent over *period* bars (0 if unknown)."""
    if len(closes) < period + 1:
        return 0.0
    past = closes[-1 - period]
    if past == 0:
        return 0.0
    return (closes[-1] - past) / past * 100.0


# ── Levels ───────────────────────────────────────────────────────────────


def calculate_pivot_points(high: float, low: float, close: float) -> PivotPoints:
    """Classic floor-trader pivots with three support/resistance levels."""
    pivot = (high + low + close) / 3
    return PivotPoints(
        pivot=pivot,
        support1=2 * pivot - high,
        support2=pivot - (high - low),
        support3=low - 2 * (high - pivot),
        resistance1=2 * pivot - low,
        resistance2=pivot + (high - low),
        resistance3=high + 2 * (pivot - low),
    )


def calculate_fibonacci_levels(
    high: float,
    low: float,
    uptrend: bool = True,
) -> FibonacciLevels:
    """Retracement and extension prices for a swing from *low* to *high*."""
    diff = high - low
    if uptrend:
        retracements = tuple((r, high - diff * r) for r in FIB_RETRACEMENTS)
        extensions = tuple((e, high + diff * (e - 1)) for e in FIB_EXTENSIONS)
    else:
        retracements = tuple((r, low + diff * r) for r in FIB_RETRACEMENTS)
        extensions = tuple((e, low - diff * (e - 1)) for e in FIB_EXTENSIONS)
    return FibonacciLevels(retracements=retracements, extensions=extensions)


# ── Volatility / regime ──────────────────────────────────────────────────


def classify_volatility(atr: float, price: float) -> VolatilityProfile:
    """Bucket ATR as a fraction of price: <0.5 % low, <1.5 % normal,
    <2.5 % high, otherwise extreme."""
    if price <= 0:
        return "normal"
    ratio = atr / price
    if ratio < 0.005:
        return "low"
    if ratio < 0.015:
        return "normal"
    if ratio < 0.025:
        return "high"
    return "extreme"


def detect_market_regime(
    closes: Sequence[float],
    atr: float,
    lookback: int = 20,
) -> MarketRegime:
    """Classify the market as trending, ranging or volatile.

    Volatile when ATR exceeds 2 % of price.  Otherwise a least-squares
    slope over the last *lookback* closes, normalised by price, above
    0.1 % per bar is trending.
    """
    if len(closes) < lookback:
        return MarketRegime(regime="ranging", direction="neutral", strength=0.0)

    price = closes[-1]
    if price <= 0:
        return MarketRegime(regime="ranging", direction="neutral", strength=0.0)

    volatility_ratio = atr / price
    if volatility_ratio > 0.02:
        return MarketRegime(regime="volatile", direction="neutral", strength=volatility_ratio)

    window = np.asarray(closes[-lookback:], dtype=float)
    slope = float(np.polyfit(np.arange(lookback), window, 1)[0])
    slope_strength = abs(slope) / price

    if slope_strength > 0.001:
        return MarketRegime(
            regime="trending",
            direction="bullish" if slope > 0 else "bearish",
            strength=slope_strength,
        )
    return MarketRegime(regime="ranging", direction="neutral", strength=slope_strength)


# ── Snapshot ─────────────────────────────────────────────────────────────


def calculate_indicator_snapshot(candles: Sequence[CandleData]) -> IndicatorSnapshot:
    """Compute every indicator for the most recent candle in *candles*."""
    closes = closes_of(candles)
    atr = calculate_atr(candles)
    price = closes[-1] if closes else 0.0

    if candles:
        last = candles[-1]
        pivots = calculate_pivot_points(last.high, last.low, last.close)
        recent = candles[-20:]
        swing_high = max(c.high for c in recent)
        swing_low = min(c.low for c in recent)
        fibonacci = calculate_fibonacci_levels(swing_high, swing_low, price > swing_low)
    else:
        pivots = calculate_pivot_points(0.0, 0.0, 0.0)
        fibonacci = calculate_fibonacci_levels(0.0, 0.0)

    return IndicatorSnapshot(
        rsi=calculate_rsi(closes),
        macd=calculate_macd(closes),
        bollinger=calculate_bollinger(closes),
        atr=atr,
        ema20=calculate_ema(closes, 20),
        ema50=calculate_ema(closes, 50),
        ema200=calculate_ema(closes, 200),
        stochastic=calculate_stochastic(candles),
        williams_r=calculate_williams_r(candles),
        roc=calculate_roc(closes),
        pivots=pivots,
        fibonacci=fibonacci,
        volatility=classify_volatility(atr, price),
        regime=detect_market_regime(closes, atr),
    )


def is_finite(value: float) -> bool:
    return not (math.isnan(value) or math.isinf(value))
