"""Signal generator — runs the analysis stack and dispatches strategies.

For one symbol: structure per timeframe → confluence → zones and overlaps →
patterns → ``SignalContext`` → first registered strategy that builds a
valid signal → session/volatility gates.
"""

import dataclasses
import logging
from datetime import datetime
from typing import Mapping, Optional, Sequence

from pipwatch.analysis.confluence import determine_entry_timeframe, score_alignment
from pipwatch.analysis.indicators import calculate_indicator_snapshot
from pipwatch.analysis.models import CandleData, Direction
from pipwatch.analysis.structure import analyze_timeframe
from pipwatch.analysis.zones import find_active_zone, find_zone_overlaps, identify_zones
from pipwatch.patterns.candlesticks import detect_candlestick_patterns
from pipwatch.patterns.chart import detect_chart_patterns
from pipwatch.patterns.head_and_shoulders import detect_head_and_shoulders
from pipwatch.risk.session import apply_risk_gates, classify_session
from pipwatch.risk.sl_tp import MIN_REWARD_RISK, reward_risk_ratio
from pipwatch.strategy.base import SignalContext, StrategyProtocol
from pipwatch.strategy.models import MAX_TAKE_PROFITS, GeneratedSignal
from pipwatch.strategy.registry import default_strategies

logger = logging.getLogger("pipwatch.generator")

MIN_CANDLES = 50

_TIMEFRAME_ALIASES = {"1D": "D", "H4": "4H", "H1": "1H", "1W": "W"}


def _normalise_timeframes(
    candles_by_timeframe: Mapping[str, Sequence[CandleData]],
) -> dict[str, Sequence[CandleData]]:
    normalised: dict[str, Sequence[CandleData]] = {}
    for key, candles in candles_by_timeframe.items():
        tf = key.upper()
        normalised[_TIMEFRAME_ALIASES.get(tf, tf)] = candles
    return normalised


def is_valid_signal(signal: GeneratedSignal) -> bool:
    """Check the structural guarantees every emitted signal must meet.

    - 1 to 5 take-profits, each beyond entry in the profit direction
    - stop on the protective side of entry
    - at least one target paying ≥ 2R
    - confidence an int in [0, 95]
    """
    if not 1 <= len(signal.take_profits) <= MAX_TAKE_PROFITS:
        return False
    if not 0 <= signal.confidence <= 95:
        return False

    entry, stop = signal.entry_price, signal.stop_loss
    if signal.direction == Direction.BUY:
        if not stop < entry or any(tp <= entry for tp in signal.take_profits):
            return False
    else:
        if not stop > entry or any(tp >= entry for tp in signal.take_profits):
            return False

    return any(
        reward_risk_ratio(entry, stop, tp, signal.symbol) >= MIN_REWARD_RISK
        for tp in signal.take_profits
    )


class SignalGenerator:
    """Turns candle history for one symbol into at most one signal."""

    def __init__(
        self,
        strategies: Optional[list[StrategyProtocol]] = None,
        min_candles: int = MIN_CANDLES,
    ) -> None:
        self._strategies = strategies if strategies is not None else default_strategies()
        self._min_candles = min_candles

    def build_context(
        self,
        symbol: str,
        candles_by_timeframe: Mapping[str, Sequence[CandleData]],
        current_price: float,
    ) -> Optional[SignalContext]:
        """Run the analysis stack; ``None`` when history is missing or short."""
        candles = _normalise_timeframes(candles_by_timeframe)

        for tf in ("W", "D", "4H"):
            series = candles.get(tf)
            if not series:
                logger.info("%s: no signal, %s candles missing", symbol, tf)
                return None
            if len(series) < self._min_candles:
                logger.info(
                    "%s: no signal, %s history too short (%d < %d)",
                    symbol, tf, len(series), self._min_candles,
                )
                return None

        weekly = analyze_timeframe(candles["W"], self._min_candles)
        daily = analyze_timeframe(candles["D"], self._min_candles)
        four_hour_candles = candles["4H"]
        four_hour = analyze_timeframe(four_hour_candles, self._min_candles)

        analysis = score_alignment(weekly.trend, daily.trend, four_hour.trend)

        weekly_zones = identify_zones(weekly.structure, symbol)
        daily_zones = identify_zones(daily.structure, symbol)
        overlap = find_zone_overlaps(weekly_zones, daily_zones, symbol)
        zones = weekly_zones.merged(daily_zones)

        entry_candles = candles.get("1H") or four_hour_candles

        return SignalContext(
            symbol=symbol,
            current_price=current_price,
            analysis=analysis,
            daily=daily,
            four_hour=four_hour,
            zones=zones,
            overlap=overlap,
            indicators=calculate_indicator_snapshot(four_hour_candles),
            entry_timeframe=determine_entry_timeframe(analysis, len(four_hour_candles)),
            active_zone=find_active_zone(current_price, zones.all, symbol),
            candlestick_patterns=tuple(detect_candlestick_patterns(entry_candles)),
            chart_patterns=tuple(detect_chart_patterns(four_hour_candles, current_price)),
            head_and_shoulders=detect_head_and_shoulders(
                four_hour_candles,
                four_hour.trend,
                four_hour.structure.points,
                symbol,
            ),
        )

    def select(self, ctx: SignalContext) -> Optional[GeneratedSignal]:
        """First valid signal from the registry, in priority order."""
        for strategy in self._strategies:
            if not strategy.is_eligible(ctx):
                continue
            signal = strategy.build(ctx)
            if signal is None:
                continue
            if not is_valid_signal(signal):
                logger.warning("%s: %s produced an invalid signal, skipped", ctx.symbol, strategy.name)
                continue
            return signal
        return None

    def generate(
        self,
        symbol: str,
        candles_by_timeframe: Mapping[str, Sequence[CandleData]],
        current_price: float,
        utc_now: datetime,
    ) -> Optional[GeneratedSignal]:
        """Analyse *symbol* and return a gated signal, or ``None``.

        Args:
            symbol: Compact pair name (``"EURUSD"``).
            candles_by_timeframe: Candle history keyed by ``"W"``, ``"D"``,
                ``"4H"`` and optionally ``"1H"``.
            current_price: Latest mid price; used as the entry.
            utc_now: Current UTC time, used for session gating.
        """
        if current_price <= 0:
            logger.info("%s: no signal, no live price", symbol)
            return None

        ctx = self.build_context(symbol, candles_by_timeframe, current_price)
        if ctx is None:
            return None

        signal = self.select(ctx)
        if signal is None:
            logger.debug(
                "%s: no qualifying setup (bias=%s score=%d at_zone=%s)",
                symbol,
                ctx.analysis.trading_bias.value,
                ctx.analysis.confluence_score,
                ctx.at_zone,
            )
            return None

        session = classify_session(utc_now.hour)
        gate = apply_risk_gates(signal.confidence, session, ctx.indicators.volatility)
        if not gate.allowed:
            logger.info("%s: signal blocked (%s)", symbol, ", ".join(gate.reasons))
            return None
        if gate.reasons:
            logger.info(
                "%s: confidence %d → %d (%s)",
                symbol, signal.confidence, gate.confidence, ", ".join(gate.reasons),
            )
        return dataclasses.replace(signal, confidence=gate.confidence)
