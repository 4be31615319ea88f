"""Trend-continuation strategy — trade with aligned structure from an AOI."""

import logging
from typing import Optional

from pipwatch.analysis.models import Direction, TradingBias
from pipwatch.risk.sl_tp import calculate_stop_loss, calculate_take_profits
from pipwatch.strategy.base import (
    SignalContext,
    candlestick_bonus,
    confluence_snapshot,
    ema_alignment_bonus,
    structure_snapshot,
    zone_overlap_bonus,
)
from pipwatch.strategy.models import GeneratedSignal, StrategyTag, clamp_confidence

logger = logging.getLogger("pipwatch.strategy")

MIN_CONFLUENCE_SCORE = 40


class TrendContinuationStrategy:
    """Enter in the confluence bias when price is inside an area of interest.

    Stop: last 4H HL (BUY) or LH (SELL) with a 10-pip buffer.
    Targets: opposing zones and swing points paying at least 2R, up to 3.
    """

    name = StrategyTag.TREND_CONTINUATION.value

    def is_eligible(self, ctx: SignalContext) -> bool:
        return (
            ctx.at_zone
            and ctx.analysis.confluence_score >= MIN_CONFLUENCE_SCORE
            and ctx.analysis.trading_bias != TradingBias.NO_TRADE
        )

    def build(self, ctx: SignalContext) -> Optional[GeneratedSignal]:
        direction = Direction(ctx.analysis.trading_bias.value)
        entry = ctx.current_price
        structure = ctx.four_hour.structure

        stop = calculate_stop_loss(direction, structure, ctx.symbol)
        if stop is None:
            logger.debug("%s: no protective swing for %s", ctx.symbol, direction.value)
            return None
        if (direction == Direction.BUY and stop >= entry) or (
            direction == Direction.SELL and stop <= entry
        ):
            logger.debug("%s: stop %.5f not protective of entry %.5f", ctx.symbol, stop, entry)
            return None

        targets = calculate_take_profits(
            entry, direction, stop, ctx.zones.all, structure, ctx.symbol
        )
        if not targets:
            logger.debug("%s: no target pays 2R", ctx.symbol)
            return None

        confidence = (
            ctx.analysis.confluence_score
            + ema_alignment_bonus(ctx, direction)
            + candlestick_bonus(ctx, direction)
            + zone_overlap_bonus(ctx)
        )

        return GeneratedSignal(
            symbol=ctx.symbol,
            direction=direction,
            entry_price=entry,
            stop_loss=stop,
            take_profits=tuple(targets),
            confidence=clamp_confidence(confidence),
            strategy_tag=StrategyTag.TREND_CONTINUATION,
            entry_timeframe=ctx.entry_timeframe or "4H",
            confluence_snapshot=confluence_snapshot(ctx),
            structure_snapshot=structure_snapshot(ctx),
        )
