"""Head-and-shoulders reversal strategy, with the AOI confluence overlay."""

import logging
from typing import Optional

from pipwatch.analysis.models import Direction
from pipwatch.patterns.head_and_shoulders import is_retest_valid
from pipwatch.pricing.pips import price_offset
from pipwatch.risk.sl_tp import MIN_REWARD_RISK, STOP_BUFFER_PIPS, reward_risk_ratio
from pipwatch.strategy.base import (
    SignalContext,
    candlestick_bonus,
    confluence_snapshot,
    ema_alignment_bonus,
    structure_snapshot,
)
from pipwatch.strategy.models import GeneratedSignal, StrategyTag, clamp_confidence

logger = logging.getLogger("pipwatch.strategy")

BASE_CONFIDENCE = 70
AOI_OVERLAY_BONUS = 10


class HeadAndShouldersStrategy:
    """Trade a confirmed neckline break toward the measured-move target.

    Stop: right shoulder ± 10 pips.  Sole target: the measured move.
    A pattern that also sits inside an area of interest earns +10 and is
    tagged ``confluence_reversal``.
    """

    name = StrategyTag.HEAD_AND_SHOULDERS_REVERSAL.value

    def is_eligible(self, ctx: SignalContext) -> bool:
        pattern = ctx.head_and_shoulders
        return pattern is not None and pattern.is_confirmed

    def build(self, ctx: SignalContext) -> Optional[GeneratedSignal]:
        pattern = ctx.head_and_shoulders
        if pattern is None:
            return None

        direction = Direction(pattern.direction)
        entry = ctx.current_price
        target = round(pattern.target_price, 5)

        if direction == Direction.SELL:
            stop = round(price_offset(pattern.right_shoulder.price, STOP_BUFFER_PIPS, ctx.symbol), 5)
            sides_ok = stop > entry > target
        else:
            stop = round(price_offset(pattern.right_shoulder.price, -STOP_BUFFER_PIPS, ctx.symbol), 5)
            sides_ok = stop < entry < target

        if not sides_ok:
            logger.debug("%s: H&S levels not on the right sides of entry", ctx.symbol)
            return None
        if reward_risk_ratio(entry, stop, target, ctx.symbol) < MIN_REWARD_RISK:
            logger.debug("%s: H&S target pays less than 2R", ctx.symbol)
            return None

        confidence = (
            BASE_CONFIDENCE
            + ema_alignment_bonus(ctx, direction)
            + candlestick_bonus(ctx, direction)
        )
        tag = StrategyTag.HEAD_AND_SHOULDERS_REVERSAL
        if ctx.at_zone:
            confidence += AOI_OVERLAY_BONUS
            tag = StrategyTag.CONFLUENCE_REVERSAL

        return GeneratedSignal(
            symbol=ctx.symbol,
            direction=direction,
            entry_price=entry,
            stop_loss=stop,
            take_profits=(target,),
            confidence=clamp_confidence(confidence),
            strategy_tag=tag,
            entry_timeframe=ctx.entry_timeframe or "4H",
            confluence_snapshot=confluence_snapshot(ctx),
            structure_snapshot=structure_snapshot(ctx),
            pattern={
                "kind": pattern.kind,
                "head": pattern.head.price,
                "neckline": pattern.neckline,
                "target": pattern.target_price,
                "confirmed": pattern.is_confirmed,
                "retest_valid": is_retest_valid(pattern, ctx.candlestick_patterns),
            },
        )
