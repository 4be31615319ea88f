"""Stop-loss and take-profit placement — pure math, no I/O.

Structure-anchored approach:
    SL sits a fixed pip buffer beyond the last protective swing (the last
    HL for buys, the last LH for sells).
    TPs are the zone levels and swing points beyond entry in the profit
    direction, kept only when they pay at least ``min_rr`` × risk.
"""

from typing import Sequence

from pipwatch.analysis.models import (
    AOIZone,
    Direction,
    MarketStructure,
    StructureKind,
    ZoneKind,
)
from pipwatch.pricing.pips import pips_between, price_offset

STOP_BUFFER_PIPS = 10
MIN_REWARD_RISK = 2.0
MAX_TAKE_PROFITS = 3


def _as_direction(direction: str | Direction) -> Direction:
    try:
        return Direction(str(getattr(direction, "value", direction)).upper())
    except ValueError:
        raise ValueError(f"direction must be 'BUY' or 'SELL', got '{direction}'") from None


def calculate_stop_loss(
    direction: str | Direction,
    structure: MarketStructure,
    symbol: str,
    buffer_pips: float = STOP_BUFFER_PIPS,
) -> float | None:
    """Calculate the stop-loss price from the protective swing.

    - **BUY**:  SL = last HL − *buffer_pips*
    - **SELL**: SL = last LH + *buffer_pips*

    Returns:
        Stop-loss price rounded to 5 decimal places, or ``None`` when the
        structure has no protective swing.

    Raises:
        ValueError: If *direction* is not ``"BUY"`` or ``"SELL"``.
    """
    side = _as_direction(direction)
    if side == Direction.BUY:
        swing = structure.last_of(StructureKind.HL)
        if swing is None:
            return None
        return round(price_offset(swing.price, -buffer_pips, symbol), 5)

    swing = structure.last_of(StructureKind.LH)
    if swing is None:
        return None
    return round(price_offset(swing.price, buffer_pips, symbol), 5)


def reward_risk_ratio(entry: float, stop: float, target: float, symbol: str) -> float:
    """Reward pips divided by risk pips (``0.0`` when risk is zero)."""
    risk = pips_between(entry, stop, symbol)
    if risk == 0:
        return 0.0
    return pips_between(entry, target, symbol) / risk


def calculate_take_profits(
    entry: float,
    direction: str | Direction,
    stop: float,
    zones: Sequence[AOIZone],
    structure: MarketStructure,
    symbol: str,
    min_rr: float = MIN_REWARD_RISK,
    max_targets: int = MAX_TAKE_PROFITS,
) -> list[float]:
    """Collect take-profit levels that respect the minimum reward/risk.

    Strategy:
        1. BUY: candidates are resistance zone levels plus HH/LH swing
           prices above entry, ascending.  SELL: support zone levels plus
           LL/HL swing prices below entry, descending.
        2. Keep only candidates whose reward in pips is at least
           ``min_rr`` × the risk in pips.
        3. Return at most *max_targets*, nearest first.

    Args:
        entry: Signal entry price.
        direction: ``"BUY"`` or ``"SELL"``.
        stop: Stop-loss price; defines the risk distance.
        zones: Candidate zones of either kind; the wrong kind is ignored.
        structure: Classified structure supplying swing points.
        symbol: Instrument, used for pip arithmetic.
        min_rr: Minimum acceptable reward/risk (default 2.0).
        max_targets: Most targets to return (default 3).

    Returns:
        Target prices rounded to 5 decimals; empty when none qualify.

    Raises:
        ValueError: If *direction* is not ``"BUY"`` or ``"SELL"``.
    """
    side = _as_direction(direction)
    risk_pips = pips_between(entry, stop, symbol)
    if risk_pips == 0:
        return []

    if side == Direction.BUY:
        levels = [z.price_level for z in zones if z.kind == ZoneKind.RESISTANCE]
        levels += [p.price for p in structure.points if p.kind.is_high]
        candidates = sorted({round(lvl, 5) for lvl in levels if lvl > entry})
    else:
        levels = [z.price_level for z in zones if z.kind == ZoneKind.SUPPORT]
        levels += [p.price for p in structure.points if p.kind.is_low]
        candidates = sorted({round(lvl, 5) for lvl in levels if lvl < entry}, reverse=True)

    targets = [
        level
        for level in candidates
        if pips_between(entry, level, symbol) >= min_rr * risk_pips
    ]
    return targets[:max_targets]
