"""Signal evaluation — the pure per-tick decision, no I/O.

Given a signal's persisted state and one live price, decide which targets
are newly reached and whether the signal has reached its terminal outcome.
"""

from dataclasses import dataclass
from typing import Optional

from pipwatch.analysis.models import Direction
from pipwatch.monitor.models import MonitoredSignal, TargetsHit
from pipwatch.pricing.pips import signed_pips

STOP_LOSS_NOTE = "Stop Loss Hit"
ALL_TARGETS_NOTE = "All Take Profits Hit"
RETROACTIVE_SUFFIX = "(retroactive)"


@dataclass(frozen=True)
class Evaluation:
    """What one price tick means for one signal."""

    targets_hit: TargetsHit
    newly_hit: tuple[int, ...]
    stop_hit: bool
    terminal: bool
    hit_target: bool = False
    exit_price: Optional[float] = None
    target_hit_level: Optional[int] = None
    pnl_pips: int = 0
    notes: str = ""


def is_stop_hit(direction: Direction, price: float, stop: float) -> bool:
    if direction == Direction.BUY:
        return price <= stop
    return price >= stop


def is_target_reached(direction: Direction, price: float, target: float) -> bool:
    if direction == Direction.BUY:
        return price >= target
    return price <= target


def evaluate_signal(signal: MonitoredSignal, price: float) -> Evaluation:
    """Decide target progress and termination for *signal* at *price*.

    Rules:
        1. The stop is checked first.  When it is hit no target is
           recorded on this tick, even if a level was also crossed.
        2. Otherwise every target not yet in ``targets_hit`` that *price*
           has reached is added.
        3. The signal terminates on a stop hit or once every target is
           hit.  Exit is the stop price, or the highest-index target.
    """
    hit = signal.targets_hit

    if is_stop_hit(signal.direction, price, signal.stop_loss):
        return Evaluation(
            targets_hit=hit,
            newly_hit=(),
            stop_hit=True,
            terminal=True,
            hit_target=False,
            exit_price=signal.stop_loss,
            target_hit_level=None,
            pnl_pips=signed_pips(signal.entry_price, signal.stop_loss, signal.direction, signal.symbol),
            notes=STOP_LOSS_NOTE,
        )

    newly_hit: list[int] = []
    for index, target in enumerate(signal.take_profits, start=1):
        if index in hit:
            continue
        if is_target_reached(signal.direction, price, target):
            hit = hit.insert_if_absent(index)
            newly_hit.append(index)

    count = len(signal.take_profits)
    if count and all(i in hit for i in range(1, count + 1)):
        level = count
        exit_price = signal.take_profits[level - 1]
        return Evaluation(
            targets_hit=hit,
            newly_hit=tuple(newly_hit),
            stop_hit=False,
            terminal=True,
            hit_target=True,
            exit_price=exit_price,
            target_hit_level=level,
            pnl_pips=signed_pips(signal.entry_price, exit_price, signal.direction, signal.symbol),
            notes=ALL_TARGETS_NOTE,
        )

    return Evaluation(
        targets_hit=hit,
        newly_hit=tuple(newly_hit),
        stop_hit=False,
        terminal=False,
    )


def reconstruct_outcome(signal: MonitoredSignal, price: Optional[float]) -> Evaluation:
    """Best-effort outcome for a signal that expired without one.

    The stop is judged against *price* (the entry when no price is known).
    Failing that, the highest recorded target is the exit.  A signal with
    neither is closed at *price* with an unknown reason.
    """
    current = price if price is not None else signal.entry_price
    hit = signal.targets_hit

    stop_hit = is_stop_hit(signal.direction, current, signal.stop_loss)
    if stop_hit:
        exit_price, level, notes = signal.stop_loss, None, f"{STOP_LOSS_NOTE} {RETROACTIVE_SUFFIX}"
    elif len(hit) and signal.take_profits:
        level = min(max(hit), len(signal.take_profits))
        exit_price = signal.take_profits[level - 1]
        notes = f"Take Profit {level} Hit {RETROACTIVE_SUFFIX}"
    else:
        exit_price, level, notes = current, None, f"Unknown Exit Reason {RETROACTIVE_SUFFIX}"

    return Evaluation(
        targets_hit=hit,
        newly_hit=(),
        stop_hit=stop_hit,
        terminal=True,
        hit_target=level is not None,
        exit_price=exit_price,
        target_hit_level=level,
        pnl_pips=signed_pips(signal.entry_price, exit_price, signal.direction, signal.symbol),
        notes=notes,
    )
