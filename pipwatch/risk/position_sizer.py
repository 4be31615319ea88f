"""Position sizing — pure math, no I/O.

The suggested size for a signal is the number of units whose stop-out loses
a fixed share of the notional account equity.
"""

from pipwatch.pricing.pips import pip_value as pip_size, pips_between


def risk_amount(equity: float, risk_pct: float) -> float:
    """Money at risk for one signal, e.g. 1 % of 10,000 is 100."""
    return equity * risk_pct / 100.0


def calculate_units(
    equity: float,
    risk_pct: float,
    sl_distance_pips: float,
    pip_value: float = 0.0001,
) -> float:
    """Units such that moving *sl_distance_pips* against the position loses
    ``risk_pct`` percent of *equity*.

    ``units = equity * risk_pct / 100 / (sl_distance_pips * pip_value)``

    Args:
        equity: Account equity the risk is measured against.
        risk_pct: Percentage of equity to risk per signal (1.0 for 1 %).
        sl_distance_pips: Stop-loss distance in pips.
        pip_value: Price size of one pip.  0.0001 for non-JPY pairs.

    Raises:
        ValueError: If any input is non-positive.
    """
    for name, value in (
        ("equity", equity),
        ("risk_pct", risk_pct),
        ("sl_distance_pips", sl_distance_pips),
        ("pip_value", pip_value),
    ):
        if value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")

    return risk_amount(equity, risk_pct) / (sl_distance_pips * pip_value)


def position_size_for_signal(signal, equity: float, risk_pct: float) -> float:
    """Units for *signal* (anything with symbol, entry_price and stop_loss).

    Raises:
        ValueError: If the stop sits on the entry or sizing inputs are
            non-positive.
    """
    distance = pips_between(signal.entry_price, signal.stop_loss, signal.symbol)
    return calculate_units(equity, risk_pct, distance, pip_size(signal.symbol))
