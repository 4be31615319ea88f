"""Pip math — pure functions, no I/O.

Every stop, target and risk distance in PipWatch is expressed in pips through
this module so FX-pair-specific constants live in exactly one place.
"""

import math
from dataclasses import dataclass

_JPY_PIP = 0.01
_STANDARD_PIP = 0.0001
_SEPARATORS = ("_", "/", "-", " ")


@dataclass(frozen=True)
class SignalPerformance:
    """Live performance of a signal relative to its entry."""

    pips: int
    percentage: float
    is_profit: bool
    price_delta: float


def normalize_symbol(symbol: str) -> str:
    """Return the compact upper-case form of *symbol*.

    ``"eur_jpy"``, ``"EUR/JPY"`` and ``"EURJPY"`` all normalise to
    ``"EURJPY"``.
    """
    compact = symbol.upper()
    for sep in _SEPARATORS:
        compact = compact.replace(sep, "")
    return compact


def to_instrument(symbol: str) -> str:
    """Return the OANDA instrument name (``"EUR_USD"``) for a symbol."""
    compact = normalize_symbol(symbol)
    if len(compact) != 6:
        return compact
    return f"{compact[:3]}_{compact[3:]}"


def is_jpy_pair(symbol: str) -> bool:
    """True when the quote currency of *symbol* is the Japanese yen."""
    return normalize_symbol(symbol).endswith("JPY")


def pip_value(symbol: str) -> float:
    """Price size of one pip: ``0.01`` for JPY-quoted pairs, else ``0.0001``."""
    return _JPY_PIP if is_jpy_pair(symbol) else _STANDARD_PIP


def pip_multiplier(symbol: str) -> int:
    """Number of pips per 1.0 of price (``100`` or ``10000``)."""
    return 100 if is_jpy_pair(symbol) else 10000


def _side(direction) -> str:
    """Upper-case side name for a plain string or a str-valued enum."""
    return str(getattr(direction, "value", direction)).upper()


def _round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero."""
    magnitude = math.floor(abs(value) + 0.5)
    return int(magnitude if value >= 0 else -magnitude)


def pips_between(a: float, b: float, symbol: str) -> int:
    """Unsigned pip distance between two prices."""
    return _round_half_up(abs(a - b) * pip_multiplier(symbol))


def signed_pips(entry: float, exit_price: float, direction: str, symbol: str) -> int:
    """Pip result of moving from *entry* to *exit_price*.

    Positive when the move favours *direction* (``"BUY"`` or ``"SELL"``).

    Raises:
        ValueError: If *direction* is not ``"BUY"`` or ``"SELL"``.
    """
    direction = _side(direction)
    if direction == "BUY":
        delta = exit_price - entry
    elif direction == "SELL":
        delta = entry - exit_price
    else:
        raise ValueError(f"direction must be 'BUY' or 'SELL', got '{direction}'")
    return _round_half_up(delta * pip_multiplier(symbol))


def price_offset(price: float, pips: float, symbol: str) -> float:
    """Return *price* shifted by *pips* (negative pips shift down)."""
    return price + pips * pip_value(symbol)


def percentage_change(entry: float, current: float, direction: str) -> float:
    """Signed percentage move from *entry*, positive when in profit."""
    if entry <= 0:
        return 0.0
    direction = _side(direction)
    delta = current - entry if direction == "BUY" else entry - current
    return delta / entry * 100.0


def signal_performance(
    entry: float,
    current: float | None,
    direction: str,
    symbol: str,
) -> SignalPerformance:
    """Summarise where *current* sits relative to a signal's entry.

    Missing or non-positive prices yield a zeroed result rather than an
    error so callers can render signals whose price has not arrived yet.
    """
    if not current or not entry or current <= 0 or entry <= 0:
        return SignalPerformance(pips=0, percentage=0.0, is_profit=False, price_delta=0.0)

    direction = _side(direction)
    delta = current - entry if direction == "BUY" else entry - current
    return SignalPerformance(
        pips=signed_pips(entry, current, direction, symbol),
        percentage=percentage_change(entry, current, direction),
        is_profit=delta > 0,
        price_delta=delta,
    )
