"""Currency-pair correlation — static matrix and conflict checks."""

from dataclasses import dataclass, field
from typing import Iterable

from pipwatch.pricing.pips import normalize_symbol

FOREX_CORRELATION_MATRIX: dict[str, dict[str, float]] = {
    "EURUSD": {
        "GBPUSD": 0.73, "AUDUSD": 0.67, "NZDUSD": 0.62, "USDCHF": -0.87,
        "USDJPY": -0.23, "USDCAD": -0.45, "EURGBP": 0.25, "EURJPY": 0.68,
        "EURCHF": 0.92, "EURAUD": 0.45, "EURCAD": 0.58,
    },
    "GBPUSD": {
        "EURUSD": 0.73, "AUDUSD": 0.58, "NZDUSD": 0.52, "USDCHF": -0.68,
        "USDJPY": -0.18, "USDCAD": -0.38, "EURGBP": -0.42, "GBPJPY": 0.65,
        "GBPCHF": 0.85, "GBPAUD": 0.42, "GBPCAD": 0.55,
    },
    "AUDUSD": {
        "EURUSD": 0.67, "GBPUSD": 0.58, "NZDUSD": 0.88, "USDCHF": -0.58,
        "USDJPY": -0.15, "USDCAD": -0.48, "AUDNZD": 0.35, "AUDJPY": 0.72,
        "AUDCHF": 0.65, "EURAUD": -0.62, "AUDCAD": 0.68,
    },
    "NZDUSD": {
        "EURUSD": 0.62, "GBPUSD": 0.52, "AUDUSD": 0.88, "USDCHF": -0.55,
        "USDJPY": -0.12, "USDCAD": -0.45, "AUDNZD": -0.35, "NZDJPY": 0.68,
        "NZDCHF": 0.62, "EURNZD": -0.58, "NZDCAD": 0.65,
    },
    "USDCHF": {
        "EURUSD": -0.87, "GBPUSD": -0.68, "AUDUSD": -0.58, "NZDUSD": -0.55,
        "USDJPY": 0.28, "USDCAD": 0.35, "EURCHF": -0.68, "GBPCHF": -0.45,
        "AUDCHF": -0.38, "CHFJPY": 0.42, "CADCHF": 0.32,
    },
    "USDJPY": {
        "EURUSD": -0.23, "GBPUSD": -0.18, "AUDUSD": -0.15, "NZDUSD": -0.12,
        "USDCHF": 0.28, "USDCAD": 0.25, "EURJPY": 0.85, "GBPJPY": 0.88,
        "AUDJPY": 0.82, "NZDJPY": 0.78, "CADJPY": 0.75, "CHFJPY": 0.65,
    },
    "USDCAD": {
        "EURUSD": -0.45, "GBPUSD": -0.38, "AUDUSD": -0.48, "NZDUSD": -0.45,
        "USDCHF": 0.35, "USDJPY": 0.25, "EURCAD": 0.52, "GBPCAD": 0.48,
        "AUDCAD": 0.45, "NZDCAD": 0.42, "CADJPY": 0.35, "CADCHF": 0.28,
    },
}


@dataclass(frozen=True)
class CorrelationCheck:
    has_conflict: bool
    conflicting_pairs: tuple[str, ...] = field(default_factory=tuple)
    max_correlation: float = 0.0


def get_correlation(a: str, b: str) -> float:
    """Correlation coefficient between two pairs.

    The matrix is looked up in both orders; a pair is perfectly correlated
    with itself and unknown pairs are uncorrelated.
    """
    a, b = normalize_symbol(a), normalize_symbol(b)
    if a == b:
        return 1.0
    if b in FOREX_CORRELATION_MATRIX.get(a, {}):
        return FOREX_CORRELATION_MATRIX[a][b]
    return FOREX_CORRELATION_MATRIX.get(b, {}).get(a, 0.0)


def check_correlation_conflict(
    symbol: str,
    direction: str,
    open_positions: Iterable[tuple[str, str]],
    threshold: float = 0.5,
) -> CorrelationCheck:
    """Check a candidate against open ``(symbol, direction)`` positions.

    Same direction on positively correlated pairs, or opposite directions
    on negatively correlated pairs, doubles the exposure.  Either case with
    ``|correlation| > threshold`` is a conflict.
    """
    side = str(getattr(direction, "value", direction)).upper()
    conflicts: list[str] = []
    max_corr = 0.0

    for other_symbol, other_direction in open_positions:
        corr = get_correlation(symbol, other_symbol)
        if abs(corr) <= threshold:
            continue
        same_side = side == str(getattr(other_direction, "value", other_direction)).upper()
        if (same_side and corr > 0) or (not same_side and corr < 0):
            conflicts.append(normalize_symbol(other_symbol))
            max_corr = max(max_corr, abs(corr))

    return CorrelationCheck(
        has_conflict=bool(conflicts),
        conflicting_pairs=tuple(conflicts),
        max_correlation=max_corr,
    )
