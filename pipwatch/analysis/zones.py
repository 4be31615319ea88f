"""Area-of-interest zones — clustered support/resistance bands. Pure functions."""

from typing import Sequence

from pipwatch.analysis.models import (
    AOIZone,
    MarketStructure,
    StructurePoint,
    ZoneKind,
    ZoneOverlap,
    ZoneSet,
)
from pipwatch.pricing.pips import pip_value

MIN_ZONE_WIDTH_PIPS = 5.0


def _make_zone(cluster: list[StructurePoint], symbol: str, optimal_width_pips: float) -> AOIZone:
    prices = [p.price for p in cluster]
    low, high = min(prices), max(prices)
    width = (high - low) / pip_value(symbol)

    strength = min(5, len(cluster))
    if width <= optimal_width_pips:
        strength = min(5, strength + 1)

    kind = ZoneKind.SUPPORT if cluster[0].kind.is_low else ZoneKind.RESISTANCE
    by_index = sorted(cluster, key=lambda p: p.sequence_index)
    return AOIZone(
        kind=kind,
        price_level=sum(prices) / len(prices),
        width_pips=width,
        strength=strength,
        touch_count=len(cluster),
        first_seen=by_index[0].timestamp,
        last_tested=by_index[-1].timestamp,
        low=low,
        high=high,
    )


def cluster_structure_points(
    points: Sequence[StructurePoint],
    symbol: str,
    max_width_pips: float = 60.0,
    optimal_width_pips: float = 25.0,
    min_points: int = 3,
) -> list[AOIZone]:
    """Cluster nearby structure points into zones.

    Points are sorted by price and greedily appended to the current cluster
    while its band stays within *max_width_pips*.  Clusters with fewer than
    *min_points* members are discarded.

    Args:
        points: Classified structure points of one timeframe.
        symbol: Instrument, used for the pip size.
        max_width_pips: Widest band a single zone may span.
        optimal_width_pips: Bands at most this wide earn +1 strength.
        min_points: Minimum touches for a zone to exist.

    Returns:
        Zones ordered by price level.
    """
    if not points:
        return []

    pip = pip_value(symbol)
    ordered = sorted(points, key=lambda p: p.price)
    zones: list[AOIZone] = []
    current: list[StructurePoint] = [ordered[0]]

    for point in ordered[1:]:
        band_low = min(current[0].price, point.price)
        band_high = max(current[-1].price, point.price)
        if (band_high - band_low) / pip <= max_width_pips:
            current.append(point)
            continue
        if len(current) >= min_points:
            zones.append(_make_zone(current, symbol, optimal_width_pips))
        current = [point]

    if len(current) >= min_points:
        zones.append(_make_zone(current, symbol, optimal_width_pips))
    return zones


def identify_zones(structure: MarketStructure, symbol: str) -> ZoneSet:
    """Split the zones of *structure* into support and resistance."""
    zones = cluster_structure_points(structure.points, symbol)
    return ZoneSet(
        support=tuple(z for z in zones if z.kind == ZoneKind.SUPPORT),
        resistance=tuple(z for z in zones if z.kind == ZoneKind.RESISTANCE),
    )


def _merge_overlapping(
    weekly: Sequence[AOIZone],
    daily: Sequence[AOIZone],
    tolerance: float,
) -> list[AOIZone]:
    merged: list[AOIZone] = []
    for w_zone in weekly:
        for d_zone in daily:
            if abs(w_zone.price_level - d_zone.price_level) > tolerance:
                continue
            merged.append(
                AOIZone(
                    kind=w_zone.kind,
                    price_level=w_zone.price_level,
                    width_pips=w_zone.width_pips,
                    strength=min(5, w_zone.strength + d_zone.strength),
                    touch_count=w_zone.touch_count + d_zone.touch_count,
                    first_seen=w_zone.first_seen,
                    last_tested=d_zone.last_tested,
                    low=min(w_zone.low, d_zone.low),
                    high=max(w_zone.high, d_zone.high),
                )
            )
    return merged


def find_zone_overlaps(
    weekly: ZoneSet,
    daily: ZoneSet,
    symbol: str,
    tolerance_pips: float = 10.0,
) -> ZoneOverlap:
    """Pair same-kind weekly and daily zones whose levels are within
    *tolerance_pips*; each pair earns a +10 confluence bonus."""
    tolerance = tolerance_pips * pip_value(symbol)
    support = _merge_overlapping(weekly.support, daily.support, tolerance)
    resistance = _merge_overlapping(weekly.resistance, daily.resistance, tolerance)
    return ZoneOverlap(
        support=tuple(support),
        resistance=tuple(resistance),
        bonus_score=10 * (len(support) + len(resistance)),
    )


def is_price_in_zone(
    price: float,
    zone: AOIZone,
    symbol: str,
    buffer_pips: float = MIN_ZONE_WIDTH_PIPS,
) -> bool:
    """True when *price* lies inside the zone band widened by *buffer_pips*."""
    buffer = buffer_pips * pip_value(symbol)
    return zone.low - buffer <= price <= zone.high + buffer


def find_active_zone(
    price: float,
    zones: Sequence[AOIZone],
    symbol: str,
) -> AOIZone | None:
    """Strongest zone containing *price*, or ``None``."""
    containing = [z for z in zones if is_price_in_zone(price, z, symbol)]
    if not containing:
        return None
    return max(containing, key=lambda z: (z.strength, z.touch_count))
