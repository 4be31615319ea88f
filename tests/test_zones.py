"""Tests for pipwatch.analysis.zones — clustering, overlaps and active zones."""

import pytest

from pipwatch.analysis.models import (
    AOIZone,
    MarketStructure,
    StructureKind,
    StructurePoint,
    Trend,
    ZoneKind,
    ZoneSet,
)
from pipwatch.analysis.zones import (
    cluster_structure_points,
    find_active_zone,
    find_zone_overlaps,
    identify_zones,
    is_price_in_zone,
)


def _point(kind: StructureKind, price: float, index: int) -> StructurePoint:
    return StructurePoint(kind=kind, price=price, timestamp=f"t{index}", sequence_index=index)


def _zone(
    level: float,
    kind: ZoneKind = ZoneKind.SUPPORT,
    strength: int = 3,
    touches: int = 3,
    half_width: float = 0.0010,
) -> AOIZone:
    return AOIZone(
        kind=kind,
        price_level=level,
        width_pips=half_width * 2 * 10000,
        strength=strength,
        touch_count=touches,
        first_seen="w0",
        last_tested="w9",
        low=level - half_width,
        high=level + half_width,
    )


class TestClusterStructurePoints:
    def test_three_close_lows_form_support(self):
        points = [
            _point(StructureKind.LL, 1.1000, 3),
            _point(StructureKind.HL, 1.1010, 9),
            _point(StructureKind.HL, 1.1020, 15),
        ]
        zones = cluster_structure_points(points, "EURUSD")
        assert len(zones) == 1
        zone = zones[0]
        assert zone.kind == ZoneKind.SUPPORT
        assert zone.touch_count == 3
        assert zone.low == 1.1000
        assert zone.high == 1.1020
        assert zone.price_level == pytest.approx(1.1010)
        assert zone.width_pips == pytest.approx(20.0)
        assert zone.first_seen == "t3"
        assert zone.last_tested == "t15"

    def test_narrow_zone_gets_strength_bonus(self):
        points = [_point(StructureKind.HH, 1.2000 + i * 0.0005, i) for i in range(3)]
        zones = cluster_structure_points(points, "EURUSD")
        # 3 touches + 1 for width within 25 pips
        assert zones[0].strength == 4
        assert zones[0].kind == ZoneKind.RESISTANCE

    def test_strength_capped_at_five(self):
        points = [_point(StructureKind.HH, 1.2000 + i * 0.0001, i) for i in range(7)]
        zones = cluster_structure_points(points, "EURUSD")
        assert zones[0].strength == 5

    def test_clusters_under_min_points_discarded(self):
        points = [
            _point(StructureKind.LL, 1.1000, 1),
            _point(StructureKind.HL, 1.1005, 2),
        ]
        assert cluster_structure_points(points, "EURUSD") == []

    def test_distant_points_split_clusters(self):
        low_cluster = [_point(StructureKind.LL, 1.1000 + i * 0.0005, i) for i in range(3)]
        high_cluster = [_point(StructureKind.HH, 1.1500 + i * 0.0005, 10 + i) for i in range(3)]
        zones = cluster_structure_points(low_cluster + high_cluster, "EURUSD")
        assert [z.kind for z in zones] == [ZoneKind.SUPPORT, ZoneKind.RESISTANCE]

    def test_width_never_exceeds_max(self):
        points = [_point(StructureKind.LL, 1.1000 + i * 0.0020, i) for i in range(10)]
        for zone in cluster_structure_points(points, "EURUSD"):
            assert zone.width_pips <= 60.0 + 1e-9

    def test_jpy_pip_size(self):
        points = [_point(StructureKind.LL, 150.00 + i * 0.10, i) for i in range(3)]
        zones = cluster_structure_points(points, "USDJPY")
        assert zones[0].width_pips == pytest.approx(20.0)

    def test_empty(self):
        assert cluster_structure_points([], "EURUSD") == []


class TestIdentifyZones:
    def test_splits_by_kind(self):
        points = tuple(
            [_point(StructureKind.LL, 1.1000 + i * 0.0005, i) for i in range(3)]
            + [_point(StructureKind.LH, 1.1600 + i * 0.0005, 5 + i) for i in range(3)]
        )
        zones = identify_zones(MarketStructure(trend=Trend.NEUTRAL, points=points), "EURUSD")
        assert len(zones.support) == 1
        assert len(zones.resistance) == 1
        assert len(zones.all) == 2


class TestZoneOverlaps:
    def test_overlap_within_tolerance(self):
        weekly = ZoneSet(support=(_zone(1.1000, strength=3, touches=3),))
        daily = ZoneSet(support=(_zone(1.1005, strength=4, touches=4),))
        overlap = find_zone_overlaps(weekly, daily, "EURUSD")
        assert len(overlap.support) == 1
        merged = overlap.support[0]
        assert merged.strength == 5
        assert merged.touch_count == 7
        assert merged.low == pytest.approx(1.0990)
        assert merged.high == pytest.approx(1.1015)
        assert overlap.bonus_score == 10

    def test_no_overlap_outside_tolerance(self):
        weekly = ZoneSet(support=(_zone(1.1000),))
        daily = ZoneSet(support=(_zone(1.1050),))
        overlap = find_zone_overlaps(weekly, daily, "EURUSD")
        assert overlap.pair_count == 0
        assert overlap.bonus_score == 0

    def test_kinds_never_cross(self):
        weekly = ZoneSet(support=(_zone(1.1000),))
        daily = ZoneSet(resistance=(_zone(1.1000, kind=ZoneKind.RESISTANCE),))
        assert find_zone_overlaps(weekly, daily, "EURUSD").pair_count == 0


class TestActiveZone:
    def test_price_inside_band(self):
        assert is_price_in_zone(1.1000, _zone(1.1000), "EURUSD")

    def test_price_within_buffer(self):
        # band high 1.1010 + 5 pips buffer
        assert is_price_in_zone(1.1014, _zone(1.1000), "EURUSD")

    def test_price_outside_buffer(self):
        assert not is_price_in_zone(1.1020, _zone(1.1000), "EURUSD")

    def test_strongest_containing_zone_wins(self):
        weak = _zone(1.1000, strength=2)
        strong = _zone(1.1002, strength=5)
        far = _zone(1.2000, strength=5)
        assert find_active_zone(1.1001, [weak, strong, far], "EURUSD") is strong

    def test_no_zone(self):
        assert find_active_zone(1.3000, [_zone(1.1000)], "EURUSD") is None
