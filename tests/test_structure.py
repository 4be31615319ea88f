"""Tests for pipwatch.analysis.structure — swing detection and classification."""

from pipwatch.analysis.models import CandleData, StructureKind, StructurePoint, Trend
from pipwatch.analysis.structure import (
    analyze_structure,
    analyze_timeframe,
    classify_structure,
    identify_structure_points,
)


def _bar(i: int, high: float, low: float) -> CandleData:
    mid = (high + low) / 2
    return CandleData(time=f"t{i}", open=mid, high=high, low=low, close=mid)


def _series(highs: list[float], lows: list[float]) -> list[CandleData]:
    return [_bar(i, h, l) for i, (h, l) in enumerate(zip(highs, lows))]


def _point(kind: StructureKind, price: float, index: int) -> StructurePoint:
    return StructurePoint(kind=kind, price=price, timestamp=f"t{index}", sequence_index=index)


def _zigzag(n: int) -> list[CandleData]:
    """Rising triangle wave with a period of eight bars."""
    wave = [0, 1, 2, 3, 4, 3, 2, 1]
    candles = []
    for i in range(n):
        close = 1.1000 + i * 0.0005 + wave[i % len(wave)] * 0.0030
        candles.append(
            CandleData(
                time=f"t{i}",
                open=close,
                high=close + 0.0005,
                low=close - 0.0005,
                close=close,
            )
        )
    return candles


# Fixed fixture: one swing high at index 2, one swing low at index 6.
HIGHS = [1.10, 1.12, 1.20, 1.12, 1.10, 1.08, 1.06, 1.08, 1.10]
LOWS = [1.08, 1.10, 1.15, 1.10, 1.08, 1.05, 1.00, 1.05, 1.08]


class TestIdentifyStructurePoints:
    def test_finds_swing_high_and_low(self):
        points = identify_structure_points(_series(HIGHS, LOWS), atr=0.01)
        assert [(p.kind, p.price, p.sequence_index) for p in points] == [
            (StructureKind.HH, 1.20, 2),
            (StructureKind.LL, 1.00, 6),
        ]

    def test_points_closer_than_half_atr_are_dropped(self):
        points = identify_structure_points(_series(HIGHS, LOWS), atr=1.0)
        assert len(points) == 1
        assert points[0].price == 1.20

    def test_timestamps_come_from_candles(self):
        points = identify_structure_points(_series(HIGHS, LOWS), atr=0.01)
        assert points[0].timestamp == "t2"

    def test_equal_neighbour_is_not_a_swing(self):
        highs = [1.10, 1.12, 1.20, 1.20, 1.10, 1.08, 1.06]
        lows = [1.08, 1.09, 1.10, 1.10, 1.09, 1.08, 1.07]
        points = identify_structure_points(_series(highs, lows), atr=0.01)
        assert all(p.kind != StructureKind.HH for p in points)

    def test_input_not_mutated(self):
        candles = _series(HIGHS, LOWS)
        before = list(candles)
        identify_structure_points(candles, atr=0.01)
        assert candles == before


class TestClassifyStructure:
    def test_fewer_than_four_points_neutral(self):
        points = [
            _point(StructureKind.LL, 1.10, 2),
            _point(StructureKind.HH, 1.15, 5),
            _point(StructureKind.LL, 1.12, 8),
        ]
        structure = classify_structure(points, 1.15)
        assert structure.trend == Trend.NEUTRAL

    def test_bullish_sequence(self):
        prices = [1.10, 1.15, 1.12, 1.18, 1.14, 1.195]
        points = [
            _point(StructureKind.HH if i % 2 else StructureKind.LL, p, i * 3)
            for i, p in enumerate(prices)
        ]
        structure = classify_structure(points, 1.20)
        kinds = [p.kind for p in structure.points]
        assert kinds[0] == StructureKind.LL
        assert kinds[-1] == StructureKind.HH
        assert structure.trend == Trend.BULLISH

    def test_bearish_sequence(self):
        prices = [1.20, 1.15, 1.18, 1.12, 1.16]
        points = [_point(StructureKind.HH, p, i * 3) for i, p in enumerate(prices)]
        structure = classify_structure(points, 1.10)
        assert all(p.kind == StructureKind.LH for p in structure.points[1:])
        assert structure.trend == Trend.BEARISH

    def test_current_high_and_low(self):
        prices = [1.10, 1.15, 1.12, 1.18, 1.14, 1.195]
        points = [_point(StructureKind.LL, p, i) for i, p in enumerate(prices)]
        structure = classify_structure(points, 1.20)
        assert structure.current_high == 1.195
        assert structure.current_low == 1.10

    def test_order_preserved(self):
        prices = [1.10, 1.15, 1.12, 1.18]
        points = [_point(StructureKind.LL, p, i * 4) for i, p in enumerate(prices)]
        structure = classify_structure(points, 1.20)
        indexes = [p.sequence_index for p in structure.points]
        assert indexes == sorted(indexes)


class TestAnalyzeStructure:
    def test_three_candles_neutral(self):
        candles = _series([1.10, 1.12, 1.11], [1.09, 1.10, 1.10])
        structure = analyze_structure(candles)
        assert structure.trend == Trend.NEUTRAL
        assert structure.points == ()

    def test_zigzag_produces_points(self):
        structure = analyze_structure(_zigzag(60))
        assert len(structure.points) > 0


class TestAnalyzeTimeframe:
    def test_short_history_zero_confidence(self):
        result = analyze_timeframe(_zigzag(10))
        assert result.trend == Trend.NEUTRAL
        assert result.confidence == 0

    def test_confidence_from_point_count(self):
        result = analyze_timeframe(_zigzag(60))
        assert result.confidence == min(95, 60 + 2 * len(result.structure.points))
        assert 60 <= result.confidence <= 95
