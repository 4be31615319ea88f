"""Multi-timeframe confluence — Weekly/Daily/4H trend agreement scoring."""

from typing import Literal, Sequence

from pipwatch.analysis.models import CandleData, MultiTimeframeAnalysis, TradingBias, Trend
from pipwatch.analysis.structure import analyze_timeframe

WEEKLY_DAILY = "W+D"
DAILY_FOUR_HOUR = "D+4H"
ALL_THREE = "W+D+4H"

_PAIR_POINTS = {WEEKLY_DAILY: 40, DAILY_FOUR_HOUR: 30, ALL_THREE: 30}


def _bias_for(trend: Trend) -> TradingBias:
    if trend == Trend.BULLISH:
        return TradingBias.BUY
    if trend == Trend.BEARISH:
        return TradingBias.SELL
    return TradingBias.NO_TRADE


def score_alignment(
    weekly: Trend,
    daily: Trend,
    four_hour: Trend,
) -> MultiTimeframeAnalysis:
    """Score agreement between adjacent timeframes.

    Points:
        - Weekly and Daily equal and non-neutral: +40
        - Daily and 4H equal and non-neutral: +30
        - All three equal and non-neutral: +30 on top

    The score therefore stays within [0, 100].  Every pairing shares the
    Daily trend, so the bias follows Daily whenever any pair aligns.
    """
    aligned: set[str] = set()
    if weekly == daily and daily != Trend.NEUTRAL:
        aligned.add(WEEKLY_DAILY)
    if daily == four_hour and daily != Trend.NEUTRAL:
        aligned.add(DAILY_FOUR_HOUR)
    if WEEKLY_DAILY in aligned and DAILY_FOUR_HOUR in aligned:
        aligned.add(ALL_THREE)

    score = sum(_PAIR_POINTS[pair] for pair in aligned)
    bias = _bias_for(daily) if aligned else TradingBias.NO_TRADE

    return MultiTimeframeAnalysis(
        weekly=weekly,
        daily=daily,
        four_hour=four_hour,
        trading_bias=bias,
        confluence_score=score,
        aligned_pairs=frozenset(aligned),
    )


def analyze_multi_timeframe(
    weekly_candles: Sequence[CandleData],
    daily_candles: Sequence[CandleData],
    four_hour_candles: Sequence[CandleData],
) -> MultiTimeframeAnalysis:
    """Analyse each timeframe's structure independently, then score."""
    return score_alignment(
        analyze_timeframe(weekly_candles).trend,
        analyze_timeframe(daily_candles).trend,
        analyze_timeframe(four_hour_candles).trend,
    )


def determine_entry_timeframe(
    analysis: MultiTimeframeAnalysis,
    four_hour_count: int,
) -> Literal["4H", "1H"] | None:
    """Timeframe to time entries on.

    ``"4H"`` when Weekly and Daily agree.  With only Daily/4H agreement,
    ``"4H"`` if more than 100 four-hour candles back it, else ``"1H"``.
    ``None`` when nothing aligns.
    """
    if WEEKLY_DAILY in analysis.aligned_pairs:
        return "4H"
    if DAILY_FOUR_HOUR in analysis.aligned_pairs:
        return "4H" if four_hour_count > 100 else "1H"
    return None
