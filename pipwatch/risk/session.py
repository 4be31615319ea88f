"""Trading sessions and risk gates — pure functions, no I/O."""

from dataclasses import dataclass, field
from typing import Literal

SessionVolatility = Literal["low", "normal", "high", "extreme"]

SESSION_DERATE = 10

# (start_hour, end_hour_exclusive, name, volatility), UTC
_SESSIONS: tuple[tuple[int, int, str, SessionVolatility], ...] = (
    (0, 7, "asian", "low"),
    (7, 8, "asia_europe_overlap", "normal"),
    (8, 13, "european", "high"),
    (13, 17, "europe_us_overlap", "extreme"),
    (17, 24, "american", "high"),
)


@dataclass(frozen=True)
class SessionInfo:
    """The market session an hour falls in."""

    name: str
    volatility: SessionVolatility
    is_favorable: bool


@dataclass(frozen=True)
class RiskGate:
    """Outcome of the session/volatility gate for one candidate signal."""

    allowed: bool
    confidence: int
    reasons: tuple[str, ...] = field(default_factory=tuple)


def is_in_session(
    utc_hour: int,
    session_start: int = 7,
    session_end: int = 21,
) -> bool:
    """Return True if *utc_hour* falls within the generation window.

    Default window: 07:00–21:00 UTC (inclusive start, exclusive end).

    Args:
        utc_hour: The hour in UTC (0–23).
        session_start: Session start hour (inclusive).
        session_end: Session end hour (exclusive).
    """
    return session_start <= utc_hour < session_end


def classify_session(utc_hour: int) -> SessionInfo:
    """Name the session for *utc_hour*.

    London and New York hours (08:00–17:00 UTC, both ends inclusive) are
    favourable; everything else derates signal confidence.

    Raises:
        ValueError: If *utc_hour* is outside 0–23.
    """
    if not 0 <= utc_hour <= 23:
        raise ValueError(f"utc_hour must be in 0..23, got {utc_hour}")
    for start, end, name, volatility in _SESSIONS:
        if start <= utc_hour < end:
            return SessionInfo(
                name=name,
                volatility=volatility,
                is_favorable=8 <= utc_hour <= 17,
            )
    raise ValueError(f"no session covers hour {utc_hour}")


def apply_risk_gates(
    confidence: int,
    session: SessionInfo,
    volatility_profile: str,
) -> RiskGate:
    """Block or derate a candidate signal.

    - ``extreme`` ATR volatility blocks the signal outright.
    - An unfavourable session lowers confidence by 10 (floored at 0).
    """
    if volatility_profile == "extreme":
        return RiskGate(
            allowed=False,
            confidence=confidence,
            reasons=("extreme volatility",),
        )

    reasons: list[str] = []
    if not session.is_favorable:
        confidence = max(0, confidence - SESSION_DERATE)
        reasons.append(f"unfavorable session ({session.name})")
    return RiskGate(allowed=True, confidence=confidence, reasons=tuple(reasons))
