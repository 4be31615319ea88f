"""Internal API routers — /status, /signals, /outcomes, /prices endpoints.

No business logic. Delegates to the repos and the monitor scheduler found
on ``app.state`` (attached by ``pipwatch.main.configure_app``).
"""

import logging
import math
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from pipwatch.pricing.pips import normalize_symbol

logger = logging.getLogger("pipwatch.api")
router = APIRouter()


def _state(request: Request, name: str):
    value = getattr(request.app.state, name, None)
    if value is None:
        raise HTTPException(status_code=503, detail=f"{name} not configured")
    return value


@router.get("/status")
async def get_status(request: Request):
    """Scheduler state, pass counters and the most recent pass report."""
    scheduler = getattr(request.app.state, "scheduler", None)
    engine = getattr(request.app.state, "engine", None)
    status = {
        "monitor": scheduler.status() if scheduler is not None else {"running": False},
    }
    if engine is not None:
        status["generator"] = {
            "cycle_count": engine.cycle_count,
            "last_result": engine.last_result,
        }
    return status


@router.get("/signals")
async def get_signals(
    request: Request,
    status: Optional[str] = Query(default=None, pattern="^(active|expired)$"),
    symbol: Optional[str] = None,
    limit: int = Query(default=20, ge=1, le=500),
):
    """Recent persisted signals, newest first."""
    repo = _state(request, "signal_repo")
    signals = repo.query(
        status=status,
        symbol=normalize_symbol(symbol) if symbol else None,
        limit=limit,
    )
    return {"signals": signals, "count": len(signals)}


@router.get("/signals/{signal_id}")
async def get_signal(request: Request, signal_id: int):
    """One signal with its outcome, if it has reached one."""
    repo = _state(request, "signal_repo")
    signal = repo.get(signal_id)
    if signal is None:
        raise HTTPException(status_code=404, detail=f"Signal {signal_id} not found")
    outcomes = _state(request, "outcome_repo")
    return {"signal": signal, "outcome": outcomes.get_by_signal_id(signal_id)}


@router.get("/outcomes")
async def get_outcomes(request: Request, limit: int = Query(default=20, ge=1, le=500)):
    """Recent terminal outcomes, newest first."""
    outcomes = _state(request, "outcome_repo").list_outcomes(limit=limit)
    return {"outcomes": outcomes, "count": len(outcomes)}


@router.post("/prices", status_code=202)
async def post_prices(request: Request, body: dict):
    """Queue a monitoring pass for a realtime price update.

    Body: ``{"prices": {"EURUSD": 1.1}}``.
    """
    prices = body.get("prices")
    if not isinstance(prices, dict) or not prices:
        raise HTTPException(status_code=422, detail="'prices' must be a non-empty object")
    try:
        snapshot = {normalize_symbol(k): float(v) for k, v in prices.items()}
    except (TypeError, ValueError):
        raise HTTPException(status_code=422, detail="prices must be numeric") from None
    bad = sorted(k for k, v in snapshot.items() if not math.isfinite(v) or v <= 0)
    if bad:
        raise HTTPException(
            status_code=422,
            detail=f"prices must be positive finite numbers: {', '.join(bad)}",
        )

    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None or not scheduler.notify_prices(snapshot):
        raise HTTPException(status_code=503, detail="Monitor scheduler is not running")
    logger.debug("Queued price event for %s", ", ".join(snapshot))
    return {"queued": True, "symbols": sorted(snapshot)}
