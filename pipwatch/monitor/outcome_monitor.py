"""Outcome monitor — applies per-tick evaluations to the signal and outcome stores.

Safe to run repeatedly and from several triggers: target progress only
grows, and a terminal outcome is written at most once per signal (existence
check plus the store's conditional insert).  A signal that already has an
outcome is only flipped to ``expired``.  ``audit_expired`` backfills the
outcome of expired signals that lack one.
"""

import logging
import math
import sqlite3
from datetime import datetime, timezone
from typing import Mapping, Optional

from pipwatch.monitor.evaluator import Evaluation, evaluate_signal, reconstruct_outcome
from pipwatch.monitor.models import (
    MonitoredSignal,
    PassReport,
    SignalOutcome,
    SignalStatus,
)
from pipwatch.pricing.pips import normalize_symbol
from pipwatch.repos.outcome_repo import OutcomeRepo
from pipwatch.repos.signal_repo import SignalRepo

logger = logging.getLogger("pipwatch.monitor")


def _lookup_price(prices: Mapping[str, float], symbol: str) -> Optional[float]:
    price = prices.get(symbol)
    if price is None:
        price = prices.get(normalize_symbol(symbol))
    if price is None:
        return None
    try:
        price = float(price)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price <= 0:
        return None
    return price


def _to_outcome(signal_id: int, evaluation: Evaluation) -> SignalOutcome:
    return SignalOutcome(
        signal_id=signal_id,
        hit_target=evaluation.hit_target,
        exit_price=evaluation.exit_price,
        exit_timestamp=datetime.now(timezone.utc).isoformat(),
        target_hit_level=evaluation.target_hit_level,
        pnl_pips=evaluation.pnl_pips,
        notes=evaluation.notes,
    )


class OutcomeMonitor:
    """Runs monitoring passes over every active signal.

    Args:
        signal_repo: Store of persisted signals.
        outcome_repo: Store of terminal outcomes.
    """

    def __init__(self, signal_repo: SignalRepo, outcome_repo: OutcomeRepo) -> None:
        self._signals = signal_repo
        self._outcomes = outcome_repo

    def watched_symbols(self) -> list[str]:
        """Distinct symbols with at least one active signal."""
        return sorted({s.symbol for s in self._signals.active_signals()})

    def run_pass(self, prices: Mapping[str, float], source: str = "manual") -> PassReport:
        """Evaluate each active signal against *prices* and persist changes.

        Store failures are logged and counted; the pass moves on to the next
        signal and the failed one is retried on the next pass.
        """
        report = PassReport(source=source)
        normalised = {normalize_symbol(k): v for k, v in prices.items()}

        try:
            signals = self._signals.active_signals()
        except sqlite3.Error:
            logger.exception("Could not load active signals")
            report.errors += 1
            report.finished_at = datetime.now(timezone.utc).isoformat()
            return report

        for signal in signals:
            report.checked += 1
            try:
                self._process(signal, normalised, report)
            except sqlite3.Error as exc:
                report.errors += 1
                logger.error("Signal %d (%s): store failure: %s", signal.id, signal.symbol, exc)

        report.finished_at = datetime.now(timezone.utc).isoformat()
        logger.info(
            "Pass (%s): checked=%d skipped=%d targets=%d outcomes=%d repaired=%d errors=%d",
            source,
            report.checked,
            report.skipped,
            report.targets_recorded,
            report.outcomes_created,
            report.repaired,
            report.errors,
        )
        return report

    def audit_expired(
        self,
        prices: Optional[Mapping[str, float]] = None,
        limit: int = 10,
    ) -> PassReport:
        """Write the missing outcome for up to *limit* expired signals that have none.

        The outcome is reconstructed from the recorded targets and, when
        available, the current price.  It goes through the same conditional
        insert as a live pass, so a concurrent writer still wins.
        """
        report = PassReport(source="audit")
        normalised = {normalize_symbol(k): v for k, v in (prices or {}).items()}

        try:
            orphans = self._signals.expired_without_outcome(limit=limit)
        except sqlite3.Error:
            logger.exception("Could not load expired signals for audit")
            report.errors += 1
            report.finished_at = datetime.now(timezone.utc).isoformat()
            return report

        for signal in orphans:
            report.checked += 1
            evaluation = reconstruct_outcome(signal, _lookup_price(normalised, signal.symbol))
            try:
                created = self._outcomes.insert(_to_outcome(signal.id, evaluation))
            except sqlite3.Error as exc:
                report.errors += 1
                logger.error("Signal %d (%s): audit insert failed: %s", signal.id, signal.symbol, exc)
                continue
            if created:
                report.outcomes_created += 1
                logger.warning(
                    "Signal %d (%s) expired without an outcome; recorded %s, %+d pips",
                    signal.id, signal.symbol, evaluation.notes, evaluation.pnl_pips,
                )
            else:
                report.skipped += 1

        report.finished_at = datetime.now(timezone.utc).isoformat()
        if report.checked:
            logger.info(
                "Audit: checked=%d outcomes=%d errors=%d",
                report.checked, report.outcomes_created, report.errors,
            )
        return report

    # ── Per-signal ───────────────────────────────────────────────────────

    def _process(
        self,
        signal: MonitoredSignal,
        prices: Mapping[str, float],
        report: PassReport,
    ) -> None:
        if signal.status == SignalStatus.EXPIRED:
            report.skipped += 1
            return
        elif signal.status != SignalStatus.ACTIVE:
            raise ValueError(f"unhandled signal status '{signal.status}'")

        if self._outcomes.exists_by_signal_id(signal.id):
            self._signals.update(signal.id, {"status": SignalStatus.EXPIRED})
            report.repaired += 1
            logger.info("Signal %d: outcome already recorded, status repaired", signal.id)
            return

        if not signal.take_profits:
            logger.warning("Signal %d (%s) has no take-profits, skipped", signal.id, signal.symbol)
            report.skipped += 1
            return

        price = _lookup_price(prices, signal.symbol)
        if price is None:
            logger.debug("Signal %d: no price for %s, skipped", signal.id, signal.symbol)
            report.skipped += 1
            return

        evaluation = evaluate_signal(signal, price)

        if evaluation.newly_hit:
            self._signals.update(signal.id, {"targets_hit": evaluation.targets_hit.to_list()})
            report.targets_recorded += len(evaluation.newly_hit)
            for index in evaluation.newly_hit:
                logger.info(
                    "Signal %d (%s %s): TP%d hit at %.5f",
                    signal.id, signal.symbol, signal.direction.value, index, price,
                )

        if evaluation.terminal:
            self._finalise(signal, evaluation, report)

    def _finalise(
        self,
        signal: MonitoredSignal,
        evaluation: Evaluation,
        report: PassReport,
    ) -> None:
        created = self._outcomes.insert(_to_outcome(signal.id, evaluation))
        self._signals.update(signal.id, {"status": SignalStatus.EXPIRED})

        if created:
            report.outcomes_created += 1
            logger.info(
                "Signal %d (%s): %s, exit %.5f, %+d pips",
                signal.id, signal.symbol, evaluation.notes, evaluation.exit_price, evaluation.pnl_pips,
            )
        else:
            report.repaired += 1
            logger.info("Signal %d: concurrent outcome detected, status repaired", signal.id)
