"""PipWatch — signal generation engine (orchestration loop).

Connects the candle feed, signal generator, correlation check and signal
store into a single polling loop.  Symbols are analysed concurrently;
accepted signals are persisted for the outcome monitor to track.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from pipwatch.config import Config
from pipwatch.feed.oanda_client import OandaClient
from pipwatch.repos.signal_repo import SignalRepo
from pipwatch.risk.correlation import check_correlation_conflict
from pipwatch.risk.position_sizer import position_size_for_signal
from pipwatch.risk.session import is_in_session
from pipwatch.strategy.generator import SignalGenerator
from pipwatch.strategy.models import GeneratedSignal

logger = logging.getLogger("pipwatch.engine")

# Timeframe → candles requested per cycle
_HISTORY: dict[str, int] = {"W": 120, "D": 250, "4H": 250, "1H": 200}


class SignalEngine:
    """Runs one generation cycle per call across all configured symbols.

    Args:
        config: Application configuration.
        feed: An ``OandaClient`` (or compatible duck-type / mock) providing
            ``fetch_candles`` and ``fetch_prices``.
        signal_repo: Store for accepted signals.
        generator: Signal generator; a default one is built when omitted.
    """

    def __init__(
        self,
        config: Config,
        feed: OandaClient,
        signal_repo: SignalRepo,
        generator: Optional[SignalGenerator] = None,
    ) -> None:
        self._config = config
        self._feed = feed
        self._signals = signal_repo
        self._generator = generator or SignalGenerator()
        self._running: bool = False
        self._cycle_count: int = 0
        self._last_result: Optional[dict] = None

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def last_result(self) -> Optional[dict]:
        return self._last_result

    # ── Lifecycle ────────────────────────────────────────────────────────

    def stop(self) -> None:
        """Signal the engine to stop after the current cycle."""
        self._running = False

    # ── Polling loop ─────────────────────────────────────────────────────

    async def run(
        self,
        poll_interval: int | None = None,
        max_cycles: int = 0,
    ) -> list[dict]:
        """Run the generation loop until stopped.

        Args:
            poll_interval: Seconds between cycles.  Defaults to
                ``config.generation_interval_seconds``.
            max_cycles: Stop after this many cycles (0 = unlimited).

        Returns:
            List of per-cycle result dicts.
        """
        if poll_interval is None:
            poll_interval = self._config.generation_interval_seconds
        self._running = True
        results: list[dict] = []
        cycle = 0

        while self._running:
            cycle += 1
            self._cycle_count += 1
            try:
                result = await self.run_once()
            except Exception as exc:
                logger.error("Cycle %d error: %s", cycle, exc)
                result = {"action": "error", "reason": str(exc)}
            results.append(result)
            self._last_result = result
            logger.info("Cycle %d: %s", cycle, result.get("action", "unknown"))

            if max_cycles > 0 and cycle >= max_cycles:
                break

            # Interruptible sleep, checks _running every second
            for _ in range(poll_interval):
                if not self._running:
                    break
                await asyncio.sleep(1)

        self._running = False
        return results

    # ── Single cycle ─────────────────────────────────────────────────────

    async def run_once(self, utc_now: Optional[datetime] = None) -> dict:
        """Execute one generation cycle.

        Returns a dict describing what happened:

        - ``{"action": "skipped", "reason": "outside_session"}``
        - ``{"action": "cycle", "created": [...], "rejected": [...],
          "no_signal": [...], "errors": [...]}``

        Args:
            utc_now: Current UTC datetime.  Defaults to ``datetime.now(UTC)``.
        """
        if utc_now is None:
            utc_now = datetime.now(timezone.utc)

        if not is_in_session(
            utc_now.hour,
            self._config.session_start_utc,
            self._config.session_end_utc,
        ):
            return {"action": "skipped", "reason": "outside_session"}

        symbols = list(self._config.symbols)
        prices = await self._feed.fetch_prices(symbols)

        outcomes = await asyncio.gather(
            *(self._analyse(symbol, prices.get(symbol), utc_now) for symbol in symbols),
            return_exceptions=True,
        )

        result: dict = {
            "action": "cycle",
            "evaluated_at": utc_now.isoformat(),
            "created": [],
            "rejected": [],
            "no_signal": [],
            "errors": [],
        }

        open_positions = [
            (r["symbol"], r["direction"]) for r in self._signals.query(status="active")
        ]

        for symbol, outcome in zip(symbols, outcomes):
            if isinstance(outcome, Exception):
                logger.error("%s: analysis failed: %s", symbol, outcome)
                result["errors"].append({"symbol": symbol, "reason": str(outcome)})
                continue
            if outcome is None:
                result["no_signal"].append(symbol)
                continue

            check = check_correlation_conflict(
                outcome.symbol, outcome.direction, open_positions
            )
            if check.has_conflict:
                logger.info(
                    "%s %s rejected: correlated with %s (%.2f)",
                    outcome.symbol,
                    outcome.direction.value,
                    ", ".join(check.conflicting_pairs),
                    check.max_correlation,
                )
                result["rejected"].append(
                    {
                        "symbol": outcome.symbol,
                        "direction": outcome.direction.value,
                        "conflicts": list(check.conflicting_pairs),
                    }
                )
                continue

            signal_id = self._signals.insert(outcome)
            open_positions.append((outcome.symbol, outcome.direction.value))
            result["created"].append(self._describe(signal_id, outcome))

        return result

    async def _analyse(
        self,
        symbol: str,
        price: Optional[float],
        utc_now: datetime,
    ) -> Optional[GeneratedSignal]:
        if not price:
            logger.info("%s: no live price, skipped", symbol)
            return None

        timeframes = list(_HISTORY)
        series = await asyncio.gather(
            *(self._feed.fetch_candles(symbol, tf, _HISTORY[tf]) for tf in timeframes)
        )
        candles = dict(zip(timeframes, series))
        return self._generator.generate(symbol, candles, price, utc_now)

    def _describe(self, signal_id: int, signal: GeneratedSignal) -> dict:
        try:
            units = round(
                position_size_for_signal(
                    signal,
                    self._config.account_equity,
                    self._config.risk_per_trade_pct,
                )
            )
        except ValueError:
            units = 0

        logger.info(
            "Signal %d: %s %s @ %.5f SL %.5f TP %s conf %d (%s, %d units)",
            signal_id,
            signal.direction.value,
            signal.symbol,
            signal.entry_price,
            signal.stop_loss,
            ", ".join(f"{tp:.5f}" for tp in signal.take_profits),
            signal.confidence,
            signal.strategy_tag.value,
            units,
        )
        return {
            "id": signal_id,
            "symbol": signal.symbol,
            "direction": signal.direction.value,
            "entry_price": signal.entry_price,
            "stop_loss": signal.stop_loss,
            "take_profits": list(signal.take_profits),
            "confidence": signal.confidence,
            "strategy_tag": signal.strategy_tag.value,
            "units": units,
        }
