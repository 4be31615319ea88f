"""MonitorScheduler — feeds monitoring passes from a timer and live price events.

Both triggers push ``Tick`` events onto one ``asyncio.Queue``; a single
consumer task drains it and runs one pass per tick, plus a periodic audit of
expired signals without an outcome.  ``stop()`` prevents new passes and
waits for an in-flight pass to finish instead of cancelling it.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional, Protocol

import httpx

from pipwatch.monitor.models import PassReport, Tick
from pipwatch.monitor.outcome_monitor import OutcomeMonitor

logger = logging.getLogger("pipwatch.scheduler")


class PriceSource(Protocol):
    """Anything that can produce a ``{symbol: mid}`` snapshot."""

    async def fetch_prices(self, symbols: list[str]) -> dict[str, float]:
        ...


class MonitorScheduler:
    """Lifecycle owner for the monitoring loop.

    Args:
        monitor: The ``OutcomeMonitor`` that performs each pass.
        price_source: Source of price snapshots for timer ticks.
        interval_seconds: Seconds between timer ticks.
        audit_every: Run the expired-signal audit on the first pass and
            then once every this many passes.
    """

    def __init__(
        self,
        monitor: OutcomeMonitor,
        price_source: Optional[PriceSource],
        interval_seconds: float = 10,
        audit_every: int = 30,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be positive, got {interval_seconds}")
        if audit_every < 1:
            raise ValueError(f"audit_every must be at least 1, got {audit_every}")
        self._monitor = monitor
        self._price_source = price_source
        self._interval = interval_seconds
        self._audit_every = audit_every
        self._queue: Optional[asyncio.Queue] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._consumer_task: Optional[asyncio.Task] = None
        self._running = False
        self._pass_count = 0
        self._last_report: Optional[PassReport] = None
        self._last_audit: Optional[PassReport] = None
        self._started_at: Optional[str] = None

    # ── Public API ───────────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pass_count(self) -> int:
        return self._pass_count

    @property
    def last_report(self) -> Optional[PassReport]:
        return self._last_report

    def status(self) -> dict:
        """Snapshot for the status endpoint."""
        return {
            "running": self._running,
            "interval_seconds": self._interval,
            "started_at": self._started_at,
            "pass_count": self._pass_count,
            "pending_ticks": self._queue.qsize() if self._queue is not None else 0,
            "last_pass": self._last_report.to_dict() if self._last_report else None,
            "last_audit": self._last_audit.to_dict() if self._last_audit else None,
        }

    async def start(self) -> None:
        """Start the timer and consumer tasks.  No-op when already running."""
        if self._running:
            return
        self._queue = asyncio.Queue()
        self._running = True
        self._started_at = datetime.now(timezone.utc).isoformat()
        self._consumer_task = asyncio.create_task(self._consume(), name="monitor-consumer")
        self._timer_task = asyncio.create_task(self._timer(), name="monitor-timer")
        logger.info("Monitor scheduler started (interval=%ss)", self._interval)

    async def stop(self) -> None:
        """Stop producing ticks and wait for the in-flight pass, if any."""
        if not self._running:
            return
        self._running = False

        if self._timer_task is not None:
            self._timer_task.cancel()
            try:
                await self._timer_task
            except asyncio.CancelledError:
                pass
            self._timer_task = None

        if self._consumer_task is not None:
            # Wake the consumer if it is idle on an empty queue.
            self._queue.put_nowait(None)
            await self._consumer_task
            self._consumer_task = None

        logger.info("Monitor scheduler stopped after %d passes", self._pass_count)

    def notify_prices(self, prices: dict[str, float]) -> bool:
        """Queue an event tick carrying *prices*.

        Returns:
            ``False`` when the scheduler is not running and nothing was
            queued.
        """
        if not self._running or self._queue is None:
            return False
        self._queue.put_nowait(Tick(source="event", prices=dict(prices)))
        return True

    def trigger(self) -> bool:
        """Queue a timer-style tick immediately."""
        if not self._running or self._queue is None:
            return False
        self._queue.put_nowait(Tick(source="timer"))
        return True

    # ── Internals ────────────────────────────────────────────────────────

    async def _timer(self) -> None:
        while self._running:
            await asyncio.sleep(self._interval)
            if self._running:
                self._queue.put_nowait(Tick(source="timer"))

    async def _consume(self) -> None:
        while True:
            tick = await self._queue.get()
            if tick is None or not self._running:
                break
            try:
                await self._run_tick(tick)
            except Exception as exc:
                logger.error("Monitor pass (%s) failed: %s", tick.source, exc)

    async def _snapshot(self) -> Optional[dict[str, float]]:
        if self._price_source is None:
            logger.debug("Timer tick ignored: no price source configured")
            return None
        symbols = await asyncio.to_thread(self._monitor.watched_symbols)
        if not symbols:
            return {}
        try:
            return await self._price_source.fetch_prices(symbols)
        except httpx.HTTPError as exc:
            logger.warning("Price snapshot failed, pass skipped: %s", exc)
            return None

    async def _run_tick(self, tick: Tick) -> None:
        prices = tick.prices
        if prices is None:
            prices = await self._snapshot()
            if prices is None:
                return

        report = await asyncio.to_thread(self._monitor.run_pass, prices, tick.source)
        self._pass_count += 1
        self._last_report = report

        if (self._pass_count - 1) % self._audit_every == 0:
            self._last_audit = await asyncio.to_thread(self._monitor.audit_expired, prices)
