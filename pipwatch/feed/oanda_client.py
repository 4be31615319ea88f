"""OANDA v20 REST API async client.

Read-only market data: candle history and live pricing snapshots.
"""

import asyncio
import logging
from typing import Optional

import httpx

from pipwatch.analysis.models import CandleData
from pipwatch.config import Config
from pipwatch.feed.models import PriceQuote, granularity_for
from pipwatch.pricing.pips import normalize_symbol, to_instrument

logger = logging.getLogger("pipwatch.feed")

# Retry settings
_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 2.0  # seconds; doubles each attempt
_RETRYABLE_STATUS_CODES = {502, 503, 504, 429}


class OandaClient:
    """Async client wrapping the OANDA v20 market-data endpoints."""

    def __init__(self, config: Config) -> None:
        self._config = config
        self._base_url = config.oanda_base_url
        self._account_id = config.oanda_account_id
        self._headers = {
            "Authorization": f"Bearer {config.oanda_api_token}",
            "Content-Type": "application/json",
        }

    # ── Retry helper ─────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs,
    ) -> httpx.Response:
        """Execute an HTTP request with exponential-backoff retry.

        Retries on transient server errors (502, 503, 504) and rate-limits
        (429).  Non-retryable errors are raised immediately.
        """
        last_exc: Optional[Exception] = None

        for attempt in range(_MAX_RETRIES):
            try:
                async with httpx.AsyncClient() as client:
                    resp = await getattr(client, method)(
                        url,
                        headers=self._headers,
                        timeout=30.0,
                        **kwargs,
                    )

                if resp.status_code in _RETRYABLE_STATUS_CODES:
                    delay = _RETRY_BASE_DELAY * (2 ** attempt)
                    logger.warning(
                        "OANDA %s %s returned %d, retry %d/%d in %.1fs",
                        method.upper(), url, resp.status_code,
                        attempt + 1, _MAX_RETRIES, delay,
                    )
                    await asyncio.sleep(delay)
                    last_exc = httpx.HTTPStatusError(
                        f"Server error '{resp.status_code}'",
                        request=resp.request,
                        response=resp,
                    )
                    continue

                resp.raise_for_status()
                return resp

            except httpx.TransportError as exc:
                delay = _RETRY_BASE_DELAY * (2 ** attempt)
                logger.warning(
                    "OANDA %s %s transport error (%s), retry %d/%d in %.1fs",
                    method.upper(), url, exc,
                    attempt + 1, _MAX_RETRIES, delay,
                )
                last_exc = exc
                await asyncio.sleep(delay)

        # All retries exhausted
        raise last_exc  # type: ignore[misc]

    # ── Candle data ──────────────────────────────────────────────────────

    async def fetch_candles(
        self,
        symbol: str,
        timeframe: str,
        count: int = 200,
    ) -> list[CandleData]:
        """Fetch completed candles for *symbol*.

        Args:
            symbol: ``"EURUSD"`` or ``"EUR_USD"``.
            timeframe: Analysis timeframe, e.g. ``"W"``, ``"D"``, ``"4H"``.
            count: Number of candles to request (max 5000).

        Returns:
            List of ``CandleData`` ordered oldest-first.  The still-forming
            bar is dropped.

        Raises:
            ValueError: If *timeframe* is not supported.
        """
        url = f"{self._base_url}/v3/instruments/{to_instrument(symbol)}/candles"
        params = {
            "granularity": granularity_for(timeframe),
            "count": count,
            "price": "M",  # mid prices
        }

        resp = await self._request_with_retry("get", url, params=params)

        data = resp.json()
        candles: list[CandleData] = []
        for c in data.get("candles", []):
            if not c.get("complete", True):
                continue
            mid = c["mid"]
            candles.append(
                CandleData(
                    time=c["time"],
                    open=float(mid["o"]),
                    high=float(mid["h"]),
                    low=float(mid["l"]),
                    close=float(mid["c"]),
                    volume=int(c.get("volume", 0)),
                )
            )
        return candles

    # ── Pricing ──────────────────────────────────────────────────────────

    async def fetch_quotes(self, symbols: list[str]) -> list[PriceQuote]:
        """Current best bid/ask for each of *symbols*."""
        if not symbols:
            return []
        url = f"{self._base_url}/v3/accounts/{self._account_id}/pricing"
        params = {"instruments": ",".join(to_instrument(s) for s in symbols)}

        resp = await self._request_with_retry("get", url, params=params)

        quotes: list[PriceQuote] = []
        for p in resp.json().get("prices", []):
            bids = p.get("bids") or []
            asks = p.get("asks") or []
            if not bids or not asks:
                continue
            quotes.append(
                PriceQuote(
                    instrument=p["instrument"],
                    bid=float(bids[0]["price"]),
                    ask=float(asks[0]["price"]),
                    time=p.get("time", ""),
                )
            )
        return quotes

    async def fetch_prices(self, symbols: list[str]) -> dict[str, float]:
        """Mid-price snapshot keyed by compact symbol (``"EURUSD"``)."""
        quotes = await self.fetch_quotes(symbols)
        return {normalize_symbol(q.instrument): q.mid for q in quotes}
