"""
Kraken OHLC provider.

Uses the public Kraken API (no authentication required):
  GET https://api.kraken.com/0/public/OHLC?pair=XBTUSD&interval=60

Kraken has no 3-minute bars and returns at most 720 rows per call.
"""

from __future__ import annotations

from typing import List, Optional

import httpx

from ...core.errors import MalformedPayload, ProviderError
from ...models import Interval
from ..base import RawKline
from ..http import HTTP_TIMEOUT_S, client_session, get_json

KRAKEN_BASE_URL = "https://api.kraken.com"

_SYMBOL_TO_PAIR = {
    "SOL": "SOLUSD",
    "ETH": "ETHUSD",
    "BTC": "XBTUSD",
    "DOGE": "XDGUSD",
}

_SUPPORTED = frozenset(
    {Interval.M1, Interval.M5, Interval.M15, Interval.H1, Interval.H4, Interval.D1, Interval.W1}
)


class KrakenKlineProvider:
    """Fetch OHLC bars from the Kraken public API."""

    def __init__(
        self,
        base_url: str = KRAKEN_BASE_URL,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = HTTP_TIMEOUT_S,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = client
        self._timeout_s = timeout_s

    @property
    def provider_name(self) -> str:
        return "kraken"

    @property
    def supported_intervals(self) -> frozenset:
        return _SUPPORTED

    def resolve_symbol(self, symbol: str) -> str:
        upper = symbol.strip().upper()
        for suffix in ("USDT", "USD"):
            if upper.endswith(suffix) and len(upper) > len(suffix):
                upper = upper[: -len(suffix)]
                break
        return _SYMBOL_TO_PAIR.get(upper, f"{upper}USD")

    async def fetch_klines(self, token: str, interval: Interval, limit: int) -> List[RawKline]:
        if interval not in _SUPPORTED:
            raise ProviderError(self.provider_name, f"interval {interval.value} not offered")
        url = f"{self._base_url}/0/public/OHLC"
        async with client_session(self._client, self._timeout_s) as client:
            data = await get_json(
                self.provider_name, client, url, {"pair": token, "interval": interval.minutes}
            )

        if not isinstance(data, dict):
            raise MalformedPayload(self.provider_name, f"expected object, got {type(data).__name__}")
        if data.get("error"):
            raise ProviderError(self.provider_name, f"Kraken error: {data['error']}")
        result = data.get("result")
        if not isinstance(result, dict):
            raise MalformedPayload(self.provider_name, "response missing result")
        pair_keys = [k for k in result if k != "last"]
        if not pair_keys:
            raise MalformedPayload(self.provider_name, "response missing pair data")
        raw = result[pair_keys[0]]
        if not isinstance(raw, list):
            raise MalformedPayload(self.provider_name, "pair data is not a list")

        duration = interval.duration_ms
        rows: List[RawKline] = []
        for entry in raw[-limit:]:
            # [time(s), open, high, low, close, vwap, volume, count]
            if not isinstance(entry, list) or len(entry) < 7:
                raise MalformedPayload(self.provider_name, f"bad OHLC row: {entry!r}")
            try:
                open_ms = int(entry[0]) * 1000
            except (TypeError, ValueError) as exc:
                raise MalformedPayload(self.provider_name, f"bad OHLC time: {entry[0]!r}") from exc
            rows.append((open_ms, entry[1], entry[2], entry[3], entry[4], entry[6], open_ms + duration - 1))
        return rows
