"""
Binance spot kline provider.

Uses the public Binance API (no authentication required):
  GET {base}/klines?symbol=BTCUSDT&interval=1h&limit=200

The international endpoint answers HTTP 451/403 from some regions, so the
provider walks a list of mirror base URLs before giving up.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import httpx

from ...core.errors import MalformedPayload, ProviderError
from ...models import ALL_INTERVALS, Interval
from ..base import RawKline
from ..http import HTTP_TIMEOUT_S, client_session, decode_json

logger = logging.getLogger(__name__)

BINANCE_BASE_URLS = (
    "https://api.binance.com/api/v3",
    "https://api.binance.us/api/v3",
    "https://data-api.binance.vision/api/v3",
)
MAX_LIMIT = 1000
_QUOTE = "USDT"
_BLOCKED_STATUS = (403, 451)


class BinanceKlineProvider:
    """Fetch OHLCV klines from Binance, falling through mirrors on regional blocks."""

    def __init__(
        self,
        base_urls: Optional[Sequence[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: float = HTTP_TIMEOUT_S,
    ) -> None:
        self._base_urls = list(base_urls or BINANCE_BASE_URLS)
        self._client = client
        self._timeout_s = timeout_s

    @property
    def provider_name(self) -> str:
        return "binance"

    @property
    def supported_intervals(self) -> frozenset:
        return frozenset(ALL_INTERVALS)

    def resolve_symbol(self, symbol: str) -> str:
        upper = symbol.strip().upper()
        if upper.endswith(_QUOTE):
            return upper
        return f"{upper}{_QUOTE}"

    async def fetch_klines(self, token: str, interval: Interval, limit: int) -> List[RawKline]:
        params = {"symbol": token, "interval": interval.value, "limit": min(limit, MAX_LIMIT)}
        errors: List[str] = []
        async with client_session(self._client, self._timeout_s) as client:
            for base in self._base_urls:
                try:
                    resp = await client.get(f"{base}/klines", params=params)
                except httpx.HTTPError as exc:
                    errors.append(f"{base}: {type(exc).__name__}")
                    logger.debug("Binance %s failed: %s", base, exc)
                    continue
                if resp.status_code in _BLOCKED_STATUS or resp.status_code >= 500:
                    errors.append(f"{base}: HTTP {resp.status_code}")
                    logger.debug("Binance %s answered %d, trying next", base, resp.status_code)
                    continue
                if resp.status_code == 429:
                    raise ProviderError(self.provider_name, "rate limit (HTTP 429)")
                if resp.status_code >= 400:
                    raise ProviderError(self.provider_name, f"HTTP {resp.status_code} from {base}")
                return self._parse(decode_json(self.provider_name, resp))
        raise ProviderError(self.provider_name, f"all endpoints failed: {'; '.join(errors)}")

    def _parse(self, data: object) -> List[RawKline]:
        if not isinstance(data, list):
            raise MalformedPayload(self.provider_name, f"expected list, got {type(data).__name__}")
        rows: List[RawKline] = []
        for entry in data:
            if not isinstance(entry, list) or len(entry) < 7:
                raise MalformedPayload(self.provider_name, f"bad kline row: {entry!r}")
            # [openTime, open, high, low, close, volume, closeTime, ...]
            rows.append((entry[0], entry[1], entry[2], entry[3], entry[4], entry[5], entry[6]))
        return rows
