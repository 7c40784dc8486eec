"""
Provider interfaces and data contracts.

Every market-data upstream implements KlineProvider: it resolves a generic
ticker ("BTC") into its own symbol token and returns raw OHLCV rows for one
interval. Normalization into Candle objects happens in crypto_mtf.fetcher,
so nothing downstream special-cases provider identity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional, Protocol, Sequence, runtime_checkable

from ..models import Interval
from ..timeutils import epoch_to_iso

# (open_time_ms, open, high, low, close, volume, close_time_ms or None)
RawKline = Sequence[Any]


@dataclass
class ProviderHealth:
    """Mutable health state for a single provider. Mutated only by ProviderHealthRegistry."""

    provider_id: str
    last_success_time: Optional[float] = None
    last_error_time: Optional[float] = None
    consecutive_error_count: int = 0
    healthy: bool = True
    half_open: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "providerId": self.provider_id,
            "lastSuccessTime": epoch_to_iso(self.last_success_time),
            "lastErrorTime": epoch_to_iso(self.last_error_time),
            "consecutiveErrorCount": self.consecutive_error_count,
            "healthy": self.healthy,
            "halfOpen": self.half_open,
        }


@runtime_checkable
class KlineProvider(Protocol):
    """Protocol for candle/kline providers."""

    @property
    def provider_name(self) -> str: ...

    @property
    def supported_intervals(self) -> FrozenSet[Interval]: ...

    def resolve_symbol(self, symbol: str) -> str:
        """Generic ticker ('BTC') -> provider token ('BTCUSDT', 'XBTUSD', ...)."""
        ...

    async def fetch_klines(self, token: str, interval: Interval, limit: int) -> List[RawKline]:
        """Fetch raw OHLCV rows, any order. Raise ProviderError on failure."""
        ...
