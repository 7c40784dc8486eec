"""
Analysis facade: wires providers, health registry, fetcher, orchestrator and
analyzers together, and owns the request-level TTL cache.

HTTP handlers and the CLI talk to MarketAnalysisService only.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from . import config
from .cache import TTLCache, request_fingerprint
from .confluence import ConfluenceZoneDetector
from .core.errors import NoDataAvailable
from .ema import compute_ema_set
from .fetcher import CandleFetcher
from .levels import TechnicalLevelAnalyzer, fibonacci_levels, nearest_levels, psychological_levels, swing_range
from .models import CandleSeries, ConfluenceZone, EMASeries, Interval, Snapshot, TechnicalLevel
from .orchestrator import MultiTimeframeOrchestrator
from .providers.defaults import create_failover_controller
from .providers.failover import FailoverController
from .timeutils import now_utc_iso

logger = logging.getLogger(__name__)

LEVELS_LIMIT = 300


@dataclass(frozen=True)
class AnalysisResult:
    """Everything derived from one snapshot. Absent intervals have no levels or EMAs."""

    snapshot: Snapshot
    levels: Dict[Interval, List[TechnicalLevel]]
    zones: List[ConfluenceZone]
    emas: Dict[Interval, Dict[int, EMASeries]]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "snapshot": self.snapshot.to_dict(),
            "levels": {iv.value: [lvl.to_dict() for lvl in lvls] for iv, lvls in self.levels.items()},
            "zones": [z.to_dict() for z in self.zones],
            "emas": {
                iv.value: {str(p): e.to_dict() for p, e in by_period.items()}
                for iv, by_period in self.emas.items()
            },
        }


class MarketAnalysisService:
    """
    Facade over the engine. Construct with explicit collaborators in tests,
    or with from_config() in applications.
    """

    def __init__(
        self,
        controller: FailoverController,
        *,
        intervals: Optional[Sequence[Union[str, Interval]]] = None,
        default_limit: int = 200,
        snapshot_timeout_s: Optional[float] = None,
        max_failover_hops: int = 1,
        analyzer: Optional[TechnicalLevelAnalyzer] = None,
        detector: Optional[ConfluenceZoneDetector] = None,
        ema_periods: Iterable[int] = (9, 21, 50, 100, 200),
        cache: Optional[TTLCache] = None,
    ) -> None:
        self.controller = controller
        self.fetcher = CandleFetcher(controller, max_failover_hops=max_failover_hops)
        self.orchestrator = MultiTimeframeOrchestrator(
            self.fetcher, intervals=intervals, default_limit=default_limit
        )
        self.default_limit = default_limit
        self.snapshot_timeout_s = snapshot_timeout_s
        self.analyzer = analyzer or TechnicalLevelAnalyzer()
        self.detector = detector or ConfluenceZoneDetector()
        self.ema_periods = tuple(ema_periods)
        self.cache = cache

    @classmethod
    def from_config(cls, controller: Optional[FailoverController] = None) -> "MarketAnalysisService":
        return cls(
            controller or create_failover_controller(),
            intervals=config.snapshot_intervals(),
            default_limit=config.default_limit(),
            snapshot_timeout_s=config.snapshot_timeout_s(),
            max_failover_hops=config.max_failover_hops(),
            analyzer=TechnicalLevelAnalyzer(config.swing_window(), config.level_tolerance_pct()),
            detector=ConfluenceZoneDetector(config.confluence_tolerance_pct()),
            ema_periods=config.ema_periods(),
            cache=TTLCache(config.cache_ttl_s()),
        )

    def _cached(self, key: str) -> Optional[Any]:
        if self.cache is None:
            return None
        hit = self.cache.get(key)
        if hit is not None:
            logger.debug("Cache hit %s", key[:12])
        return hit

    def _store(self, key: str, value: Any) -> None:
        if self.cache is not None:
            self.cache.put(key, value)

    def analyze_snapshot(self, snapshot: Snapshot) -> AnalysisResult:
        """Pure analysis of an already-fetched snapshot."""
        levels: Dict[Interval, List[TechnicalLevel]] = {}
        emas: Dict[Interval, Dict[int, EMASeries]] = {}
        for iv, series in snapshot.available.items():
            levels[iv] = self.analyzer.analyze(series)
            emas[iv] = compute_ema_set(series, self.ema_periods)
        all_levels = [lvl for lvls in levels.values() for lvl in lvls]
        zones = self.detector.detect(all_levels, current_price=snapshot.current_price)
        return AnalysisResult(snapshot=snapshot, levels=levels, zones=zones, emas=emas)

    async def snapshot(
        self, symbol: str, limit: Optional[int] = None, timeout: Optional[float] = None
    ) -> Snapshot:
        return await self.orchestrator.fetch_snapshot(
            symbol,
            limit=limit or self.default_limit,
            timeout=timeout if timeout is not None else self.snapshot_timeout_s,
        )

    async def analyze(
        self, symbol: str, limit: Optional[int] = None, timeout: Optional[float] = None
    ) -> AnalysisResult:
        """Snapshot + levels + confluence zones + EMAs, cached per request fingerprint."""
        n = limit or self.default_limit
        key = request_fingerprint(op="analyze", symbol=symbol.strip().upper(), limit=n)
        hit = self._cached(key)
        if hit is not None:
            return hit
        snap = await self.snapshot(symbol, limit=n, timeout=timeout)
        result = self.analyze_snapshot(snap)
        # partial snapshots are not cached; the next request retries the gaps
        if not snap.missing:
            self._store(key, result)
        return result

    def analyze_sync(
        self, symbol: str, limit: Optional[int] = None, timeout: Optional[float] = None
    ) -> AnalysisResult:
        return asyncio.run(self.analyze(symbol, limit=limit, timeout=timeout))

    async def fetch_klines(
        self, symbol: str, interval: Union[str, Interval], limit: Optional[int] = None
    ) -> CandleSeries:
        iv = Interval.parse(interval)
        n = limit or self.default_limit
        key = request_fingerprint(op="klines", symbol=symbol.strip().upper(), interval=iv.value, limit=n)
        hit = self._cached(key)
        if hit is not None:
            return hit
        series = await self.fetcher.fetch_candles(symbol, iv, n)
        self._store(key, series)
        return series

    async def technical_levels(
        self, symbol: str, interval: Union[str, Interval], limit: int = LEVELS_LIMIT
    ) -> Dict[str, Any]:
        """
        Levels for one timeframe plus the key support/resistance around the last close.
        Also carries the swing range of the fetched bars, its Fibonacci
        retracements and the round-number levels around the last close.
        """
        series = await self.fetch_klines(symbol, interval, limit)
        if series.is_empty:
            raise NoDataAvailable(f"No bars for {series.symbol} {series.interval.value}")
        levels = self.analyzer.analyze(series)
        key_support, key_resistance = nearest_levels(levels, series.last_close)
        swing_high, swing_low = swing_range(series)
        return {
            "symbol": series.symbol,
            "interval": series.interval.value,
            "currentPrice": series.last_close,
            "levels": [lvl.to_dict() for lvl in levels],
            "keySupport": key_support.to_dict() if key_support else None,
            "keyResistance": key_resistance.to_dict() if key_resistance else None,
            "swingHigh": swing_high,
            "swingLow": swing_low,
            "fibonacci": [fib.to_dict() for fib in fibonacci_levels(series)],
            "psychological": psychological_levels(series.last_close),
        }

    async def emas(
        self,
        symbol: str,
        interval: Union[str, Interval],
        periods: Optional[Iterable[int]] = None,
        limit: Optional[int] = None,
    ) -> Dict[int, EMASeries]:
        series = await self.fetch_klines(symbol, interval, limit)
        return compute_ema_set(series, tuple(periods) if periods else self.ema_periods)

    def provider_status(self) -> Dict[str, Any]:
        health = self.controller.get_health()
        return {
            "asOf": now_utc_iso(),
            "activeProvider": self.controller.active_provider(),
            "providers": {name: h.to_dict() for name, h in health.items()},
        }
