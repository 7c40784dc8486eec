"""
Multi-timeframe orchestrator: one concurrent candle fetch per interval,
assembled into a Snapshot.

Each interval succeeds or fails on its own. A failed or timed-out interval is
an explicit absence in the snapshot; only a snapshot where nothing succeeded
is an error.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, Optional, Sequence, Union

from .core.errors import SnapshotUnavailable
from .fetcher import CandleFetcher, check_limit
from .models import CandleSeries, Interval, Snapshot, parse_intervals

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 200
DEFAULT_INTERVALS = (
    Interval.M1,
    Interval.M5,
    Interval.M15,
    Interval.H1,
    Interval.H4,
    Interval.D1,
    Interval.W1,
)
TIMEOUT_REASON = "timeout"


async def _cancel_all(tasks: Iterable[asyncio.Task]) -> None:
    """Cancel unfinished tasks and wait until each has actually stopped."""
    unfinished = [t for t in tasks if not t.done()]
    for task in unfinished:
        task.cancel()
    if unfinished:
        await asyncio.gather(*unfinished, return_exceptions=True)


class MultiTimeframeOrchestrator:
    """Fan out CandleFetcher calls across intervals. No caching here."""

    def __init__(
        self,
        fetcher: CandleFetcher,
        intervals: Optional[Sequence[Union[str, Interval]]] = None,
        default_limit: int = DEFAULT_LIMIT,
    ) -> None:
        self.fetcher = fetcher
        self.intervals = parse_intervals(intervals) if intervals is not None else DEFAULT_INTERVALS
        self.default_limit = default_limit

    async def fetch_snapshot(
        self,
        symbol: str,
        limit: Optional[int] = None,
        timeout: Optional[float] = None,
        intervals: Optional[Sequence[Union[str, Interval]]] = None,
    ) -> Snapshot:
        """
        Fetch every interval concurrently and build a Snapshot.

        `timeout` (seconds) bounds the whole fan-out; still-pending intervals
        are cancelled and reported missing with reason "timeout".
        Raises SnapshotUnavailable if no interval produced bars.
        """
        ivs = parse_intervals(intervals) if intervals is not None else self.intervals
        if not ivs:
            raise ValueError("at least one interval is required")
        n = check_limit(limit if limit is not None else self.default_limit)
        sym = (symbol or "").strip().upper()
        if not sym:
            raise ValueError("symbol must be a non-empty ticker")

        tasks: Dict[Interval, asyncio.Task] = {
            iv: asyncio.create_task(self.fetcher.fetch_candles(sym, iv, n), name=f"klines:{sym}:{iv.value}")
            for iv in ivs
        }
        try:
            done, pending = await asyncio.wait(tasks.values(), timeout=timeout)
        except BaseException:
            # caller cancelled us: no interval task may outlive the snapshot
            await _cancel_all(tasks.values())
            raise
        await _cancel_all(pending)

        series: Dict[Interval, Optional[CandleSeries]] = {}
        missing: Dict[Interval, str] = {}
        for iv, task in tasks.items():
            if task not in done:
                series[iv] = None
                missing[iv] = TIMEOUT_REASON
                logger.warning("Snapshot %s: %s timed out after %ss", sym, iv.value, timeout)
                continue
            exc = task.exception()
            if exc is not None:
                series[iv] = None
                missing[iv] = f"{type(exc).__name__}: {exc}"
                logger.warning("Snapshot %s: %s unavailable: %s", sym, iv.value, exc)
                continue
            series[iv] = task.result()

        current_price = self._current_price(series)
        if current_price is None:
            raise SnapshotUnavailable(
                f"No interval returned data for {sym}: "
                + "; ".join(f"{iv.value}={reason}" for iv, reason in missing.items())
            )
        return Snapshot(symbol=sym, current_price=current_price, series=series, missing=missing)

    @staticmethod
    def _current_price(series: Dict[Interval, Optional[CandleSeries]]) -> Optional[float]:
        """Last close of the shortest interval that has bars."""
        for iv in sorted(series, key=lambda i: i.duration_ms):
            s = series[iv]
            if s is not None and not s.is_empty:
                return s.last_close
        return None
