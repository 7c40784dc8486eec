"""
Candle fetcher: one interval's worth of OHLCV bars for one symbol, served by
whichever provider the failover controller selects.

Provider payloads are normalized here, at a single boundary, into the fixed
Candle schema: duplicate open times dropped (first occurrence wins), ascending
order enforced, truncated to the most recent `limit` bars.
"""
from __future__ import annotations

import logging
import math
from typing import Any, Iterable, List, Optional, Union

from .core.errors import AllProvidersUnavailable, MalformedPayload, NoDataAvailable
from .models import Candle, CandleSeries, Interval
from .providers.base import KlineProvider, RawKline
from .providers.failover import FailoverController

logger = logging.getLogger(__name__)

MAX_FAILOVER_HOPS = 1


def _number(provider_name: str, value: Any, field: str) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedPayload(provider_name, f"non-numeric {field}: {value!r}") from exc
    if not math.isfinite(out):
        raise MalformedPayload(provider_name, f"non-finite {field}: {value!r}")
    return out


def _parse_row(provider_name: str, symbol: str, interval: Interval, row: RawKline) -> Candle:
    if not isinstance(row, (list, tuple)) or len(row) < 6:
        raise MalformedPayload(provider_name, f"bad OHLCV row: {row!r}")
    open_time = int(_number(provider_name, row[0], "openTime"))
    if len(row) > 6 and row[6] is not None:
        close_time = int(_number(provider_name, row[6], "closeTime"))
    else:
        close_time = open_time + interval.duration_ms - 1
    return Candle(
        symbol=symbol,
        interval=interval,
        open_time=open_time,
        close_time=close_time,
        open=_number(provider_name, row[1], "open"),
        high=_number(provider_name, row[2], "high"),
        low=_number(provider_name, row[3], "low"),
        close=_number(provider_name, row[4], "close"),
        volume=_number(provider_name, row[5], "volume"),
    )


def normalize_candles(
    symbol: str,
    interval: Union[str, Interval],
    rows: Iterable[RawKline],
    limit: int,
    provider_name: Optional[str] = None,
) -> CandleSeries:
    """
    Raw provider rows -> CandleSeries. Pure: the same payload always yields
    the same series. Raises MalformedPayload if any row is unusable.
    """
    iv = Interval.parse(interval)
    source = provider_name or "unknown"
    seen = set()
    candles: List[Candle] = []
    for row in rows:
        candle = _parse_row(source, symbol, iv, row)
        if candle.open_time in seen:
            continue
        seen.add(candle.open_time)
        candles.append(candle)
    candles.sort(key=lambda c: c.open_time)
    if limit > 0:
        candles = candles[-limit:]
    return CandleSeries(symbol=symbol, interval=iv, candles=tuple(candles), provider_name=provider_name)


def check_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    return limit


class CandleFetcher:
    """
    Fetch and normalize candles with failover.

    A failing provider is recorded against the shared health registry and the
    next selectable candidate is tried, at most `max_failover_hops` times per
    request. Task cancellation propagates untouched: asyncio.CancelledError is
    not an Exception, so it never reaches the error path.
    """

    def __init__(self, controller: FailoverController, max_failover_hops: int = MAX_FAILOVER_HOPS) -> None:
        if max_failover_hops < 0:
            raise ValueError("max_failover_hops must be >= 0")
        self.controller = controller
        self.max_failover_hops = max_failover_hops

    async def fetch_candles(
        self, symbol: str, interval: Union[str, Interval], limit: int
    ) -> CandleSeries:
        iv = Interval.parse(interval)
        check_limit(limit)
        sym = (symbol or "").strip().upper()
        if not sym:
            raise ValueError("symbol must be a non-empty ticker")

        remaining: List[KlineProvider] = self.controller.candidates_for(iv)
        if not remaining:
            raise AllProvidersUnavailable(f"No configured provider offers {iv.value} bars")

        errors: List[str] = []
        attempts = 0
        while remaining and attempts <= self.max_failover_hops:
            try:
                provider = self.controller.select_provider(remaining)
            except AllProvidersUnavailable:
                if not errors:
                    raise
                break
            attempts += 1
            remaining = remaining[remaining.index(provider) + 1:]
            name = provider.provider_name
            if errors:
                logger.info("Failing over to %s for %s %s", name, sym, iv.value)

            try:
                token = provider.resolve_symbol(sym)
                rows = await provider.fetch_klines(token, iv, limit)
                series = normalize_candles(sym, iv, rows, limit, provider_name=name)
            except Exception as exc:
                msg = f"{name}: {type(exc).__name__}: {exc}"
                errors.append(msg)
                logger.warning("Kline fetch failed for %s %s via %s: %s", sym, iv.value, name, exc)
                self.controller.record_error(provider)
                continue

            self.controller.record_success(provider)
            return series

        raise NoDataAvailable(f"No data for {sym} {iv.value}: {'; '.join(errors)}")
