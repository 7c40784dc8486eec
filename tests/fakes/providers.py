"""
Fake kline providers for tests: deterministic bars, fail-N-then-succeed,
always-fail, slow intervals and malformed payloads.

No live network; used by the fetcher, orchestrator, service, API and CLI tests.
"""

from __future__ import annotations

import asyncio
import math
from typing import Dict, Iterable, List, Optional

from crypto_mtf.models import ALL_INTERVALS, Interval

# Last bar of every fake series opens here (2026-01-01T00:00:00Z).
FAKE_END_MS = 1_767_225_600_000

DEFAULT_PRICES = {"BTC": 50000.0, "ETH": 3000.0, "SOL": 150.0}


def wave_price(base: float, i: float, cycle: int = 24, amplitude: float = 0.02) -> float:
    """Smooth oscillation around `base`: one strict peak and trough per cycle."""
    return base * (1.0 + amplitude * math.sin(2.0 * math.pi * i / cycle))


def make_rows(base: float, interval: Interval, limit: int, *, cycle: int = 24) -> List[tuple]:
    """Deterministic raw kline rows, oldest first, ending at FAKE_END_MS."""
    duration = interval.duration_ms
    start = FAKE_END_MS - (limit - 1) * duration
    rows = []
    for i in range(limit):
        open_ms = start + i * duration
        close = wave_price(base, i, cycle)
        # open half a step back keeps every peak and trough strict
        open_ = wave_price(base, i - 0.5, cycle)
        rows.append(
            (
                open_ms,
                open_,
                max(open_, close) * 1.001,
                min(open_, close) * 0.999,
                close,
                1000.0 + i,
                open_ms + duration - 1,
            )
        )
    return rows


def _base_token(token: str) -> str:
    return token[:-4] if token.endswith("USDT") else token


# ---------------------------------------------------------------------------
# Always succeed with deterministic bars
# ---------------------------------------------------------------------------


class FakeKlineProvider:
    """
    Kline provider that returns deterministic wave-shaped bars. No network.

    `delays` maps an interval to seconds slept before answering; `shuffle`
    returns rows newest-first with a duplicated row to exercise normalization.
    """

    def __init__(
        self,
        name: str,
        *,
        intervals: Optional[Iterable[Interval]] = None,
        prices: Optional[Dict[str, float]] = None,
        delays: Optional[Dict[Interval, float]] = None,
        empty_intervals: Optional[Iterable[Interval]] = None,
        shuffle: bool = False,
        cycle: int = 24,
    ):
        self._name = name
        self._intervals = frozenset(intervals if intervals is not None else ALL_INTERVALS)
        self._prices = prices or dict(DEFAULT_PRICES)
        self._delays = dict(delays or {})
        self._empty = frozenset(empty_intervals or ())
        self._shuffle = shuffle
        self._cycle = cycle
        self.call_count = 0
        self.calls: List[tuple] = []

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def supported_intervals(self) -> frozenset:
        return self._intervals

    def resolve_symbol(self, symbol: str) -> str:
        return f"{symbol.upper()}USDT"

    async def fetch_klines(self, token: str, interval: Interval, limit: int) -> List[tuple]:
        self.call_count += 1
        self.calls.append((token, interval, limit))
        delay = self._delays.get(interval)
        if delay:
            await asyncio.sleep(delay)
        if interval in self._empty:
            return []
        base = self._prices.get(_base_token(token), 100.0)
        rows = make_rows(base, interval, limit, cycle=self._cycle)
        if self._shuffle:
            rows = list(reversed(rows)) + [rows[-1]]
        return rows


# ---------------------------------------------------------------------------
# Fail N times then succeed
# ---------------------------------------------------------------------------


class FakeKlineProviderFailNThenSucceed(FakeKlineProvider):
    """Fails the first N calls, then returns deterministic bars."""

    def __init__(self, name: str, fail_times: int, **kwargs):
        super().__init__(name, **kwargs)
        self._fail_times = fail_times

    async def fetch_klines(self, token: str, interval: Interval, limit: int) -> List[tuple]:
        if self.call_count + 1 <= self._fail_times:
            self.call_count += 1
            self.calls.append((token, interval, limit))
            raise RuntimeError(f"{self._name} simulated failure #{self.call_count}")
        return await super().fetch_klines(token, interval, limit)


# ---------------------------------------------------------------------------
# Always fail
# ---------------------------------------------------------------------------


class FakeKlineProviderAlwaysFail(FakeKlineProvider):
    """Every call raises. Used to trip the health registry."""

    async def fetch_klines(self, token: str, interval: Interval, limit: int) -> List[tuple]:
        self.call_count += 1
        self.calls.append((token, interval, limit))
        delay = self._delays.get(interval)
        if delay:
            await asyncio.sleep(delay)
        raise RuntimeError(f"{self._name} is down")


# ---------------------------------------------------------------------------
# Malformed payload
# ---------------------------------------------------------------------------


class FakeKlineProviderMalformed(FakeKlineProvider):
    """Answers, but with rows that cannot be normalized."""

    async def fetch_klines(self, token: str, interval: Interval, limit: int) -> List[tuple]:
        self.call_count += 1
        self.calls.append((token, interval, limit))
        return [(FAKE_END_MS, "abc", 1.0, 1.0, 1.0, 1.0, None)]
