"""
Binance and Kraken adapters against httpx.MockTransport (no live network).

Verifies symbol resolution, mirror fall-through on regional blocks, error
mapping and payload parsing into raw kline rows.
"""
from __future__ import annotations

import asyncio

import httpx
import pytest

from crypto_mtf.core.errors import MalformedPayload, ProviderError
from crypto_mtf.fetcher import normalize_candles
from crypto_mtf.models import Interval
from crypto_mtf.providers.cex.binance import BinanceKlineProvider
from crypto_mtf.providers.cex.kraken import KrakenKlineProvider

BINANCE_ROW = [
    1_700_000_000_000, "37000.1", "37100.0", "36900.5", "37050.2", "12.5",
    1_700_003_599_999, "463000.0", 100, "6.0", "222000.0", "0",
]


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ---------------------------------------------------------------------------
# Binance
# ---------------------------------------------------------------------------


def test_binance_resolve_symbol():
    p = BinanceKlineProvider()
    assert p.resolve_symbol("btc") == "BTCUSDT"
    assert p.resolve_symbol("ETHUSDT") == "ETHUSDT"
    assert Interval.M3 in p.supported_intervals


def test_binance_parses_klines_and_sends_params():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[BINANCE_ROW])

    async def go():
        async with _client(handler) as client:
            p = BinanceKlineProvider(base_urls=["https://b.test/api/v3"], client=client)
            return await p.fetch_klines("BTCUSDT", Interval.H1, 5000)

    rows = asyncio.run(go())
    assert rows == [tuple(BINANCE_ROW[:7])]
    params = seen[0].url.params
    assert seen[0].url.path == "/api/v3/klines"
    assert params["symbol"] == "BTCUSDT"
    assert params["interval"] == "1h"
    assert params["limit"] == "1000"
    series = normalize_candles("BTC", Interval.H1, rows, limit=10, provider_name="binance")
    assert series[0].close == 37050.2
    assert series[0].close_time == 1_700_003_599_999


def test_binance_falls_through_blocked_mirrors():
    hosts = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        if request.url.host == "blocked.test":
            return httpx.Response(451)
        if request.url.host == "down.test":
            return httpx.Response(503)
        return httpx.Response(200, json=[BINANCE_ROW])

    async def go():
        async with _client(handler) as client:
            p = BinanceKlineProvider(
                base_urls=["https://blocked.test/v3", "https://down.test/v3", "https://ok.test/v3"],
                client=client,
            )
            return await p.fetch_klines("BTCUSDT", Interval.M1, 1)

    assert len(asyncio.run(go())) == 1
    assert hosts == ["blocked.test", "down.test", "ok.test"]


def test_binance_all_mirrors_fail():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    async def go():
        async with _client(handler) as client:
            p = BinanceKlineProvider(base_urls=["https://a.test", "https://b.test"], client=client)
            return await p.fetch_klines("BTCUSDT", Interval.M1, 1)

    with pytest.raises(ProviderError, match="all endpoints failed"):
        asyncio.run(go())


def test_binance_rate_limit_is_not_retried_on_mirrors():
    hosts = []

    def handler(request: httpx.Request) -> httpx.Response:
        hosts.append(request.url.host)
        return httpx.Response(429)

    async def go():
        async with _client(handler) as client:
            p = BinanceKlineProvider(base_urls=["https://a.test", "https://b.test"], client=client)
            return await p.fetch_klines("BTCUSDT", Interval.M1, 1)

    with pytest.raises(ProviderError, match="429"):
        asyncio.run(go())
    assert hosts == ["a.test"]


def test_binance_malformed_payload():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"code": -1121, "msg": "Invalid symbol."})

    async def go():
        async with _client(handler) as client:
            p = BinanceKlineProvider(base_urls=["https://a.test"], client=client)
            return await p.fetch_klines("NOPEUSDT", Interval.M1, 1)

    with pytest.raises(MalformedPayload):
        asyncio.run(go())


# ---------------------------------------------------------------------------
# Kraken
# ---------------------------------------------------------------------------


def _kraken_payload(pair: str, n: int, step_s: int):
    start = 1_700_000_000
    rows = [
        [start + i * step_s, "100.0", "101.0", "99.0", f"{100 + i}.5", "100.2", "3.25", 42]
        for i in range(n)
    ]
    return {"error": [], "result": {pair: rows, "last": start + n * step_s}}


def test_kraken_resolve_symbol():
    p = KrakenKlineProvider()
    assert p.resolve_symbol("BTC") == "XBTUSD"
    assert p.resolve_symbol("btcusdt") == "XBTUSD"
    assert p.resolve_symbol("ETHUSD") == "ETHUSD"
    assert p.resolve_symbol("ada") == "ADAUSD"
    assert Interval.M3 not in p.supported_intervals
    assert Interval.W1 in p.supported_intervals


def test_kraken_parses_ohlc_and_trims_to_limit():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_kraken_payload("XXBTZUSD", 10, 3600))

    async def go():
        async with _client(handler) as client:
            p = KrakenKlineProvider(base_url="https://k.test", client=client)
            return await p.fetch_klines("XBTUSD", Interval.H1, 4)

    rows = asyncio.run(go())
    assert seen[0].url.path == "/0/public/OHLC"
    assert seen[0].url.params["pair"] == "XBTUSD"
    assert seen[0].url.params["interval"] == "60"
    assert len(rows) == 4
    first = rows[0]
    assert first[0] == (1_700_000_000 + 6 * 3600) * 1000
    # volume is the 7th field, not vwap
    assert first[5] == "3.25"
    assert first[6] == first[0] + Interval.H1.duration_ms - 1
    series = normalize_candles("BTC", Interval.H1, rows, limit=4, provider_name="kraken")
    assert series.last_close == 109.5


def test_kraken_upstream_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": ["EQuery:Unknown asset pair"], "result": {}})

    async def go():
        async with _client(handler) as client:
            p = KrakenKlineProvider(base_url="https://k.test", client=client)
            return await p.fetch_klines("FOOUSD", Interval.H1, 4)

    with pytest.raises(ProviderError, match="Unknown asset pair"):
        asyncio.run(go())


def test_kraken_http_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502)

    async def go():
        async with _client(handler) as client:
            p = KrakenKlineProvider(base_url="https://k.test", client=client)
            return await p.fetch_klines("XBTUSD", Interval.H1, 4)

    with pytest.raises(ProviderError, match="502"):
        asyncio.run(go())


def test_kraken_unsupported_interval():
    p = KrakenKlineProvider(base_url="https://k.test")
    with pytest.raises(ProviderError):
        asyncio.run(p.fetch_klines("XBTUSD", Interval.M3, 4))
