"""Smoke tests for the analysis API endpoints."""

from __future__ import annotations

import pytest

fastapi = pytest.importorskip("fastapi")
httpx = pytest.importorskip("httpx")

from starlette.testclient import TestClient  # noqa: E402

from crypto_mtf.api import app, get_service  # noqa: E402
from crypto_mtf.models import Interval  # noqa: E402
from crypto_mtf.providers.failover import FailoverController  # noqa: E402
from crypto_mtf.providers.health import ProviderHealthRegistry  # noqa: E402
from crypto_mtf.service import MarketAnalysisService  # noqa: E402
from tests.fakes.providers import FakeKlineProvider, FakeKlineProviderAlwaysFail  # noqa: E402


def _override(*providers):
    controller = FailoverController(list(providers), registry=ProviderHealthRegistry())
    svc = MarketAnalysisService(controller)
    app.dependency_overrides[get_service] = lambda: svc
    return svc


@pytest.fixture()
def client():
    _override(FakeKlineProvider("primary"))
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_klines(client):
    r = client.get("/klines", params={"symbol": "eth", "interval": "15m", "limit": 20})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["symbol"] == "ETH"
    assert body["interval"] == "15m"
    assert len(body["candles"]) == 20
    assert body["candles"][0]["openTime"] < body["candles"][-1]["openTime"]


def test_klines_invalid_interval(client):
    r = client.get("/klines", params={"interval": "2h"})
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_klines_limit_validation(client):
    r = client.get("/klines", params={"limit": 0})
    assert r.status_code == 422


def test_snapshot(client):
    r = client.get("/snapshot", params={"symbol": "BTC", "limit": 50})
    assert r.status_code == 200
    body = r.json()
    assert body["currentPrice"] == body["series"]["1m"]["candles"][-1]["close"]
    assert set(body["series"]) == {"1m", "5m", "15m", "1h", "4h", "1d", "1w"}
    assert body["missing"] == {}


def test_technical_levels(client):
    r = client.get("/technical-levels", params={"symbol": "BTC", "interval": "1d"})
    assert r.status_code == 200
    levels = r.json()["levels"]
    assert levels["interval"] == "1d"
    assert levels["keySupport"] is not None
    assert len(levels["fibonacci"]) == 7
    assert levels["swingHigh"] > levels["swingLow"]
    assert 50_000.0 in levels["psychological"]


def test_confluence(client):
    r = client.get("/confluence", params={"symbol": "BTC", "min_intervals": 2})
    assert r.status_code == 200
    body = r.json()
    assert body["zones"]
    assert all(z["intervalCount"] >= 2 for z in body["zones"])
    scores = [z["strengthScore"] for z in body["zones"]]
    assert scores == sorted(scores, reverse=True)


def test_ema(client):
    r = client.get("/ema", params={"symbol": "BTC", "interval": "1h", "periods": "9,21"})
    assert r.status_code == 200
    emas = r.json()["emas"]
    assert set(emas) == {"9", "21"}
    assert emas["9"]["values"][0] is None
    assert emas["9"]["values"][-1] is not None


def test_provider_status(client):
    r = client.get("/provider-status")
    assert r.status_code == 200
    body = r.json()
    assert body["activeProvider"] == "primary"
    assert body["providers"]["primary"]["healthy"] is True


def test_all_failing_maps_to_error_status():
    _override(FakeKlineProviderAlwaysFail("primary"))
    try:
        c = TestClient(app)
        assert c.get("/klines").status_code == 404
        assert c.get("/snapshot").status_code == 404
        # three errors trip the only provider
        r = c.get("/klines", params={"interval": Interval.D1.value})
        assert r.status_code == 503
    finally:
        app.dependency_overrides.clear()
