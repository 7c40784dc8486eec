"""Data contracts: interval set, candle series helpers, snapshot shape."""
from __future__ import annotations

import pytest

from crypto_mtf.core.errors import InvalidInterval
from crypto_mtf.fetcher import normalize_candles
from crypto_mtf.models import ALL_INTERVALS, Interval, Snapshot, parse_intervals


def test_interval_set_is_closed():
    assert [iv.value for iv in ALL_INTERVALS] == ["1m", "3m", "5m", "15m", "1h", "4h", "1d", "1w"]
    assert Interval.parse(" 4h ") is Interval.H4
    assert Interval.parse(Interval.D1) is Interval.D1
    assert Interval.W1.duration_ms == 7 * 24 * 3600 * 1000
    assert Interval.H1.minutes == 60
    assert str(Interval.M15) == "15m"
    for bad in ("2h", "1M", "", "60"):
        with pytest.raises(InvalidInterval):
            Interval.parse(bad)


def test_invalid_interval_is_value_error():
    with pytest.raises(ValueError):
        Interval.parse("13m")


def test_parse_intervals_dedupes_in_order():
    assert parse_intervals(["1d", "1h", "1d"]) == (Interval.D1, Interval.H1)
    assert parse_intervals(None) == ALL_INTERVALS


def test_series_helpers_and_frame():
    rows = [(i * 60_000, 1.0 + i, 2.0 + i, 0.5 + i, 1.5 + i, 10.0) for i in range(3)]
    series = normalize_candles("BTC", "1m", rows, limit=10, provider_name="fake")
    assert series.closes() == [1.5, 2.5, 3.5]
    assert series.highs() == [2.0, 3.0, 4.0]
    assert series.lows() == [0.5, 1.5, 2.5]
    assert series.last_close == 3.5
    df = series.to_frame()
    assert list(df.columns) == ["open", "high", "low", "close", "volume"]
    assert len(df) == 3
    assert str(df.index.tz) == "UTC"
    d = series.to_dict()
    assert d["provider"] == "fake"
    assert d["candles"][0]["openTime"] == 0


def test_empty_series():
    series = normalize_candles("BTC", "1m", [], limit=10)
    assert series.is_empty
    assert series.last_close is None
    assert series.to_frame().empty


def test_snapshot_explicit_absence():
    series = normalize_candles("BTC", "1h", [(0, 1, 1, 1, 1, 1)], limit=1)
    snap = Snapshot(
        symbol="BTC",
        current_price=1.0,
        series={Interval.H1: series, Interval.W1: None},
        missing={Interval.W1: "timeout"},
    )
    assert snap.is_missing("1w")
    assert not snap.is_missing("1h")
    assert not snap.is_missing("1d")
    assert list(snap.available) == [Interval.H1]
    d = snap.to_dict()
    assert d["series"]["1w"] is None
    assert d["missing"] == {"1w": "timeout"}
