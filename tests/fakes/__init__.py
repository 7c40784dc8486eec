"""Fake kline providers for fetcher, orchestrator and service tests (no live network)."""

from .providers import (
    FakeKlineProvider,
    FakeKlineProviderAlwaysFail,
    FakeKlineProviderFailNThenSucceed,
    FakeKlineProviderMalformed,
)

__all__ = [
    "FakeKlineProvider",
    "FakeKlineProviderAlwaysFail",
    "FakeKlineProviderFailNThenSucceed",
    "FakeKlineProviderMalformed",
]
