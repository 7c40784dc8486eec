"""
Provider architecture for candle/kline ingestion.

Kline providers are registered in a catalog and tried in a config-driven
priority order. A shared health registry tracks consecutive errors and
recovery windows; the failover controller picks the serving provider.
"""

from __future__ import annotations

from .base import KlineProvider, ProviderHealth, RawKline
from .cex import BinanceKlineProvider, KrakenKlineProvider
from .failover import FailoverController
from .health import ERROR_THRESHOLD, RECOVERY_WINDOW_S, ProviderHealthRegistry
from .registry import ProviderCatalog

__all__ = [
    "ERROR_THRESHOLD",
    "RECOVERY_WINDOW_S",
    "BinanceKlineProvider",
    "FailoverController",
    "KlineProvider",
    "KrakenKlineProvider",
    "ProviderCatalog",
    "ProviderHealth",
    "ProviderHealthRegistry",
    "RawKline",
]
