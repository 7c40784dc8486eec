"""CEX (centralized exchange) kline providers."""
from __future__ import annotations

from .binance import BinanceKlineProvider
from .kraken import KrakenKlineProvider

__all__ = ["BinanceKlineProvider", "KrakenKlineProvider"]
