"""
Default provider configuration.

Registers built-in providers and builds the failover controller from
config.yaml settings. To add a new provider, register it here and add it to
the priority list.
"""
from __future__ import annotations

from typing import List, Optional

from .. import config
from .cex.binance import BinanceKlineProvider
from .cex.kraken import KrakenKlineProvider
from .failover import FailoverController
from .health import ProviderHealthRegistry
from .registry import ProviderCatalog

# Default provider priority (config.yaml can override this)
DEFAULT_PRIORITY = ["binance", "kraken"]


def create_default_catalog() -> ProviderCatalog:
    """Create a catalog with all built-in providers, configured from config."""
    timeout_s = config.http_timeout_s()
    catalog = ProviderCatalog()
    catalog.register(
        "binance",
        lambda: BinanceKlineProvider(base_urls=config.binance_base_urls(), timeout_s=timeout_s),
    )
    catalog.register("kraken", lambda: KrakenKlineProvider(timeout_s=timeout_s))
    return catalog


def create_health_registry() -> ProviderHealthRegistry:
    return ProviderHealthRegistry(
        error_threshold=config.error_threshold(),
        recovery_window_s=config.recovery_window_s(),
    )


def create_failover_controller(
    catalog: Optional[ProviderCatalog] = None,
    registry: Optional[ProviderHealthRegistry] = None,
    priority: Optional[List[str]] = None,
) -> FailoverController:
    """Build a failover controller over the configured priority chain."""
    cat = catalog or create_default_catalog()
    order = priority or config.provider_priority() or DEFAULT_PRIORITY
    providers = cat.build_chain(order)
    if not providers:
        raise ValueError(f"No known providers in priority list {order}")
    return FailoverController(providers, registry=registry or create_health_registry())
