"""
Provider catalog: maps provider names to classes/instances.

The catalog is config-driven: a priority list from config.yaml determines
which kline providers are tried in what order.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from .base import KlineProvider

logger = logging.getLogger(__name__)

ProviderFactory = Union[Callable[[], KlineProvider], KlineProvider]


class ProviderCatalog:
    """
    Registry mapping provider names to factories or ready instances.

    Usage:
        catalog = ProviderCatalog()
        catalog.register("binance", BinanceKlineProvider)
        catalog.register("kraken", KrakenKlineProvider)

        providers = catalog.build_chain(["binance", "kraken"])
    """

    def __init__(self) -> None:
        self._factories: Dict[str, Any] = {}
        self._instances: Dict[str, KlineProvider] = {}

    def register(self, name: str, factory: ProviderFactory) -> None:
        """Register a kline provider class, zero-arg factory, or instance by name."""
        self._factories[name] = factory
        self._instances.pop(name, None)
        logger.debug("Registered kline provider: %s", name)

    def get(self, name: str) -> KlineProvider:
        """Get or instantiate a provider by name."""
        if name not in self._instances:
            factory = self._factories.get(name)
            if factory is None:
                raise KeyError(
                    f"Unknown kline provider '{name}'. "
                    f"Available: {list(self._factories)}"
                )
            if isinstance(factory, type) or not isinstance(factory, KlineProvider):
                self._instances[name] = factory()
            else:
                self._instances[name] = factory
        return self._instances[name]

    @property
    def names(self) -> List[str]:
        return list(self._factories)

    def build_chain(self, priority: Optional[List[str]] = None) -> List[KlineProvider]:
        """Ordered provider list from a priority list; unknown names are skipped with a warning."""
        names = priority or list(self._factories)
        chain: List[KlineProvider] = []
        for n in names:
            if n not in self._factories:
                logger.warning("Ignoring unknown provider '%s' in priority list", n)
                continue
            chain.append(self.get(n))
        return chain
