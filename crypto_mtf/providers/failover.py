"""
Failover controller: ordered provider selection on top of the health registry.

Candidates are always considered in the fixed priority order (primary before
fallback). Unhealthy providers are skipped until their recovery window has
elapsed, then re-admitted once as a half-open trial.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from ..core.errors import AllProvidersUnavailable
from ..models import Interval
from .base import KlineProvider, ProviderHealth
from .health import ProviderHealthRegistry

logger = logging.getLogger(__name__)


class FailoverController:
    """
    Chooses which provider serves a request.

    The registry is injected and may be shared by several controllers; the
    controller is the only component that mutates it.
    """

    def __init__(
        self,
        providers: Sequence[KlineProvider],
        registry: Optional[ProviderHealthRegistry] = None,
    ) -> None:
        names = [p.provider_name for p in providers]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate provider names in priority list: {names}")
        self._providers: List[KlineProvider] = list(providers)
        self.registry = registry or ProviderHealthRegistry()
        for name in names:
            self.registry.register(name)

    @property
    def providers(self) -> List[KlineProvider]:
        return list(self._providers)

    @property
    def provider_names(self) -> List[str]:
        return [p.provider_name for p in self._providers]

    def candidates_for(self, interval: Interval) -> List[KlineProvider]:
        """Providers able to serve `interval`, in priority order."""
        return [p for p in self._providers if interval in p.supported_intervals]

    def select_provider(self, candidates: Sequence[KlineProvider]) -> KlineProvider:
        """
        First candidate that is healthy or recoverable (half-open trial).
        Raises AllProvidersUnavailable if none qualifies.
        """
        for provider in candidates:
            if self.registry.admit(provider.provider_name):
                return provider
            logger.debug("Skipping unhealthy provider %s", provider.provider_name)
        names = [p.provider_name for p in candidates]
        raise AllProvidersUnavailable(f"No healthy provider among {names}")

    def record_success(self, provider: KlineProvider) -> None:
        self.registry.record_success(provider.provider_name)

    def record_error(self, provider: KlineProvider) -> None:
        self.registry.record_error(provider.provider_name)

    def get_health(self) -> Dict[str, ProviderHealth]:
        """Health records for the providers in this chain, in priority order."""
        records = self.registry.snapshot()
        return {name: records[name] for name in self.provider_names if name in records}

    def active_provider(self) -> Optional[str]:
        """Provider that would serve the next request, without side effects."""
        return self.registry.active_provider(self.provider_names)
