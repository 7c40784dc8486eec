"""
Provider health registry: per-provider success/error history and a
live/healthy verdict, shared by every in-flight fetch.

State transitions (per provider):
- healthy -> unhealthy: after `error_threshold` consecutive errors.
- unhealthy -> half-open: on admission, once `recovery_window_s` has elapsed
  since the last error. The admitting call resets the error count.
- half-open -> healthy: on the next success.
- half-open -> unhealthy: on the next error, for another full window.
- half-open -> healthy: on admission, if the trial request reported nothing within
  `recovery_window_s` (e.g. it was cancelled).

All reads and writes go through one lock. Critical sections are in-memory
only; callers never hold the lock across network I/O.
"""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import replace
from typing import Callable, Dict, Iterable, List, Optional

from .base import ProviderHealth

logger = logging.getLogger(__name__)

ERROR_THRESHOLD = 3
RECOVERY_WINDOW_S = 5 * 60.0


class ProviderHealthRegistry:
    """
    Injectable, thread-safe registry of ProviderHealth records.

    One instance is meant to live for the process; tests build a fresh one per
    case. `clock` returns epoch seconds and is replaceable for tests.
    """

    def __init__(
        self,
        error_threshold: int = ERROR_THRESHOLD,
        recovery_window_s: float = RECOVERY_WINDOW_S,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if error_threshold < 1:
            raise ValueError("error_threshold must be >= 1")
        if recovery_window_s < 0:
            raise ValueError("recovery_window_s must be >= 0")
        self.error_threshold = error_threshold
        self.recovery_window_s = recovery_window_s
        self._clock = clock
        self._lock = threading.Lock()
        self._health: Dict[str, ProviderHealth] = {}
        self._half_open_since: Dict[str, float] = {}

    def _entry(self, provider_id: str) -> ProviderHealth:
        # Caller holds the lock.
        entry = self._health.get(provider_id)
        if entry is None:
            entry = ProviderHealth(provider_id=provider_id)
            self._health[provider_id] = entry
        return entry

    def register(self, provider_id: str) -> None:
        with self._lock:
            self._entry(provider_id)

    def record_success(self, provider_id: str) -> None:
        with self._lock:
            entry = self._entry(provider_id)
            recovered = not entry.healthy or entry.half_open
            entry.last_success_time = self._clock()
            entry.consecutive_error_count = 0
            entry.healthy = True
            entry.half_open = False
            self._half_open_since.pop(provider_id, None)
        if recovered:
            logger.info("Provider %s recovered", provider_id)

    def record_error(self, provider_id: str) -> None:
        with self._lock:
            entry = self._entry(provider_id)
            was_healthy = entry.healthy
            entry.last_error_time = self._clock()
            entry.consecutive_error_count += 1
            if entry.half_open or entry.consecutive_error_count >= self.error_threshold:
                entry.healthy = False
            entry.half_open = False
            self._half_open_since.pop(provider_id, None)
            count = entry.consecutive_error_count
            tripped = was_healthy and not entry.healthy
        if tripped:
            logger.warning(
                "Provider %s marked unhealthy after %d consecutive errors",
                provider_id, count,
            )

    def _is_recoverable(self, entry: ProviderHealth, now: float) -> bool:
        if entry.last_error_time is None:
            return True
        return (now - entry.last_error_time) >= self.recovery_window_s

    def admit(self, provider_id: str) -> bool:
        """
        True if the provider may serve a request now: healthy, or unhealthy
        but past the recovery window. The latter is re-admitted as a half-open
        trial in the same critical section, so concurrent callers cannot both
        observe "recoverable" and double-reset it.

        A trial request that never reports back (its task was cancelled) is abandoned
        after another recovery window, and the provider is plainly healthy.
        """
        with self._lock:
            entry = self._entry(provider_id)
            now = self._clock()
            if entry.healthy:
                started = self._half_open_since.get(provider_id)
                if entry.half_open and started is not None and now - started >= self.recovery_window_s:
                    entry.half_open = False
                    del self._half_open_since[provider_id]
                    logger.debug("Provider %s trial request never reported, leaving half-open", provider_id)
                return True
            if not self._is_recoverable(entry, now):
                return False
            entry.consecutive_error_count = 0
            entry.healthy = True
            entry.half_open = True
            self._half_open_since[provider_id] = now
        logger.info("Provider %s past recovery window, retrying (half-open)", provider_id)
        return True

    def active_provider(self, candidates: Iterable[str]) -> Optional[str]:
        """First currently-healthy candidate, without side effects."""
        with self._lock:
            for name in candidates:
                entry = self._health.get(name)
                if entry is None or entry.healthy:
                    return name
        return None

    def get(self, provider_id: str) -> ProviderHealth:
        """Copy of one provider's record."""
        with self._lock:
            return replace(self._entry(provider_id))

    def is_healthy(self, provider_id: str) -> bool:
        with self._lock:
            return self._entry(provider_id).healthy

    def snapshot(self) -> Dict[str, ProviderHealth]:
        """Copies of all records, keyed by provider id."""
        with self._lock:
            return {name: replace(entry) for name, entry in self._health.items()}

    def provider_ids(self) -> List[str]:
        with self._lock:
            return list(self._health)
