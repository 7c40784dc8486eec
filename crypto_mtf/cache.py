"""
Time-boxed result cache for the request boundary.

The analysis core never caches; callers that want a revalidation window wrap
it with a TTLCache keyed by request_fingerprint().
"""
from __future__ import annotations

import hashlib
import json
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple


def request_fingerprint(**params: Any) -> str:
    """Stable SHA-256 of the request parameters (canonical JSON, sorted keys)."""
    payload = json.dumps(params, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class TTLCache:
    """
    Timestamped results per key; entries older than `ttl_seconds` are treated
    as absent and evicted on access.
    """

    def __init__(self, ttl_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self._ttl_s = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._store: Dict[str, Tuple[Any, float]] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_s

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                return None
            value, timestamp = entry
            if (self._clock() - timestamp) >= self._ttl_s:
                del self._store[key]
                return None
            return value

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._store[key] = (value, self._clock())

    def invalidate(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)
