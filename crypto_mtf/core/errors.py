"""
Shared exception types for crypto_mtf.
Every error is scoped to one request; nothing here is fatal to the process.
"""

from __future__ import annotations


class CryptoMtfError(Exception):
    """Base exception for crypto_mtf; catch this for any package-raised error."""

    pass


class InvalidInterval(CryptoMtfError, ValueError):
    """Interval outside the fixed set. Caller error, never retried."""

    def __init__(self, value: object) -> None:
        super().__init__(f"Invalid interval {value!r}")
        self.value = value


class ProviderError(CryptoMtfError):
    """One call to one upstream provider failed (transport, HTTP status, upstream error)."""

    def __init__(self, provider_name: str, message: str) -> None:
        super().__init__(f"{provider_name}: {message}")
        self.provider_name = provider_name


class MalformedPayload(ProviderError):
    """Provider answered, but the payload cannot be normalized into candles."""


class NoDataAvailable(CryptoMtfError):
    """All attempted providers failed for one (symbol, interval)."""


class AllProvidersUnavailable(CryptoMtfError):
    """No healthy or recoverable provider exists at selection time."""


class SnapshotUnavailable(CryptoMtfError):
    """Every interval of a multi-timeframe snapshot failed."""


__all__ = [
    "AllProvidersUnavailable",
    "CryptoMtfError",
    "InvalidInterval",
    "MalformedPayload",
    "NoDataAvailable",
    "ProviderError",
    "SnapshotUnavailable",
]
