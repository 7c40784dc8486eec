"""
Stable facade: error taxonomy only. Do not add exports without updating __all__.
"""

from __future__ import annotations

from .errors import (
    AllProvidersUnavailable,
    CryptoMtfError,
    InvalidInterval,
    MalformedPayload,
    NoDataAvailable,
    ProviderError,
    SnapshotUnavailable,
)

# Do not add exports without updating __all__.
__all__ = [
    "AllProvidersUnavailable",
    "CryptoMtfError",
    "InvalidInterval",
    "MalformedPayload",
    "NoDataAvailable",
    "ProviderError",
    "SnapshotUnavailable",
]
