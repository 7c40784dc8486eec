"""
Top-level public API surface. Stable facades only.
Does not import cli or api (FastAPI is only needed by the HTTP adapter).
"""

from __future__ import annotations

from . import core, models, providers
from ._version import __version__
from .confluence import find_confluence_zones
from .ema import compute_emas
from .fetcher import CandleFetcher, normalize_candles
from .levels import find_levels
from .orchestrator import MultiTimeframeOrchestrator
from .service import AnalysisResult, MarketAnalysisService

# Do not add exports without updating __all__.
__all__ = [
    "__version__",
    "AnalysisResult",
    "CandleFetcher",
    "MarketAnalysisService",
    "MultiTimeframeOrchestrator",
    "compute_emas",
    "core",
    "find_confluence_zones",
    "find_levels",
    "models",
    "normalize_candles",
    "providers",
]
