"""
Confluence zones: price bands where levels from several timeframes agree.

Levels from all intervals are sorted by price and clustered greedily; a level
joins the current zone while it stays within `tolerance_pct` of the zone's
strength-weighted centroid. Agreement across distinct timeframes is the main
ranking signal, so the score is scaled by the number of intervals involved.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from .models import ConfluenceZone, LevelKind, TechnicalLevel

CONFLUENCE_TOLERANCE_PCT = 0.005

_KIND_ORDER = {LevelKind.SUPPORT: 0, LevelKind.RESISTANCE: 1}


def _centroid(levels: Sequence[TechnicalLevel]) -> float:
    total = sum(lvl.strength for lvl in levels)
    if total <= 0:
        return sum(lvl.price for lvl in levels) / len(levels)
    return sum(lvl.price * lvl.strength for lvl in levels) / total


def _make_zone(members: List[TechnicalLevel]) -> ConfluenceZone:
    interval_count = len({lvl.source_interval for lvl in members})
    raw_strength = sum(lvl.strength for lvl in members)
    return ConfluenceZone(
        price_low=min(lvl.price for lvl in members),
        price_high=max(lvl.price for lvl in members),
        center_price=_centroid(members),
        contributing_levels=tuple(members),
        interval_count=interval_count,
        strength_score=raw_strength * interval_count,
    )


def cluster_levels(
    levels: Iterable[TechnicalLevel], tolerance_pct: float = CONFLUENCE_TOLERANCE_PCT
) -> List[ConfluenceZone]:
    """Greedy price-ordered clustering. Zones come back in ascending price order."""
    if tolerance_pct < 0:
        raise ValueError("tolerance_pct must be >= 0")
    ordered = sorted(
        levels,
        key=lambda lvl: (lvl.price, lvl.source_interval.duration_ms, _KIND_ORDER[lvl.kind]),
    )
    zones: List[ConfluenceZone] = []
    current: List[TechnicalLevel] = []
    for lvl in ordered:
        if current:
            center = _centroid(current)
            if abs(lvl.price - center) <= abs(center) * tolerance_pct:
                current.append(lvl)
                continue
            zones.append(_make_zone(current))
        current = [lvl]
    if current:
        zones.append(_make_zone(current))
    return zones


def find_confluence_zones(
    levels: Iterable[TechnicalLevel],
    current_price: Optional[float] = None,
    tolerance_pct: float = CONFLUENCE_TOLERANCE_PCT,
    min_interval_count: int = 1,
) -> List[ConfluenceZone]:
    """
    Cluster levels from every timeframe and rank the zones.

    Sorted by strength_score descending, ties broken by distance of the zone
    center to `current_price` (or by price when no current price is given).
    Zones backed by fewer than `min_interval_count` intervals are dropped.
    """
    zones = [z for z in cluster_levels(levels, tolerance_pct) if z.interval_count >= min_interval_count]
    if current_price is None:
        zones.sort(key=lambda z: (-z.strength_score, z.center_price))
    else:
        zones.sort(key=lambda z: (-z.strength_score, abs(z.center_price - current_price), z.center_price))
    return zones


class ConfluenceZoneDetector:
    def __init__(
        self, tolerance_pct: float = CONFLUENCE_TOLERANCE_PCT, min_interval_count: int = 1
    ) -> None:
        self.tolerance_pct = tolerance_pct
        self.min_interval_count = min_interval_count

    def detect(self, levels: Iterable[TechnicalLevel], current_price: Optional[float] = None) -> List[ConfluenceZone]:
        return find_confluence_zones(
            levels,
            current_price=current_price,
            tolerance_pct=self.tolerance_pct,
            min_interval_count=self.min_interval_count,
        )
