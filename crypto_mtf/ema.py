"""
Exponential moving averages over close prices, per interval and period.
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd

from .models import CandleSeries, EMASeries, Interval, Snapshot

DEFAULT_PERIODS = (9, 21, 50, 100, 200)


def ema_values(closes: Sequence[float], period: int) -> List[Optional[float]]:
    """
    EMA seeded with the SMA of the first `period` closes, alpha = 2/(period+1).
    The first period-1 positions are None; shorter input is all None.
    """
    if isinstance(period, bool) or not isinstance(period, int) or period < 1:
        raise ValueError(f"period must be a positive integer, got {period!r}")
    n = len(closes)
    out: List[Optional[float]] = [None] * n
    if n < period:
        return out
    arr = np.asarray(closes, dtype=float)
    seed = arr[:period].mean()
    # ewm(adjust=False) runs y[t] = (1 - alpha) * y[t-1] + alpha * x[t] with y[0] = x[0],
    # so prepending the SMA seed reproduces the recursion from index period-1 onwards.
    seeded = pd.Series(np.concatenate(([seed], arr[period:])))
    smoothed = seeded.ewm(alpha=2.0 / (period + 1), adjust=False).mean().to_numpy()
    for offset, value in enumerate(smoothed):
        out[period - 1 + offset] = float(value)
    return out


def compute_ema(series: CandleSeries, period: int) -> EMASeries:
    return EMASeries(period=period, values=tuple(ema_values(series.closes(), period)))


def compute_ema_set(series: CandleSeries, periods: Iterable[int] = DEFAULT_PERIODS) -> Dict[int, EMASeries]:
    return {p: compute_ema(series, p) for p in periods}


def compute_emas(
    snapshot: Snapshot, periods: Iterable[int] = DEFAULT_PERIODS
) -> Dict[Interval, Dict[int, EMASeries]]:
    """EMA sets for every interval present in the snapshot; absent intervals are skipped."""
    wanted = list(periods)
    return {iv: compute_ema_set(s, wanted) for iv, s in snapshot.available.items()}
