"""
Support/resistance detection from swing highs and lows of one timeframe, plus
Fibonacci retracements of the swing range and round-number (psychological) levels.
"""
from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from .models import CandleSeries, FibonacciLevel, Interval, LevelKind, TechnicalLevel

SWING_WINDOW = 5
LEVEL_TOLERANCE_PCT = 0.005

_KIND_ORDER = {LevelKind.SUPPORT: 0, LevelKind.RESISTANCE: 1}

FIB_RATIOS = (
    (0.0, "0% (Swing Low)"),
    (0.236, "23.6%"),
    (0.382, "38.2%"),
    (0.5, "50%"),
    (0.618, "61.8% (Golden)"),
    (0.786, "78.6%"),
    (1.0, "100% (Swing High)"),
)

PSYCHOLOGICAL_RANGE_PCT = 0.2

# (minimum price, round-number step), highest tier first
_PSYCHOLOGICAL_STEPS = ((10_000.0, 5000.0), (1000.0, 500.0), (100.0, 50.0), (10.0, 5.0), (0.0, 0.5))


def swing_indices(values: Sequence[float], window: int, mode: str) -> np.ndarray:
    """
    Indices i where values[i] is the strict max (mode="high") or strict min
    (mode="low") of values[i-window : i+window+1]. Edges never qualify.
    """
    arr = np.asarray(values, dtype=float)
    span = 2 * window + 1
    if window < 1 or arr.size < span:
        return np.array([], dtype=int)
    windows = sliding_window_view(arr, span)
    centers = arr[window: arr.size - window]
    if mode == "high":
        extreme = windows.max(axis=1)
    elif mode == "low":
        extreme = windows.min(axis=1)
    else:
        raise ValueError(f"mode must be 'high' or 'low', got {mode!r}")
    is_extreme = centers == extreme
    unique = (windows == extreme[:, None]).sum(axis=1) == 1
    return np.flatnonzero(is_extreme & unique) + window


def _recurrence(prices: np.ndarray, tolerance_pct: float) -> np.ndarray:
    """For each price, how many *other* prices lie within tolerance_pct of it."""
    if prices.size == 0:
        return np.array([], dtype=int)
    band = np.abs(prices) * tolerance_pct
    within = np.abs(prices[:, None] - prices[None, :]) <= band[:, None]
    return within.sum(axis=1) - 1


def _build(
    prices: np.ndarray, kind: LevelKind, interval: Interval, tolerance_pct: float
) -> List[TechnicalLevel]:
    touches = _recurrence(prices, tolerance_pct)
    return [
        TechnicalLevel(
            price=float(p),
            kind=kind,
            source_interval=interval,
            strength=float(1 + t),
            touch_count=int(t),
        )
        for p, t in zip(prices, touches)
    ]


def find_levels(
    series: CandleSeries,
    window: int = SWING_WINDOW,
    tolerance_pct: float = LEVEL_TOLERANCE_PCT,
) -> List[TechnicalLevel]:
    """
    Swing highs -> resistance, swing lows -> support, one level per swing.

    touch_count counts other same-kind swings within the tolerance band and
    strength = 1 + touch_count. Fewer than 2*window+1 bars yields no levels.
    Result is ordered by distance to the last close, nearest first.
    """
    if window < 1:
        raise ValueError("window must be >= 1")
    if tolerance_pct < 0:
        raise ValueError("tolerance_pct must be >= 0")
    if len(series) < 2 * window + 1:
        return []

    highs = np.asarray(series.highs(), dtype=float)
    lows = np.asarray(series.lows(), dtype=float)
    resistance = highs[swing_indices(highs, window, "high")]
    support = lows[swing_indices(lows, window, "low")]

    levels = _build(resistance, LevelKind.RESISTANCE, series.interval, tolerance_pct)
    levels += _build(support, LevelKind.SUPPORT, series.interval, tolerance_pct)

    last_close = series.last_close
    levels.sort(key=lambda lvl: (abs(lvl.price - last_close), lvl.price, _KIND_ORDER[lvl.kind]))
    return levels


def nearest_levels(
    levels: Sequence[TechnicalLevel], price: float
) -> Tuple[Optional[TechnicalLevel], Optional[TechnicalLevel]]:
    """Key support (closest support below price) and key resistance (closest resistance above)."""
    supports = [lvl for lvl in levels if lvl.kind is LevelKind.SUPPORT and lvl.price < price]
    resistances = [lvl for lvl in levels if lvl.kind is LevelKind.RESISTANCE and lvl.price > price]
    key_support = max(supports, key=lambda lvl: lvl.price) if supports else None
    key_resistance = min(resistances, key=lambda lvl: lvl.price) if resistances else None
    return key_support, key_resistance


def swing_range(series: CandleSeries) -> Tuple[float, float]:
    """(highest high, lowest low) over the whole series; (0.0, 0.0) when empty."""
    if series.is_empty:
        return 0.0, 0.0
    return float(np.max(series.highs())), float(np.min(series.lows()))


def fibonacci_levels(series: CandleSeries) -> List[FibonacciLevel]:
    """Retracements of the series' swing range, swing low (0%) to swing high (100%)."""
    swing_high, swing_low = swing_range(series)
    span = swing_high - swing_low
    return [
        FibonacciLevel(ratio=ratio, label=label, price=round(swing_low + span * ratio, 2))
        for ratio, label in FIB_RATIOS
    ]


def psychological_step(price: float) -> float:
    for floor, step in _PSYCHOLOGICAL_STEPS:
        if price >= floor:
            return step
    return _PSYCHOLOGICAL_STEPS[-1][1]


def psychological_levels(price: float, range_pct: float = PSYCHOLOGICAL_RANGE_PCT) -> List[float]:
    """
    Round-number levels around `price`, ascending.

    The step scales with the price (5000 above 10k down to 0.5 below 10). The
    walk starts at the last multiple of the step at or below price*(1-range_pct)
    and stops at price*(1+range_pct). Non-positive levels are dropped.
    """
    if range_pct < 0:
        raise ValueError("range_pct must be >= 0")
    if price <= 0:
        return []
    step = psychological_step(price)
    first = math.floor(price * (1 - range_pct) / step)
    last = math.floor(price * (1 + range_pct) / step)
    return [k * step for k in range(first, last + 1) if k > 0]


class TechnicalLevelAnalyzer:
    """Configured level finder; one call per interval, no shared state."""

    def __init__(self, window: int = SWING_WINDOW, tolerance_pct: float = LEVEL_TOLERANCE_PCT) -> None:
        if window < 1:
            raise ValueError("window must be >= 1")
        self.window = window
        self.tolerance_pct = tolerance_pct

    def analyze(self, series: CandleSeries) -> List[TechnicalLevel]:
        return find_levels(series, self.window, self.tolerance_pct)
