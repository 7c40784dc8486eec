"""
Data contracts for candles, snapshots and derived technical-analysis artifacts.

Everything here is a frozen dataclass: produced once,
read-only afterwards. to_dict() gives the JSON shape consumed by the API and
by downstream report/UI layers.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from .core.errors import InvalidInterval

_MINUTE_MS = 60_000


class Interval(str, enum.Enum):
    """Fixed, closed set of bar durations. Confluence alignment depends on it."""

    M1 = "1m"
    M3 = "3m"
    M5 = "5m"
    M15 = "15m"
    H1 = "1h"
    H4 = "4h"
    D1 = "1d"
    W1 = "1w"

    @property
    def duration_ms(self) -> int:
        return _INTERVAL_MINUTES[self] * _MINUTE_MS

    @property
    def minutes(self) -> int:
        return _INTERVAL_MINUTES[self]

    @classmethod
    def parse(cls, value: Union[str, "Interval"]) -> "Interval":
        if isinstance(value, Interval):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            raise InvalidInterval(value) from None

    def __str__(self) -> str:
        return self.value


_INTERVAL_MINUTES = {
    Interval.M1: 1,
    Interval.M3: 3,
    Interval.M5: 5,
    Interval.M15: 15,
    Interval.H1: 60,
    Interval.H4: 240,
    Interval.D1: 1440,
    Interval.W1: 10080,
}

ALL_INTERVALS: Tuple[Interval, ...] = tuple(Interval)


@dataclass(frozen=True)
class Candle:
    """One OHLCV bar. Times are epoch milliseconds, UTC."""

    symbol: str
    interval: Interval
    open_time: int
    close_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "interval": self.interval.value,
            "openTime": self.open_time,
            "closeTime": self.close_time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }


@dataclass(frozen=True)
class CandleSeries:
    """Candles for one (symbol, interval), oldest first, open times unique."""

    symbol: str
    interval: Interval
    candles: Tuple[Candle, ...]
    provider_name: Optional[str] = None

    def __len__(self) -> int:
        return len(self.candles)

    def __iter__(self):
        return iter(self.candles)

    def __getitem__(self, idx):
        return self.candles[idx]

    @property
    def is_empty(self) -> bool:
        return not self.candles

    @property
    def last_close(self) -> Optional[float]:
        return self.candles[-1].close if self.candles else None

    def closes(self) -> List[float]:
        return [c.close for c in self.candles]

    def highs(self) -> List[float]:
        return [c.high for c in self.candles]

    def lows(self) -> List[float]:
        return [c.low for c in self.candles]

    def to_frame(self) -> pd.DataFrame:
        """OHLCV frame indexed by UTC open time."""
        cols = ["open", "high", "low", "close", "volume"]
        if not self.candles:
            return pd.DataFrame(columns=cols, index=pd.DatetimeIndex([], tz="UTC", name="open_time"))
        df = pd.DataFrame(
            {
                "open_time": [c.open_time for c in self.candles],
                "open": [c.open for c in self.candles],
                "high": [c.high for c in self.candles],
                "low": [c.low for c in self.candles],
                "close": [c.close for c in self.candles],
                "volume": [c.volume for c in self.candles],
            }
        )
        df.index = pd.to_datetime(df.pop("open_time"), unit="ms", utc=True)
        return df[cols]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "interval": self.interval.value,
            "provider": self.provider_name,
            "candles": [c.to_dict() for c in self.candles],
        }


@dataclass(frozen=True)
class Snapshot:
    """
    Multi-timeframe candle snapshot for one symbol.

    A failed interval maps to None in `series` (explicit absence) and carries
    its reason in `missing`. An empty CandleSeries means the provider had no
    bars, which is a different thing.
    """

    symbol: str
    current_price: float
    series: Mapping[Interval, Optional[CandleSeries]]
    missing: Mapping[Interval, str] = field(default_factory=dict)

    def get(self, interval: Union[str, Interval]) -> Optional[CandleSeries]:
        return self.series.get(Interval.parse(interval))

    def is_missing(self, interval: Union[str, Interval]) -> bool:
        iv = Interval.parse(interval)
        return iv in self.series and self.series[iv] is None

    @property
    def available(self) -> Dict[Interval, CandleSeries]:
        return {iv: s for iv, s in self.series.items() if s is not None}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "currentPrice": self.current_price,
            "series": {
                iv.value: (s.to_dict() if s is not None else None)
                for iv, s in self.series.items()
            },
            "missing": {iv.value: reason for iv, reason in self.missing.items()},
        }


class LevelKind(str, enum.Enum):
    SUPPORT = "support"
    RESISTANCE = "resistance"


@dataclass(frozen=True)
class TechnicalLevel:
    price: float
    kind: LevelKind
    source_interval: Interval
    strength: float
    touch_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "price": self.price,
            "kind": self.kind.value,
            "sourceInterval": self.source_interval.value,
            "strength": self.strength,
            "touchCount": self.touch_count,
        }


@dataclass(frozen=True)
class FibonacciLevel:
    """Retracement of the swing range: price = swing_low + (swing_high - swing_low) * ratio."""

    ratio: float
    label: str
    price: float

    def to_dict(self) -> Dict[str, Any]:
        return {"ratio": self.ratio, "label": self.label, "price": self.price}


@dataclass(frozen=True)
class ConfluenceZone:
    price_low: float
    price_high: float
    center_price: float
    contributing_levels: Tuple[TechnicalLevel, ...]
    interval_count: int
    strength_score: float

    @property
    def intervals(self) -> List[Interval]:
        seen: List[Interval] = []
        for lvl in self.contributing_levels:
            if lvl.source_interval not in seen:
                seen.append(lvl.source_interval)
        return seen

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priceLow": self.price_low,
            "priceHigh": self.price_high,
            "centerPrice": self.center_price,
            "contributingLevels": [lvl.to_dict() for lvl in self.contributing_levels],
            "intervalCount": self.interval_count,
            "strengthScore": self.strength_score,
        }


@dataclass(frozen=True)
class EMASeries:
    """EMA values aligned with the source series; None where history is insufficient."""

    period: int
    values: Tuple[Optional[float], ...]

    @property
    def current(self) -> Optional[float]:
        return self.values[-1] if self.values else None

    def defined_count(self) -> int:
        return sum(1 for v in self.values if v is not None)

    def to_dict(self) -> Dict[str, Any]:
        return {"period": self.period, "values": list(self.values)}


def parse_intervals(values: Optional[Sequence[Union[str, Interval]]]) -> Tuple[Interval, ...]:
    """Parse and de-duplicate an interval list, keeping caller order."""
    if values is None:
        return ALL_INTERVALS
    out: List[Interval] = []
    for v in values:
        iv = Interval.parse(v)
        if iv not in out:
            out.append(iv)
    return tuple(out)
