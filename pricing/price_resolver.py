"""Price lookup over sparse, per-asset monthly series.

A usable price for an arbitrary date is resolved in this order:

1. an observation on exactly that date;
2. the nearest later observation within the lookahead window;
3. the nearest earlier observation within the lookback window;
4. the chronologically last observation.

A slightly-future observation is preferred over stale history because
monthly data lags real time.
"""
from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

from policy.pricing_policy import PricingPolicy


@dataclass(frozen=True)
class PricePoint:
    """One observation of an asset's price."""

    date: date
    close: float
    adjusted_close: Optional[float] = None

    @property
    def value(self) -> float:
        """Price used for valuation: adjusted close when supplied."""
        if self.adjusted_close is not None and self.adjusted_close > 0:
            return self.adjusted_close
        return self.close


class PriceSeries:
    """Immutable, date-sorted price series for one asset.

    Observations with a non-positive price are dropped on construction and
    counted in ``invalid_count``. When two observations share a date the
    later one in input order wins.
    """

    def __init__(self, points: Iterable[PricePoint] = ()) -> None:
        by_date: Dict[date, PricePoint] = {}
        self._rejected: List[PricePoint] = []
        for p in points:
            if p.value > 0:
                by_date[p.date] = p
            else:
                self._rejected.append(p)
        self._points: List[PricePoint] = [by_date[d] for d in sorted(by_date)]
        self._dates: List[date] = [p.date for p in self._points]

    @property
    def points(self) -> List[PricePoint]:
        return list(self._points)

    @property
    def dates(self) -> List[date]:
        return list(self._dates)

    def first(self) -> Optional[PricePoint]:
        return self._points[0] if self._points else None

    def last(self) -> Optional[PricePoint]:
        return self._points[-1] if self._points else None

    @property
    def invalid_count(self) -> int:
        return len(self._rejected)

    def between(self, start: date, end: date) -> "PriceSeries":
        kept = self._rejected + self._points
        return PriceSeries(p for p in kept if start <= p.date <= end)

    def index_of(self, target: date) -> int:
        return bisect_left(self._dates, target)

    def __getitem__(self, i: int) -> PricePoint:
        return self._points[i]

    def __len__(self) -> int:
        return len(self._points)

    def __bool__(self) -> bool:
        return bool(self._points)


class PriceResolver:
    """Resolves a price for a date from a possibly sparse series."""

    def __init__(self, lookahead_days: int = 45, lookback_days: int = 45) -> None:
        self.lookahead_days = lookahead_days
        self.lookback_days = lookback_days

    @classmethod
    def from_policy(cls, pol: PricingPolicy) -> "PriceResolver":
        return cls(lookahead_days=pol.lookahead_days, lookback_days=pol.lookback_days)

    def resolve_in_window(self, series: PriceSeries, target: date) -> Optional[float]:
        """Exact, lookahead or lookback match; ``None`` if none applies."""
        if not series:
            return None
        points = series
        i = series.index_of(target)

        if i < len(points) and points[i].date == target:
            return points[i].value

        if i < len(points) and (points[i].date - target).days <= self.lookahead_days:
            return points[i].value

        if i > 0 and (target - points[i - 1].date).days <= self.lookback_days:
            return points[i - 1].value

        return None

    def resolve(self, series: PriceSeries, target: date) -> Optional[float]:
        """Resolve a price, falling back to the last observation.

        Returns ``None`` only for an empty series.
        """
        price = self.resolve_in_window(series, target)
        if price is not None:
            return price
        last = series.last()
        return last.value if last else None


class PriceBook:
    """Per-ticker series paired with a resolver."""

    def __init__(self, series: Dict[str, PriceSeries], resolver: PriceResolver) -> None:
        self._series = dict(series)
        self.resolver = resolver

    def series(self, ticker: str) -> PriceSeries:
        return self._series.get(ticker) or PriceSeries()

    def price(self, ticker: str, on: date) -> Optional[float]:
        return self.resolver.resolve(self.series(ticker), on)

    def has_price(self, ticker: str, on: date) -> bool:
        return self.resolver.resolve_in_window(self.series(ticker), on) is not None

    def pricer(self, on: date) -> Callable[[str], Optional[float]]:
        """Ticker -> price function fixed at ``on``."""
        return lambda ticker: self.price(ticker, on)
