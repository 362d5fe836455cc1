"""Adapters for the external price-feed collaborator.

The simulation never performs I/O itself: series are fetched up front by
``fetch_series`` and handed to the run as in-memory ``PriceSeries``.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, timedelta
from pathlib import Path
from typing import Dict, Iterable, List

import pandas as pd

from pricing.price_resolver import PricePoint, PriceSeries

logger = logging.getLogger(__name__)


class PriceFeedError(Exception):
    """Raised when a price source cannot be read."""

    pass


class PriceFeed(ABC):
    """Source of ordered (date, price) observations per ticker."""

    @abstractmethod
    def fetch(self, ticker: str, start: date, end: date) -> PriceSeries:
        """Observations for ``ticker`` between ``start`` and ``end``."""
        pass


class InMemoryPriceFeed(PriceFeed):
    """Feed backed by a dict of ticker -> price points."""

    def __init__(self, data: Dict[str, Iterable[PricePoint]]) -> None:
        self._series = {t.upper(): PriceSeries(points) for t, points in data.items()}

    def fetch(self, ticker: str, start: date, end: date) -> PriceSeries:
        series = self._series.get(ticker.upper())
        if series is None:
            return PriceSeries()
        return series.between(start, end)

    @property
    def tickers(self) -> List[str]:
        return sorted(self._series)


PRICE_COLUMNS = ["date", "ticker", "close", "adjusted_close"]


def frame_to_points(prices: pd.DataFrame) -> Dict[str, List[PricePoint]]:
    """Convert a long price frame (``PRICE_COLUMNS``) to points per ticker.

    A blank adjusted close leaves ``adjusted_close`` unset, so valuation
    falls back to the close.
    """
    out: Dict[str, List[PricePoint]] = {}
    for ticker, rows in prices.groupby("ticker", sort=True):
        out[str(ticker)] = [
            PricePoint(
                date=pd.Timestamp(r.date).date(),
                close=float(r.close),
                adjusted_close=None if pd.isna(r.adjusted_close) else float(r.adjusted_close),
            )
            for r in rows.itertuples(index=False)
        ]
    return out


def load_prices_csv(path: str | Path) -> pd.DataFrame:
    """Load a price CSV into a long frame with ``PRICE_COLUMNS``.

    Two layouts are accepted:
    - wide: ``date,<TICKER>,<TICKER>...`` with one close per cell;
    - long: ``date,ticker,close[,adjusted_close]``, one row per observation.
    Blank cells are skipped. Non-positive prices are kept so the series can
    count them as invalid.
    """
    df = pd.read_csv(path)
    if "date" not in df.columns:
        raise PriceFeedError("CSV must contain 'date' column")
    df["date"] = pd.to_datetime(df["date"])

    if {"ticker", "close"}.issubset(df.columns):
        long = df.copy()
        if "adjusted_close" not in long.columns:
            long["adjusted_close"] = float("nan")
    else:
        long = df.melt(id_vars="date", var_name="ticker", value_name="close")
        long["adjusted_close"] = float("nan")

    long["ticker"] = long["ticker"].astype(str).str.upper()
    long["close"] = pd.to_numeric(long["close"], errors="coerce")
    long["adjusted_close"] = pd.to_numeric(long["adjusted_close"], errors="coerce")
    long = long.dropna(subset=["close"])
    return long[PRICE_COLUMNS].sort_values(["ticker", "date"]).reset_index(drop=True)


class CsvPriceFeed(InMemoryPriceFeed):
    """Feed reading every ticker's series from one CSV file."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(frame_to_points(load_prices_csv(path)))


def fetch_series(
    feed: PriceFeed,
    tickers: Iterable[str],
    start: date,
    end: date,
    margin_days: int = 0,
) -> Dict[str, PriceSeries]:
    """Prefetch every ticker's series for ``[start, end + margin_days]``."""
    fetch_end = end + timedelta(days=margin_days)
    out: Dict[str, PriceSeries] = {}
    for t in tickers:
        series = feed.fetch(t, start, fetch_end)
        if not series:
            logger.warning("No price data for %s between %s and %s", t, start, fetch_end)
        else:
            logger.debug("%s: %d observations (%s to %s)", t, len(series), series.first().date, series.last().date)
        if series.invalid_count:
            logger.warning("%s: dropped %d records with invalid prices", t, series.invalid_count)
        out[t] = series
    return out
