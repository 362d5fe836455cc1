"""Shared fixtures for backtest tests."""
from __future__ import annotations

from datetime import date
from typing import Dict, List, Sequence

import pandas as pd
import pytest

from common.config_loader import merge_policy
from pricing.price_resolver import PriceBook, PricePoint, PriceResolver, PriceSeries


def monthly_points(start: date, prices: Sequence[float]) -> List[PricePoint]:
    """One observation on the first of each month, starting at ``start``."""
    dates = pd.date_range(start, periods=len(prices), freq="MS")
    return [PricePoint(date=d.date(), close=float(p)) for d, p in zip(dates, prices)]


@pytest.fixture
def policy() -> Dict:
    """Default policy with no overrides."""
    return merge_policy()


@pytest.fixture
def make_series():
    """Factory: monthly series from a start date and a list of prices."""

    def _make(start: date, prices: Sequence[float]) -> PriceSeries:
        return PriceSeries(monthly_points(start, prices))

    return _make


@pytest.fixture
def make_book(make_series):
    """Factory: PriceBook from ``{ticker: (start, prices)}`` with default windows."""

    def _make(prices_by_ticker: Dict[str, tuple]) -> PriceBook:
        series = {t: make_series(start, prices) for t, (start, prices) in prices_by_ticker.items()}
        return PriceBook(series, PriceResolver())

    return _make
