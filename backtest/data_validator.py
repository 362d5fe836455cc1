"""Pre-flight validation of historical price coverage.

Before a run starts, each ticker's series is checked for coverage of the
requested period, the widest period every asset with data covers is found,
and the run is rejected when that period is shorter than the policy
minimum.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from policy.data_policy import DataPolicy, quality_for_completeness
from pricing.price_resolver import PriceSeries

logger = logging.getLogger(__name__)

_QUALITY_SCORE = {"excellent": 4, "good": 3, "fair": 2, "poor": 1}


class InsufficientDataError(Exception):
    """Raised when price coverage is too thin to run a backtest."""

    def __init__(self, problems: List[str], validation: "DataValidation | None" = None) -> None:
        self.problems = list(problems)
        self.validation = validation
        super().__init__("Insufficient data for backtest: " + "; ".join(self.problems))


@dataclass(frozen=True)
class DataAvailability:
    """Coverage descriptor for one ticker."""

    ticker: str
    available_from: date | None
    available_to: date | None
    total_months: int
    missing_months: int
    data_quality: str  # excellent|good|fair|poor
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class DataValidation:
    """Result of validating every ticker's coverage."""

    is_valid: bool
    adjusted_start_date: date
    adjusted_end_date: date
    months_available: int
    assets_availability: List[DataAvailability]
    global_warnings: List[str]
    recommendations: List[str]

    @property
    def unavailable_tickers(self) -> List[str]:
        return [a.ticker for a in self.assets_availability if a.total_months == 0]


def months_between(start: date, end: date) -> int:
    """Calendar months from ``start``'s month to ``end``'s, inclusive."""
    if start > end:
        return 0
    return (end.year - start.year) * 12 + (end.month - start.month) + 1


def check_availability(
    ticker: str,
    series: PriceSeries,
    start: date,
    end: date,
    pol: DataPolicy,
    invalid_prices: Optional[int] = None,
) -> DataAvailability:
    """Describe ``ticker``'s coverage of ``[start, end]``.

    Args:
        ticker: Ticker symbol.
        series: The ticker's full series.
        start: Requested start date.
        end: Requested end date.
        pol: Data policy (quality thresholds).
        invalid_prices: Observations dropped for non-positive prices; counted
            from the series itself when not given.

    Returns:
        DataAvailability for the ticker.
    """
    in_range = series.between(start, end)
    if invalid_prices is None:
        invalid_prices = in_range.invalid_count
    if not in_range:
        warnings = [f"No historical data found for {ticker}"]
        if invalid_prices > 0:
            warnings.append(f"{invalid_prices} records with invalid prices")
        return DataAvailability(
            ticker=ticker,
            available_from=None,
            available_to=None,
            total_months=0,
            missing_months=0,
            data_quality="poor",
            warnings=warnings,
        )

    available_from = in_range.first().date
    available_to = in_range.last().date
    expected = months_between(start, end)
    actual = len({(p.date.year, p.date.month) for p in in_range.points})
    missing = max(0, expected - actual)
    quality = quality_for_completeness(pol, actual / expected if expected else 0.0)

    warnings: List[str] = []
    if missing > 0:
        warnings.append(f"{missing} months with missing data")
    if available_from.replace(day=1) > start.replace(day=1):
        warnings.append(f"Data available only from {available_from.isoformat()}")
    if available_to.replace(day=1) < end.replace(day=1):
        warnings.append(f"Data available only until {available_to.isoformat()}")
    if invalid_prices > 0:
        warnings.append(f"{invalid_prices} records with invalid prices")

    return DataAvailability(
        ticker=ticker,
        available_from=available_from,
        available_to=available_to,
        total_months=actual,
        missing_months=missing,
        data_quality=quality,
        warnings=warnings,
    )


def _common_period(assets: List[DataAvailability], start: date, end: date) -> tuple[date, date, int]:
    with_data = [a for a in assets if a.total_months > 0]
    if not with_data:
        return start, end, 0
    latest_start = max([start] + [a.available_from for a in with_data])
    earliest_end = min([end] + [a.available_to for a in with_data])
    return latest_start, earliest_end, months_between(latest_start, earliest_end)


def _warnings_and_recommendations(
    assets: List[DataAvailability],
    months_available: int,
    min_months: int,
) -> tuple[List[str], List[str]]:
    warnings: List[str] = []
    recs: List[str] = []

    without = [a.ticker for a in assets if a.total_months == 0]
    poor = [a.ticker for a in assets if a.data_quality == "poor"]
    fair = [a.ticker for a in assets if a.data_quality == "fair"]

    if without:
        warnings.append(f"{len(without)} asset(s) without historical data: {', '.join(without)}")
        recs.append("Consider removing assets without historical data or choosing alternatives")
    if poor:
        warnings.append(f"{len(poor)} asset(s) with poor data quality: {', '.join(poor)}")
        recs.append("Assets with poor data quality may reduce the accuracy of results")
    if fair:
        warnings.append(f"{len(fair)} asset(s) with fair data quality: {', '.join(fair)}")
    if months_available < min_months:
        warnings.append(
            f"Available period ({months_available} months) is shorter than the minimum ({min_months} months)"
        )
    if months_available < 24:
        warnings.append("A short period may produce less reliable metrics")
    if min_months <= months_available < 36:
        recs.append("For more robust results, consider a period of at least 3 years")
    if len(assets) > 10:
        recs.append("Portfolios with many assets are harder to rebalance")

    scored = [_QUALITY_SCORE[a.data_quality] for a in assets if a.total_months > 0]
    if scored:
        avg = sum(scored) / len(scored)
        if avg >= 3.5:
            recs.append("Overall data quality is excellent for backtesting")
        elif avg >= 2.5:
            recs.append("Overall data quality is adequate for backtesting")
        else:
            recs.append("Consider revising the asset selection for better data quality")

    return warnings, recs


def validate_backtest_data(
    series: Dict[str, PriceSeries],
    tickers: List[str],
    start: date,
    end: date,
    raw_policy: Dict,
    invalid_counts: Optional[Dict[str, int]] = None,
) -> DataValidation:
    """Validate coverage of every ticker and find the usable period.

    ``invalid_counts`` overrides the dropped-observation count each series
    carries.
    """
    pol = DataPolicy(raw_policy)
    assets = [
        check_availability(
            t,
            series.get(t, PriceSeries()),
            start,
            end,
            pol,
            (invalid_counts or {}).get(t),
        )
        for t in tickers
    ]
    adj_start, adj_end, months = _common_period(assets, start, end)
    warnings, recs = _warnings_and_recommendations(assets, months, pol.min_months)
    is_valid = months >= pol.min_months

    logger.info(
        "Data validation: valid=%s period=%s..%s months=%d warnings=%d",
        is_valid, adj_start, adj_end, months, len(warnings),
    )
    return DataValidation(
        is_valid=is_valid,
        adjusted_start_date=adj_start,
        adjusted_end_date=adj_end,
        months_available=months,
        assets_availability=assets,
        global_warnings=warnings,
        recommendations=recs,
    )


def require_valid(validation: DataValidation) -> DataValidation:
    """Return ``validation`` or raise InsufficientDataError."""
    if not validation.is_valid:
        raise InsufficientDataError(validation.global_warnings, validation)
    return validation
