"""End-to-end backtest: validate coverage, simulate, measure.

Only insufficient data coverage stops a run; everything after validation
degrades gracefully (skipped months, excluded assets).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Dict, List, Optional

from backtest.data_validator import DataValidation, require_valid, validate_backtest_data
from backtest.metrics import BacktestMetrics, compute_metrics
from backtest.simulator import SimulationResult, month_end, simulate
from common.config_loader import merge_policy
from policy.pricing_policy import PricingPolicy
from portfolio.portfolio import BacktestConfig
from portfolio.snapshot import MonthlySnapshot
from portfolio.transaction import Transaction
from pricing.price_feed import PriceFeed, fetch_series
from pricing.price_resolver import PriceBook, PriceResolver, PriceSeries

logger = logging.getLogger(__name__)


@dataclass
class BacktestResult:
    """Everything a backtest run produces."""

    config: BacktestConfig
    metrics: BacktestMetrics
    evolution: List[MonthlySnapshot]
    ledger: List[Transaction]
    validation: DataValidation
    effective_start_date: date
    effective_end_date: date
    missed_contributions: int
    planned_investment: float
    actual_investment: float
    missed_amount: float
    total_dividends: float
    data_quality_issues: List[str] = field(default_factory=list)


def data_quality_issues(validation: DataValidation, missed_contributions: int) -> List[str]:
    issues: List[str] = []
    if missed_contributions > 0:
        issues.append(f"{missed_contributions} monthly contributions were missed due to missing data")
    for a in validation.assets_availability:
        if a.data_quality == "poor":
            issues.append(f"{a.ticker}: poor data quality")
        elif a.data_quality == "fair":
            issues.append(f"{a.ticker}: fair data quality")
        if a.missing_months > 0:
            issues.append(f"{a.ticker}: {a.missing_months} months with missing data")
    return issues


def run_backtest_on_series(
    config: BacktestConfig,
    series: Dict[str, PriceSeries],
    raw_policy: Optional[Dict[str, Any]] = None,
    invalid_counts: Optional[Dict[str, int]] = None,
) -> BacktestResult:
    """Run a backtest over already-fetched price series.

    ``invalid_counts`` overrides the invalid-price counts the series carry.

    Raises:
        InsufficientDataError: If the common data period is too short.
    """
    policy = merge_policy(raw_policy)
    validation = require_valid(
        validate_backtest_data(
            series, config.tickers, config.start_date, config.end_date, policy, invalid_counts
        )
    )

    adjusted = replace(
        config,
        start_date=validation.adjusted_start_date,
        end_date=validation.adjusted_end_date,
    )
    if (adjusted.start_date, adjusted.end_date) != (config.start_date, config.end_date):
        logger.info(
            "Period adjusted from %s..%s to %s..%s",
            config.start_date, config.end_date, adjusted.start_date, adjusted.end_date,
        )

    book = PriceBook(series, PriceResolver.from_policy(PricingPolicy(policy)))
    sim: SimulationResult = simulate(adjusted, book, policy, unavailable=validation.unavailable_tickers)

    final_date = month_end(sim.evolution[-1].date) if sim.evolution else adjusted.end_date
    metrics = compute_metrics(
        sim.evolution,
        sim.ledger,
        policy,
        allocations=adjusted.allocation.targets,
        final_prices={t: book.price(t, final_date) for t in adjusted.tickers},
        pending_contributions=sim.pending_contributions,
    )

    planned_months = validation.months_available
    actual_months = len(sim.evolution)
    return BacktestResult(
        config=adjusted,
        metrics=metrics,
        evolution=sim.evolution,
        ledger=sim.ledger.entries(),
        validation=validation,
        effective_start_date=adjusted.start_date,
        effective_end_date=adjusted.end_date,
        missed_contributions=sim.missed_contributions,
        planned_investment=planned_months * adjusted.monthly_contribution,
        actual_investment=actual_months * adjusted.monthly_contribution,
        missed_amount=sim.missed_contributions * adjusted.monthly_contribution,
        total_dividends=sim.total_dividends,
        data_quality_issues=data_quality_issues(validation, sim.missed_contributions),
    )


def prefetch_series(
    config: BacktestConfig,
    feed: PriceFeed,
    raw_policy: Optional[Dict[str, Any]] = None,
) -> Dict[str, PriceSeries]:
    """Fetch every configured ticker, past the end date by the lookahead window."""
    policy = merge_policy(raw_policy)
    return fetch_series(
        feed,
        config.tickers,
        config.start_date,
        config.end_date,
        margin_days=PricingPolicy(policy).lookahead_days,
    )


def run_backtest(
    config: BacktestConfig,
    feed: PriceFeed,
    raw_policy: Optional[Dict[str, Any]] = None,
) -> BacktestResult:
    """Prefetch prices from ``feed`` and run a backtest."""
    policy = merge_policy(raw_policy)
    return run_backtest_on_series(config, prefetch_series(config, feed, policy), policy)
