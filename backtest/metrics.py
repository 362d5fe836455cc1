"""Performance metrics derived from a simulation's ledger and evolution.

Metrics computed:
- Total and annualized return on own capital invested
- Annualized volatility of monthly returns
- Sharpe ratio against a fixed risk-free rate
- Maximum drawdown from the running peak
- Positive / negative month counts
- Per-asset performance with a sale-adjusted average cost basis

Own capital invested is rebuilt from CONTRIBUTION entries, plus own money
that is still parked in cash when the run ends; leftover cash reuse and
dividend reinvestment recycle money already counted.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import numpy as np
import pandas as pd

from policy.risk_policy import RiskPolicy
from portfolio.snapshot import MonthlySnapshot
from portfolio.transaction import CASH_TICKER, Transaction, TransactionType


@dataclass
class AssetPerformance:
    """Aggregated flows and results for one ticker."""

    ticker: str
    allocation: float
    contribution: float = 0.0
    reinvestment: float = 0.0
    rebalance_bought: float = 0.0
    rebalance_sold: float = 0.0
    total_dividends: float = 0.0
    final_shares: int = 0
    cost_basis: float = 0.0
    realized_gain: float = 0.0
    final_value: float = 0.0
    average_price: Optional[float] = None
    total_return: float = 0.0

    @property
    def gross_bought(self) -> float:
        return self.contribution + self.reinvestment + self.rebalance_bought


@dataclass
class BacktestMetrics:
    """Summary statistics of a simulation run."""

    total_return: float
    annualized_return: float
    volatility: float
    sharpe_ratio: Optional[float]
    max_drawdown: float
    positive_months: int
    negative_months: int
    total_invested: float
    final_value: float
    final_cash_reserve: float
    total_dividends: float
    months: int
    asset_performance: List[AssetPerformance] = field(default_factory=list)


def _finite_or(value: float, default: float = 0.0) -> float:
    return value if math.isfinite(value) else default


def total_invested(ledger: Iterable[Transaction], pending_contributions: float = 0.0) -> float:
    """Own capital invested: CONTRIBUTION entries plus own money not yet spent."""
    spent = sum(t.cash_delta for t in ledger if t.type is TransactionType.CONTRIBUTION)
    return spent + pending_contributions


def _annualized_return(final_value: float, invested: float, months: int, periods_per_year: int) -> float:
    """Annualize the final/invested ratio over ``months`` periods.

    Args:
        final_value: Ending portfolio value.
        invested: Own capital invested.
        months: Number of simulated months.
        periods_per_year: Periods per year (12 for monthly).

    Returns:
        Annualized return as a decimal, 0.0 when undefined.
    """
    if months <= 0:
        return 0.0
    ratio = final_value / invested if invested > 0 else 1.0
    if ratio < 0:
        return 0.0
    return _finite_or(ratio ** (periods_per_year / months) - 1)


def _vol(returns: pd.Series, periods_per_year: int = 12) -> float:
    """Annualized population standard deviation of periodic returns."""
    if len(returns) == 0:
        return 0.0
    return _finite_or(float(np.std(returns.to_numpy(dtype=float))) * np.sqrt(periods_per_year))


def _sharpe_ratio(annualized_return: float, volatility: float, risk_free_rate: float) -> Optional[float]:
    """Excess annualized return per unit of volatility; None when undefined."""
    if volatility <= 0:
        return None
    ratio = (annualized_return - risk_free_rate) / volatility
    return ratio if math.isfinite(ratio) else None


def _max_drawdown(values: pd.Series) -> float:
    """Calculate maximum drawdown.

    Args:
        values: Portfolio value series.

    Returns:
        Largest decline from the running peak as a positive decimal
        (e.g., 0.30 for a 30% drawdown).
    """
    if len(values) == 0:
        return 0.0
    peak = values.cummax()
    dd = ((peak - values) / peak.where(peak > 0)).fillna(0.0)
    return float(max(dd.max(), 0.0))


def asset_performance(
    ledger: Iterable[Transaction],
    allocations: Dict[str, float],
    final_prices: Dict[str, Optional[float]],
) -> List[AssetPerformance]:
    """Aggregate per-ticker flows from the ledger.

    Average cost tracks every purchase. On a sale the cost basis is scaled
    by the fraction of shares that survive and the sale's profit over the
    removed cost is booked as realized gain. Total return counts realized
    gain as already paid out:
    ``(final_value + realized_gain - cost_basis) / gross_bought``.
    """
    perf = {t: AssetPerformance(ticker=t, allocation=w) for t, w in allocations.items()}

    for txn in ledger:
        if txn.ticker == CASH_TICKER or txn.ticker not in perf:
            continue
        p = perf[txn.ticker]

        if txn.type is TransactionType.CONTRIBUTION:
            p.contribution += txn.cash_delta
        elif txn.type in (TransactionType.DIVIDEND_REINVESTMENT, TransactionType.PREVIOUS_CASH_USE):
            p.reinvestment += txn.cash_delta
        elif txn.type is TransactionType.REBALANCE_BUY:
            p.rebalance_bought += txn.cash_delta
        elif txn.type is TransactionType.DIVIDEND_PAYMENT:
            p.total_dividends += txn.cash_delta
            continue

        if txn.type.is_purchase:
            p.cost_basis += txn.cash_delta
        elif txn.type is TransactionType.REBALANCE_SELL:
            proceeds = -txn.cash_delta
            sold = -txn.share_delta
            before = txn.running_share_total + sold
            if before > 0:
                removed = p.cost_basis * sold / before
                p.cost_basis -= removed
                p.realized_gain += proceeds - removed
            p.rebalance_sold += proceeds

        p.final_shares = txn.running_share_total

    for t, p in perf.items():
        price = final_prices.get(t)
        if p.final_shares > 0 and price:
            p.final_value = p.final_shares * price
        if p.final_shares > 0:
            p.average_price = p.cost_basis / p.final_shares
        if p.gross_bought > 0:
            p.total_return = _finite_or(
                (p.final_value + p.realized_gain - p.cost_basis) / p.gross_bought
            )

    return list(perf.values())


def compute_metrics(
    evolution: List[MonthlySnapshot],
    ledger: Iterable[Transaction],
    raw_policy: Dict,
    allocations: Optional[Dict[str, float]] = None,
    final_prices: Optional[Dict[str, Optional[float]]] = None,
    pending_contributions: float = 0.0,
) -> BacktestMetrics:
    """Compute run metrics.

    Args:
        evolution: Monthly snapshots in chronological order.
        ledger: The run's transactions.
        raw_policy: Merged policy dict (risk-free rate, periods per year).
        allocations: Target fraction per ticker, for per-asset results.
        final_prices: Price per ticker at the final valuation date.
        pending_contributions: Own money credited but still held as cash
            at the end of the run.

    Returns:
        BacktestMetrics.
    """
    if not evolution:
        raise ValueError("No evolution data to measure")

    risk = RiskPolicy(raw_policy)
    txns = list(ledger)

    values = pd.Series([s.total_value for s in evolution], dtype=float)
    returns = pd.Series([s.monthly_return for s in evolution[1:]], dtype=float)

    final_value = float(values.iloc[-1])
    invested = total_invested(txns, pending_contributions)
    total_return = _finite_or((final_value - invested) / invested) if invested > 0 else 0.0
    annualized = _annualized_return(final_value, invested, len(evolution), risk.periods_per_year)
    vol = _vol(returns, risk.periods_per_year)

    return BacktestMetrics(
        total_return=total_return,
        annualized_return=annualized,
        volatility=vol,
        sharpe_ratio=_sharpe_ratio(annualized, vol, risk.risk_free_rate),
        max_drawdown=_max_drawdown(values),
        positive_months=int((returns > 0).sum()),
        negative_months=int((returns < 0).sum()),
        total_invested=invested,
        final_value=final_value,
        final_cash_reserve=evolution[-1].cash_balance,
        total_dividends=sum(
            t.cash_delta for t in txns if t.type is TransactionType.DIVIDEND_PAYMENT
        ),
        months=len(evolution),
        asset_performance=asset_performance(txns, allocations or {}, final_prices or {}),
    )
