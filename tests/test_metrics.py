"""Tests for backtest metrics.

Covers:
- Invested capital from CONTRIBUTION entries only
- Return, volatility, Sharpe and drawdown arithmetic
- Per-asset cost basis on partial sales
"""
from __future__ import annotations

import math
from datetime import date

import pytest

from backtest.metrics import asset_performance, compute_metrics, total_invested
from portfolio.snapshot import MonthlySnapshot
from portfolio.transaction import Transaction, TransactionType


def txn(kind: TransactionType, cash: float, ticker: str = "A", shares: int = 0,
        price: float = 10.0, running: int = 0, month: int = 0) -> Transaction:
    """Helper to build a ledger entry."""
    return Transaction(
        month_index=month,
        date=date(2020, month + 1, 1),
        ticker=ticker,
        type=kind,
        cash_delta=cash,
        price=price,
        share_delta=shares,
        running_share_total=running,
    )


def evolution(values, returns=None):
    """Helper to build snapshots from end-of-month values."""
    returns = returns or [0.0] * len(values)
    return [
        MonthlySnapshot(month_index=i, date=date(2020, i + 1, 1), total_value=v, monthly_return=r)
        for i, (v, r) in enumerate(zip(values, returns))
    ]


class TestTotalInvested:
    """Tests for own-capital accounting."""

    def test_only_contribution_entries_count(self):
        """Leftover use, reinvestment and rebalance buys recycle money already counted."""
        ledger = [
            txn(TransactionType.CASH_CREDIT, 1000.0, ticker="CASH"),
            txn(TransactionType.CONTRIBUTION, 900.0, shares=90, running=90),
            txn(TransactionType.PREVIOUS_CASH_USE, 50.0, shares=5, running=95),
            txn(TransactionType.DIVIDEND_REINVESTMENT, 30.0, shares=3, running=98),
            txn(TransactionType.REBALANCE_BUY, 20.0, shares=2, running=100),
        ]
        assert total_invested(ledger) == pytest.approx(900.0)

    def test_parked_own_money_counts(self):
        """Own money still held as cash at the end should count as invested."""
        ledger = [txn(TransactionType.CONTRIBUTION, 900.0, shares=90, running=90)]
        assert total_invested(ledger, pending_contributions=300.0) == pytest.approx(1200.0)


class TestComputeMetrics:
    """Tests for summary metrics."""

    def test_zero_volatility_has_no_sharpe(self, policy):
        """Flat returns should give zero volatility and an undefined Sharpe ratio."""
        ledger = [txn(TransactionType.CONTRIBUTION, 100.0, shares=10, running=10)]
        m = compute_metrics(evolution([100.0, 100.0, 100.0]), ledger, policy)

        assert m.volatility == 0.0
        assert m.sharpe_ratio is None
        assert m.total_return == pytest.approx(0.0)
        assert m.annualized_return == pytest.approx(0.0)

    def test_returns_and_sharpe(self, policy):
        """Total, annualized return and Sharpe should follow their formulas."""
        ledger = [txn(TransactionType.CONTRIBUTION, 1000.0, shares=100, running=100)]
        m = compute_metrics(evolution([1000.0, 1100.0, 1210.0], [0.0, 0.1, 0.1 + 0.02]), ledger, policy)

        assert m.total_invested == pytest.approx(1000.0)
        assert m.total_return == pytest.approx(0.21)
        assert m.annualized_return == pytest.approx(1.21 ** (12 / 3) - 1)
        # Population std of [0.1, 0.12] is 0.01
        assert m.volatility == pytest.approx(0.01 * math.sqrt(12))
        assert m.sharpe_ratio == pytest.approx((m.annualized_return - 0.10) / m.volatility)
        assert m.positive_months == 2
        assert m.negative_months == 0
        assert m.months == 3

    def test_max_drawdown(self, policy):
        """Drawdown should be the largest fall from the running peak."""
        m = compute_metrics(evolution([100.0, 120.0, 90.0, 130.0, 117.0]), [], policy)
        assert m.max_drawdown == pytest.approx(0.25)

    def test_no_investment_is_finite(self, policy):
        """Without any contribution every metric should stay finite."""
        m = compute_metrics(evolution([0.0, 0.0]), [], policy)
        for value in (m.total_return, m.annualized_return, m.volatility, m.max_drawdown):
            assert math.isfinite(value)

    def test_empty_evolution_raises(self, policy):
        """Metrics need at least one snapshot."""
        with pytest.raises(ValueError):
            compute_metrics([], [], policy)

    def test_dividends_and_cash_reserve(self, policy):
        """Dividends received and closing cash should be reported."""
        snaps = evolution([100.0, 110.0])
        snaps[-1] = MonthlySnapshot(month_index=1, date=date(2020, 2, 1), total_value=110.0, cash_balance=4.5)
        ledger = [
            txn(TransactionType.CONTRIBUTION, 100.0, shares=10, running=10),
            txn(TransactionType.DIVIDEND_PAYMENT, 7.5, running=10, month=1),
        ]
        m = compute_metrics(snaps, ledger, policy)
        assert m.total_dividends == pytest.approx(7.5)
        assert m.final_cash_reserve == pytest.approx(4.5)


class TestAssetPerformance:
    """Tests for per-asset results."""

    def test_partial_sale_scales_cost_basis(self):
        """Selling half should halve the cost basis and book the gain."""
        ledger = [
            txn(TransactionType.CONTRIBUTION, 100.0, shares=10, price=10.0, running=10),
            txn(TransactionType.REBALANCE_SELL, -100.0, shares=-5, price=20.0, running=5, month=1),
        ]
        [a] = asset_performance(ledger, {"A": 1.0}, {"A": 20.0})

        assert a.cost_basis == pytest.approx(50.0)
        assert a.realized_gain == pytest.approx(50.0)
        assert a.rebalance_sold == pytest.approx(100.0)
        assert a.final_shares == 5
        assert a.final_value == pytest.approx(100.0)
        assert a.average_price == pytest.approx(10.0)
        assert a.total_return == pytest.approx(1.0)

    def test_flows_by_kind(self):
        """Contribution, reinvestment and dividends should be aggregated separately."""
        ledger = [
            txn(TransactionType.CONTRIBUTION, 100.0, shares=10, running=10),
            txn(TransactionType.DIVIDEND_PAYMENT, 12.0, running=10, month=2),
            txn(TransactionType.DIVIDEND_REINVESTMENT, 10.0, shares=1, running=11, month=2),
            txn(TransactionType.PREVIOUS_CASH_USE, 10.0, shares=1, running=12, month=3),
        ]
        [a] = asset_performance(ledger, {"A": 1.0}, {"A": 10.0})

        assert a.contribution == pytest.approx(100.0)
        assert a.reinvestment == pytest.approx(20.0)
        assert a.total_dividends == pytest.approx(12.0)
        assert a.final_shares == 12

    def test_untraded_asset(self):
        """An asset never traded should report zeros and no average price."""
        [a] = asset_performance([], {"B": 0.5}, {"B": None})
        assert a.final_shares == 0
        assert a.average_price is None
        assert a.total_return == 0.0
