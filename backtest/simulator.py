"""Month-by-month portfolio simulation.

Each calendar month between the start and end dates goes through:

- S0: find assets with a usable price; skip the month if there are none;
- S1: accrue seasonal dividends on holdings (not in the first month);
- S2: gather new money (initial capital in the first month, the monthly
  contribution, dividend cash);
- S3: rebalance at month-start prices when the schedule says so, otherwise
  park the new money in the cash pool under its origin until the next
  rebalance (only a rebalance rolls unspent cash over to leftover);
- S4: value holdings at month-end prices, plus cash;
- S5: compute the month's return net of the contribution;
- S6: record a snapshot.

Each month's holdings, cash and ledger feed the next, so months run
strictly in order. The driver is the only writer of that state.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Optional

import pandas as pd

from engine.dividend_engine import accrue_dividends
from engine.rebalance_engine import NewMoney, credit_new_money, rebalance
from policy.dividend_policy import DividendPolicy
from policy.rebalance_policy import RebalancePolicy, should_rebalance
from portfolio.cash_pool import CashPool, CashSource
from portfolio.holding import Holdings, holdings_value, negative_positions
from portfolio.portfolio import BacktestConfig
from portfolio.snapshot import MonthlySnapshot
from portfolio.transaction import CASH_TICKER, Ledger, Transaction, TransactionType
from pricing.price_resolver import PriceBook

logger = logging.getLogger(__name__)

# Ledger and cash pool may differ by float noise only.
_CONSERVATION_TOL = 0.01


@dataclass
class SimulationResult:
    """Raw output of a simulation run."""

    evolution: List[MonthlySnapshot]
    ledger: Ledger
    missed_contributions: int = 0
    skipped_months: List[date] = field(default_factory=list)
    total_dividends: float = 0.0
    # Own money credited but not yet spent on shares at the end of the run.
    pending_contributions: float = 0.0

    @property
    def final_cash_balance(self) -> float:
        return self.evolution[-1].cash_balance if self.evolution else 0.0

    @property
    def final_holdings(self) -> Holdings:
        return dict(self.evolution[-1].holdings) if self.evolution else {}


def month_starts(start: date, end: date) -> List[date]:
    """First day of every calendar month from ``start``'s month to ``end``."""
    first = start.replace(day=1)
    return [ts.date() for ts in pd.date_range(first, end, freq="MS")]


def month_end(d: date) -> date:
    return (pd.Timestamp(d) + pd.offsets.MonthEnd(0)).date()


def available_assets(
    tickers: Iterable[str],
    book: PriceBook,
    on: date,
    excluded: Iterable[str] = (),
) -> List[str]:
    """Tickers with a price on ``on`` within the resolver's windows."""
    skip = set(excluded)
    return [t for t in tickers if t not in skip and book.has_price(t, on)]


class SimulationDriver:
    """Runs the monthly state machine for one configuration.

    Args:
        config: Portfolio configuration.
        book: Price series for every configured ticker.
        raw_policy: Merged policy dict.
        unavailable: Tickers the price feed reports as having no data;
            they are never traded.
    """

    def __init__(
        self,
        config: BacktestConfig,
        book: PriceBook,
        raw_policy: Dict,
        unavailable: Iterable[str] = (),
    ) -> None:
        self.config = config
        self.book = book
        self.rebalance_policy = RebalancePolicy(raw_policy)
        self.dividend_policy = DividendPolicy(raw_policy)
        self.unavailable = frozenset(unavailable)

    def run(self) -> SimulationResult:
        cfg = self.config
        ledger = Ledger()
        holdings: Holdings = {}
        pool = CashPool()
        rebalanced = False
        pending = 0.0
        evolution: List[MonthlySnapshot] = []
        skipped: List[date] = []
        total_dividends = 0.0
        invested = 0.0
        prev_value = 0.0

        for i, start in enumerate(month_starts(cfg.start_date, cfg.end_date)):
            # S0
            usable = available_assets(cfg.tickers, self.book, start, self.unavailable)
            if not usable:
                logger.warning("Skipping %s: no asset has price data", start)
                skipped.append(start)
                continue
            first = not evolution

            # S1
            dividends = 0.0
            if not first and holdings:
                div_txns, dividends = accrue_dividends(
                    holdings,
                    cfg.dividend_yields,
                    start,
                    self.book.pricer(start),
                    self.dividend_policy,
                    month_index=i,
                )
                ledger.extend(div_txns)
                total_dividends += dividends

            # S2
            new_money = NewMoney(
                initial_capital=cfg.initial_capital if first else 0.0,
                contribution=cfg.monthly_contribution,
                dividends=dividends,
            )
            if rebalanced:
                pool = pool.rollover()

            # S3
            rebalanced = first or should_rebalance(i, cfg.rebalance_frequency)
            if rebalanced:
                result = rebalance(
                    cfg.allocation.renormalized(usable),
                    self.book.pricer(start),
                    holdings,
                    pool,
                    new_money,
                    self.rebalance_policy,
                    month_index=i,
                    on=start,
                )
                recorded = ledger.extend(result.transactions)
                holdings = result.new_holdings
            else:
                recorded = ledger.extend(credit_new_money(pool, new_money, i, start))
                if pool.total() > 0.01:
                    recorded += ledger.extend([self._reserve(i, start)])
            cash = pool.total()

            self._check_month(i, ledger, cash, holdings)
            invested += sum(
                t.cash_delta for t in recorded if t.type is TransactionType.CONTRIBUTION
            )
            pending = pool.balance(CashSource.OWN_CONTRIBUTION)

            # S4
            end_value = holdings_value(holdings, self.book.pricer(month_end(start))) + cash

            # S5
            if first:
                base = cfg.initial_capital + cfg.monthly_contribution
                monthly_return = (end_value - base) / base if base > 0 else 0.0
            else:
                monthly_return = (
                    (end_value - prev_value - cfg.monthly_contribution) / prev_value
                    if prev_value > 0
                    else 0.0
                )

            # S6
            evolution.append(
                MonthlySnapshot(
                    month_index=i,
                    date=start,
                    total_value=end_value,
                    holdings=dict(holdings),
                    monthly_return=monthly_return,
                    contribution=cfg.monthly_contribution,
                    cash_balance=cash,
                    invested_capital=invested + pending,
                    dividends=dividends,
                )
            )
            logger.debug(
                "Month %d (%s): value=%.2f cash=%.2f return=%.4f",
                i, start, end_value, cash, monthly_return,
            )
            prev_value = end_value

        logger.info(
            "Simulation finished: %d months, %d missed contributions, dividends %.2f",
            len(evolution), len(skipped), total_dividends,
        )
        return SimulationResult(
            evolution=evolution,
            ledger=ledger,
            missed_contributions=len(skipped),
            skipped_months=skipped,
            total_dividends=total_dividends,
            pending_contributions=pending,
        )

    @staticmethod
    def _reserve(month_index: int, on: date) -> Transaction:
        return Transaction(
            month_index=month_index,
            date=on,
            ticker=CASH_TICKER,
            type=TransactionType.CASH_RESERVE,
            cash_delta=0.0,
            price=1.0,
            share_delta=0,
            running_share_total=0,
        )

    @staticmethod
    def _check_month(month_index: int, ledger: Ledger, cash: float, holdings: Holdings) -> None:
        drift = ledger.cash_balance - cash
        if abs(drift) > _CONSERVATION_TOL:
            logger.warning(
                "Month %d: ledger cash %.2f differs from pool %.2f", month_index, ledger.cash_balance, cash
            )
        bad = negative_positions(holdings)
        if bad:
            raise RuntimeError(f"Negative holdings in month {month_index}: {bad}")


def simulate(
    config: BacktestConfig,
    book: PriceBook,
    raw_policy: Dict,
    unavailable: Optional[Iterable[str]] = None,
) -> SimulationResult:
    """Run a simulation for ``config`` over ``book``'s prices."""
    return SimulationDriver(config, book, raw_policy, unavailable or ()).run()
