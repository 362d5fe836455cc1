"""Rebalance engine for the monthly simulation.

Moves whole-share holdings toward target allocation fractions using the
month's cash, and records every cash movement in the ledger with its
funding origin:

- new money is credited to the cash pool (CASH_CREDIT for own money);
- positions above target are sold when the sale is worth at least the
  minimum rebalance value, proceeds crediting the sale-proceeds pot;
- positions below target are bought with whatever whole shares the pool
  can afford, each purchase paid in whole shares per pot in draw-down
  priority.

Cash left over by integer-share rounding simply stays in its pot.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Callable, List, Optional

from engine.drift_engine import compute_drift
from engine.trade_planner import Trade, plan_buy, plan_sells
from policy.rebalance_policy import RebalancePolicy
from portfolio.allocation import Allocation
from portfolio.cash_pool import CashPool, CashSource
from portfolio.holding import Holdings
from portfolio.transaction import CASH_TICKER, Transaction, TransactionType

logger = logging.getLogger(__name__)

# Closing balances at or below this are not worth a CASH_RESERVE entry.
_CASH_DUST = 0.01


@dataclass(frozen=True)
class NewMoney:
    """Cash entering the portfolio this month, by origin."""

    initial_capital: float = 0.0
    contribution: float = 0.0
    dividends: float = 0.0

    @property
    def total(self) -> float:
        return self.initial_capital + self.contribution + self.dividends


@dataclass
class RebalanceResult:
    """Outcome of one month's rebalance."""

    new_holdings: Holdings
    transactions: List[Transaction]
    final_cash_balance: float
    cash_pool: CashPool
    deferred: List[Trade] = field(default_factory=list)


def credit_new_money(
    pool: CashPool,
    new_money: NewMoney,
    month_index: int,
    on: date,
) -> List[Transaction]:
    """Credit the month's new money to its pots.

    Own money (initial capital, monthly contribution) is recorded as
    CASH_CREDIT. Dividend cash is already on the ledger as DIVIDEND_PAYMENT
    entries, so it is credited silently.
    """
    txns: List[Transaction] = []
    for amount in (new_money.initial_capital, new_money.contribution):
        if amount <= 0:
            continue
        pool.credit(CashSource.OWN_CONTRIBUTION, amount)
        txns.append(
            Transaction(
                month_index=month_index,
                date=on,
                ticker=CASH_TICKER,
                type=TransactionType.CASH_CREDIT,
                cash_delta=amount,
                price=1.0,
                share_delta=0,
                running_share_total=0,
            )
        )
    if new_money.dividends > 0:
        pool.credit(CashSource.DIVIDEND_CASH, new_money.dividends)
    return txns


def attribute_purchase(
    trade: Trade,
    held_shares: int,
    pool: CashPool,
    month_index: int,
    on: date,
) -> List[Transaction]:
    """Pay for ``trade`` from the pool and emit one entry per funding source.

    Sources are charged in whole shares, so each entry's cash equals its
    share count times the trade price.
    """
    txns: List[Transaction] = []
    running = held_shares
    for source, n, amount in pool.draw_shares(trade.shares, trade.price):
        running += n
        txns.append(
            Transaction(
                month_index=month_index,
                date=on,
                ticker=trade.ticker,
                type=source.transaction_type,
                cash_delta=amount,
                price=trade.price,
                share_delta=n,
                running_share_total=running,
            )
        )
    return txns


def rebalance(
    allocation: Allocation,
    price_of: Callable[[str], Optional[float]],
    previous_holdings: Holdings,
    cash_pool: CashPool,
    new_money: NewMoney,
    pol: RebalancePolicy,
    month_index: int,
    on: date,
) -> RebalanceResult:
    """Rebalance holdings toward ``allocation`` at ``on`` prices.

    Args:
        allocation: Target fractions; renormalized over priced assets.
        price_of: Resolves a ticker's price at ``on``.
        previous_holdings: Shares held entering the month (not mutated).
        cash_pool: The month's cash pool; credited and drawn in place.
        new_money: Cash entering this month.
        pol: Rebalance policy (minimum sale value).
        month_index: Month index stamped on transactions.
        on: Trade date.

    Returns:
        RebalanceResult with new holdings, transactions and closing cash.
    """
    txns = credit_new_money(cash_pool, new_money, month_index, on)

    drift = compute_drift(allocation, previous_holdings, price_of, cash_pool.total())
    holdings: Holdings = {t: int(s) for t, s in previous_holdings.items()}

    # Sell phase
    sells, deferred = plan_sells(drift, pol.min_rebalance_value)
    for trade in sells:
        holdings[trade.ticker] -= trade.shares
        cash_pool.credit(CashSource.REBALANCE_SALE_PROCEEDS, trade.value)
        txns.append(
            Transaction(
                month_index=month_index,
                date=on,
                ticker=trade.ticker,
                type=TransactionType.REBALANCE_SELL,
                cash_delta=-trade.value,
                price=trade.price,
                share_delta=-trade.shares,
                running_share_total=holdings[trade.ticker],
            )
        )
        logger.debug("Month %d: %s", month_index, trade)
    for trade in deferred:
        logger.debug("Month %d: deferred %s (below %.2f)", month_index, trade, pol.min_rebalance_value)

    # Buy phase
    for pos in drift.positions.values():
        held = holdings.get(pos.ticker, 0)
        trade = plan_buy(pos, held, cash_pool.total())
        if trade is None:
            continue
        txns.extend(attribute_purchase(trade, held, cash_pool, month_index, on))
        holdings[pos.ticker] = held + trade.shares
        logger.debug("Month %d: %s", month_index, trade)

    final_cash = cash_pool.total()
    if final_cash > _CASH_DUST:
        txns.append(
            Transaction(
                month_index=month_index,
                date=on,
                ticker=CASH_TICKER,
                type=TransactionType.CASH_RESERVE,
                cash_delta=0.0,
                price=1.0,
                share_delta=0,
                running_share_total=0,
            )
        )

    return RebalanceResult(
        new_holdings={t: s for t, s in holdings.items() if s > 0},
        transactions=txns,
        final_cash_balance=final_cash,
        cash_pool=cash_pool,
        deferred=deferred,
    )
