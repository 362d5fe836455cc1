"""Seasonal dividend accrual.

Dividends are paid only in the calendar months listed in the dividend
policy's seasonality calendar; each payout is the holding's value times its
average annual yield times that month's factor.
"""
from __future__ import annotations

from datetime import date
from typing import Callable, Dict, List, Optional, Tuple

from policy.dividend_policy import DividendPolicy, seasonality_factor
from portfolio.holding import Holdings
from portfolio.transaction import Transaction, TransactionType


def accrue_dividends(
    holdings: Holdings,
    dividend_yields: Dict[str, float],
    on: date,
    price_of: Callable[[str], Optional[float]],
    pol: DividendPolicy,
    month_index: int = 0,
) -> Tuple[List[Transaction], float]:
    """Compute dividend cash paid on ``on`` for every held asset.

    Args:
        holdings: Shares held entering the month.
        dividend_yields: Average annual dividend yield per ticker.
        on: Payment date; only its calendar month matters.
        price_of: Resolves a ticker's price at ``on``.
        pol: Dividend policy (seasonality calendar, minimum payment).
        month_index: Month index stamped on the transactions.

    Returns:
        Tuple of (DIVIDEND_PAYMENT transactions, total dividend cash).
    """
    factor = seasonality_factor(pol, on.month)
    if factor <= 0:
        return [], 0.0

    txns: List[Transaction] = []
    total = 0.0
    for ticker, shares in holdings.items():
        dy = dividend_yields.get(ticker, 0.0)
        if shares <= 0 or dy <= 0:
            continue
        price = price_of(ticker)
        if not price or price <= 0:
            continue

        per_share = price * dy * factor
        amount = shares * per_share
        if amount <= pol.min_payment:
            continue

        txns.append(
            Transaction(
                month_index=month_index,
                date=on,
                ticker=ticker,
                type=TransactionType.DIVIDEND_PAYMENT,
                cash_delta=amount,
                price=price,
                share_delta=0,
                running_share_total=shares,
            )
        )
        total += amount

    return txns, total
