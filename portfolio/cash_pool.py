"""Cash available to a month's rebalance, partitioned by funding origin.

Sources are kept as an ordered list of ``[source, remaining]`` pairs in
draw-down priority order, so a purchase always consumes leftover cash
first, then the investor's own money, then dividends, then sale proceeds.
"""
from __future__ import annotations

import math
from enum import Enum
from typing import Dict, List, Tuple

from portfolio.transaction import TransactionType


class CashSource(Enum):
    """Funding origin of a cash sub-balance."""

    PREVIOUS_LEFTOVER = "previous_leftover"
    OWN_CONTRIBUTION = "own_contribution"
    DIVIDEND_CASH = "dividend_cash"
    REBALANCE_SALE_PROCEEDS = "rebalance_sale_proceeds"

    @property
    def transaction_type(self) -> TransactionType:
        """Ledger type recorded when a purchase is paid from this source."""
        return _SOURCE_TXN_TYPE[self]


_SOURCE_TXN_TYPE = {
    CashSource.PREVIOUS_LEFTOVER: TransactionType.PREVIOUS_CASH_USE,
    CashSource.OWN_CONTRIBUTION: TransactionType.CONTRIBUTION,
    CashSource.DIVIDEND_CASH: TransactionType.DIVIDEND_REINVESTMENT,
    CashSource.REBALANCE_SALE_PROCEEDS: TransactionType.REBALANCE_BUY,
}

DRAW_ORDER: Tuple[CashSource, ...] = (
    CashSource.PREVIOUS_LEFTOVER,
    CashSource.OWN_CONTRIBUTION,
    CashSource.DIVIDEND_CASH,
    CashSource.REBALANCE_SALE_PROCEEDS,
)


class CashPool:
    """Four labelled sub-balances drawn down in ``DRAW_ORDER``."""

    def __init__(self, previous_leftover: float = 0.0) -> None:
        self._pots: List[List] = [[src, 0.0] for src in DRAW_ORDER]
        if previous_leftover:
            self.credit(CashSource.PREVIOUS_LEFTOVER, previous_leftover)

    def credit(self, source: CashSource, amount: float) -> None:
        if amount < 0:
            raise ValueError(f"Cannot credit a negative amount: {amount}")
        for pot in self._pots:
            if pot[0] is source:
                pot[1] += amount
                return

    def draw_shares(self, shares: int, price: float) -> List[Tuple[CashSource, int, float]]:
        """Pay for ``shares`` whole shares at ``price``.

        Each source first buys the whole shares its own balance affords, in
        priority order. Shares still unpaid are funded from the fractions
        the sources have left: a source's fraction passes on to the next
        source, and a share belongs to the source that completes its price.

        Returns the ``(source, shares, cash)`` parts with at least one share;
        every part's cash is exactly its shares times ``price``.
        """
        cost = shares * price
        if cost > self.total() + 1e-6:
            raise ValueError(f"Insufficient cash: need {cost:.2f}, have {self.total():.2f}")
        counts: Dict[CashSource, int] = {src: 0 for src in DRAW_ORDER}
        remaining = shares
        for pot in self._pots:
            n = min(remaining, int(math.floor(pot[1] / price + 1e-9)))
            if n > 0:
                pot[1] = max(pot[1] - n * price, 0.0)
                counts[pot[0]] += n
                remaining -= n

        carried: List[List] = []
        for pot in self._pots:
            if remaining <= 0:
                break
            if pot[1] <= 0:
                continue
            carried.append(pot)
            while remaining > 0 and sum(c[1] for c in carried) + 1e-6 >= price:
                due = price
                for c in carried:
                    take = min(c[1], due)
                    c[1] -= take
                    due -= take
                    if due <= 0:
                        break
                counts[pot[0]] += 1
                remaining -= 1
            carried = [c for c in carried if c[1] > 0]
        if remaining > 0:
            raise ValueError(f"Insufficient cash for {remaining} more shares at {price:.2f}")
        return [(src, n, n * price) for src, n in counts.items() if n > 0]

    def balance(self, source: CashSource) -> float:
        for src, amt in self._pots:
            if src is source:
                return amt
        return 0.0

    def balances(self) -> Dict[CashSource, float]:
        return {src: amt for src, amt in self._pots}

    def total(self) -> float:
        return sum(amt for _, amt in self._pots)

    def rollover(self) -> "CashPool":
        """Pool for the next month: everything unspent becomes leftover."""
        return CashPool(previous_leftover=self.total())

    def __repr__(self) -> str:
        inner = ", ".join(f"{src.value}={amt:.2f}" for src, amt in self._pots)
        return f"CashPool({inner})"
