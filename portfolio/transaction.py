"""Ledger entries produced by a simulation run."""
from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Iterable, Iterator, List

CASH_TICKER = "CASH"


class TransactionType(Enum):
    """Tagged kind of a ledger entry."""

    CONTRIBUTION = "CONTRIBUTION"
    DIVIDEND_REINVESTMENT = "DIVIDEND_REINVESTMENT"
    REBALANCE_BUY = "REBALANCE_BUY"
    REBALANCE_SELL = "REBALANCE_SELL"
    PREVIOUS_CASH_USE = "PREVIOUS_CASH_USE"
    DIVIDEND_PAYMENT = "DIVIDEND_PAYMENT"
    CASH_CREDIT = "CASH_CREDIT"
    CASH_RESERVE = "CASH_RESERVE"

    @property
    def is_purchase(self) -> bool:
        return self in _PURCHASES


_PURCHASES = frozenset([
    TransactionType.CONTRIBUTION,
    TransactionType.DIVIDEND_REINVESTMENT,
    TransactionType.REBALANCE_BUY,
    TransactionType.PREVIOUS_CASH_USE,
])


@dataclass(frozen=True)
class Transaction:
    """A single immutable ledger entry.

    ``cash_delta`` is the asset-side flow: positive for purchases, credits
    and dividend payments, negative for sales, zero for reserve markers.
    """

    month_index: int
    date: date
    ticker: str
    type: TransactionType
    cash_delta: float
    price: float
    share_delta: int
    running_share_total: int
    running_cash_balance: float = 0.0

    @property
    def cash_effect(self) -> float:
        """Change this entry makes to the portfolio's cash balance."""
        if self.type in (TransactionType.CASH_CREDIT, TransactionType.DIVIDEND_PAYMENT):
            return self.cash_delta
        if self.type is TransactionType.CASH_RESERVE:
            return 0.0
        return -self.cash_delta

    def __str__(self) -> str:
        """Format transaction for display."""
        if self.ticker == CASH_TICKER or self.share_delta == 0:
            return f"{self.date} {self.type.value:<22} {self.ticker:<8} ${self.cash_delta:,.2f}"
        return (
            f"{self.date} {self.type.value:<22} {self.ticker:<8} "
            f"{self.share_delta:+d} @ {self.price:,.2f} = ${self.cash_delta:,.2f}"
        )


class Ledger:
    """Append-only transaction log that stamps running cash balances.

    Only the simulation driver writes to a ledger.
    """

    def __init__(self, opening_cash: float = 0.0) -> None:
        self._entries: List[Transaction] = []
        self._cash = opening_cash

    @property
    def cash_balance(self) -> float:
        return self._cash

    def record(self, txn: Transaction) -> Transaction:
        self._cash += txn.cash_effect
        stamped = replace(txn, running_cash_balance=self._cash)
        self._entries.append(stamped)
        return stamped

    def extend(self, txns: Iterable[Transaction]) -> List[Transaction]:
        return [self.record(t) for t in txns]

    def entries(self) -> List[Transaction]:
        return list(self._entries)

    def of_type(self, *types: TransactionType) -> List[Transaction]:
        return [t for t in self._entries if t.type in types]

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
