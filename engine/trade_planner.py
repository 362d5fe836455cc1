"""Trade planning for a month's rebalance.

Sizes whole-share sells and buys from the drift between current and target
positions. Sells below the minimum rebalance value are deferred so small
deviations do not churn the portfolio every month.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from engine.drift_engine import DriftResult, Position, whole_shares


@dataclass(frozen=True)
class Trade:
    """A planned whole-share order."""

    ticker: str
    action: str  # BUY/SELL
    shares: int
    price: float
    reason: str

    @property
    def value(self) -> float:
        return self.shares * self.price

    def __str__(self) -> str:
        """Format trade for display."""
        return f"{self.action} {self.shares} {self.ticker} @ ${self.price:,.2f} (${self.value:,.0f})"


def plan_sells(drift: DriftResult, min_rebalance_value: float) -> Tuple[List[Trade], List[Trade]]:
    """Plan sells for positions above target.

    Returns:
        Tuple of (sells to execute, sells deferred below the minimum value).
    """
    sells: List[Trade] = []
    deferred: List[Trade] = []
    for pos in drift.positions.values():
        excess = -pos.delta_shares
        if excess <= 0:
            continue
        trade = Trade(pos.ticker, "SELL", excess, pos.price, "Rebalance sell")
        if trade.value >= min_rebalance_value:
            sells.append(trade)
        else:
            deferred.append(
                Trade(pos.ticker, "SELL", excess, pos.price, "Deferred: below minimum rebalance value")
            )
    return sells, deferred


def plan_buy(pos: Position, held_shares: int, available_cash: float) -> Trade | None:
    """Size a buy toward target, capped by what the cash can afford."""
    wanted = pos.target_shares - held_shares
    if wanted <= 0 or available_cash < pos.price:
        return None
    shares = min(wanted, whole_shares(available_cash, pos.price))
    if shares <= 0:
        return None
    reason = "Rebalance buy" if shares == wanted else "Rebalance buy (cash-limited)"
    return Trade(pos.ticker, "BUY", shares, pos.price, reason)
