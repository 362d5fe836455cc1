from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Callable, Dict, Optional
from portfolio.allocation import Allocation
from portfolio.holding import Holdings

# Absorbs float noise such as 0.1 * 3 / 0.3 landing just under an integer.
_EPS = 1e-9

@dataclass(frozen=True)
class Position:
    ticker: str
    price: float
    current_shares: int
    target_shares: int

    @property
    def delta_shares(self) -> int:
        return self.target_shares - self.current_shares

@dataclass(frozen=True)
class DriftResult:
    positions: Dict[str, Position]  # allocation order, priced assets only
    current_assets_value: float
    total_investable: float

def whole_shares(value: float, price: float) -> int:
    if price <= 0 or value <= 0:
        return 0
    return int(math.floor(value / price + _EPS))

def compute_drift(
    allocation: Allocation,
    holdings: Holdings,
    price_of: Callable[[str], Optional[float]],
    available_cash: float,
) -> DriftResult:
    prices = {}
    for t in allocation.targets:
        p = price_of(t)
        if p and p > 0:
            prices[t] = p

    targets = allocation.renormalized(prices).targets
    current = {t: int(holdings.get(t, 0)) for t in targets}
    assets_value = sum(current[t] * prices[t] for t in targets)
    total = assets_value + available_cash

    positions = {
        t: Position(
            ticker=t,
            price=prices[t],
            current_shares=current[t],
            target_shares=whole_shares(total * w, prices[t]),
        )
        for t, w in targets.items()
    }
    return DriftResult(positions=positions, current_assets_value=assets_value, total_investable=total)
