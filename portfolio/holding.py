from __future__ import annotations
from typing import Callable, Dict, List, Optional

Holdings = Dict[str, int]  # ticker -> whole shares

def holdings_value(holdings: Holdings, price_of: Callable[[str], Optional[float]]) -> float:
    """Market value of ``holdings``; tickers without a price count as zero."""
    total = 0.0
    for t, shares in holdings.items():
        if shares <= 0:
            continue
        price = price_of(t)
        if price:
            total += shares * price
    return total

def negative_positions(holdings: Holdings) -> List[str]:
    return [t for t, s in holdings.items() if s < 0]
