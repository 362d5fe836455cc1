from __future__ import annotations
from dataclasses import dataclass

@dataclass(frozen=True)
class AssetTarget:
    ticker: str
    allocation: float  # target fraction of the portfolio, (0, 1]
    average_dividend_yield: float = 0.0  # trailing average annual yield
