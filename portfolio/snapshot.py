from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from typing import Dict

@dataclass(frozen=True)
class MonthlySnapshot:
    month_index: int
    date: date
    total_value: float  # holdings at month-end prices plus cash
    holdings: Dict[str, int] = field(default_factory=dict)
    monthly_return: float = 0.0
    contribution: float = 0.0
    cash_balance: float = 0.0
    invested_capital: float = 0.0  # cumulative own money put into assets
    dividends: float = 0.0
