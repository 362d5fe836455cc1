from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any

class RebalanceFrequency(Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

_PERIOD_MONTHS = {
    RebalanceFrequency.MONTHLY: 1,
    RebalanceFrequency.QUARTERLY: 3,
    RebalanceFrequency.YEARLY: 12,
}

@dataclass(frozen=True)
class RebalancePolicy:
    raw: Dict[str, Any]

    @property
    def min_rebalance_value(self) -> float:
        return float(self.raw["rebalance"]["min_rebalance_value"])

def should_rebalance(month_index: int, frequency: RebalanceFrequency) -> bool:
    return month_index % _PERIOD_MONTHS[frequency] == 0
