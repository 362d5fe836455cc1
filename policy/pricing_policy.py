from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any

@dataclass(frozen=True)
class PricingPolicy:
    raw: Dict[str, Any]

    @property
    def lookahead_days(self) -> int:
        return int(self.raw["pricing"]["lookahead_days"])

    @property
    def lookback_days(self) -> int:
        return int(self.raw["pricing"]["lookback_days"])
