from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any

@dataclass(frozen=True)
class RiskPolicy:
    raw: Dict[str, Any]

    @property
    def risk_free_rate(self) -> float:
        return float(self.raw["risk"]["risk_free_rate"])

    @property
    def periods_per_year(self) -> int:
        return int(self.raw["risk"]["periods_per_year"])
