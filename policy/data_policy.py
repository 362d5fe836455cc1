from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any

@dataclass(frozen=True)
class DataPolicy:
    raw: Dict[str, Any]

    @property
    def min_months(self) -> int:
        return int(self.raw["data"]["min_months"])

    @property
    def quality_thresholds(self) -> Dict[str, float]:
        return {k: float(v) for k, v in self.raw["data"]["quality"].items()}

def quality_for_completeness(pol: DataPolicy, completeness: float) -> str:
    th = pol.quality_thresholds
    if completeness >= th["excellent"]:
        return "excellent"
    if completeness >= th["good"]:
        return "good"
    if completeness >= th["fair"]:
        return "fair"
    return "poor"
