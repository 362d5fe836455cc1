from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Any, List

@dataclass(frozen=True)
class DividendPolicy:
    raw: Dict[str, Any]

    @property
    def seasonality(self) -> Dict[int, float]:
        cal = self.raw["dividends"]["seasonality"] or {}
        return {int(m): float(f) for m, f in cal.items()}

    @property
    def min_payment(self) -> float:
        return float(self.raw["dividends"]["min_payment"])

def seasonality_factor(pol: DividendPolicy, month: int) -> float:
    return pol.seasonality.get(month, 0.0)

def validate_seasonality(pol: DividendPolicy, tol: float = 1e-6) -> List[str]:
    issues: List[str] = []
    cal = pol.seasonality
    for m, f in sorted(cal.items()):
        if not 1 <= m <= 12:
            issues.append(f"Seasonality month out of range: {m}")
        if f < 0:
            issues.append(f"Negative seasonality factor for month {m}: {f}")
    total = sum(cal.values())
    if cal and abs(total - 1.0) > tol:
        issues.append(f"Seasonality factors sum to {total:.4f}, expected 1.0")
    return issues
