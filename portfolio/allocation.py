from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable

@dataclass(frozen=True)
class Allocation:
    targets: Dict[str, float]  # ticker -> weight

    def validate_sum_to_one(self, tol: float = 1e-6) -> None:
        s = sum(self.targets.values())
        if abs(s - 1.0) > tol:
            raise ValueError(f"Targets must sum to 1.0, got {s}")

    def renormalized(self, available: Iterable[str]) -> "Allocation":
        """Restrict targets to ``available`` tickers, scaled to sum to 1.

        Ticker order follows the input targets. Returns an empty
        allocation when none of the targets is available.
        """
        avail = set(available)
        kept = {t: w for t, w in self.targets.items() if t in avail and w > 0}
        total = sum(kept.values())
        if total <= 0:
            return Allocation({})
        return Allocation({t: w / total for t, w in kept.items()})
