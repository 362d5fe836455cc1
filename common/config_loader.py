from __future__ import annotations
import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
import yaml

DEFAULT_POLICY: Dict[str, Any] = {
    "pricing": {"lookahead_days": 45, "lookback_days": 45},
    "dividends": {
        "seasonality": {3: 0.333, 8: 0.333, 10: 0.334},
        "min_payment": 0.01,
    },
    "rebalance": {"min_rebalance_value": 100.0},
    "risk": {"risk_free_rate": 0.10, "periods_per_year": 12},
    "data": {
        "min_months": 12,
        "quality": {"excellent": 0.95, "good": 0.85, "fair": 0.70},
    },
}

def load_yaml(path: str | Path) -> Dict[str, Any]:
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

def merge_policy(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Overlay a (possibly partial) policy dict on DEFAULT_POLICY.

    Nested sections merge key by key; ``dividends.seasonality`` is replaced
    wholesale so a custom calendar never inherits default payout months.
    """
    merged = copy.deepcopy(DEFAULT_POLICY)
    for section, values in (overrides or {}).items():
        if isinstance(values, dict) and isinstance(merged.get(section), dict):
            for k, v in values.items():
                if isinstance(v, dict) and isinstance(merged[section].get(k), dict) and k != "seasonality":
                    merged[section][k] = {**merged[section][k], **v}
                else:
                    merged[section][k] = v
        else:
            merged[section] = values
    return merged

@dataclass(frozen=True)
class LoadedConfig:
    policy: Dict[str, Any]
    portfolio: Dict[str, Any]

def load_all(
    policy_path: str | Path = "config/backtest_policy.yaml",
    portfolio_path: str | Path = "config/portfolio.yaml",
) -> LoadedConfig:
    return LoadedConfig(
        policy=merge_policy(load_yaml(policy_path)),
        portfolio=load_yaml(portfolio_path),
    )
