"""Backtest run configuration."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List

from policy.rebalance_policy import RebalanceFrequency
from policy.types import AssetTarget
from portfolio.allocation import Allocation


class ConfigError(ValueError):
    """Raised when a portfolio configuration is invalid."""

    pass


def _to_date(value: Any, field_name: str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value))
    except ValueError as e:
        raise ConfigError(f"Invalid {field_name}: {value!r}") from e


@dataclass(frozen=True)
class BacktestConfig:
    """Inputs of a single simulation run."""

    assets: List[AssetTarget]
    start_date: date
    end_date: date
    initial_capital: float
    monthly_contribution: float
    rebalance_frequency: RebalanceFrequency = RebalanceFrequency.MONTHLY

    def __post_init__(self) -> None:
        if not self.assets:
            raise ConfigError("Portfolio must contain at least one asset")
        seen = set()
        for a in self.assets:
            if a.ticker in seen:
                raise ConfigError(f"Duplicate ticker: {a.ticker}")
            seen.add(a.ticker)
            if not 0 < a.allocation <= 1:
                raise ConfigError(f"Allocation for {a.ticker} must be in (0, 1], got {a.allocation}")
            if a.average_dividend_yield < 0:
                raise ConfigError(f"Dividend yield for {a.ticker} cannot be negative")
        if self.end_date < self.start_date:
            raise ConfigError("end_date is before start_date")
        if self.initial_capital < 0 or self.monthly_contribution < 0:
            raise ConfigError("Initial capital and monthly contribution must be non-negative")

    @property
    def tickers(self) -> List[str]:
        return [a.ticker for a in self.assets]

    @property
    def allocation(self) -> Allocation:
        return Allocation({a.ticker: a.allocation for a in self.assets})

    @property
    def dividend_yields(self) -> Dict[str, float]:
        return {a.ticker: a.average_dividend_yield for a in self.assets}

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "BacktestConfig":
        """Build a configuration from a loaded portfolio YAML document."""
        assets = []
        for a in raw.get("assets") or []:
            if "ticker" not in a or "allocation" not in a:
                raise ConfigError(f"Asset entry needs ticker and allocation: {a}")
            assets.append(
                AssetTarget(
                    ticker=str(a["ticker"]).upper(),
                    allocation=float(a["allocation"]),
                    average_dividend_yield=float(a.get("average_dividend_yield") or 0.0),
                )
            )

        freq = str(raw.get("rebalance_frequency", "monthly")).lower()
        try:
            frequency = RebalanceFrequency(freq)
        except ValueError as e:
            raise ConfigError(f"Unknown rebalance frequency: {freq}") from e

        for key in ("start_date", "end_date"):
            if key not in raw:
                raise ConfigError(f"Missing {key}")

        return cls(
            assets=assets,
            start_date=_to_date(raw["start_date"], "start_date"),
            end_date=_to_date(raw["end_date"], "end_date"),
            initial_capital=float(raw.get("initial_capital", 0.0)),
            monthly_contribution=float(raw.get("monthly_contribution", 0.0)),
            rebalance_frequency=frequency,
        )
