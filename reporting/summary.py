from __future__ import annotations
from dataclasses import asdict
from typing import Any, Dict
from backtest.runner import BacktestResult

def backtest_summary(result: BacktestResult) -> Dict[str, Any]:
    m = result.metrics
    return {
        "period": {
            "start": result.effective_start_date.isoformat(),
            "end": result.effective_end_date.isoformat(),
            "months": m.months,
        },
        "total_return": m.total_return,
        "annualized_return": m.annualized_return,
        "volatility": m.volatility,
        "sharpe_ratio": m.sharpe_ratio,
        "max_drawdown": m.max_drawdown,
        "positive_months": m.positive_months,
        "negative_months": m.negative_months,
        "total_invested": m.total_invested,
        "final_value": m.final_value,
        "final_cash_reserve": m.final_cash_reserve,
        "total_dividends": m.total_dividends,
        "missed_contributions": result.missed_contributions,
        "planned_investment": result.planned_investment,
        "actual_investment": result.actual_investment,
        "data_quality_issues": list(result.data_quality_issues),
        "monthly_returns": [
            {
                "date": s.date.isoformat(),
                "return": s.monthly_return,
                "portfolio_value": s.total_value,
                "contribution": s.contribution,
            }
            for s in result.evolution[1:]
        ],
        "asset_performance": [asdict(a) for a in m.asset_performance],
    }
