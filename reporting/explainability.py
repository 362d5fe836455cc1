from __future__ import annotations
from typing import Iterable, List
import pandas as pd
from portfolio.snapshot import MonthlySnapshot
from portfolio.transaction import Transaction

LEDGER_COLUMNS = [
    "month_index", "date", "ticker", "type", "cash_delta", "price",
    "share_delta", "running_share_total", "running_cash_balance",
]

def ledger_frame(txns: Iterable[Transaction]) -> pd.DataFrame:
    rows = [
        {
            "month_index": t.month_index,
            "date": t.date,
            "ticker": t.ticker,
            "type": t.type.value,
            "cash_delta": t.cash_delta,
            "price": t.price,
            "share_delta": t.share_delta,
            "running_share_total": t.running_share_total,
            "running_cash_balance": t.running_cash_balance,
        }
        for t in txns
    ]
    return pd.DataFrame(rows, columns=LEDGER_COLUMNS)

def evolution_frame(evolution: List[MonthlySnapshot]) -> pd.DataFrame:
    df = pd.DataFrame(
        [
            {
                "date": pd.Timestamp(s.date),
                "value": s.total_value,
                "invested_capital": s.invested_capital,
                "cash_balance": s.cash_balance,
                "monthly_return": s.monthly_return,
                "contribution": s.contribution,
                "dividends": s.dividends,
            }
            for s in evolution
        ],
        columns=["date", "value", "invested_capital", "cash_balance", "monthly_return", "contribution", "dividends"],
    )
    return df.set_index("date")

def flows_by_type(txns: Iterable[Transaction]) -> pd.Series:
    df = ledger_frame(txns)
    if df.empty:
        return pd.Series(dtype=float)
    return df.groupby("type")["cash_delta"].sum()
