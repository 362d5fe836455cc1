from __future__ import annotations
from typing import Iterable, List
from portfolio.transaction import Transaction, TransactionType

_EXPLANATIONS = {
    TransactionType.CONTRIBUTION: "bought with this month's own money",
    TransactionType.PREVIOUS_CASH_USE: "bought with cash left over from earlier months",
    TransactionType.DIVIDEND_REINVESTMENT: "bought with dividends received",
    TransactionType.REBALANCE_BUY: "bought with rebalance sale proceeds",
    TransactionType.REBALANCE_SELL: "sold down toward target allocation",
    TransactionType.DIVIDEND_PAYMENT: "seasonal dividend paid to cash",
    TransactionType.CASH_CREDIT: "new money credited to cash",
    TransactionType.CASH_RESERVE: "cash carried to next month",
}

def explain_transactions(txns: Iterable[Transaction]) -> List[str]:
    return [f"{t}  |  {_EXPLANATIONS[t.type]} (cash ${t.running_cash_balance:,.2f})" for t in txns]
