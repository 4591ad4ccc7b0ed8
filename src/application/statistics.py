from __future__ import annotations

from collections import defaultdict
from decimal import Decimal
from typing import Any, Iterable

from domain.models import Transaction, TransactionType


def summarize(transactions: Iterable[Transaction]) -> dict[str, Any]:
    """Income/expense totals, balance and a per-category breakdown."""
    groups: dict[str, dict[str, Any]] = defaultdict(
        lambda: {"income": Decimal("0"), "expense": Decimal("0"), "count": 0}
    )
    total_income = Decimal("0")
    total_expense = Decimal("0")
    count = 0

    for txn in transactions:
        entry = groups[txn.category or "uncategorized"]
        entry["count"] += 1
        count += 1
        if txn.type == TransactionType.INCOME:
            entry["income"] += txn.amount
            total_income += txn.amount
        else:
            entry["expense"] += txn.amount
            total_expense += txn.amount

    by_category = {
        name: {"income": round(float(e["income"]), 2), "expense": round(float(e["expense"]), 2), "count": e["count"]}
        for name, e in sorted(groups.items(), key=lambda item: item[1]["income"] + item[1]["expense"], reverse=True)
    }
    return {
        "total_income": round(float(total_income), 2),
        "total_expense": round(float(total_expense), 2),
        "balance": round(float(total_income - total_expense), 2),
        "transaction_count": count,
        "by_category": by_category,
    }
