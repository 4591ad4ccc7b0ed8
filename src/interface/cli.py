from __future__ import annotations

import json
import os

from application.ledger_service import LedgerService
from infrastructure.store import InMemoryLedgerStore, recurring_to_row, transaction_to_row


def build_service() -> LedgerService:
    data_file = os.getenv("BUDGET_DATA_FILE")
    store = InMemoryLedgerStore.load_json(data_file) if data_file else InMemoryLedgerStore()
    return LedgerService(store=store)


def main() -> None:
    keyword = input("Budget search > ").strip()

    service = build_service()
    applied = service.execute_due()
    results = service.search({"keyword": keyword} if keyword else None)
    output = {
        "applied_recurring": [transaction_to_row(t) for t in applied],
        "transactions": [transaction_to_row(t) for t in results],
        "statistics": service.statistics({"keyword": keyword} if keyword else None),
        "upcoming": [recurring_to_row(r) for r in service.upcoming()],
    }
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
