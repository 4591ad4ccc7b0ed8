from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import Any, Iterable

from domain.dates import coerce_date
from domain.errors import InvalidInputError, NotFoundError
from domain.models import Frequency, RecurringDefinition, Transaction, TransactionType
from domain.schemas import parse_amount

logger = logging.getLogger(__name__)


def _pick(row: Mapping[str, Any], snake: str, camel: str | None = None, default: Any = None) -> Any:
    if snake in row:
        return row[snake]
    if camel and camel in row:
        return row[camel]
    return default


def _iso(value: Any) -> str | None:
    return value.isoformat() if value is not None else None


_TRUE_FLAGS = {"true", "1", "yes", "on"}
_FALSE_FLAGS = {"false", "0", "no", "off"}


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_FLAGS:
            return True
        if text in _FALSE_FLAGS:
            return False
        raise ValueError(f"not a boolean flag: {value!r}")
    return bool(value)


def _bounded_day(value: Any, low: int, high: int) -> int | None:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"not a day number: {value!r}")
    day = int(value)
    if not low <= day <= high:
        raise ValueError(f"day {day} outside {low}..{high}")
    return day


def transaction_to_row(txn: Transaction) -> dict[str, Any]:
    return {
        "id": txn.id,
        "type": txn.type.value,
        "amount": float(txn.amount),
        "category": txn.category,
        "description": txn.description,
        "date": txn.date.isoformat(),
        "recurring_id": txn.recurring_id,
        "metadata": txn.metadata,
    }


def transaction_from_row(row: Mapping[str, Any]) -> Transaction:
    amount = parse_amount(row.get("amount"))
    posted = coerce_date(row.get("date"))
    txn_id = _pick(row, "id", "_id")
    if txn_id is None or amount is None or posted is None:
        raise InvalidInputError(f"Transaction row is missing id, amount or date: {dict(row)!r}")
    try:
        txn_type = TransactionType(str(row.get("type")))
    except ValueError as exc:
        raise InvalidInputError(f"Unknown transaction type: {row.get('type')!r}") from exc
    return Transaction(
        id=str(txn_id),
        type=txn_type,
        amount=amount,
        category=str(row.get("category") or ""),
        date=posted,
        description=row.get("description"),
        recurring_id=_pick(row, "recurring_id", "recurringId"),
        metadata=dict(row.get("metadata") or {}),
    )


def recurring_to_row(definition: RecurringDefinition) -> dict[str, Any]:
    return {
        "id": definition.id,
        "name": definition.name,
        "type": definition.type.value,
        "amount": float(definition.amount),
        "category": definition.category,
        "description": definition.description,
        "frequency": definition.frequency.value,
        "start_date": definition.start_date.isoformat(),
        "end_date": _iso(definition.end_date),
        "day_of_month": definition.day_of_month,
        "day_of_week": definition.day_of_week,
        "active": definition.active,
        "last_executed": _iso(definition.last_executed),
        "next_execution": _iso(definition.next_execution),
        "auto_create": definition.auto_create,
        "notify_before": definition.notify_before,
    }


def recurring_from_row(row: Mapping[str, Any]) -> RecurringDefinition:
    if _pick(row, "id", "_id") is None or coerce_date(_pick(row, "start_date", "startDate")) is None:
        raise InvalidInputError(f"Recurring definition row is missing id or start date: {dict(row)!r}")
    try:
        return RecurringDefinition(
            id=str(_pick(row, "id", "_id")),
            name=str(row["name"]),
            type=TransactionType(str(row["type"])),
            amount=Decimal(str(row["amount"])),
            category=str(row.get("category") or ""),
            description=row.get("description"),
            frequency=Frequency(str(row["frequency"])),
            start_date=coerce_date(_pick(row, "start_date", "startDate")),
            end_date=coerce_date(_pick(row, "end_date", "endDate")),
            day_of_month=_bounded_day(_pick(row, "day_of_month", "dayOfMonth"), 1, 31),
            day_of_week=_bounded_day(_pick(row, "day_of_week", "dayOfWeek"), 0, 6),
            active=_flag(_pick(row, "active"), default=True),
            last_executed=coerce_date(_pick(row, "last_executed", "lastExecuted")),
            next_execution=coerce_date(_pick(row, "next_execution", "nextExecution")),
            auto_create=_flag(_pick(row, "auto_create", "autoCreate"), default=True),
            notify_before=int(_pick(row, "notify_before", "notifyBefore", default=1)),
        )
    except (KeyError, TypeError, ValueError, ArithmeticError) as exc:
        raise InvalidInputError(f"Invalid recurring definition row: {exc}") from exc


class InMemoryLedgerStore:
    """Snapshot store for transactions and recurring definitions, keyed by id in insertion order."""

    def __init__(
        self,
        transactions: Iterable[Transaction] | None = None,
        recurring: Iterable[RecurringDefinition] | None = None,
    ) -> None:
        self._transactions: dict[str, Transaction] = {t.id: t for t in transactions or []}
        self._recurring: dict[str, RecurringDefinition] = {r.id: r for r in recurring or []}

    @classmethod
    def load_json(cls, path: str | Path) -> "InMemoryLedgerStore":
        """Seed a store from ``{"transactions": [...], "recurring": [...]}``."""
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(payload, dict):
            raise InvalidInputError(f"Seed file {path} must contain a JSON object")
        transactions = [transaction_from_row(row) for row in payload.get("transactions") or []]
        recurring = [recurring_from_row(row) for row in payload.get("recurring") or []]
        logger.info(
            "Store seeded path=%s transactions=%d recurring=%d",
            path,
            len(transactions),
            len(recurring),
        )
        return cls(transactions=transactions, recurring=recurring)

    # ---- transactions ----
    def list_transactions(self) -> list[Transaction]:
        return list(self._transactions.values())

    def get_transaction(self, txn_id: str) -> Transaction:
        if txn_id not in self._transactions:
            raise NotFoundError("Transaction", txn_id)
        return self._transactions[txn_id]

    def put_transaction(self, txn: Transaction) -> None:
        self._transactions[txn.id] = txn

    def delete_transaction(self, txn_id: str) -> None:
        if self._transactions.pop(txn_id, None) is None:
            raise NotFoundError("Transaction", txn_id)

    # ---- recurring definitions ----
    def list_recurring(self) -> list[RecurringDefinition]:
        return list(self._recurring.values())

    def get_recurring(self, definition_id: str) -> RecurringDefinition:
        if definition_id not in self._recurring:
            raise NotFoundError("Recurring definition", definition_id)
        return self._recurring[definition_id]

    def put_recurring(self, definition: RecurringDefinition) -> None:
        self._recurring[definition.id] = definition

    def replace_recurring(self, definitions: Iterable[RecurringDefinition]) -> None:
        self._recurring = {d.id: d for d in definitions}
