from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from application import notifications, scheduler
from application.query_engine import query
from application.scheduler import ExecutionResult
from application.statistics import summarize
from domain import dates
from domain.errors import InvalidInputError
from domain.models import Goal, RecurringDefinition, Transaction
from domain.schemas import (
    NotificationDraft,
    RecurringCreate,
    RecurringUpdate,
    SearchFilters,
    TransactionCreate,
    TransactionUpdate,
)
from infrastructure.store import InMemoryLedgerStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _validated(model: type[ModelT], payload: ModelT | Mapping[str, Any]) -> ModelT:
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise InvalidInputError(f"Invalid {model.__name__}: {exc}") from exc


class LedgerService:
    """
    Owns the transaction and recurring-definition snapshots.

    The query engine and scheduler are pure; this service feeds them the
    current snapshot and stores what they return. Writes are serialized by a
    lock so concurrent executions of one definition cannot interleave.
    """

    def __init__(
        self,
        store: InMemoryLedgerStore | None = None,
        upcoming_limit: int | None = None,
        max_catchup: int | None = None,
    ) -> None:
        self._store = store or InMemoryLedgerStore()
        self._lock = threading.Lock()
        self._upcoming_limit = upcoming_limit or int(os.getenv("BUDGET_UPCOMING_LIMIT", "3"))
        self._max_catchup = max_catchup or int(os.getenv("BUDGET_MAX_CATCHUP", "31"))

    # ---- transactions ----
    def search(self, filters: SearchFilters | Mapping[str, Any] | None = None) -> list[Transaction]:
        results = query(self._store.list_transactions(), filters)
        logger.debug("Search complete results=%d", len(results))
        return results

    def statistics(self, filters: SearchFilters | Mapping[str, Any] | None = None) -> dict[str, Any]:
        return summarize(self.search(filters))

    def create_transaction(self, payload: TransactionCreate | Mapping[str, Any]) -> Transaction:
        data = _validated(TransactionCreate, payload)
        txn = Transaction(
            id=uuid4().hex,
            type=data.type,
            amount=data.amount,
            category=data.category,
            date=data.date,
            description=data.description,
        )
        with self._lock:
            self._store.put_transaction(txn)
        logger.info("Transaction created id=%s type=%s amount=%s", txn.id, txn.type.value, txn.amount)
        return txn

    def update_transaction(self, txn_id: str, payload: TransactionUpdate | Mapping[str, Any]) -> Transaction:
        data = _validated(TransactionUpdate, payload)
        changes = {
            key: value
            for key, value in data.model_dump(exclude_unset=True).items()
            if value is not None or key == "description"
        }
        with self._lock:
            updated = replace(self._store.get_transaction(txn_id), **changes)
            self._store.put_transaction(updated)
        logger.info("Transaction updated id=%s fields=%s", txn_id, sorted(changes))
        return updated

    def delete_transaction(self, txn_id: str) -> None:
        with self._lock:
            self._store.delete_transaction(txn_id)
        logger.info("Transaction deleted id=%s", txn_id)

    # ---- recurring definitions ----
    def list_recurring(self, active: bool | None = None) -> list[RecurringDefinition]:
        return scheduler.filter_by_active(self._store.list_recurring(), active)

    def get_recurring(self, definition_id: str) -> RecurringDefinition:
        return self._store.get_recurring(definition_id)

    def create_recurring(
        self, payload: RecurringCreate | Mapping[str, Any], today: date | None = None
    ) -> RecurringDefinition:
        definition = scheduler.create(_validated(RecurringCreate, payload), today=today)
        with self._lock:
            self._store.put_recurring(definition)
        return definition

    def update_recurring(
        self,
        definition_id: str,
        payload: RecurringUpdate | Mapping[str, Any],
        today: date | None = None,
    ) -> RecurringDefinition:
        data = _validated(RecurringUpdate, payload)
        with self._lock:
            updated = scheduler.update(self._store.get_recurring(definition_id), data, today=today)
            self._store.put_recurring(updated)
        logger.info("Recurring definition updated id=%s next_execution=%s", definition_id, updated.next_execution)
        return updated

    def delete_recurring(self, definition_id: str) -> None:
        with self._lock:
            remaining = scheduler.delete(self._store.list_recurring(), definition_id)
            self._store.replace_recurring(remaining)

    def toggle_recurring(self, definition_id: str, today: date | None = None) -> RecurringDefinition:
        with self._lock:
            toggled = scheduler.toggle(self._store.get_recurring(definition_id), today=today)
            self._store.put_recurring(toggled)
        return toggled

    def execute_recurring(self, definition_id: str, as_of: date | None = None) -> ExecutionResult:
        with self._lock:
            result = scheduler.execute(self._store.get_recurring(definition_id), as_of=as_of)
            self._store.put_transaction(result.transaction)
            self._store.put_recurring(result.definition)
        return result

    def execute_due(self, as_of: date | None = None) -> list[Transaction]:
        with self._lock:
            created, definitions = scheduler.execute_due(
                self._store.list_recurring(), as_of=as_of, max_catchup=self._max_catchup
            )
            for txn in created:
                self._store.put_transaction(txn)
            self._store.replace_recurring(definitions)
        logger.info("Due recurring definitions applied transactions=%d", len(created))
        return created

    def upcoming(self, limit: int | None = None) -> list[RecurringDefinition]:
        return scheduler.upcoming(self._store.list_recurring(), limit=limit or self._upcoming_limit)

    def reminders(self, today: date | None = None) -> list[NotificationDraft]:
        return notifications.recurring_reminders(self._store.list_recurring(), today=today)

    # ---- notifications ----
    def notifications(
        self,
        monthly_budget: Decimal,
        goals: Iterable[Goal] = (),
        today: date | None = None,
    ) -> list[NotificationDraft]:
        today = today or dates.today()
        month_start, _ = dates.month_bounds(today)
        month_stats = self.statistics({"type": "expense", "start_date": month_start, "end_date": today})
        drafts = notifications.budget_alerts(monthly_budget, Decimal(str(month_stats["total_expense"])))
        drafts.extend(notifications.goal_alerts(goals, today=today))
        return drafts
