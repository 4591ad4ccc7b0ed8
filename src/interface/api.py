from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from application.ledger_service import LedgerService
from domain.errors import InvalidInputError, InvalidStateError, NotFoundError
from domain.models import Goal
from domain.schemas import (
    NotificationCheck,
    RecurringCreate,
    RecurringUpdate,
    SearchFilters,
    TransactionCreate,
    TransactionUpdate,
)
from infrastructure.store import recurring_to_row, transaction_to_row
from interface.cli import build_service

logger = logging.getLogger(__name__)


def create_app(service: LedgerService | None = None) -> FastAPI:
    service = service or build_service()
    app = FastAPI(title="Budget API")

    @app.exception_handler(NotFoundError)
    def not_found(_request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"message": str(exc)})

    @app.exception_handler(InvalidStateError)
    def invalid_state(_request: Request, exc: InvalidStateError) -> JSONResponse:
        logger.warning("Rejected recurring action: %s", exc)
        return JSONResponse(
            status_code=409,
            content={"message": "Action unavailable", "detail": str(exc), "state": exc.state},
        )

    @app.exception_handler(InvalidInputError)
    def invalid_input(_request: Request, exc: InvalidInputError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"message": str(exc)})

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    # ---- transactions ----
    @app.get("/transactions")
    def list_transactions(request: Request) -> list[dict[str, Any]]:
        return [transaction_to_row(t) for t in service.search(dict(request.query_params))]

    @app.post("/transactions/search")
    def search_transactions(filters: SearchFilters) -> list[dict[str, Any]]:
        return [transaction_to_row(t) for t in service.search(filters)]

    @app.get("/transactions/statistics")
    def transaction_statistics(request: Request) -> dict[str, Any]:
        return service.statistics(dict(request.query_params))

    @app.post("/transactions", status_code=201)
    def create_transaction(payload: TransactionCreate) -> dict[str, Any]:
        return transaction_to_row(service.create_transaction(payload))

    @app.put("/transactions/{txn_id}")
    def update_transaction(txn_id: str, payload: TransactionUpdate) -> dict[str, Any]:
        return transaction_to_row(service.update_transaction(txn_id, payload))

    @app.delete("/transactions/{txn_id}")
    def delete_transaction(txn_id: str) -> dict[str, str]:
        service.delete_transaction(txn_id)
        return {"message": "Transaction deleted"}

    # ---- recurring transactions ----
    @app.get("/recurring-transactions")
    def list_recurring(active: Optional[bool] = None) -> list[dict[str, Any]]:
        return [recurring_to_row(r) for r in service.list_recurring(active)]

    @app.get("/recurring-transactions/upcoming")
    def upcoming_recurring(limit: Optional[int] = None) -> list[dict[str, Any]]:
        return [recurring_to_row(r) for r in service.upcoming(limit)]

    @app.get("/recurring-transactions/reminders")
    def recurring_reminders() -> list[dict[str, Any]]:
        return [draft.model_dump() for draft in service.reminders()]

    @app.post("/recurring-transactions/execute-due")
    def execute_due() -> list[dict[str, Any]]:
        return [transaction_to_row(t) for t in service.execute_due()]

    @app.get("/recurring-transactions/{definition_id}")
    def get_recurring(definition_id: str) -> dict[str, Any]:
        return recurring_to_row(service.get_recurring(definition_id))

    @app.post("/recurring-transactions", status_code=201)
    def create_recurring(payload: RecurringCreate) -> dict[str, Any]:
        return recurring_to_row(service.create_recurring(payload))

    @app.put("/recurring-transactions/{definition_id}")
    def update_recurring(definition_id: str, payload: RecurringUpdate) -> dict[str, Any]:
        return recurring_to_row(service.update_recurring(definition_id, payload))

    @app.delete("/recurring-transactions/{definition_id}")
    def delete_recurring(definition_id: str) -> dict[str, str]:
        service.delete_recurring(definition_id)
        return {"message": "Recurring transaction deleted"}

    @app.post("/recurring-transactions/{definition_id}/execute")
    def execute_recurring(definition_id: str) -> dict[str, Any]:
        result = service.execute_recurring(definition_id)
        return {
            "transaction": transaction_to_row(result.transaction),
            "recurring_transaction": recurring_to_row(result.definition),
        }

    @app.put("/recurring-transactions/{definition_id}/toggle")
    def toggle_recurring(definition_id: str) -> dict[str, Any]:
        return recurring_to_row(service.toggle_recurring(definition_id))

    # ---- notifications ----
    @app.post("/notifications/check")
    def check_notifications(payload: NotificationCheck) -> list[dict[str, Any]]:
        goals = [Goal(**goal.model_dump()) for goal in payload.goals]
        return [draft.model_dump() for draft in service.notifications(payload.monthly_budget, goals)]

    return app


app = create_app()
