from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, timedelta
from typing import Iterable
from uuid import uuid4

from domain import dates
from domain.dates import month_occurrence, months_between, sunday_weekday
from domain.errors import InvalidStateError, NotFoundError
from domain.models import (
    MONTH_INTERVALS,
    WEEK_INTERVALS,
    Frequency,
    RecurrenceState,
    RecurringDefinition,
    Transaction,
)
from domain.schemas import RecurringCreate, RecurringUpdate

logger = logging.getLogger(__name__)

_ONE_DAY = timedelta(days=1)


@dataclass(frozen=True)
class ExecutionResult:
    transaction: Transaction
    definition: RecurringDefinition


# ---- cadence math ----

def _week_anchor(definition: RecurringDefinition) -> date:
    """First date on or after start_date that falls on the target weekday."""
    start = definition.start_date
    target = definition.day_of_week if definition.day_of_week is not None else sunday_weekday(start)
    return start + timedelta(days=(target - sunday_weekday(start)) % 7)


def _first_on_or_after(definition: RecurringDefinition, ref: date) -> date:
    start = definition.start_date
    ref = max(ref, start)
    frequency = definition.frequency

    if frequency == Frequency.DAILY:
        return ref

    if frequency in WEEK_INTERVALS:
        interval = WEEK_INTERVALS[frequency]
        anchor = _week_anchor(definition)
        if ref <= anchor:
            return anchor
        steps = -(-(ref - anchor).days // interval)
        return anchor + timedelta(days=steps * interval)

    interval = MONTH_INTERVALS[frequency]
    target_day = definition.day_of_month or start.day
    steps = max(0, months_between(start, ref) // interval)
    candidate = month_occurrence(start, steps * interval, target_day)
    while candidate < ref:
        steps += 1
        candidate = month_occurrence(start, steps * interval, target_day)
    return candidate


def _within_window(definition: RecurringDefinition, candidate: date) -> date | None:
    if _past_end(definition, candidate):
        return None
    return candidate


def _past_end(definition: RecurringDefinition, on: date) -> bool:
    return definition.end_date is not None and on > definition.end_date


def next_occurrence(
    definition: RecurringDefinition,
    from_date: date | None = None,
    today: date | None = None,
) -> date | None:
    """
    Compute the next eligible occurrence of a recurring definition.

    `from_date` defaults to the later of `today` and the start date, and the
    result is the first occurrence on or after it:

    - daily: `from_date` itself (every day from the start date on is due);
      the day after an execution comes from `following_occurrence`.

    - weekly/biweekly: anchored on the first start-or-later date on
      `day_of_week` (default: the start's weekday), stepping 7/14 days.
    - monthly/quarterly/yearly: stepping 1/3/12 months from the start month
      on `day_of_month` (default: the start's day), clamped to the last day
      of shorter months.

    Returns None when the occurrence would fall after `end_date`.
    """
    start = definition.start_date
    ref = from_date if from_date is not None else max(today or dates.today(), start)
    return _within_window(definition, _first_on_or_after(definition, ref))


def following_occurrence(definition: RecurringDefinition, after: date) -> date | None:
    """First occurrence strictly after `after`, or None past end_date."""
    return _within_window(definition, _first_on_or_after(definition, after + _ONE_DAY))


def _recompute(definition: RecurringDefinition, today: date | None) -> date | None:
    upcoming_on = next_occurrence(definition, today=today)
    last = definition.last_executed
    if upcoming_on is not None and last is not None and upcoming_on <= last:
        upcoming_on = following_occurrence(definition, last)
    return upcoming_on


# ---- state machine ----

def state_of(definition: RecurringDefinition) -> RecurrenceState:
    if not definition.active:
        return RecurrenceState.PAUSED
    if definition.next_execution is None:
        return RecurrenceState.EXHAUSTED
    return RecurrenceState.SCHEDULED


def _template_fields(payload: RecurringCreate) -> dict:
    week_based = payload.frequency in WEEK_INTERVALS
    month_based = payload.frequency in MONTH_INTERVALS
    return {
        "name": payload.name,
        "type": payload.type,
        "amount": payload.amount,
        "category": payload.category,
        "description": payload.description,
        "frequency": payload.frequency,
        "start_date": payload.start_date,
        "end_date": payload.end_date,
        "day_of_month": payload.day_of_month if month_based else None,
        "day_of_week": payload.day_of_week if week_based else None,
        "auto_create": payload.auto_create,
        "notify_before": payload.notify_before,
    }


def create(
    payload: RecurringCreate,
    definition_id: str | None = None,
    today: date | None = None,
) -> RecurringDefinition:
    definition = RecurringDefinition(id=definition_id or uuid4().hex, active=True, **_template_fields(payload))
    definition = replace(definition, next_execution=_recompute(definition, today))
    logger.info(
        "Recurring definition created id=%s frequency=%s next_execution=%s",
        definition.id,
        definition.frequency.value,
        definition.next_execution,
    )
    return definition


def update(
    definition: RecurringDefinition,
    payload: RecurringUpdate,
    today: date | None = None,
) -> RecurringDefinition:
    active = definition.active if payload.active is None else payload.active
    updated = replace(definition, active=active, **_template_fields(payload))
    return replace(updated, next_execution=_recompute(updated, today))


def toggle(definition: RecurringDefinition, today: date | None = None) -> RecurringDefinition:
    """Pause an active definition or resume a paused one.

    Resuming recomputes next_execution relative to `today`; pausing keeps the
    last computed value as it was.
    """
    if definition.active:
        toggled = replace(definition, active=False)
    else:
        resumed = replace(definition, active=True)
        toggled = replace(resumed, next_execution=_recompute(resumed, today))
    logger.info("Recurring definition toggled id=%s state=%s", toggled.id, state_of(toggled).value)
    return toggled


def _materialize(definition: RecurringDefinition, on: date) -> Transaction:
    return Transaction(
        id=uuid4().hex,
        type=definition.type,
        amount=definition.amount,
        category=definition.category,
        date=on,
        description=definition.description or definition.name,
        recurring_id=definition.id,
    )


def execute(definition: RecurringDefinition, as_of: date | None = None) -> ExecutionResult:
    """
    Materialize one transaction from a scheduled definition.

    The transaction is dated `as_of` (default: today), or the start date when
    `as_of` comes before it. The schedule advances to the first occurrence
    after both that date and the pending next_execution, so executing early
    does not leave the same occurrence due again. Raises InvalidStateError for
    paused or exhausted definitions, including one whose end date is before
    `as_of`.
    """
    state = state_of(definition)
    if state != RecurrenceState.SCHEDULED:
        raise InvalidStateError(definition.id, state.value, "execute")

    as_of = as_of or dates.today()
    if _past_end(definition, as_of):
        raise InvalidStateError(definition.id, RecurrenceState.EXHAUSTED.value, "execute")

    executed_on = max(as_of, definition.start_date)
    transaction = _materialize(definition, executed_on)
    advanced_from = max(executed_on, definition.next_execution)
    updated = replace(
        definition,
        last_executed=executed_on,
        next_execution=following_occurrence(definition, advanced_from),
    )
    logger.info(
        "Recurring definition executed id=%s transaction_id=%s next_execution=%s state=%s",
        definition.id,
        transaction.id,
        updated.next_execution,
        state_of(updated).value,
    )
    return ExecutionResult(transaction=transaction, definition=updated)


def execute_due(
    definitions: Iterable[RecurringDefinition],
    as_of: date | None = None,
    max_catchup: int = 31,
) -> tuple[list[Transaction], list[RecurringDefinition]]:
    """
    Catch up every auto-create definition whose next_execution is on or before `as_of`.

    Each missed occurrence is materialized on its own due date, at most
    `max_catchup` per definition. Returns the new transactions and the full
    list of definitions with the executed ones replaced.
    """
    as_of = as_of or dates.today()
    created: list[Transaction] = []
    result: list[RecurringDefinition] = []
    for definition in definitions:
        if definition.auto_create:
            count = 0
            while (
                count < max_catchup
                and state_of(definition) == RecurrenceState.SCHEDULED
                and definition.next_execution <= as_of
                and not _past_end(definition, definition.next_execution)
            ):
                due_on = max(definition.next_execution, definition.start_date)
                created.append(_materialize(definition, due_on))
                definition = replace(
                    definition,
                    last_executed=due_on,
                    next_execution=following_occurrence(definition, due_on),
                )
                count += 1
            if count:
                logger.info("Recurring catch-up id=%s executed=%d next_execution=%s", definition.id, count, definition.next_execution)
        result.append(definition)
    return created, result


def delete(definitions: Iterable[RecurringDefinition], definition_id: str) -> list[RecurringDefinition]:
    definitions = list(definitions)
    remaining = [d for d in definitions if d.id != definition_id]
    if len(remaining) == len(definitions):
        raise NotFoundError("Recurring definition", definition_id)
    logger.info("Recurring definition deleted id=%s state=%s", definition_id, RecurrenceState.TERMINAL.value)
    return remaining


# ---- views ----

def filter_by_active(
    definitions: Iterable[RecurringDefinition], active: bool | None = None
) -> list[RecurringDefinition]:
    if active is None:
        return list(definitions)
    return [d for d in definitions if d.active == active]


def upcoming(definitions: Iterable[RecurringDefinition], limit: int = 3) -> list[RecurringDefinition]:
    scheduled = [d for d in definitions if d.active and d.next_execution is not None]
    scheduled.sort(key=lambda d: d.next_execution)
    return scheduled[:limit]


def days_until(definition: RecurringDefinition, today: date | None = None) -> int | None:
    if definition.next_execution is None:
        return None
    return (definition.next_execution - (today or dates.today())).days
