from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Iterable

from application.scheduler import days_until
from domain import dates
from domain.models import Goal, RecurringDefinition
from domain.schemas import NotificationDraft

logger = logging.getLogger(__name__)

BUDGET_WARNING_PCT = Decimal("90")
GOAL_DEADLINE_WARNING_DAYS = 7


def budget_alerts(monthly_budget: Decimal, total_expense: Decimal) -> list[NotificationDraft]:
    if monthly_budget <= 0:
        return []

    percentage = total_expense / monthly_budget * 100
    if percentage >= 100:
        overspend = total_expense - monthly_budget
        return [
            NotificationDraft(
                type="budget_exceeded",
                title="Budget exceeded",
                message=f"You are {overspend:,.2f} over your monthly budget",
                priority="high",
                action_url="/dashboard",
            )
        ]
    if percentage >= BUDGET_WARNING_PCT:
        return [
            NotificationDraft(
                type="budget_warning",
                title=f"Budget alert - {BUDGET_WARNING_PCT}%",
                message=f"You have used {percentage:.1f}% of your monthly budget",
                priority="medium",
                action_url="/dashboard",
            )
        ]
    return []


def goal_alerts(goals: Iterable[Goal], today: date | None = None) -> list[NotificationDraft]:
    today = today or dates.today()
    drafts: list[NotificationDraft] = []
    for goal in goals:
        if goal.completed:
            drafts.append(
                NotificationDraft(
                    type="goal_achieved",
                    title="Goal achieved!",
                    message=f'Congratulations! You reached "{goal.name}"',
                    priority="low",
                    related_type="goal",
                    related_id=goal.id,
                    action_url="/goals",
                )
            )
            continue
        if goal.deadline is None:
            continue

        days_left = (goal.deadline - today).days
        if days_left == GOAL_DEADLINE_WARNING_DAYS:
            drafts.append(
                NotificationDraft(
                    type="goal_deadline",
                    title=f"Deadline approaching - {goal.name}",
                    message=f"Only {GOAL_DEADLINE_WARNING_DAYS} days left to reach this goal",
                    priority="medium",
                    related_type="goal",
                    related_id=goal.id,
                    action_url="/goals",
                )
            )
        elif days_left < 0:
            drafts.append(
                NotificationDraft(
                    type="goal_deadline",
                    title=f"Deadline passed - {goal.name}",
                    message=f"The deadline passed {abs(days_left)} days ago",
                    priority="high",
                    related_type="goal",
                    related_id=goal.id,
                    action_url="/goals",
                )
            )
    return drafts


def recurring_reminders(
    definitions: Iterable[RecurringDefinition], today: date | None = None
) -> list[NotificationDraft]:
    """Reminders for active definitions whose next execution falls within their notify_before window."""
    today = today or dates.today()
    drafts: list[NotificationDraft] = []
    for definition in definitions:
        if not definition.active or definition.notify_before <= 0:
            continue
        remaining = days_until(definition, today)
        if remaining is None or not 0 <= remaining <= definition.notify_before:
            continue
        when = "today" if remaining == 0 else f"in {remaining} day" + ("" if remaining == 1 else "s")
        drafts.append(
            NotificationDraft(
                type="recurring_reminder",
                title=f"Upcoming: {definition.name}",
                message=f"{definition.name} ({definition.amount:,.2f}) is due {when}",
                priority="high" if remaining == 0 else "medium",
                related_type="recurring_transaction",
                related_id=definition.id,
                action_url="/recurring",
            )
        )
    logger.debug("Recurring reminders computed count=%d", len(drafts))
    return drafts
