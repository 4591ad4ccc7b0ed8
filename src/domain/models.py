from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


# Days between occurrences for week-based cadences.
WEEK_INTERVALS: dict[Frequency, int] = {
    Frequency.WEEKLY: 7,
    Frequency.BIWEEKLY: 14,
}

# Months between occurrences for month-based cadences.
MONTH_INTERVALS: dict[Frequency, int] = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.YEARLY: 12,
}


class RecurrenceState(str, Enum):
    SCHEDULED = "scheduled"
    EXHAUSTED = "exhausted"
    PAUSED = "paused"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class Transaction:
    id: str
    type: TransactionType
    amount: Decimal
    category: str
    date: date
    description: str | None = None
    recurring_id: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RecurringDefinition:
    id: str
    name: str
    type: TransactionType
    amount: Decimal
    category: str
    frequency: Frequency
    start_date: date
    description: str | None = None
    end_date: date | None = None
    day_of_month: int | None = None     # 1-31, month-based cadences only
    day_of_week: int | None = None      # 0=Sun..6=Sat, week-based cadences only
    active: bool = True
    last_executed: date | None = None
    next_execution: date | None = None
    auto_create: bool = True
    notify_before: int = 1


@dataclass
class Goal:
    id: str
    name: str
    target_amount: Decimal
    current_amount: Decimal = Decimal("0")
    deadline: date | None = None
    completed: bool = False
