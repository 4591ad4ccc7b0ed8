from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from domain.dates import coerce_date
from domain.models import Frequency, TransactionType

logger = logging.getLogger(__name__)

# Alias so models with a field named `date` can still reference the type.
CalendarDate = date

SortKey = Literal["date", "amount", "category", "type"]
SortOrder = Literal["asc", "desc"]

_SORT_KEYS = ("date", "amount", "category", "type")
_SORT_ORDERS = ("asc", "desc")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def parse_amount(value: Any) -> Decimal | None:
    value = _blank_to_none(value)
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class SearchFilters(_CamelModel):
    """
    Transient transaction search criteria, built from form input.

    Every field is optional. Values that cannot be interpreted (a non-numeric
    amount, an unparseable date, an unknown type or sort key) are dropped
    rather than rejected so that a half-filled search form still returns
    results. Keys are accepted in camelCase (``minAmount``) or snake_case.
    """

    keyword: Optional[str] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    sort_by: SortKey = "date"
    sort_order: SortOrder = "desc"

    @field_validator("keyword", "category", mode="before")
    @classmethod
    def coerce_text(cls, value: Any) -> Any:
        if value is None:
            return None
        text = value if isinstance(value, str) else str(value)
        return text or None

    @field_validator("type", mode="before")
    @classmethod
    def coerce_type(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is None or isinstance(value, TransactionType):
            return value
        try:
            return TransactionType(str(value).strip().lower())
        except ValueError:
            logger.debug("Ignoring unknown transaction type filter value=%r", value)
            return None

    @field_validator("min_amount", "max_amount", mode="before")
    @classmethod
    def coerce_amount(cls, value: Any) -> Any:
        amount = parse_amount(value)
        if amount is None and _blank_to_none(value) is not None:
            logger.debug("Ignoring non-numeric amount filter value=%r", value)
        return amount

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def coerce_bound(cls, value: Any) -> Any:
        parsed = coerce_date(value)
        if parsed is None and _blank_to_none(value) is not None:
            logger.debug("Ignoring unparseable date filter value=%r", value)
        return parsed

    @field_validator("sort_by", mode="before")
    @classmethod
    def coerce_sort_by(cls, value: Any) -> Any:
        return value if value in _SORT_KEYS else "date"

    @field_validator("sort_order", mode="before")
    @classmethod
    def coerce_sort_order(cls, value: Any) -> Any:
        return value if value in _SORT_ORDERS else "desc"


class TransactionCreate(_CamelModel):
    type: TransactionType
    amount: Decimal = Field(ge=0)
    category: str = Field(min_length=1)
    date: CalendarDate
    description: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def coerce_txn_date(cls, value: Any) -> Any:
        return coerce_date(value) or value


class TransactionUpdate(_CamelModel):
    type: Optional[TransactionType] = None
    amount: Optional[Decimal] = Field(default=None, ge=0)
    category: Optional[str] = Field(default=None, min_length=1)
    date: Optional[CalendarDate] = None
    description: Optional[str] = None

    @field_validator("date", mode="before")
    @classmethod
    def coerce_txn_date(cls, value: Any) -> Any:
        return coerce_date(value) or value


class RecurringCreate(_CamelModel):
    """Template and cadence for a recurring transaction, as entered on the recurring form."""

    name: str = Field(min_length=1)
    type: TransactionType = TransactionType.EXPENSE
    amount: Decimal = Field(ge=0)
    category: str = Field(min_length=1)
    description: Optional[str] = None
    frequency: Frequency = Frequency.MONTHLY
    start_date: date
    end_date: Optional[date] = None
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    auto_create: bool = True
    notify_before: int = Field(default=1, ge=0)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def coerce_schedule_date(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is None:
            return None
        return coerce_date(value) or value

    @field_validator("day_of_month", "day_of_week", "description", mode="before")
    @classmethod
    def blank_optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @model_validator(mode="after")
    def validate_window(self) -> "RecurringCreate":
        if self.end_date is not None and self.end_date < self.start_date:
            raise ValueError("end_date must be >= start_date")
        return self


class RecurringUpdate(RecurringCreate):
    active: Optional[bool] = None


class NotificationDraft(_CamelModel):
    type: Literal["budget_warning", "budget_exceeded", "goal_deadline", "goal_achieved", "recurring_reminder"]
    title: str
    message: str
    priority: Literal["low", "medium", "high"] = "medium"
    related_type: Optional[str] = None
    related_id: Optional[str] = None
    action_url: Optional[str] = None


class GoalPayload(_CamelModel):
    id: str
    name: str
    target_amount: Decimal = Field(ge=0)
    current_amount: Decimal = Decimal("0")
    deadline: Optional[date] = None
    completed: bool = False

    @field_validator("deadline", mode="before")
    @classmethod
    def coerce_deadline(cls, value: Any) -> Any:
        value = _blank_to_none(value)
        if value is None:
            return None
        return coerce_date(value) or value


class NotificationCheck(_CamelModel):
    monthly_budget: Decimal = Field(default=Decimal("0"), ge=0)
    goals: List[GoalPayload] = Field(default_factory=list)
