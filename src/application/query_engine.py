from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Callable

from pydantic import ValidationError

from domain.dates import coerce_date
from domain.models import Transaction
from domain.schemas import SearchFilters, parse_amount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Fields:
    """Normalized view of a transaction row, used only for matching and sorting."""

    type: str
    amount: Decimal
    category: str
    description: str | None
    date: date


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _fields(item: Any) -> _Fields | None:
    if isinstance(item, Transaction):
        raw = {
            "type": item.type,
            "amount": item.amount,
            "category": item.category,
            "description": item.description,
            "date": item.date,
        }
    elif isinstance(item, Mapping):
        raw = item
    else:
        return None

    amount = parse_amount(raw.get("amount"))
    posted = coerce_date(raw.get("date"))
    if amount is None or posted is None:
        return None
    description = raw.get("description")
    return _Fields(
        type=_text(raw.get("type")),
        amount=amount,
        category=_text(raw.get("category")),
        description=None if description is None else str(description),
        date=posted,
    )


def normalize_filters(filters: SearchFilters | Mapping[str, Any] | None) -> SearchFilters:
    if isinstance(filters, SearchFilters):
        return filters
    if not isinstance(filters, Mapping):
        if filters is not None:
            logger.debug("Ignoring non-mapping search filters type=%s", type(filters).__name__)
        return SearchFilters()
    try:
        return SearchFilters.model_validate(dict(filters))
    except ValidationError as exc:
        logger.warning("Search filters could not be interpreted, searching without them: %s", exc)
        return SearchFilters()


def _matches(fields: _Fields, criteria: SearchFilters) -> bool:
    if criteria.keyword:
        keyword = criteria.keyword.lower()
        in_description = fields.description is not None and keyword in fields.description.lower()
        if not in_description and keyword not in fields.category.lower():
            return False

    if criteria.type is not None and fields.type != criteria.type.value:
        return False

    if criteria.category and criteria.category.lower() not in fields.category.lower():
        return False

    if criteria.min_amount is not None and fields.amount < criteria.min_amount:
        return False
    if criteria.max_amount is not None and fields.amount > criteria.max_amount:
        return False

    if criteria.start_date is not None and fields.date < criteria.start_date:
        return False
    if criteria.end_date is not None and fields.date > criteria.end_date:
        return False

    return True


def _collated(value: str) -> tuple[str, str]:
    # Case-insensitive first, original spelling second, like a locale collation.
    return value.casefold(), value


_SORT_KEYS: dict[str, Callable[[_Fields], Any]] = {
    "date": lambda f: f.date,
    "amount": lambda f: f.amount,
    "category": lambda f: _collated(f.category),
    "type": lambda f: _collated(f.type),
}


def query(transactions: Any, filters: SearchFilters | Mapping[str, Any] | None = None) -> list[Any]:
    """
    Filter and sort an in-memory collection of transactions.

    `transactions` may hold `Transaction` instances or mapping rows with the
    same field names. Matching items are returned as-is (no copies) in a new
    list. Non-list input yields an empty list, unreadable rows are skipped and
    uninterpretable filter values are ignored, so the call never raises for a
    search form in any state.

    Sorting is stable in both directions: items with equal sort keys keep
    their input order.
    """
    if not isinstance(transactions, (list, tuple)):
        logger.debug("Query received non-sequence input type=%s", type(transactions).__name__)
        return []

    criteria = normalize_filters(filters)
    matched: list[tuple[_Fields, Any]] = []
    skipped = 0
    for item in transactions:
        fields = _fields(item)
        if fields is None:
            skipped += 1
            continue
        if _matches(fields, criteria):
            matched.append((fields, item))

    if skipped:
        logger.debug("Query skipped unreadable rows count=%d", skipped)

    sort_key = _SORT_KEYS[criteria.sort_by]
    matched.sort(key=lambda pair: sort_key(pair[0]), reverse=criteria.sort_order == "desc")
    return [item for _, item in matched]
