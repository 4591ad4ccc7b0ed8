from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from application.query_engine import normalize_filters, query
from domain.models import Transaction, TransactionType
from domain.schemas import SearchFilters


def _txn(id: str, amount: str, type_: TransactionType, category: str, posted_on: date, description: str | None = None) -> Transaction:
    return Transaction(
        id=id,
        type=type_,
        amount=Decimal(amount),
        category=category,
        date=posted_on,
        description=description,
    )


class QueryScenarioTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rows = [
            {"id": "food", "amount": 100, "type": "expense", "category": "Food", "date": "2024-01-05"},
            {"id": "salary", "amount": 50, "type": "income", "category": "Salary", "date": "2024-01-01"},
        ]

    def test_type_filter_returns_only_expense(self) -> None:
        result = query(self.rows, {"type": "expense"})

        self.assertEqual([r["id"] for r in result], ["food"])

    def test_min_amount_filter(self) -> None:
        result = query(self.rows, {"minAmount": 60})

        self.assertEqual([r["id"] for r in result], ["food"])

    def test_default_sort_is_date_descending(self) -> None:
        result = query(self.rows, {})

        self.assertEqual([r["id"] for r in result], ["food", "salary"])

    def test_returns_original_items(self) -> None:
        result = query(self.rows, None)

        self.assertIs(result[0], self.rows[0])
        self.assertIsNot(result, self.rows)


class QueryFilterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.txns = [
            _txn("t1", "12.50", TransactionType.EXPENSE, "Groceries", date(2024, 3, 1), "Trader Joe's"),
            _txn("t2", "1800.00", TransactionType.EXPENSE, "Housing", date(2024, 3, 3), "Rent March"),
            _txn("t3", "2500.00", TransactionType.INCOME, "Salary", date(2024, 3, 28), None),
            _txn("t4", "42.10", TransactionType.EXPENSE, "Groceries", date(2024, 3, 31), "Whole Foods"),
        ]

    def _ids(self, result: list) -> list[str]:
        return [t.id for t in result]

    def test_keyword_matches_description_or_category_case_insensitively(self) -> None:
        self.assertEqual(self._ids(query(self.txns, {"keyword": "WHOLE"})), ["t4"])
        self.assertEqual(self._ids(query(self.txns, {"keyword": "grocer"})), ["t4", "t1"])

    def test_keyword_with_missing_description_still_checks_category(self) -> None:
        self.assertEqual(self._ids(query(self.txns, {"keyword": "sal"})), ["t3"])

    def test_category_is_a_substring_match(self) -> None:
        result = query(self.txns, {"category": "hous"})

        self.assertEqual(self._ids(result), ["t2"])

    def test_amount_bounds_are_inclusive(self) -> None:
        result = query(self.txns, {"min_amount": "42.10", "max_amount": "1800", "sort_by": "amount", "sort_order": "asc"})

        self.assertEqual(self._ids(result), ["t4", "t2"])

    def test_date_bounds_are_inclusive_and_ignore_time_of_day(self) -> None:
        result = query(
            self.txns,
            {"startDate": "2024-03-03T18:30:00Z", "endDate": "2024-03-28", "sortOrder": "asc"},
        )

        self.assertEqual(self._ids(result), ["t2", "t3"])

    def test_filters_are_conjunctive(self) -> None:
        result = query(self.txns, {"type": "expense", "keyword": "groceries", "minAmount": 20})

        self.assertEqual(self._ids(result), ["t4"])

    def test_category_sort_is_case_insensitive(self) -> None:
        rows = [
            {"id": "b", "amount": 1, "type": "expense", "category": "banana", "date": "2024-01-01"},
            {"id": "a", "amount": 1, "type": "expense", "category": "Apple", "date": "2024-01-01"},
            {"id": "c", "amount": 1, "type": "expense", "category": "cherry", "date": "2024-01-01"},
        ]

        result = query(rows, {"sortBy": "category", "sortOrder": "asc"})

        self.assertEqual([r["id"] for r in result], ["a", "b", "c"])


class QueryRobustnessTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rows = [
            {"id": "r1", "amount": 10, "type": "expense", "category": "Food", "date": "2024-02-01"},
            {"id": "r2", "amount": 20, "type": "income", "category": "Gift", "date": "2024-02-02"},
        ]

    def test_non_list_input_returns_empty(self) -> None:
        self.assertEqual(query(None, {}), [])
        self.assertEqual(query("not a list", {}), [])
        self.assertEqual(query({"id": "r1"}, {}), [])

    def test_unreadable_rows_are_skipped(self) -> None:
        rows = self.rows + [None, 42, {"id": "broken", "amount": "abc", "date": "2024-02-03"}]

        result = query(rows, {})

        self.assertEqual([r["id"] for r in result], ["r2", "r1"])

    def test_malformed_filter_values_are_ignored(self) -> None:
        result = query(
            self.rows,
            {"minAmount": "lots", "startDate": "yesterday", "type": "transfer", "sortBy": "color", "sortOrder": "up"},
        )

        self.assertEqual([r["id"] for r in result], ["r2", "r1"])

    def test_non_mapping_filters_are_ignored(self) -> None:
        self.assertEqual(len(query(self.rows, ["keyword"])), 2)

    def test_normalize_filters_defaults(self) -> None:
        filters = normalize_filters({"keyword": ""})

        self.assertIsInstance(filters, SearchFilters)
        self.assertIsNone(filters.keyword)
        self.assertEqual(filters.sort_by, "date")
        self.assertEqual(filters.sort_order, "desc")


class QueryPropertyTests(unittest.TestCase):
    def setUp(self) -> None:
        self.rows = [
            {"id": "x1", "amount": 10, "type": "expense", "category": "Food", "date": "2024-01-03"},
            {"id": "x2", "amount": 5, "type": "expense", "category": "Food", "date": "2024-01-01"},
            {"id": "x3", "amount": 10, "type": "income", "category": "Gift", "date": "2024-01-04"},
            {"id": "x4", "amount": 10, "type": "expense", "category": "Fuel", "date": "2024-01-02"},
        ]

    def test_result_never_longer_than_input(self) -> None:
        for filters in ({}, {"type": "expense"}, {"keyword": "f"}, {"maxAmount": 5}):
            self.assertLessEqual(len(query(self.rows, filters)), len(self.rows))

    def test_query_is_idempotent(self) -> None:
        filters = {"keyword": "f", "sortBy": "amount", "sortOrder": "desc"}

        once = query(self.rows, filters)

        self.assertEqual(query(once, filters), once)

    def test_sort_is_stable_in_both_directions(self) -> None:
        asc = query(self.rows, {"sortBy": "amount", "sortOrder": "asc"})
        desc = query(self.rows, {"sortBy": "amount", "sortOrder": "desc"})

        self.assertEqual([r["id"] for r in asc], ["x2", "x1", "x3", "x4"])
        self.assertEqual([r["id"] for r in desc], ["x1", "x3", "x4", "x2"])

    def test_date_desc_is_reverse_of_asc_without_ties(self) -> None:
        asc = query(self.rows, {"sortBy": "date", "sortOrder": "asc"})
        desc = query(self.rows, {"sortBy": "date", "sortOrder": "desc"})

        self.assertEqual(list(reversed(asc)), desc)


if __name__ == "__main__":
    unittest.main()
