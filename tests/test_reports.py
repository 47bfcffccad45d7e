"""Tests for history filtering and dashboard statistics."""

import pytest

from groupsplit.models import Expense
from groupsplit.reports import (
    SETTLEMENT_DESCRIPTION,
    classify_description,
    search_history,
    summarize_spending,
)


def make_expense(id: str, description: str, amount: float) -> Expense:
    """Create an Expense for testing."""
    return Expense(id=id, group="g1", description=description, amount=amount)


class TestClassifyDescription:
    """Tests for classify_description."""

    @pytest.mark.parametrize(
        "description,expected",
        [
            ("Settlement Payment", "settlement"),
            ("Team lunch", "food"),
            ("Starbucks run", "coffee"),
            ("March rent", "home"),
            ("Uber to airport", "transport"),
            ("Weekly grocery", "shopping"),
            ("Concert tickets", "other"),
        ],
    )
    def test_keywords(self, description, expected):
        """Descriptions map to categories by keyword."""
        assert classify_description(description) == expected

    def test_first_match_wins(self):
        """Earlier categories take precedence."""
        assert classify_description("Dinner and coffee") == "food"


class TestSearchHistory:
    """Tests for search_history."""

    def test_case_insensitive_substring(self):
        """Matching ignores case and position."""
        expenses = [make_expense("e1", "Pizza Night", 30), make_expense("e2", "Rent", 900)]

        assert search_history(expenses, "pizza") == [expenses[0]]
        assert search_history(expenses, "") == expenses


class TestSummarizeSpending:
    """Tests for summarize_spending."""

    def test_excludes_settlement_payments(self):
        """Settlement payments are not counted as spending."""
        expenses = [
            make_expense("e1", "Dinner", 100),
            make_expense("e2", "Taxi", 25),
            make_expense("e3", "Hotel", 200),
            make_expense("e4", SETTLEMENT_DESCRIPTION, 1000),
        ]

        summary = summarize_spending(expenses)

        assert summary.total_spent == 325
        assert summary.transaction_count == 3
        assert summary.average_spent == 108.33
        assert summary.largest.id == "e3"

    def test_empty(self):
        """No expenses gives zeroed statistics."""
        summary = summarize_spending([])

        assert summary.total_spent == 0
        assert summary.average_spent == 0.0
        assert summary.largest is None
        assert summary.transaction_count == 0
