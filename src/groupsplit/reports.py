"""Expense history filtering and dashboard statistics."""

from collections.abc import Iterable

from pydantic import BaseModel

from .models import Expense

SETTLEMENT_DESCRIPTION = "Settlement Payment"

# Checked in order; first match wins
_CATEGORY_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("settlement", ("settlement",)),
    ("food", ("food", "dinner", "lunch")),
    ("coffee", ("coffee", "starbucks")),
    ("home", ("rent", "utility")),
    ("transport", ("uber", "taxi", "car")),
    ("shopping", ("grocery", "shop")),
]


class SpendingSummary(BaseModel):
    """Headline numbers for the dashboard."""

    total_spent: float
    average_spent: float
    largest: Expense | None
    transaction_count: int


def classify_description(description: str) -> str:
    """Map an expense description to a coarse category by keyword."""
    desc = description.lower()
    for category, keywords in _CATEGORY_KEYWORDS:
        if any(keyword in desc for keyword in keywords):
            return category
    return "other"


def search_history(expenses: Iterable[Expense], term: str) -> list[Expense]:
    """Case-insensitive substring match on the description."""
    needle = term.lower()
    return [e for e in expenses if needle in e.description.lower()]


def summarize_spending(expenses: Iterable[Expense]) -> SpendingSummary:
    """
    Compute dashboard statistics.

    Settlement payments are bookkeeping entries, not spending, and are left out.
    """
    spending = [e for e in expenses if e.description != SETTLEMENT_DESCRIPTION]
    total = sum(e.amount for e in spending)
    count = len(spending)

    return SpendingSummary(
        total_spent=total,
        average_spent=round(total / count, 2) if count else 0.0,
        largest=max(spending, key=lambda e: e.amount) if spending else None,
        transaction_count=count,
    )
