"""Tests for wire parsing and invariants of the domain models."""

from datetime import datetime

import pydantic
import pytest

from groupsplit.models import (
    Expense,
    ExpenseDraft,
    ExpenseShare,
    Group,
    SettlementTransaction,
)


class TestGroup:
    """Tests for Group parsing."""

    def test_parses_ledger_json(self):
        """Aliased ledger fields map onto model fields."""
        group = Group.model_validate(
            {
                "_id": "g1",
                "name": "Trip",
                "members": [{"_id": "u1", "name": "Alice", "email": "a@x.io"}],
                "totalBalance": 120.5,
            }
        )

        assert group.id == "g1"
        assert group.members[0].name == "Alice"
        assert group.total_balance == 120.5

    def test_accepts_bare_member_ids(self):
        """Unpopulated member references become id-only users."""
        group = Group.model_validate({"_id": "g1", "name": "Trip", "members": ["u1", "u2"]})

        assert group.member_ids == ["u1", "u2"]
        assert group.member_name("u2") == "u2"

    def test_members_unique_by_id(self):
        """Duplicate members collapse, first occurrence wins."""
        group = Group.model_validate(
            {
                "_id": "g1",
                "name": "Trip",
                "members": [
                    {"_id": "u1", "name": "Alice"},
                    {"_id": "u1", "name": "Alice again"},
                    "u2",
                ],
            }
        )

        assert group.member_ids == ["u1", "u2"]
        assert group.member_name("u1") == "Alice"


class TestExpenseDraft:
    """Tests for ExpenseDraft invariants."""

    def test_rejects_duplicate_participant(self):
        """A participant may appear only once."""
        with pytest.raises(pydantic.ValidationError, match="only once"):
            ExpenseDraft(
                group="g1",
                amount=10.0,
                paid_by="u1",
                split_between=[
                    ExpenseShare(user="u1", share=5.0),
                    ExpenseShare(user="u1", share=5.0),
                ],
            )

    def test_rejects_shares_not_summing_to_amount(self):
        """Shares must add up to the amount."""
        with pytest.raises(pydantic.ValidationError, match="shares sum"):
            ExpenseDraft(
                group="g1",
                amount=10.0,
                paid_by="u1",
                split_between=[ExpenseShare(user="u1", share=4.0)],
            )

    def test_rejects_non_positive_amount(self):
        """The amount must be positive."""
        with pytest.raises(pydantic.ValidationError):
            ExpenseDraft(
                group="g1",
                amount=0.0,
                paid_by="u1",
                split_between=[ExpenseShare(user="u1", share=0.0)],
            )

    def test_tolerates_float_drift(self):
        """Sub-ulp drift from float division is accepted."""
        share = 0.1 / 3
        draft = ExpenseDraft(
            group="g1",
            amount=0.1,
            paid_by="u1",
            split_between=[ExpenseShare(user=u, share=share) for u in ["u1", "u2", "u3"]],
        )

        assert draft.participant_ids == ["u1", "u2", "u3"]


class TestExpense:
    """Tests for Expense parsing."""

    def test_collapses_populated_references(self):
        """Populated group/payer/share users are reduced to ids."""
        expense = Expense.model_validate(
            {
                "_id": "e1",
                "group": {"_id": "g1", "name": "Trip"},
                "description": "Dinner",
                "amount": 90,
                "paidBy": {"_id": "u1", "name": "Alice"},
                "splitBetween": [{"user": {"_id": "u2"}, "share": 45}],
                "createdAt": "2025-03-01T19:30:00Z",
            }
        )

        assert expense.group == "g1"
        assert expense.paid_by == "u1"
        assert expense.split_between[0].user == "u2"
        assert isinstance(expense.date, datetime)


class TestSettlementTransaction:
    """Tests for SettlementTransaction parsing."""

    def test_parses_ledger_json(self):
        """``from``/``to`` display names and ids are mapped."""
        t = SettlementTransaction.model_validate(
            {"fromId": "u2", "from": "Bob", "toId": "u1", "to": "Alice", "amount": 50}
        )

        assert (t.from_id, t.from_name, t.to_id, t.to_name) == ("u2", "Bob", "u1", "Alice")
        assert t.amount == 50.0

    def test_rejects_non_positive_amount(self):
        """Settlement amounts are positive."""
        with pytest.raises(pydantic.ValidationError):
            SettlementTransaction.model_validate(
                {"fromId": "u2", "from": "Bob", "toId": "u1", "to": "Alice", "amount": 0}
            )
