"""Pydantic domain models for GroupSplit.

Field names are Pythonic; aliases match the ledger service's JSON
(``_id``, ``totalBalance``, ``paidBy``, ``splitBetween``, ``fromId`` ...).
Always dump with ``by_alias=True`` when talking to the service.
"""

import math
from datetime import datetime
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

SHARE_REL_TOLERANCE = 1e-9


def _ref_id(value: Any) -> Any:
    """Collapse a populated reference (``{"_id": ..., ...}``) to its id."""
    if isinstance(value, dict):
        return value.get("_id", value.get("id"))
    return value


# ============================================================================
# Directory / Roster Models
# ============================================================================


class User(BaseModel):
    """A registered user. Immutable from the client's point of view."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: str = Field(alias="_id")
    name: str = ""
    email: str = ""

    @property
    def label(self) -> str:
        """Display label used in pickers and tables."""
        if self.name and self.email:
            return f"{self.name} <{self.email}>"
        return self.name or self.email or self.id


class Group(BaseModel):
    """A named set of users who share expenses."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    name: str
    members: list[User] = Field(default_factory=list)
    total_balance: float = Field(default=0.0, alias="totalBalance")

    @field_validator("members", mode="before")
    @classmethod
    def _coerce_member_refs(cls, value: Any) -> Any:
        # Unpopulated responses carry bare member ids
        if value is None:
            return []
        return [{"_id": m} if isinstance(m, str) else m for m in value]

    @field_validator("members")
    @classmethod
    def _dedupe_members(cls, members: list[User]) -> list[User]:
        seen: set[str] = set()
        unique = []
        for member in members:
            if member.id not in seen:
                seen.add(member.id)
                unique.append(member)
        return unique

    @property
    def member_ids(self) -> list[str]:
        """Member ids in roster order."""
        return [m.id for m in self.members]

    def has_member(self, user_id: str) -> bool:
        """Check whether a user belongs to this group."""
        return any(m.id == user_id for m in self.members)

    def member_name(self, user_id: str) -> str:
        """Display name of a member, falling back to the id."""
        for member in self.members:
            if member.id == user_id:
                return member.name or member.id
        return user_id


# ============================================================================
# Expense Models
# ============================================================================


class ExpenseShare(BaseModel):
    """One participant's portion of an expense."""

    user: str
    share: float

    @field_validator("user", mode="before")
    @classmethod
    def _coerce_user(cls, value: Any) -> Any:
        return _ref_id(value)


class ExpenseDraft(BaseModel):
    """An expense built client-side, not yet submitted to the ledger.

    Invariants: at least one share, no participant twice, and the shares
    add up to ``amount`` within floating-point tolerance.
    """

    model_config = ConfigDict(populate_by_name=True)

    group: str
    description: str = ""
    amount: float = Field(gt=0)
    paid_by: str = Field(alias="paidBy")
    split_between: list[ExpenseShare] = Field(alias="splitBetween", min_length=1)

    @model_validator(mode="after")
    def _check_split(self) -> "ExpenseDraft":
        users = [s.user for s in self.split_between]
        if len(set(users)) != len(users):
            raise ValueError("each participant may appear only once in a split")

        total = sum(s.share for s in self.split_between)
        if not math.isclose(total, self.amount, rel_tol=SHARE_REL_TOLERANCE):
            raise ValueError(f"shares sum to {total}, expected {self.amount}")
        return self

    @property
    def participant_ids(self) -> list[str]:
        """Ids of everyone sharing the expense."""
        return [s.user for s in self.split_between]

    def to_payload(self) -> dict[str, Any]:
        """Render the ``POST /expenses`` request body."""
        return self.model_dump(by_alias=True)


class Expense(BaseModel):
    """An expense as recorded by the ledger service."""

    model_config = ConfigDict(populate_by_name=True)

    id: str | None = Field(default=None, alias="_id")
    group: str | None = None
    description: str = ""
    amount: float
    paid_by: str | None = Field(default=None, alias="paidBy")
    split_between: list[ExpenseShare] = Field(
        default_factory=list, alias="splitBetween"
    )
    date: datetime | None = Field(
        default=None, validation_alias=AliasChoices("date", "createdAt")
    )

    @field_validator("group", "paid_by", mode="before")
    @classmethod
    def _coerce_refs(cls, value: Any) -> Any:
        return _ref_id(value)


# ============================================================================
# Settlement Models
# ============================================================================


class SettlementTransaction(BaseModel):
    """A computed payer -> payee debt returned by the ledger for a group.

    Not persisted client-side; it is a projection that changes whenever the
    ledger recomputes balances.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    from_id: str = Field(alias="fromId")
    from_name: str = Field(alias="from")
    to_id: str = Field(alias="toId")
    to_name: str = Field(alias="to")
    amount: float = Field(gt=0)
