"""Equal-split expense calculation and add-expense form state."""

import logging
import math
from collections.abc import Iterable

from .exceptions import NotFoundError, ValidationError
from .models import ExpenseDraft, ExpenseShare, Group

logger = logging.getLogger(__name__)

NO_PARTICIPANTS_MESSAGE = "Please select at least one participant."


def parse_amount(value: str | float) -> float:
    """
    Parse user input into a positive, finite amount.

    Raises:
        ValidationError: If the value is not a number, or not positive and finite
    """
    try:
        amount = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Amount must be a number, got {value!r}") from e

    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError(f"Amount must be a positive number, got {value!r}")
    return amount


def split_equally(amount: float, participant_ids: Iterable[str]) -> list[ExpenseShare]:
    """
    Split ``amount`` equally between the distinct participants.

    Shares come from plain float division; no remainder is redistributed, so
    the shares may differ from ``amount`` by sub-cent drift.

    Raises:
        ValidationError: If there are no participants
    """
    ids = list(dict.fromkeys(participant_ids))
    if not ids:
        raise ValidationError(NO_PARTICIPANTS_MESSAGE)

    share = amount / len(ids)
    return [ExpenseShare(user=user_id, share=share) for user_id in ids]


class ExpenseForm:
    """State of the add-expense form.

    The payer is always the current user, who is also an implicit
    participant. ``split_with`` holds the *other* members sharing the
    expense and is a plain set, so toggling is an involution.
    """

    def __init__(self, current_user_id: str, groups: Iterable[Group]):
        """Initialize the form on the first group with everyone else selected."""
        self.current_user_id = current_user_id
        self.groups = list(groups)
        self.group_id: str | None = None
        self.amount = ""
        self.description = ""
        self.split_with: set[str] = set()
        self.reset()

    @property
    def paid_by(self) -> str:
        """The payer. Always the current user."""
        return self.current_user_id

    @property
    def group(self) -> Group | None:
        """The selected group, if any."""
        for group in self.groups:
            if group.id == self.group_id:
                return group
        return None

    def _require_group(self) -> Group:
        group = self.group
        if group is None:
            raise ValidationError("Please select a group.")
        return group

    def _everyone_else(self, group: Group) -> set[str]:
        return {m for m in group.member_ids if m != self.current_user_id}

    def reset(self):
        """Return to a blank form on the first group."""
        self.amount = ""
        self.description = ""
        if self.groups:
            self.switch_group(self.groups[0].id)
        else:
            self.group_id = None
            self.split_with = set()

    def switch_group(self, group_id: str):
        """Select another group, discarding the previous participant selection."""
        for group in self.groups:
            if group.id == group_id:
                self.group_id = group.id
                self.split_with = self._everyone_else(group)
                return
        raise NotFoundError(f"Group {group_id} not found")

    def toggle_member(self, member_id: str):
        """Flip one member in or out of the split. The current user is always in."""
        if member_id == self.current_user_id:
            logger.debug("Ignoring toggle of the current user")
            return

        group = self._require_group()
        if not group.has_member(member_id):
            raise ValidationError(f"{member_id} is not a member of {group.name!r}")
        self.split_with ^= {member_id}

    def select_all(self):
        """Select every member of the group except the current user."""
        group = self.group
        if group is not None:
            self.split_with = self._everyone_else(group)

    @property
    def participants(self) -> list[str]:
        """Current user first, then the selected members in roster order."""
        group = self.group
        ordered = group.member_ids if group else []
        others = [m for m in ordered if m in self.split_with]
        others += sorted(self.split_with.difference(ordered))
        return list(dict.fromkeys([self.current_user_id, *others]))

    @property
    def participant_count(self) -> int:
        """Number of distinct people sharing the expense, including the payer."""
        return len(self.participants)

    @property
    def share_per_person(self) -> float:
        """Share each participant would owe; 0.0 while the amount is not valid."""
        try:
            amount = parse_amount(self.amount)
        except ValidationError:
            return 0.0
        if not self.participant_count:
            return 0.0
        return amount / self.participant_count

    @property
    def preview(self) -> str:
        """Per-person share as displayed, e.g. ``"33.33"``."""
        return f"{self.share_per_person:.2f}"

    def build_draft(self) -> ExpenseDraft:
        """
        Validate the form and build the expense to submit.

        Raises:
            ValidationError: No group, invalid amount, or no participants
        """
        group = self._require_group()
        amount = parse_amount(self.amount)
        shares = split_equally(amount, self.participants)

        return ExpenseDraft(
            group=group.id,
            description=self.description,
            amount=amount,
            paid_by=self.paid_by,
            split_between=shares,
        )
