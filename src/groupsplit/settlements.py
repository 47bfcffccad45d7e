"""Settlement ledger view and the confirmation state machine.

A view shows the outstanding transactions of one group at a time. At most
one confirmation can be in flight per view; while it is, confirm and remind
actions are ignored.
"""

import logging
from dataclasses import dataclass
from enum import Enum

from .clients.ledger import LedgerClient
from .config import Settings
from .exceptions import APIError, NotFoundError
from .models import Group, SettlementTransaction
from .notices import NoticeBoard

logger = logging.getLogger(__name__)

CONFIRM_FAILED_MESSAGE = "Failed to confirm settlement"
LOAD_FAILED_MESSAGE = "Failed to load settlements"


@dataclass(frozen=True)
class Idle:
    """No confirmation in flight."""


@dataclass(frozen=True)
class Confirming:
    """The payment ``from_id`` -> ``to_id`` in ``group_id`` is being confirmed."""

    group_id: str
    from_id: str
    to_id: str

    @classmethod
    def of(cls, group_id: str, transaction: SettlementTransaction) -> "Confirming":
        return cls(group_id, transaction.from_id, transaction.to_id)


ConfirmationState = Idle | Confirming


class TransactionStatus(str, Enum):
    """Lifecycle of a displayed transaction."""

    PENDING = "pending"
    CONFIRMING = "confirming"
    SETTLED = "settled"
    FAILED = "failed"


def format_amount(amount: float) -> str:
    """Render an amount without a trailing ``.0`` for whole numbers."""
    if float(amount).is_integer():
        return str(int(amount))
    return str(amount)


class SettlementLedgerView:
    """Outstanding settlement transactions for the selected group."""

    def __init__(
        self,
        client: LedgerClient,
        settings: Settings,
        notices: NoticeBoard | None = None,
    ):
        """Initialize an empty view."""
        self.client = client
        self.settings = settings
        self.notices = notices or NoticeBoard()
        self.groups: list[Group] = []
        self.group_id: str | None = None
        self.transactions: list[SettlementTransaction] = []
        self.loading = False
        self.loaded = False
        self.state: ConfirmationState = Idle()
        self._fetch_generation = 0

    @property
    def is_settled(self) -> bool:
        """True once a fetch for the current group came back empty."""
        return self.loaded and not self.loading and not self.transactions

    @property
    def busy(self) -> bool:
        """True while a confirmation is in flight."""
        return isinstance(self.state, Confirming)

    async def open(self, preferred_group_id: str | None = None):
        """Load groups and show ``preferred_group_id``, else the first group."""
        try:
            self.groups = await self.client.get_groups()
        except APIError as e:
            logger.error(f"Failed to load groups: {e}")
            self.notices.error(e.user_message("Failed to load groups"))
            return

        group_id = preferred_group_id or (self.groups[0].id if self.groups else None)
        if group_id:
            await self.switch_group(group_id)

    async def switch_group(self, group_id: str):
        """Show another group's transactions, replacing the current list."""
        self.group_id = group_id
        self.transactions = []
        self.loaded = False
        await self.refresh()

    async def refresh(self):
        """Re-fetch the current group's transactions.

        A fetch that completes after a newer one was started (for example
        after a group switch) is discarded.
        """
        if self.group_id is None:
            return

        self._fetch_generation += 1
        generation = self._fetch_generation
        group_id = self.group_id
        self.loading = True

        try:
            transactions = await self.client.get_settlements(group_id)
        except APIError as e:
            if generation == self._fetch_generation:
                logger.error(f"Failed to load settlements for {group_id}: {e}")
                self.notices.error(e.user_message(LOAD_FAILED_MESSAGE))
                self.loading = False
            return

        if generation != self._fetch_generation:
            logger.debug(f"Discarding stale settlements for group {group_id}")
            return

        self.transactions = transactions
        self.loaded = True
        self.loading = False
        logger.debug(f"Group {group_id} has {len(transactions)} open transactions")

    def _transaction(self, index: int) -> SettlementTransaction:
        if not 0 <= index < len(self.transactions):
            raise NotFoundError(f"No settlement transaction at index {index}")
        return self.transactions[index]

    def status(self, index: int) -> TransactionStatus:
        """Status of the displayed transaction at ``index``."""
        transaction = self._transaction(index)
        assert self.group_id is not None
        if self.state == Confirming.of(self.group_id, transaction):
            return TransactionStatus.CONFIRMING
        return TransactionStatus.PENDING

    async def confirm(self, index: int) -> TransactionStatus | None:
        """
        Confirm that the transaction at ``index`` has been paid.

        Ignored while another confirmation is in flight. On success the list
        is re-fetched rather than edited locally; on failure the transaction
        stays pending and an error notice is shown.

        Args:
            index: Position in ``transactions``

        Returns:
            SETTLED or FAILED, or None if the call was ignored
        """
        if self.busy:
            logger.debug(f"Ignoring confirm of #{index}: {self.state} in flight")
            return None

        transaction = self._transaction(index)
        group_id = self.group_id
        assert group_id is not None

        self.state = Confirming.of(group_id, transaction)
        self.notices.clear()
        try:
            await self.client.settle(
                group_id, transaction.from_id, transaction.to_id, transaction.amount
            )
        except APIError as e:
            logger.error(f"Failed to settle #{index} in group {group_id}: {e}")
            self.notices.error(e.user_message(CONFIRM_FAILED_MESSAGE))
            return TransactionStatus.FAILED
        finally:
            self.state = Idle()

        self.notices.success(
            f"Successfully settled {self.settings.currency_symbol}"
            f"{format_amount(transaction.amount)} between "
            f"{transaction.from_name} and {transaction.to_name}",
            clear_after=self.settings.settle_notice_seconds,
        )
        await self.refresh()
        return TransactionStatus.SETTLED

    def send_reminder(self, index: int) -> bool:
        """
        Show a "reminder sent" notice for the transaction at ``index``.

        Nothing is delivered: no backend is contacted.

        Returns:
            True if the notice was shown, False if ignored during a confirmation
        """
        if self.busy:
            logger.debug(f"Ignoring reminder for #{index} during confirmation")
            return False

        transaction = self._transaction(index)
        self.notices.success(
            f"Reminder sent to {transaction.from_name}!",
            clear_after=self.settings.reminder_notice_seconds,
        )
        return True
