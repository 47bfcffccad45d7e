"""Expense workflow service composing the split calculator and the ledger client."""

import logging

from .clients.ledger import LedgerClient
from .config import Settings
from .exceptions import APIError
from .models import Expense
from .notices import NoticeBoard
from .reports import SpendingSummary, search_history, summarize_spending
from .splitter import ExpenseForm

logger = logging.getLogger(__name__)

EXPENSE_ADDED_MESSAGE = "Expense added successfully!"
EXPENSE_FAILED_MESSAGE = "Error adding expense"


class ExpenseService:
    """Records expenses and reads expense history."""

    def __init__(
        self,
        client: LedgerClient,
        settings: Settings,
        notices: NoticeBoard | None = None,
    ):
        """Initialize the expense service."""
        self.client = client
        self.settings = settings
        self.notices = notices or NoticeBoard()

    async def open_form(self) -> ExpenseForm:
        """Load the user's groups and start a form on the first one."""
        groups = await self.client.get_groups()
        return ExpenseForm(self.settings.current_user_id, groups)

    async def submit(self, form: ExpenseForm) -> Expense | None:
        """
        Validate and submit the form.

        ``ValidationError`` propagates before anything is sent. A ledger
        failure is reported on the notice board and leaves the form
        untouched; success resets the form.

        Args:
            form: The filled-in form

        Returns:
            The recorded expense, or None if the ledger rejected it
        """
        draft = form.build_draft()

        try:
            expense = await self.client.create_expense(draft)
        except APIError as e:
            logger.error(f"Failed to add expense: {e}")
            self.notices.error(e.user_message(EXPENSE_FAILED_MESSAGE))
            return None

        self.notices.success(
            EXPENSE_ADDED_MESSAGE, clear_after=self.settings.expense_notice_seconds
        )
        form.reset()
        return expense

    async def fetch_history(self, search: str = "") -> list[Expense]:
        """Fetch all expenses, filtered by description when ``search`` is given."""
        expenses = await self.client.get_expenses()
        if search:
            expenses = search_history(expenses, search)
        return expenses

    async def summarize(self) -> SpendingSummary:
        """Fetch all expenses and compute dashboard statistics."""
        expenses = await self.client.get_expenses()
        return summarize_spending(expenses)
