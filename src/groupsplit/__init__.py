"""GroupSplit - Split group expenses and reconcile settlements."""

__version__ = "0.1.0"

from .clients.ledger import LedgerClient
from .config import Settings, load_settings
from .directory import DebouncedSearch, MembershipDirectory
from .models import (
    Expense,
    ExpenseDraft,
    ExpenseShare,
    Group,
    SettlementTransaction,
    User,
)
from .roster import GroupRoster, MemberSelection
from .service import ExpenseService
from .settlements import SettlementLedgerView
from .splitter import ExpenseForm, split_equally

__all__ = [
    "Settings",
    "load_settings",
    "LedgerClient",
    "MembershipDirectory",
    "DebouncedSearch",
    "User",
    "Group",
    "Expense",
    "ExpenseDraft",
    "ExpenseShare",
    "SettlementTransaction",
    "GroupRoster",
    "MemberSelection",
    "ExpenseForm",
    "split_equally",
    "ExpenseService",
    "SettlementLedgerView",
]
