"""MCP server for GroupSplit: exposes the group, expense and settlement workflow as tools."""

import logging
from dataclasses import dataclass, field

from mcp.server.fastmcp import FastMCP

from .clients.ledger import LedgerClient
from .config import Settings, load_settings
from .directory import MembershipDirectory
from .exceptions import APIError, GroupSplitError
from .notices import NoticeBoard
from .roster import GroupRoster
from .service import ExpenseService
from .settlements import SettlementLedgerView, format_amount

logger = logging.getLogger(__name__)

mcp_app = FastMCP("groupsplit")

# ---------------------------------------------------------------------------
# Session state: one MCP server process per user session
# ---------------------------------------------------------------------------

WORKFLOW_INSTRUCTIONS = """\
You are helping a user share expenses with their groups. Follow this workflow:

1. GROUPS: Call list_groups to see the user's groups and member ids.
   Use search_users (at least 2 characters of an email) to find people to
   add with create_group or add_member.

2. EXPENSES: Call add_expense for money the user paid. It is split equally
   between the user and the chosen members (everyone by default).

3. SETTLE: Call list_settlements for a group to see who owes whom.
   Before confirm_settlement, ask the user whether the payment really
   happened. send_reminder only shows a notice; nothing is delivered.

Never delete a group unless the user explicitly asked for it; deletion also
removes every expense of the group.\
"""


@dataclass
class SessionState:
    """Holds state between MCP tool calls within a single conversation."""

    settings: Settings | None = None
    client: LedgerClient | None = None
    notices: NoticeBoard = field(default_factory=NoticeBoard)
    roster: GroupRoster | None = None
    view: SettlementLedgerView | None = None


_state = SessionState()


def _ensure_client() -> tuple[Settings, LedgerClient]:
    """Lazily load settings (.env) and open the ledger client."""
    if _state.settings is None or _state.client is None:
        _state.settings = load_settings()
        _state.client = LedgerClient.from_settings(_state.settings)
    return _state.settings, _state.client


async def _ensure_roster() -> GroupRoster:
    settings, client = _ensure_client()
    if _state.roster is None:
        _state.roster = GroupRoster(client, settings.current_user_id)
    await _state.roster.refresh()
    return _state.roster


def _ensure_view() -> SettlementLedgerView:
    settings, client = _ensure_client()
    if _state.view is None:
        _state.view = SettlementLedgerView(client, settings, _state.notices)
    return _state.view


def _format_transactions(view: SettlementLedgerView, symbol: str) -> str:
    if view.is_settled:
        return "All settled up! No outstanding balances for this group."
    lines = [f"Outstanding settlements ({len(view.transactions)}):"]
    for i, t in enumerate(view.transactions):
        lines.append(
            f"  [{i}] {t.from_name} -> {t.to_name} | {symbol}{format_amount(t.amount)}"
        )
    return "\n".join(lines)


def _error(e: GroupSplitError) -> str:
    if isinstance(e, APIError):
        return f"Error: {e.user_message(str(e))}"
    return f"Error: {e}"


# ---------------------------------------------------------------------------
# MCP Tools
# ---------------------------------------------------------------------------


@mcp_app.tool()
async def list_groups() -> str:
    """List the user's groups with their members."""
    try:
        roster = await _ensure_roster()
        if not roster.groups:
            return "No groups yet."

        lines = ["Groups:"]
        for g in roster.groups:
            members = ", ".join(f"{m.name or m.email} (id: {m.id})" for m in g.members)
            lines.append(f"- {g.name} (id: {g.id}) | members: {members}")
        return "\n".join(lines)
    except GroupSplitError as e:
        return _error(e)


@mcp_app.tool()
async def search_users(query: str) -> str:
    """Find registered users by email prefix (at least 2 characters).

    Args:
        query: Beginning of the email address.
    """
    try:
        settings, client = _ensure_client()
        directory = MembershipDirectory(client, settings.search_min_query_length)
        users = await directory.search(query)
        if not users:
            return f"No users found for {query!r}."
        return "\n".join(f"- {u.label} (id: {u.id})" for u in users)
    except GroupSplitError as e:
        return _error(e)


@mcp_app.tool()
async def create_group(name: str, member_ids: list[str]) -> str:
    """Create a group with the user plus the given members.

    Args:
        name: Group name.
        member_ids: User ids from search_users (the user is added automatically).
    """
    try:
        roster = await _ensure_roster()
        group = await roster.create_group(name, member_ids)
        return f"Created group {group.name!r} (id: {group.id})."
    except GroupSplitError as e:
        return _error(e)


@mcp_app.tool()
async def add_member(group_id: str, user_id: str) -> str:
    """Add a user to a group.

    Args:
        group_id: Group id from list_groups.
        user_id: User id from search_users.
    """
    try:
        roster = await _ensure_roster()
        group = await roster.add_member(roster.get(group_id), user_id)
        return f"{group.member_name(user_id)} added to {group.name!r}."
    except GroupSplitError as e:
        return _error(e)


@mcp_app.tool()
async def rename_group(group_id: str, new_name: str) -> str:
    """Rename a group.

    Args:
        group_id: Group id from list_groups.
        new_name: The new name.
    """
    try:
        roster = await _ensure_roster()
        group = roster.get(group_id)
        updated = await roster.rename_group(group, new_name)
        if updated is group:
            return "Name unchanged."
        return f"Renamed to {updated.name!r}."
    except GroupSplitError as e:
        return _error(e)


@mcp_app.tool()
async def delete_group(group_id: str, confirm: bool = False) -> str:
    """Delete a group and ALL of its expenses. Irreversible.

    Args:
        group_id: Group id from list_groups.
        confirm: Must be true, and only after the user explicitly agreed.
    """
    try:
        roster = await _ensure_roster()
        group = roster.get(group_id)
        if not await roster.delete_group(group, lambda _group: confirm):
            return (
                f"Not deleted. Deleting {group.name!r} also deletes all of its "
                f"expenses; ask the user, then call again with confirm=true."
            )
        return f"Deleted {group.name!r}."
    except GroupSplitError as e:
        return _error(e)


@mcp_app.tool()
async def add_expense(
    group_id: str,
    amount: float,
    description: str,
    split_with: list[str] | None = None,
) -> str:
    """Record an expense the user paid, split equally.

    Args:
        group_id: Group id from list_groups.
        amount: Total amount paid.
        description: What the expense was for.
        split_with: Member ids to split with besides the user (default: everyone).
    """
    try:
        settings, client = _ensure_client()
        service = ExpenseService(client, settings, _state.notices)
        form = await service.open_form()
        form.switch_group(group_id)
        form.amount = str(amount)
        form.description = description
        if split_with is not None:
            form.split_with = set()
            for member_id in split_with:
                form.toggle_member(member_id)

        count, preview = form.participant_count, form.preview
        expense = await service.submit(form)
        if expense is None:
            return f"Error: {_state.notices.text}"
        return (
            f"{_state.notices.text} {description!r}: {settings.currency_symbol}"
            f"{format_amount(expense.amount)} split {count} ways "
            f"({settings.currency_symbol}{preview} each)."
        )
    except GroupSplitError as e:
        return _error(e)


@mcp_app.tool()
async def list_settlements(group_id: str) -> str:
    """Show who owes whom in a group.

    Args:
        group_id: Group id from list_groups.
    """
    try:
        settings, _ = _ensure_client()
        view = _ensure_view()
        _state.notices.clear()
        await view.switch_group(group_id)
        if _state.notices.current is not None:
            return f"Error: {_state.notices.text}"
        return _format_transactions(view, settings.currency_symbol)
    except GroupSplitError as e:
        return _error(e)


@mcp_app.tool()
async def confirm_settlement(transaction_index: int) -> str:
    """Confirm a payment from the last list_settlements output.

    Args:
        transaction_index: Index shown by list_settlements.
    """
    try:
        settings, _ = _ensure_client()
        view = _ensure_view()
        if view.group_id is None:
            return "Error: Call list_settlements first."

        status = await view.confirm(transaction_index)
        if status is None:
            return "Another settlement is being confirmed; try again shortly."
        return f"{_state.notices.text}\n{_format_transactions(view, settings.currency_symbol)}"
    except GroupSplitError as e:
        return _error(e)


@mcp_app.tool()
def send_reminder(transaction_index: int) -> str:
    """Show a reminder notice for a settlement (nothing is actually sent).

    Args:
        transaction_index: Index shown by list_settlements.
    """
    try:
        view = _ensure_view()
        if view.group_id is None:
            return "Error: Call list_settlements first."
        if not view.send_reminder(transaction_index):
            return "A settlement is being confirmed; try again shortly."
        return _state.notices.text
    except GroupSplitError as e:
        return _error(e)


# ---------------------------------------------------------------------------
# MCP Prompt
# ---------------------------------------------------------------------------


@mcp_app.prompt()
def groupsplit_workflow() -> str:
    """Orchestration instructions for managing shared expenses."""
    return WORKFLOW_INSTRUCTIONS


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run_server():
    """Start the MCP server (stdio transport)."""
    mcp_app.run(transport="stdio")
