"""CLI for GroupSplit using Typer."""

import asyncio
import logging
import sys
from collections.abc import Coroutine
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from .clients.ledger import LedgerClient
from .config import Settings, load_settings
from .directory import DebouncedSearch, MembershipDirectory
from .exceptions import APIError
from .mcp_server import run_server
from .models import Expense, SettlementTransaction
from .notices import NoticeBoard, NoticeKind
from .reports import classify_description
from .roster import GroupRoster
from .service import ExpenseService
from .settlements import SettlementLedgerView, TransactionStatus, format_amount
from .ui import confirm_deletion, pick_members_interactive, select_user_interactive

app = typer.Typer(
    name="groupsplit",
    help="Split group expenses and settle up",
)
users_app = typer.Typer(help="Search the user directory")
groups_app = typer.Typer(help="Create and manage groups")
expense_app = typer.Typer(help="Record shared expenses")
settle_app = typer.Typer(help="Review and confirm settlements")

app.add_typer(users_app, name="users")
app.add_typer(groups_app, name="groups")
app.add_typer(expense_app, name="expense")
app.add_typer(settle_app, name="settle")

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    # Downgrade httpx logging to DEBUG (network requests are too noisy at INFO)
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _run(main: Coroutine[Any, Any, None], verbose: bool):
    """Run an async command body and report any error."""
    try:
        asyncio.run(main)
    except Exception as e:
        message = e.user_message(str(e)) if isinstance(e, APIError) else str(e)
        console.print(f"\n[bold red]Error:[/bold red] {message}")
        if verbose:
            raise
        sys.exit(1)


def _client(settings: Settings) -> LedgerClient:
    return LedgerClient.from_settings(settings)


def _search(client: LedgerClient, settings: Settings) -> DebouncedSearch:
    directory = MembershipDirectory(client, settings.search_min_query_length)
    return DebouncedSearch(directory, delay=settings.search_debounce_seconds)


def print_notice(notices: NoticeBoard):
    """Print the notice currently on the board, if any."""
    notice = notices.current
    if notice is None:
        return
    if notice.kind == NoticeKind.SUCCESS:
        console.print(f"[bold green]✓ {notice.text}[/bold green]")
    else:
        console.print(f"[bold red]✗ {notice.text}[/bold red]")


def display_transactions(
    transactions: list[SettlementTransaction], currency_symbol: str
):
    """Display outstanding settlement transactions in a table."""
    table = Table(title="Settlements", show_header=True, header_style="bold magenta")
    table.add_column("#", style="dim", width=4)
    table.add_column("From", style="cyan")
    table.add_column("To", style="cyan")
    table.add_column("Amount", justify="right")
    table.add_column("Status", style="dim")

    for i, t in enumerate(transactions, start=1):
        table.add_row(
            str(i),
            t.from_name,
            t.to_name,
            f"{currency_symbol}{format_amount(t.amount)}",
            TransactionStatus.PENDING.value,
        )

    console.print(table)


def display_expenses(expenses: list[Expense], currency_symbol: str):
    """Display expense history in a table."""
    table = Table(title="History", show_header=True, header_style="bold magenta")
    table.add_column("Date", style="dim", width=12)
    table.add_column("Description", style="cyan", width=40)
    table.add_column("Category", style="yellow")
    table.add_column("Amount", justify="right")

    for expense in expenses:
        desc = expense.description
        table.add_row(
            expense.date.date().isoformat() if expense.date else "—",
            desc[:40] + "..." if len(desc) > 40 else desc,
            classify_description(desc),
            f"{currency_symbol}{format_amount(expense.amount)}",
        )

    console.print(table)


# ============================================================================
# Users
# ============================================================================


@users_app.command("search")
def users_search(
    query: str = typer.Argument(..., help="Email prefix (at least 2 characters)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Search registered users by email."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            directory = MembershipDirectory(client, settings.search_min_query_length)
            found = await directory.search(query)

        if not found:
            console.print("[yellow]No users found.[/yellow]")
            return

        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Name", style="cyan")
        table.add_column("Email")
        table.add_column("ID", style="dim")
        for user in found:
            table.add_row(user.name, user.email, user.id)
        console.print(table)

    _run(main(), verbose)


# ============================================================================
# Groups
# ============================================================================


@groups_app.command("list")
def groups_list(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List your groups."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            roster = GroupRoster(client, settings.current_user_id)
            groups = await roster.refresh()

        if not groups:
            console.print("[yellow]You are not in any group yet.[/yellow]")
            return

        table = Table(title="Groups", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        table.add_column("Members")
        table.add_column("Balance", justify="right")
        for group in groups:
            table.add_row(
                group.id,
                group.name,
                ", ".join(m.name or m.id for m in group.members),
                f"{settings.currency_symbol}{format_amount(group.total_balance)}",
            )
        console.print(table)

    _run(main(), verbose)


@groups_app.command("create")
def groups_create(
    name: str = typer.Argument(..., help="Group name"),
    member: list[str] = typer.Option(
        [], "--member", "-m", help="User ID to add (repeatable)"
    ),
    pick: bool = typer.Option(
        False, "--pick", "-p", help="Pick members interactively by email"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Create a group with you plus the given members."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            member_ids = list(member)
            if pick:
                selection = await pick_members_interactive(
                    _search(client, settings), settings.current_user_id
                )
                member_ids += selection.ids

            roster = GroupRoster(client, settings.current_user_id)
            group = await roster.create_group(name, member_ids)

        console.print(
            f"[bold green]✓ Created group {group.name!r}[/bold green] "
            f"[dim]({group.id}, {len(group.members)} members)[/dim]"
        )

    _run(main(), verbose)


@groups_app.command("rename")
def groups_rename(
    group_id: str = typer.Argument(..., help="Group ID"),
    new_name: str = typer.Argument(..., help="New name"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Rename a group."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            roster = GroupRoster(client, settings.current_user_id)
            await roster.refresh()
            group = roster.get(group_id)
            updated = await roster.rename_group(group, new_name)

        if updated is group:
            console.print("[yellow]Name unchanged.[/yellow]")
        else:
            console.print(f"[bold green]✓ Renamed to {updated.name!r}[/bold green]")

    _run(main(), verbose)


@groups_app.command("delete")
def groups_delete(
    group_id: str = typer.Argument(..., help="Group ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete a group and all of its expenses."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            roster = GroupRoster(client, settings.current_user_id)
            await roster.refresh()
            group = roster.get(group_id)
            confirm = (lambda _group: True) if yes else confirm_deletion
            deleted = await roster.delete_group(group, confirm)

        if deleted:
            console.print(f"[bold green]✓ Deleted {group.name!r}[/bold green]")
        else:
            console.print("[yellow]Cancelled.[/yellow]")

    _run(main(), verbose)


@groups_app.command("add-member")
def groups_add_member(
    group_id: str = typer.Argument(..., help="Group ID"),
    user_id: str | None = typer.Argument(
        None, help="User ID (omit to search interactively)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a member to a group."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            roster = GroupRoster(client, settings.current_user_id)
            await roster.refresh()
            group = roster.get(group_id)

            target = user_id
            if target is None:
                user = await select_user_interactive(
                    _search(client, settings),
                    prompt="Add member: ",
                    exclude_ids=group.member_ids,
                )
                if user is None:
                    console.print("[yellow]No user selected.[/yellow]")
                    return
                target = user.id

            updated = await roster.add_member(group, target)

        console.print(
            f"[bold green]✓ {updated.member_name(target)} added to "
            f"{updated.name!r}[/bold green]"
        )

    _run(main(), verbose)


# ============================================================================
# Expenses
# ============================================================================


@expense_app.command("add")
def expense_add(
    group_id: str = typer.Argument(..., help="Group ID"),
    amount: str = typer.Argument(..., help="Total amount you paid"),
    description: str = typer.Option("", "--description", "-d", help="What it was for"),
    split_with: list[str] = typer.Option(
        [],
        "--with",
        "-w",
        help="Member ID to split with (repeatable; default: everyone)",
    ),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Record an expense you paid, split equally between you and others."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        notices = NoticeBoard()
        async with _client(settings) as client:
            service = ExpenseService(client, settings, notices)
            form = await service.open_form()
            form.switch_group(group_id)
            form.amount = amount
            form.description = description
            if split_with:
                form.split_with = set()
                for member_id in split_with:
                    form.toggle_member(member_id)

            group = form.group
            assert group is not None
            names = ", ".join(group.member_name(p) for p in form.participants)
            console.print(
                f"\nSplitting between {form.participant_count} people "
                f"(including you): {names}"
            )
            console.print(
                f"  Per person: {settings.currency_symbol}{form.preview}\n"
            )

            if not yes and not typer.confirm("Add this expense?", default=True):
                console.print("[yellow]Cancelled.[/yellow]")
                return

            await service.submit(form)

        print_notice(notices)

    _run(main(), verbose)


@app.command()
def history(
    search: str = typer.Option("", "--search", "-s", help="Filter by description"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show your expense history."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            service = ExpenseService(client, settings)
            expenses = await service.fetch_history(search)

        if not expenses:
            console.print("[yellow]No expenses found.[/yellow]")
            return
        display_expenses(expenses, settings.currency_symbol)

    _run(main(), verbose)


@app.command()
def dashboard(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show spending statistics."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            service = ExpenseService(client, settings)
            summary = await service.summarize()

        symbol = settings.currency_symbol
        console.print("\n[bold]Dashboard:[/bold]")
        console.print(f"  Total spent: {symbol}{summary.total_spent:,.2f}")
        console.print(f"  Transactions: {summary.transaction_count}")
        console.print(f"  Average: {symbol}{summary.average_spent:,.2f}")
        if summary.largest:
            console.print(
                f"  Largest: {summary.largest.description} "
                f"({symbol}{format_amount(summary.largest.amount)})"
            )

    _run(main(), verbose)


# ============================================================================
# Settlements
# ============================================================================


async def _open_view(
    client: LedgerClient, settings: Settings, group_id: str | None
) -> SettlementLedgerView:
    view = SettlementLedgerView(client, settings)
    await view.open(group_id)
    return view


def _print_view(view: SettlementLedgerView, currency_symbol: str):
    if view.is_settled:
        console.print("\n[bold green]✓ All settled up![/bold green]")
        console.print("[dim]No outstanding balances for this group.[/dim]")
    elif view.transactions:
        display_transactions(view.transactions, currency_symbol)


@settle_app.command("list")
def settle_list(
    group_id: str | None = typer.Argument(None, help="Group ID (default: first group)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show who owes whom in a group."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            view = await _open_view(client, settings, group_id)

        print_notice(view.notices)
        _print_view(view, settings.currency_symbol)

    _run(main(), verbose)


@settle_app.command("confirm")
def settle_confirm(
    group_id: str = typer.Argument(..., help="Group ID"),
    number: int = typer.Argument(..., help="Transaction number from `settle list`"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation prompt"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Confirm that a settlement transaction has been paid."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            view = await _open_view(client, settings, group_id)
            index = number - 1
            if not 0 <= index < len(view.transactions):
                console.print(f"[red]No transaction #{number}.[/red]")
                return

            transaction = view.transactions[index]
            if not yes and not typer.confirm(
                f"Confirm {transaction.from_name} paid {transaction.to_name} "
                f"{settings.currency_symbol}{format_amount(transaction.amount)}?"
            ):
                console.print("[yellow]Cancelled.[/yellow]")
                return

            await view.confirm(index)

        print_notice(view.notices)
        _print_view(view, settings.currency_symbol)

    _run(main(), verbose)


@settle_app.command("remind")
def settle_remind(
    group_id: str = typer.Argument(..., help="Group ID"),
    number: int = typer.Argument(..., help="Transaction number from `settle list`"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Nudge the payer of a settlement transaction."""
    setup_logging(verbose)

    async def main():
        settings = load_settings()
        async with _client(settings) as client:
            view = await _open_view(client, settings, group_id)
            view.send_reminder(number - 1)

        print_notice(view.notices)

    _run(main(), verbose)


@app.command()
def mcp():
    """Start the MCP server for assistant integration."""
    run_server()


if __name__ == "__main__":
    app()
