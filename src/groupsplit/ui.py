"""Interactive UI components for picking users."""

import logging
from collections.abc import AsyncGenerator, Iterable
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .directory import DebouncedSearch
from .models import Group, User
from .roster import MemberSelection, deletion_warning

logger = logging.getLogger(__name__)


class UserCompleter(Completer):
    """Completes email addresses from the debounced directory search."""

    def __init__(self, search: DebouncedSearch, exclude_ids: Iterable[str] = ()):
        """Initialize the completer."""
        self.search = search
        self.exclude_ids = set(exclude_ids)
        self.by_email: dict[str, User] = {}

    def get_completions(self, document: Document, complete_event: Any):
        """Lookups are remote, so only the async path yields completions."""
        yield from ()

    async def get_completions_async(
        self, document: Document, complete_event: Any
    ) -> AsyncGenerator[Completion, None]:
        """Yield users for the latest query once the debounce window has passed."""
        results = await self.search.request(document.text)
        if results is None:
            return

        for user in results:
            if user.id in self.exclude_ids:
                continue
            self.by_email[user.email] = user
            yield Completion(
                text=user.email,
                start_position=-len(document.text),
                display=user.label,
            )


async def select_user_interactive(
    search: DebouncedSearch,
    prompt: str = "Email: ",
    exclude_ids: Iterable[str] = (),
) -> User | None:
    """
    Interactive user selection with search-as-you-type.

    Args:
        search: Debounced directory search feeding the completions
        prompt: Prompt text
        exclude_ids: Users that must not be offered (e.g. existing members)

    Returns:
        The selected user, or None to stop
    """
    excluded = set(exclude_ids)
    completer = UserCompleter(search, excluded)
    session: PromptSession[str] = PromptSession(completer=completer)

    print("   Type at least 2 characters of an email, Enter to pick, empty to finish\n")

    try:
        while True:
            result = (
                await session.prompt_async(prompt, complete_while_typing=True)
            ).strip()

            if not result:
                return None

            user = completer.by_email.get(result)
            if user is None:
                # Full email typed without waiting for completions
                matches = await search.directory.search(result)
                user = next(
                    (u for u in matches if u.email == result and u.id not in excluded),
                    None,
                )

            if user is not None:
                logger.info(f"User selected: {user.label}")
                return user

            print("Unknown user. Pick from the suggestions or press Tab to complete.")

    except (KeyboardInterrupt, EOFError):
        return None


async def pick_members_interactive(
    search: DebouncedSearch, current_user_id: str
) -> MemberSelection:
    """Build a member selection; picking someone twice removes them again."""
    selection = MemberSelection()

    while True:
        user = await select_user_interactive(
            search, prompt="Add member: ", exclude_ids=[current_user_id]
        )
        if user is None:
            return selection

        if selection.toggle(user):
            print(f"   + {user.label}")
        else:
            print(f"   - {user.label}")

        names = ", ".join(u.name or u.email for u in selection.users) or "nobody"
        print(f"   Selected: {names}\n")


def confirm_deletion(group: Group) -> bool:
    """Ask before deleting a group. Defaults to no."""
    response = input(f"\n{deletion_warning(group)} [y/N] ").strip().lower()
    return response in ("y", "yes")
