"""Group roster: creation, membership and lifecycle of groups."""

import logging
from collections.abc import Callable, Iterable

from .clients.ledger import LedgerClient
from .exceptions import ConflictError, NotFoundError, ValidationError
from .models import Group, User

logger = logging.getLogger(__name__)


def deletion_warning(group: Group) -> str:
    """Confirmation question shown before a group is deleted."""
    return (
        f'Are you sure you want to delete "{group.name}"? '
        f"This will also delete all associated expenses."
    )


class MemberSelection:
    """Users picked as initial members while creating a group.

    Behaves as a set keyed by user id: toggling the same user twice leaves
    the selection unchanged.
    """

    def __init__(self):
        """Initialize an empty selection."""
        self._selected: dict[str, User] = {}

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._selected

    def __len__(self) -> int:
        return len(self._selected)

    def toggle(self, user: User) -> bool:
        """Flip a user's membership in the selection. Returns the new state."""
        if user.id in self._selected:
            del self._selected[user.id]
            return False
        self._selected[user.id] = user
        return True

    @property
    def users(self) -> list[User]:
        """Selected users in the order they were picked."""
        return list(self._selected.values())

    @property
    def ids(self) -> list[str]:
        """Selected user ids in the order they were picked."""
        return list(self._selected)

    def clear(self):
        """Drop every selected user."""
        self._selected.clear()


class GroupRoster:
    """Source of truth for which users belong to which group."""

    def __init__(self, client: LedgerClient, current_user_id: str):
        """Initialize the roster."""
        self.client = client
        self.current_user_id = current_user_id
        self.groups: list[Group] = []

    def _store(self, group: Group):
        for i, existing in enumerate(self.groups):
            if existing.id == group.id:
                self.groups[i] = group
                return
        self.groups.append(group)

    async def refresh(self) -> list[Group]:
        """Reload every group from the ledger."""
        self.groups = await self.client.get_groups()
        logger.debug(f"Loaded {len(self.groups)} groups")
        return self.groups

    def get(self, group_id: str) -> Group:
        """Look up a loaded group by id."""
        for group in self.groups:
            if group.id == group_id:
                return group
        raise NotFoundError(f"Group {group_id} not found")

    async def create_group(self, name: str, initial_member_ids: Iterable[str]) -> Group:
        """
        Create a group.

        Args:
            name: Group name; must contain a non-whitespace character
            initial_member_ids: Members to add besides the creator. The
                creator is dropped if present and duplicates collapse.

        Returns:
            The created group
        """
        if not name.strip():
            raise ValidationError("Group name is required")

        member_ids = list(
            dict.fromkeys(m for m in initial_member_ids if m != self.current_user_id)
        )
        group = await self.client.create_group(name, member_ids)
        self._store(group)
        return group

    async def add_member(self, group: Group, user_id: str) -> Group:
        """Add a user to a group. Raises ``ConflictError`` if already a member."""
        if group.has_member(user_id):
            raise ConflictError(
                f"User {user_id} is already a member of {group.name!r}",
                server_message="User is already a member of this group",
            )

        updated = await self.client.add_member(group.id, user_id)
        self._store(updated)
        logger.info(f"Added {user_id} to group {group.id}")
        return updated

    async def rename_group(self, group: Group, new_name: str) -> Group:
        """Rename a group. Blank or unchanged names are a no-op."""
        if not new_name.strip() or new_name == group.name:
            logger.debug(f"Rename of group {group.id} skipped")
            return group

        updated = await self.client.rename_group(group.id, new_name)
        self._store(updated)
        logger.info(f"Renamed group {group.id}: {group.name!r} -> {new_name!r}")
        return updated

    async def delete_group(
        self, group: Group, confirm: Callable[[Group], bool]
    ) -> bool:
        """
        Delete a group after explicit confirmation.

        Deletion is irreversible and cascades to the group's expenses on the
        ledger side.

        Args:
            group: Group to delete
            confirm: Asked once; deletion only happens if it returns True

        Returns:
            True if the group was deleted, False if the user declined
        """
        if not confirm(group):
            logger.info(f"Deletion of group {group.id} cancelled")
            return False

        await self.client.delete_group(group.id)
        self.groups = [g for g in self.groups if g.id != group.id]
        return True
