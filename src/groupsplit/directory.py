"""User directory search with debouncing."""

import asyncio
import logging

from .clients.ledger import LedgerClient
from .exceptions import APIError
from .models import User

logger = logging.getLogger(__name__)


class MembershipDirectory:
    """Resolves search queries to candidate users."""

    def __init__(self, client: LedgerClient, min_query_length: int = 2):
        """Initialize the directory."""
        self.client = client
        self.min_query_length = min_query_length

    async def search(self, query: str) -> list[User]:
        """
        Look up users by email prefix.

        Queries shorter than ``min_query_length`` never reach the network.
        Failures are logged and yield an empty result.

        Args:
            query: Email prefix typed by the user

        Returns:
            Matching users, possibly empty
        """
        if len(query) < self.min_query_length:
            return []

        try:
            return await self.client.search_users(query)
        except APIError as e:
            logger.warning(f"User search for {query!r} failed: {e}")
            return []


class DebouncedSearch:
    """Coalesces rapid queries into one lookup; the latest query always wins.

    Every ``request`` takes a new generation number. A request only reaches
    the directory if no newer request arrived during the debounce window,
    and its result is only applied if no newer request arrived while the
    lookup was in flight.
    """

    def __init__(self, directory: MembershipDirectory, delay: float = 0.5):
        """Initialize the debouncer."""
        self.directory = directory
        self.delay = delay
        self.query = ""
        self.results: list[User] = []
        self._generation = 0

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def request(self, query: str) -> list[User] | None:
        """
        Schedule a lookup for ``query``.

        Returns:
            The applied results, or ``None`` if a newer query superseded
            this one (before or after the lookup ran)
        """
        self._generation += 1
        generation = self._generation
        self.query = query

        await asyncio.sleep(self.delay)
        if not self._is_current(generation):
            logger.debug(f"Search for {query!r} superseded during debounce")
            return None

        results = await self.directory.search(query)
        if not self._is_current(generation):
            logger.debug(f"Discarding stale results for {query!r}")
            return None

        self.results = results
        return results

    def reset(self):
        """Forget the current query and results, invalidating in-flight lookups."""
        self._generation += 1
        self.query = ""
        self.results = []
