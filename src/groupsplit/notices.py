"""Transient user-facing notices with timed auto-clear."""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from pydantic import BaseModel

logger = logging.getLogger(__name__)

Scheduler = Callable[[float, Callable[[], None]], object]


class NoticeKind(str, Enum):
    """Visual kind of a notice."""

    SUCCESS = "success"
    ERROR = "error"


class Notice(BaseModel):
    """A single message shown to the user."""

    text: str
    kind: NoticeKind


def _call_later(delay: float, callback: Callable[[], None]) -> object:
    return asyncio.get_running_loop().call_later(delay, callback)


class NoticeBoard:
    """Holds the one notice currently on screen.

    Posting replaces the current notice (last write wins). A notice posted
    with ``clear_after`` schedules an unconditional clear; timers are never
    cancelled, so an earlier timer may clear a later notice.
    """

    def __init__(self, scheduler: Scheduler | None = None):
        """Initialize the board. ``scheduler(delay, callback)`` defaults to the running loop."""
        self.current: Notice | None = None
        self._schedule = scheduler or _call_later

    @property
    def text(self) -> str:
        """Current notice text, empty when nothing is shown."""
        return self.current.text if self.current else ""

    def post(
        self, text: str, kind: NoticeKind, clear_after: float | None = None
    ) -> Notice:
        """Show a notice, optionally clearing the board after ``clear_after`` seconds."""
        notice = Notice(text=text, kind=kind)
        self.current = notice
        logger.debug(f"Notice ({kind.value}): {text}")

        if clear_after is not None:
            try:
                self._schedule(clear_after, self.clear)
            except RuntimeError:
                logger.warning(f"No running event loop; notice will not auto-clear: {text}")
        return notice

    def success(self, text: str, clear_after: float | None = None) -> Notice:
        """Post a success notice."""
        return self.post(text, NoticeKind.SUCCESS, clear_after)

    def error(self, text: str) -> Notice:
        """Post an error notice. Errors stay until replaced or cleared."""
        return self.post(text, NoticeKind.ERROR)

    def clear(self):
        """Remove the current notice."""
        self.current = None
