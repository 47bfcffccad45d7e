"""Custom exceptions for GroupSplit."""


class GroupSplitError(Exception):
    """Base exception for all GroupSplit errors."""

    pass


class ConfigurationError(GroupSplitError):
    """Raised when configuration is invalid or missing."""

    pass


class ValidationError(GroupSplitError):
    """Raised when user input is rejected before any network call is made."""

    pass


class APIError(GroupSplitError):
    """Base class for ledger API errors.

    ``server_message`` is the human-readable ``message``/``msg`` field of the
    error body, if the server sent one. It is shown to the user verbatim.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        server_message: str | None = None,
    ):
        self.status_code = status_code
        self.server_message = server_message
        super().__init__(message)

    def user_message(self, fallback: str) -> str:
        """Text to show the user: the server's message, else ``fallback``."""
        return self.server_message or fallback


class ConflictError(APIError):
    """Raised when a change conflicts with existing state (e.g. duplicate member)."""

    pass


class NotFoundError(APIError):
    """Raised when a user, group or transaction does not exist."""

    pass


class ServerError(APIError):
    """Raised when the ledger service rejects a request for any other reason."""

    pass


class NetworkError(APIError):
    """Raised when the ledger service cannot be reached."""

    pass
