"""Ledger service API client."""

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from ..config import Settings
from ..exceptions import (
    APIError,
    ConflictError,
    NetworkError,
    NotFoundError,
    ServerError,
)
from ..models import Expense, ExpenseDraft, Group, SettlementTransaction, User

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_STATUS_ERRORS: dict[int, type[APIError]] = {
    404: NotFoundError,
    409: ConflictError,
}


def _parse(model: type[M], data: Any, where: str) -> M:
    """Validate one response object, treating a malformed body as a failed call."""
    try:
        return model.model_validate(data)
    except SchemaError as e:
        raise NetworkError(
            f"{where} returned an unexpected {model.__name__} body"
        ) from e


def _parse_list(model: type[M], data: Any, where: str) -> list[M]:
    """Validate a JSON array response; an empty body is an empty list."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise NetworkError(f"{where} returned {type(data).__name__}, expected a list")
    return [_parse(model, item, where) for item in data]


def _server_message(response: httpx.Response) -> str | None:
    """Extract the human-readable ``message``/``msg`` from an error body."""
    try:
        data = response.json()
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    message = data.get("message") or data.get("msg")
    return str(message) if message else None


def raise_for_status(response: httpx.Response) -> None:
    """Translate a non-2xx response into the matching ``APIError`` subclass."""
    if response.is_success:
        return

    server_message = _server_message(response)
    error_cls = _STATUS_ERRORS.get(response.status_code, ServerError)
    request = response.request
    raise error_cls(
        f"{request.method} {request.url.path} failed with "
        f"{response.status_code}: {server_message or response.reason_phrase}",
        status_code=response.status_code,
        server_message=server_message,
    )


class LedgerClient:
    """Async client for the group ledger / user directory service.

    Authentication is a bearer token obtained elsewhere; this client only
    attaches it.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the ledger client."""
        self.base_url = base_url
        self.client = httpx.AsyncClient(
            base_url=base_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "LedgerClient":
        """Build a client from application settings."""
        return cls(
            base_url=settings.ledger_api_url,
            token=settings.ledger_api_token,
            timeout=settings.request_timeout,
        )

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        """Send a request and return the decoded JSON body (``None`` if empty)."""
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise NetworkError(f"{method} {path} failed: {e}") from e

        raise_for_status(response)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"{method} {path} returned invalid JSON") from e

    # ========================================================================
    # Directory
    # ========================================================================

    async def search_users(self, email_prefix: str) -> list[User]:
        """Find users whose email starts with ``email_prefix``."""
        data = await self._request(
            "GET", "/auth/users", params={"email": email_prefix}
        )
        return _parse_list(User, data, "GET /auth/users")

    # ========================================================================
    # Groups
    # ========================================================================

    async def get_groups(self) -> list[Group]:
        """Get all groups the current user belongs to."""
        data = await self._request("GET", "/groups")
        return _parse_list(Group, data, "GET /groups")

    async def create_group(self, name: str, member_ids: list[str]) -> Group:
        """
        Create a group.

        Args:
            name: Group name
            member_ids: Initial members, excluding the creator (the service
                adds the creator itself)

        Returns:
            The created group
        """
        data = await self._request(
            "POST", "/groups", json={"name": name, "members": member_ids}
        )
        group = _parse(Group, data, "POST /groups")
        logger.info(f"Created group {group.id} ({group.name!r})")
        return group

    async def rename_group(self, group_id: str, name: str) -> Group:
        """Rename a group."""
        path = f"/groups/{group_id}"
        data = await self._request("PATCH", path, json={"name": name})
        return _parse(Group, data, f"PATCH {path}")

    async def add_member(self, group_id: str, user_id: str) -> Group:
        """Add a user to a group."""
        path = f"/groups/{group_id}/members"
        data = await self._request("PATCH", path, json={"userId": user_id})
        return _parse(Group, data, f"PATCH {path}")

    async def delete_group(self, group_id: str) -> None:
        """Delete a group and, server-side, all of its expenses."""
        await self._request("DELETE", f"/groups/{group_id}")
        logger.info(f"Deleted group {group_id}")

    # ========================================================================
    # Expenses
    # ========================================================================

    async def create_expense(self, draft: ExpenseDraft) -> Expense:
        """Submit an expense draft to the ledger.

        A 2xx response means the expense was recorded. If the body is not an
        expense record, the expense is rebuilt from the submitted draft and
        has no id.
        """
        payload = draft.to_payload()
        data = await self._request("POST", "/expenses", json=payload)
        try:
            expense = Expense.model_validate(data)
        except SchemaError:
            logger.warning("POST /expenses returned no expense record; using the draft")
            expense = Expense.model_validate(payload)
        logger.info(
            f"Created expense {expense.id}: {draft.amount} split "
            f"{len(draft.split_between)} ways"
        )
        return expense

    async def get_expenses(self) -> list[Expense]:
        """Get the current user's expense history."""
        data = await self._request("GET", "/expenses")
        return _parse_list(Expense, data, "GET /expenses")

    # ========================================================================
    # Settlements
    # ========================================================================

    async def get_settlements(self, group_id: str) -> list[SettlementTransaction]:
        """Get the minimal set of outstanding transactions for a group.

        Order is preserved exactly as the service returns it.
        """
        path = f"/settlements/{group_id}"
        data = await self._request("GET", path)
        return _parse_list(SettlementTransaction, data, f"GET {path}")

    async def settle(
        self, group_id: str, from_id: str, to_id: str, amount: float
    ) -> None:
        """Record that ``from_id`` paid ``to_id`` ``amount`` within a group."""
        await self._request(
            "POST",
            "/settlements/settle",
            json={
                "groupId": group_id,
                "fromId": from_id,
                "toId": to_id,
                "amount": amount,
            },
        )
        logger.info(f"Settled {amount} from {from_id} to {to_id} in group {group_id}")
