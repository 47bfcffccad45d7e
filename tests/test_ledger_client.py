"""Tests for the ledger HTTP client."""

import asyncio
import json

import httpx
import pytest

from groupsplit.clients.ledger import LedgerClient
from groupsplit.exceptions import (
    ConflictError,
    NetworkError,
    NotFoundError,
    ServerError,
)
from groupsplit.models import ExpenseDraft, ExpenseShare


def call(handler, method: str, *args):
    """Run one client method against a mock transport."""

    async def main():
        transport = httpx.MockTransport(handler)
        async with LedgerClient("https://ledger.test", "tok", transport=transport) as client:
            return await getattr(client, method)(*args)

    return asyncio.run(main())


@pytest.fixture
def requests():
    """Requests seen by the mock transport."""
    return []


def responder(requests, status_code=200, body=None):
    """Build a handler that records requests and returns a canned response."""

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    return handler


class TestRequests:
    """Tests for request shapes and response parsing."""

    def test_search_users(self, requests):
        """Directory search sends the email prefix with the bearer token."""
        handler = responder(
            requests, body=[{"_id": "u1", "name": "Alice", "email": "alice@example.com"}]
        )

        users = call(handler, "search_users", "al")

        request = requests[0]
        assert request.method == "GET"
        assert request.url.path == "/auth/users"
        assert request.url.params["email"] == "al"
        assert request.headers["Authorization"] == "Bearer tok"
        assert users[0].email == "alice@example.com"

    def test_create_group(self, requests):
        """Group creation posts the name and member ids."""
        handler = responder(
            requests, status_code=201, body={"_id": "g1", "name": "Trip", "members": ["u1", "u2"]}
        )

        group = call(handler, "create_group", "Trip", ["u2"])

        assert requests[0].method == "POST"
        assert json.loads(requests[0].content) == {"name": "Trip", "members": ["u2"]}
        assert group.member_ids == ["u1", "u2"]

    def test_add_member(self, requests):
        """Adding a member patches the members sub-resource."""
        handler = responder(requests, body={"_id": "g1", "name": "Trip", "members": ["u1", "u3"]})

        group = call(handler, "add_member", "g1", "u3")

        assert requests[0].method == "PATCH"
        assert requests[0].url.path == "/groups/g1/members"
        assert json.loads(requests[0].content) == {"userId": "u3"}
        assert group.has_member("u3")

    def test_rename_group(self, requests):
        """Renaming patches the group."""
        handler = responder(requests, body={"_id": "g1", "name": "Holiday"})

        group = call(handler, "rename_group", "g1", "Holiday")

        assert requests[0].url.path == "/groups/g1"
        assert json.loads(requests[0].content) == {"name": "Holiday"}
        assert group.name == "Holiday"

    def test_delete_group_with_empty_body(self, requests):
        """Deletion tolerates an empty response body."""
        handler = responder(requests, status_code=204)

        assert call(handler, "delete_group", "g1") is None
        assert requests[0].method == "DELETE"

    def test_create_expense(self, requests):
        """Expense creation posts the aliased draft payload."""
        draft = ExpenseDraft(
            group="g1",
            description="Dinner",
            amount=30.0,
            paid_by="u1",
            split_between=[
                ExpenseShare(user="u1", share=15.0),
                ExpenseShare(user="u2", share=15.0),
            ],
        )
        handler = responder(requests, status_code=201, body={"_id": "e1", **draft.to_payload()})

        expense = call(handler, "create_expense", draft)

        assert json.loads(requests[0].content) == draft.to_payload()
        assert expense.id == "e1"
        assert expense.paid_by == "u1"

    def test_get_settlements_preserves_order(self, requests):
        """Transactions come back in ledger order."""
        body = [
            {"fromId": "u3", "from": "Carol", "toId": "u1", "to": "Alice", "amount": 10},
            {"fromId": "u2", "from": "Bob", "toId": "u1", "to": "Alice", "amount": 50},
        ]
        handler = responder(requests, body=body)

        transactions = call(handler, "get_settlements", "g1")

        assert requests[0].url.path == "/settlements/g1"
        assert [t.from_name for t in transactions] == ["Carol", "Bob"]

    def test_settle(self, requests):
        """Settling posts group, parties and amount."""
        handler = responder(requests, body={"msg": "Settled"})

        call(handler, "settle", "g1", "u2", "u1", 50.0)

        assert requests[0].url.path == "/settlements/settle"
        assert json.loads(requests[0].content) == {
            "groupId": "g1",
            "fromId": "u2",
            "toId": "u1",
            "amount": 50.0,
        }


class TestErrors:
    """Tests for error translation."""

    def test_conflict_uses_msg_field(self, requests):
        """409 maps to ConflictError carrying the server's ``msg``."""
        handler = responder(requests, status_code=409, body={"msg": "User already in group"})

        with pytest.raises(ConflictError) as exc_info:
            call(handler, "add_member", "g1", "u2")

        assert exc_info.value.status_code == 409
        assert exc_info.value.server_message == "User already in group"

    def test_not_found_uses_message_field(self, requests):
        """404 maps to NotFoundError carrying the server's ``message``."""
        handler = responder(requests, status_code=404, body={"message": "User not found"})

        with pytest.raises(NotFoundError) as exc_info:
            call(handler, "add_member", "g1", "u9")

        assert exc_info.value.user_message("Error adding member") == "User not found"

    def test_server_error_without_message_falls_back(self, requests):
        """Other failures map to ServerError; the fallback text is used."""
        handler = responder(requests, status_code=500)

        with pytest.raises(ServerError) as exc_info:
            call(handler, "get_groups")

        assert exc_info.value.server_message is None
        assert exc_info.value.user_message("Failed") == "Failed"

    def test_transport_failure_is_network_error(self):
        """Connection failures map to NetworkError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError):
            call(handler, "get_groups")

    def test_wrong_shape_list_body_is_network_error(self, requests):
        """A 2xx body that is not a list of users fails like a network error."""
        handler = responder(requests, body={"msg": "No users found"})

        with pytest.raises(NetworkError):
            call(handler, "search_users", "al")

    def test_invalid_transaction_row_is_network_error(self, requests):
        """A settlement row the model rejects fails like a network error."""
        body = [{"fromId": "u2", "from": "Bob", "toId": "u1", "to": "Alice", "amount": 0}]
        handler = responder(requests, body=body)

        with pytest.raises(NetworkError):
            call(handler, "get_settlements", "g1")

    def test_wrong_shape_group_body_is_network_error(self, requests):
        """A group endpoint answering with a bare message fails like a network error."""
        handler = responder(requests, body={"message": "ok"})

        with pytest.raises(NetworkError):
            call(handler, "rename_group", "g1", "Holiday")

    def test_created_expense_without_record_uses_draft(self, requests):
        """A recorded expense whose reply is just a message is rebuilt from the draft."""
        draft = ExpenseDraft(
            group="g1",
            description="Dinner",
            amount=30.0,
            paid_by="u1",
            split_between=[
                ExpenseShare(user="u1", share=15.0),
                ExpenseShare(user="u2", share=15.0),
            ],
        )
        handler = responder(requests, status_code=201, body={"message": "Expense added"})

        expense = call(handler, "create_expense", draft)

        assert len(requests) == 1
        assert expense.id is None
        assert expense.amount == 30.0
        assert expense.group == "g1"
        assert [s.user for s in expense.split_between] == ["u1", "u2"]
