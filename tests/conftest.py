"""Shared fixtures for GroupSplit tests."""

from unittest.mock import MagicMock

import httpx
import pytest

from groupsplit.clients.ledger import LedgerClient
from groupsplit.config import Settings
from groupsplit.models import Group, User
from groupsplit.notices import NoticeBoard


@pytest.fixture
def settings():
    """Create test settings."""
    return Settings(
        ledger_api_url="https://ledger.test",
        ledger_api_token="test_token",
        current_user_id="u-alice",
        search_debounce_seconds=0.05,
    )


@pytest.fixture
def alice():
    return User(id="u-alice", name="Alice", email="alice@example.com")


@pytest.fixture
def bob():
    return User(id="u-bob", name="Bob", email="bob@example.com")


@pytest.fixture
def carol():
    return User(id="u-carol", name="Carol", email="carol@example.com")


@pytest.fixture
def dave():
    return User(id="u-dave", name="Dave", email="dave@example.com")


@pytest.fixture
def trip(alice, bob, carol, dave):
    """A four-member group."""
    return Group(id="g-trip", name="Trip", members=[alice, bob, carol, dave])


@pytest.fixture
def flat(alice, bob):
    """A two-member group."""
    return Group(id="g-flat", name="Flat", members=[alice, bob])


@pytest.fixture
def mock_client():
    """A LedgerClient whose async methods are AsyncMocks."""
    return MagicMock(spec=LedgerClient)


@pytest.fixture
def scheduled():
    """Timers registered through the notice scheduler, as (delay, callback)."""
    return []


@pytest.fixture
def notices(scheduled):
    """A notice board whose timers are captured instead of run."""
    return NoticeBoard(scheduler=lambda delay, callback: scheduled.append((delay, callback)))



@pytest.fixture
def http_responses():
    """Canned (status, JSON body) pairs keyed by (method, path)."""
    return {}


@pytest.fixture
def http_requests():
    """Requests that reached the mock transport."""
    return []


@pytest.fixture
def ledger_client(http_responses, http_requests):
    """A real LedgerClient answering from ``http_responses``."""

    def handler(request: httpx.Request) -> httpx.Response:
        http_requests.append(request)
        status_code, body = http_responses[(request.method, request.url.path)]
        return httpx.Response(status_code, json=body)

    return LedgerClient(
        "https://ledger.test", "tok", transport=httpx.MockTransport(handler)
    )
