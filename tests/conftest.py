"""Shared test fixtures."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from jabber.ledger.store import LedgerStore
from jabber.memory.store import ConversationStore
from jabber.router import RequestRouter
from jabber.upstream.base import UpstreamResult


@pytest.fixture
def conversations() -> ConversationStore:
    return ConversationStore(max_messages=10)


@pytest.fixture
def ledger() -> LedgerStore:
    return LedgerStore(max_entries=50)


@pytest.fixture
def chat_client() -> MagicMock:
    """A configured chat client that always answers ``Hello there``."""
    client = MagicMock()
    client.provider = "openai"
    client.configured = True
    client.complete = AsyncMock(return_value=UpstreamResult.ok("Hello there"))
    return client


@pytest.fixture
def image_client() -> MagicMock:
    client = MagicMock()
    client.configured = True
    client.generate = AsyncMock(return_value=UpstreamResult.ok("https://img.example/1.png"))
    return client


@pytest.fixture
def search_client() -> MagicMock:
    client = MagicMock()
    client.search = AsyncMock(return_value=UpstreamResult.ok(["Paris is the capital of France."]))
    return client


@pytest.fixture
def router(chat_client, image_client, search_client, conversations, ledger) -> RequestRouter:
    """A router wired to mocked upstream clients and real in-memory stores."""
    return RequestRouter(
        chat_client=chat_client,
        image_client=image_client,
        search_client=search_client,
        conversations=conversations,
        ledger=ledger,
        context_window=4,
        prompt_note_count=3,
    )
