"""Tests for the in-memory document store."""

import asyncio

import pytest

from nutrimyth.adapters.memory_document_store import InMemoryDocumentStore
from nutrimyth.domain.errors import UnknownError


def test_create_only_inserts_missing_documents(store: InMemoryDocumentStore) -> None:
    async def run() -> tuple[bool, bool]:
        first = await store.create("users", "u1", {"totalSearches": 0})
        second = await store.create("users", "u1", {"totalSearches": 9})
        return first, second

    assert asyncio.run(run()) == (True, False)
    assert store.documents[("users", "u1")] == {"totalSearches": 0}
    assert store.writes == [("create", "users", "u1")]


def test_update_and_increment_require_existing_document(
    store: InMemoryDocumentStore,
) -> None:
    with pytest.raises(UnknownError):
        asyncio.run(store.update("users", "u1", {"totalSearches": 1}))
    with pytest.raises(UnknownError):
        asyncio.run(store.increment("users", "u1", "mythsDebunked", 1))

    assert store.documents == {}
    assert store.writes == []


def test_failing_initial_delivery_drops_listener(
    store: InMemoryDocumentStore,
) -> None:
    def on_change(_document) -> None:
        raise RuntimeError("consumer bug")

    with pytest.raises(RuntimeError):
        asyncio.run(store.subscribe("users", "u1", on_change, pytest.fail))

    assert store.listener_count("users", "u1") == 0
