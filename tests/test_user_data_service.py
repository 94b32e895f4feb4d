"""Tests for user data mutations."""

import asyncio
import math

import pytest

from nutrimyth.adapters.memory_document_store import InMemoryDocumentStore
from nutrimyth.domain.errors import InvalidArgument, StoreUnavailable
from nutrimyth.domain.models import (
    SEARCH_HISTORY_LIMIT,
    USERS_COLLECTION,
    record_from_document,
)
from nutrimyth.services.user_data import UserDataService


def _stored(store: InMemoryDocumentStore, identity: str = "u1"):
    return record_from_document(store.documents[(USERS_COLLECTION, identity)])


def test_add_favorites_keeps_distinct_ids_and_calories(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    async def run() -> None:
        await user_data.add_favorite("u1", name="Apple", calories=95)
        await user_data.add_favorite("u1", name="Rice", calories=216)

    asyncio.run(run())

    favorites = _stored(store).favorites
    assert [food.name for food in favorites] == ["Apple", "Rice"]
    assert [food.calories for food in favorites] == [95, 216]
    assert favorites[0].id != favorites[1].id
    assert all(food.added_at > 0 for food in favorites)


def test_favorites_stay_unique_across_add_and_remove(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    async def run() -> None:
        added = [
            await user_data.add_favorite("u1", name=f"Food {index}", calories=index)
            for index in range(6)
        ]
        await user_data.remove_favorite("u1", added[2].id)
        await user_data.remove_favorite("u1", added[4].id)
        await user_data.add_favorite("u1", name="Late", calories=1)

    asyncio.run(run())

    ids = [food.id for food in _stored(store).favorites]
    assert len(ids) == 5
    assert len(set(ids)) == len(ids)


def test_remove_missing_favorite_is_noop(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    async def run() -> None:
        await user_data.remove_favorite("u1", "nonexistent-id")
        writes_after_first = len(store.writes)
        await user_data.remove_favorite("u1", "nonexistent-id")
        assert len(store.writes) == writes_after_first

    asyncio.run(run())

    assert _stored(store).favorites == ()


def test_add_favorite_validates_input(user_data: UserDataService) -> None:
    with pytest.raises(InvalidArgument):
        asyncio.run(user_data.add_favorite("u1", name=" ", calories=10))
    with pytest.raises(InvalidArgument):
        asyncio.run(user_data.add_favorite("u1", name="Apple", calories=-1))
    with pytest.raises(InvalidArgument):
        asyncio.run(user_data.add_favorite("u1", name="Apple", calories=math.nan))


def test_search_history_is_bounded_and_newest_first(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    async def run() -> list[str]:
        added = []
        for index in range(55):
            entry = await user_data.add_search_entry("u1", f"Food {index}")
            added.append(entry.id)
            assert len(_stored(store).search_history) <= SEARCH_HISTORY_LIMIT
        return added

    added_ids = asyncio.run(run())

    record = _stored(store)
    assert len(record.search_history) == SEARCH_HISTORY_LIMIT
    assert record.total_searches == 55
    assert [entry.id for entry in record.search_history] == list(
        reversed(added_ids[-SEARCH_HISTORY_LIMIT:])
    )
    assert record.search_history[0].food_name == "Food 54"


def test_repeated_search_for_same_food(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    async def run() -> None:
        for _ in range(55):
            await user_data.add_search_entry("u1", "Banana")

    asyncio.run(run())

    record = _stored(store)
    assert len(record.search_history) == 50
    assert record.total_searches == 55
    assert record.search_history[0].food_name == "Banana"


def test_search_entry_writes_history_and_count_in_one_update(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    asyncio.run(user_data.add_search_entry("u1", "Oats"))

    updates = [op for op, _, _ in store.writes if op == "update"]
    assert updates == ["update"]


def test_add_search_entry_rejects_empty_name(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    with pytest.raises(InvalidArgument):
        asyncio.run(user_data.add_search_entry("u1", ""))

    assert store.writes == []


def test_concurrent_myth_increments_are_not_lost(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    async def run() -> None:
        await user_data.increment_myths_debunked("u1")
        await asyncio.gather(
            *(user_data.increment_myths_debunked("u1") for _ in range(25))
        )

    asyncio.run(run())

    assert _stored(store).myths_debunked == 26


def test_set_daily_goal_replaces_goal(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    goal = asyncio.run(user_data.set_daily_goal("u1", 1800, 420))

    assert goal.target_calories == 1800
    assert _stored(store).daily_goal == goal


def test_set_daily_goal_rejects_negative_values(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    asyncio.run(user_data.get_record("u1"))
    before = dict(store.documents[(USERS_COLLECTION, "u1")])

    with pytest.raises(InvalidArgument):
        asyncio.run(user_data.set_daily_goal("u1", -100, 0))
    with pytest.raises(InvalidArgument):
        asyncio.run(user_data.set_daily_goal("u1", 2000, math.inf))

    assert store.documents[(USERS_COLLECTION, "u1")] == before


def test_mutation_surfaces_store_outage(
    store: InMemoryDocumentStore, user_data: UserDataService
) -> None:
    asyncio.run(user_data.get_record("u1"))
    store.available = False

    with pytest.raises(StoreUnavailable):
        asyncio.run(user_data.add_favorite("u1", name="Apple", calories=95))
