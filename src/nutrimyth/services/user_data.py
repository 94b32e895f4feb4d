"""Mutations of the per-user favorites, history, counters and goal."""

import logging
import math
from dataclasses import dataclass
from uuid import uuid4

from nutrimyth.domain.errors import InvalidArgument
from nutrimyth.domain.models import (
    SEARCH_HISTORY_LIMIT,
    USERS_COLLECTION,
    DailyGoal,
    FavoriteFood,
    SearchEntry,
    UserRecord,
    daily_goal_to_document,
    favorite_to_document,
    now_millis,
    search_entry_to_document,
)
from nutrimyth.services.bootstrap import BootstrapService
from nutrimyth.services.store import DocumentStore

logger = logging.getLogger(__name__)


@dataclass
class UserDataService:
    """Application service for user data writes.

    Favorites and history are written read-modify-write, so two devices
    writing the same list at once can lose one change (last write wins).
    Counters use the store's atomic increment instead.
    """

    store: DocumentStore
    bootstrap: BootstrapService

    async def get_record(self, identity: str) -> UserRecord:
        """Return a fresh read of the user's record."""
        return await self.bootstrap.ensure(identity)

    async def add_favorite(
        self, identity: str, name: str, calories: float
    ) -> FavoriteFood:
        """Append a favorite food and return it."""
        cleaned_name = (name or "").strip()
        if not cleaned_name:
            raise InvalidArgument("Favorite name must not be empty")
        _require_non_negative("calories", calories)

        record = await self.bootstrap.ensure(identity)
        taken = {food.id for food in record.favorites}
        food = FavoriteFood(
            id=_new_id(taken),
            name=cleaned_name,
            calories=float(calories),
            added_at=now_millis(),
        )
        favorites = [*record.favorites, food]
        await self.store.update(
            USERS_COLLECTION,
            identity,
            {"favorites": [favorite_to_document(item) for item in favorites]},
        )
        return food

    async def remove_favorite(self, identity: str, food_id: str) -> None:
        """Remove a favorite by id; unknown ids are ignored."""
        record = await self.bootstrap.ensure(identity)
        remaining = [food for food in record.favorites if food.id != food_id]
        if len(remaining) == len(record.favorites):
            logger.debug("Favorite %s not found for %s", food_id, identity)
            return
        await self.store.update(
            USERS_COLLECTION,
            identity,
            {"favorites": [favorite_to_document(item) for item in remaining]},
        )

    async def add_search_entry(self, identity: str, food_name: str) -> SearchEntry:
        """Record a search, keeping only the most recent entries."""
        cleaned_name = (food_name or "").strip()
        if not cleaned_name:
            raise InvalidArgument("Food name must not be empty")

        record = await self.bootstrap.ensure(identity)
        taken = {entry.id for entry in record.search_history}
        entry = SearchEntry(
            id=_new_id(taken),
            food_name=cleaned_name,
            searched_at=now_millis(),
        )
        history = [entry, *record.search_history][:SEARCH_HISTORY_LIMIT]
        await self.store.update(
            USERS_COLLECTION,
            identity,
            {
                "searchHistory": [search_entry_to_document(item) for item in history],
                "totalSearches": record.total_searches + 1,
            },
        )
        return entry

    async def increment_myths_debunked(self, identity: str) -> None:
        """Atomically add one to the debunked myths counter."""
        await self.bootstrap.ensure(identity)
        await self.store.increment(USERS_COLLECTION, identity, "mythsDebunked", 1)

    async def set_daily_goal(
        self, identity: str, target_calories: float, current_calories: float
    ) -> DailyGoal:
        """Replace the daily calorie goal."""
        _require_non_negative("targetCalories", target_calories)
        _require_non_negative("currentCalories", current_calories)
        await self.bootstrap.ensure(identity)
        goal = DailyGoal(
            target_calories=float(target_calories),
            current_calories=float(current_calories),
        )
        await self.store.update(
            USERS_COLLECTION, identity, {"dailyGoal": daily_goal_to_document(goal)}
        )
        return goal


def _require_non_negative(name: str, value: float) -> None:
    if (
        isinstance(value, bool)
        or not isinstance(value, int | float)
        or not math.isfinite(value)
        or value < 0
    ):
        raise InvalidArgument(f"{name} must be a finite number >= 0")


def _new_id(taken: set[str]) -> str:
    while True:
        candidate = uuid4().hex
        if candidate not in taken:
            return candidate
