"""Domain models for per-user nutrition data."""

import time
from dataclasses import dataclass, field

USERS_COLLECTION = "users"
SEARCH_HISTORY_LIMIT = 50
DEFAULT_TARGET_CALORIES = 2000.0


def now_millis() -> int:
    """Return the current time as epoch milliseconds."""
    return time.time_ns() // 1_000_000


@dataclass(frozen=True)
class FavoriteFood:
    """A food the user saved as a favorite."""

    id: str
    name: str
    calories: float
    added_at: int


@dataclass(frozen=True)
class SearchEntry:
    """A single food search made by the user."""

    id: str
    food_name: str
    searched_at: int


@dataclass(frozen=True)
class DailyGoal:
    """Calorie goal for the current day."""

    target_calories: float = DEFAULT_TARGET_CALORIES
    current_calories: float = 0.0


@dataclass(frozen=True)
class UserRecord:
    """Snapshot of the root user document."""

    favorites: tuple[FavoriteFood, ...] = ()
    search_history: tuple[SearchEntry, ...] = ()
    total_searches: int = 0
    myths_debunked: int = 0
    daily_goal: DailyGoal = field(default_factory=DailyGoal)
    email: str | None = None
    display_name: str | None = None
    created_at: int | None = None

    @property
    def favorites_count(self) -> int:
        """Number of saved favorites."""
        return len(self.favorites)


def favorite_to_document(food: FavoriteFood) -> dict[str, object]:
    return {
        "id": food.id,
        "name": food.name,
        "calories": food.calories,
        "addedAt": food.added_at,
    }


def search_entry_to_document(entry: SearchEntry) -> dict[str, object]:
    return {
        "id": entry.id,
        "foodName": entry.food_name,
        "searchedAt": entry.searched_at,
    }


def daily_goal_to_document(goal: DailyGoal) -> dict[str, object]:
    return {
        "targetCalories": goal.target_calories,
        "currentCalories": goal.current_calories,
    }


def record_to_document(record: UserRecord) -> dict[str, object]:
    """Serialize a user record into its stored document shape."""
    document: dict[str, object] = {
        "favorites": [favorite_to_document(food) for food in record.favorites],
        "searchHistory": [
            search_entry_to_document(entry) for entry in record.search_history
        ],
        "totalSearches": record.total_searches,
        "mythsDebunked": record.myths_debunked,
        "dailyGoal": daily_goal_to_document(record.daily_goal),
    }
    if record.email is not None:
        document["email"] = record.email
    if record.display_name is not None:
        document["displayName"] = record.display_name
    if record.created_at is not None:
        document["createdAt"] = record.created_at
    return document


def record_from_document(document: dict[str, object] | None) -> UserRecord:
    """Build a user record from a stored document, defaulting absent fields."""
    if not document:
        return UserRecord()
    return UserRecord(
        favorites=tuple(
            food
            for food in (
                _favorite_from_document(item)
                for item in _as_list(document.get("favorites"))
            )
            if food is not None
        ),
        search_history=tuple(
            entry
            for entry in (
                _search_entry_from_document(item)
                for item in _as_list(document.get("searchHistory"))
            )
            if entry is not None
        )[:SEARCH_HISTORY_LIMIT],
        total_searches=_as_count(document.get("totalSearches")),
        myths_debunked=_as_count(document.get("mythsDebunked")),
        daily_goal=_daily_goal_from_document(document.get("dailyGoal")),
        email=_as_optional_str(document.get("email")),
        display_name=_as_optional_str(document.get("displayName")),
        created_at=_as_optional_int(document.get("createdAt")),
    )


def _favorite_from_document(item: object) -> FavoriteFood | None:
    if not isinstance(item, dict) or not item.get("id"):
        return None
    return FavoriteFood(
        id=str(item["id"]),
        name=str(item.get("name") or ""),
        calories=_as_number(item.get("calories"), 0.0),
        added_at=_as_optional_int(item.get("addedAt")) or 0,
    )


def _search_entry_from_document(item: object) -> SearchEntry | None:
    if not isinstance(item, dict) or not item.get("id"):
        return None
    return SearchEntry(
        id=str(item["id"]),
        food_name=str(item.get("foodName") or ""),
        searched_at=_as_optional_int(item.get("searchedAt")) or 0,
    )


def _daily_goal_from_document(value: object) -> DailyGoal:
    if not isinstance(value, dict):
        return DailyGoal()
    # Older documents store the goal as {calories, current}.
    target = value.get("targetCalories", value.get("calories"))
    current = value.get("currentCalories", value.get("current"))
    return DailyGoal(
        target_calories=_as_number(target, DEFAULT_TARGET_CALORIES),
        current_calories=_as_number(current, 0.0),
    )


def _as_list(value: object) -> list[object]:
    return value if isinstance(value, list) else []


def _as_count(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return 0
    return max(int(value), 0)


def _as_number(value: object, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return default
    return float(value)


def _as_optional_int(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return None
    return int(value)


def _as_optional_str(value: object) -> str | None:
    return value if isinstance(value, str) else None
