"""Pydantic models for the user data API."""

from pydantic import BaseModel, ConfigDict, Field

from nutrimyth.domain.models import UserRecord, record_to_document


class CamelModel(BaseModel):
    """Base model accepting camelCase payload keys."""

    model_config = ConfigDict(populate_by_name=True)


class FavoriteCreate(CamelModel):
    """Payload for adding a favorite food."""

    name: str
    calories: float


class SearchCreate(CamelModel):
    """Payload for recording a search."""

    food_name: str = Field(alias="foodName")


class DailyGoalUpdate(CamelModel):
    """Payload for replacing the daily goal."""

    target_calories: float = Field(alias="targetCalories")
    current_calories: float = Field(alias="currentCalories")


class SessionCreate(CamelModel):
    """Payload for exchanging an ID token."""

    id_token: str = Field(alias="idToken")


def serialize_record(record: UserRecord) -> dict[str, object]:
    """Render a user record for API responses."""
    return {
        **record_to_document(record),
        "email": record.email,
        "displayName": record.display_name,
        "createdAt": record.created_at,
    }


def serialize_stats(record: UserRecord) -> dict[str, object]:
    """Render the headline counters for a user."""
    return {
        "totalSearches": record.total_searches,
        "favoritesCount": record.favorites_count,
        "mythsDebunked": record.myths_debunked,
    }
