"""User data endpoints for the signed-in caller."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, Request, Response, status

from nutrimyth.api.models import (
    DailyGoalUpdate,
    FavoriteCreate,
    SearchCreate,
    SessionCreate,
    serialize_record,
    serialize_stats,
)
from nutrimyth.domain.models import (
    daily_goal_to_document,
    favorite_to_document,
    search_entry_to_document,
)

if TYPE_CHECKING:
    from nutrimyth.containers import AppContainer

router = APIRouter(tags=["user-data"])


def _container(request: Request) -> AppContainer:
    return request.app.state.container


async def require_identity(
    request: Request, authorization: str | None = Header(default=None)
) -> str:
    """Resolve the caller identity from a bearer token."""
    container = _container(request)
    credential = None
    if authorization and authorization.lower().startswith("bearer "):
        credential = authorization[len("bearer ") :]
    return await container.auth_service.authenticate(credential)


@router.post("/auth/session")
async def create_session(payload: SessionCreate, request: Request) -> dict[str, str]:
    """Verify an ID token and make sure the user's record exists."""
    container = _container(request)
    identity = await container.auth_service.authenticate(payload.id_token)
    await container.bootstrap_service.ensure(identity)
    return {"uid": identity}


@router.get("/me")
async def get_me(
    request: Request, identity: str = Depends(require_identity)
) -> dict[str, object]:
    """Return the caller's user record."""
    record = await _container(request).user_data_service.get_record(identity)
    return serialize_record(record)


@router.get("/me/stats")
async def get_stats(
    request: Request, identity: str = Depends(require_identity)
) -> dict[str, object]:
    """Return headline counters for the caller."""
    record = await _container(request).user_data_service.get_record(identity)
    return serialize_stats(record)


@router.post("/me/favorites", status_code=status.HTTP_201_CREATED)
async def add_favorite(
    payload: FavoriteCreate,
    request: Request,
    identity: str = Depends(require_identity),
) -> dict[str, object]:
    """Save a favorite food."""
    food = await _container(request).user_data_service.add_favorite(
        identity, name=payload.name, calories=payload.calories
    )
    return favorite_to_document(food)


@router.delete("/me/favorites/{food_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_favorite(
    food_id: str, request: Request, identity: str = Depends(require_identity)
) -> Response:
    """Remove a favorite food."""
    await _container(request).user_data_service.remove_favorite(identity, food_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/me/history", status_code=status.HTTP_201_CREATED)
async def add_search(
    payload: SearchCreate,
    request: Request,
    identity: str = Depends(require_identity),
) -> dict[str, object]:
    """Record a food search."""
    entry = await _container(request).user_data_service.add_search_entry(
        identity, payload.food_name
    )
    return search_entry_to_document(entry)


@router.post("/me/myths-debunked", status_code=status.HTTP_204_NO_CONTENT)
async def increment_myths_debunked(
    request: Request, identity: str = Depends(require_identity)
) -> Response:
    """Count one more debunked myth."""
    await _container(request).user_data_service.increment_myths_debunked(identity)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/me/daily-goal")
async def set_daily_goal(
    payload: DailyGoalUpdate,
    request: Request,
    identity: str = Depends(require_identity),
) -> dict[str, object]:
    """Replace the daily calorie goal."""
    goal = await _container(request).user_data_service.set_daily_goal(
        identity,
        target_calories=payload.target_calories,
        current_calories=payload.current_calories,
    )
    return daily_goal_to_document(goal)
