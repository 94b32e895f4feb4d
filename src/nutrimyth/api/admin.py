"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from nutrimyth.api.models import serialize_record
from nutrimyth.domain.models import USERS_COLLECTION, record_from_document

if TYPE_CHECKING:
    from nutrimyth.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/users/{identity}", dependencies=[Depends(require_admin)])
async def user_detail(identity: str, request: Request) -> dict[str, object]:
    """Return a user's stored record without creating it."""
    container: AppContainer = request.app.state.container
    document = await container.document_store.get(USERS_COLLECTION, identity)
    if document is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
    return serialize_record(record_from_document(document))
