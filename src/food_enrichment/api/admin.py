"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from food_enrichment.api.models import ClearCacheRequest
from food_enrichment.errors import InputValidationError

if TYPE_CHECKING:
    from food_enrichment.containers import AppContainer

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


@router.post("/cache/clear", dependencies=[Depends(require_admin)])
async def clear_cache(body: ClearCacheRequest, request: Request) -> dict[str, object]:
    """Delete cached enrichments so the next lookup resolves fresh."""
    container: AppContainer = request.app.state.container
    try:
        deleted = container.enrichment_service.clear_cache(body.queries, body.locale)
    except InputValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return {"success": True, "deleted": deleted}
