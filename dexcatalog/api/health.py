"""
Health check endpoints.

Provides liveness and readiness probes. Readiness requires a mounted
catalog view.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from dexcatalog.api.dependencies import get_catalog_view
from dexcatalog.services.catalog_view import CatalogView

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    catalog: str | None = None


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """
    Liveness probe.

    Returns healthy if the service is running.
    Does not check the catalog.
    """
    return HealthResponse(status="healthy")


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"model": HealthResponse}},
)
async def ready(
    response: Response,
    view: Annotated[CatalogView, Depends(get_catalog_view)],
) -> HealthResponse:
    """
    Readiness probe.

    Returns ready once the catalog view is mounted. Returns 503 otherwise.
    """
    if view.mounted:
        return HealthResponse(status="ready", catalog=view.view_status().value)
    response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return HealthResponse(status="not ready", catalog="unmounted")
