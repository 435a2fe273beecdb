import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from importlib.metadata import version as pkg_version

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dexcatalog.api import catalog_router, health_router, species_router
from dexcatalog.config import settings
from dexcatalog.models.failure import KnownError, create_unknown_failure
from dexcatalog.services.catalog_client import CatalogClient
from dexcatalog.services.catalog_view import CatalogView

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    client = CatalogClient()
    view = CatalogView(client)
    app.state.catalog_client = client
    app.state.catalog_view = view
    await view.mount()
    try:
        yield
    finally:
        await view.aclose()
        await client.aclose()


app = FastAPI(
    title=settings.app_name,
    version=pkg_version("dexcatalog"),
    debug=settings.debug,
    lifespan=lifespan,
)

app.include_router(catalog_router)
app.include_router(health_router)
app.include_router(species_router)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Tighten in production
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(KnownError)
async def known_error_handler(_request: Request, exc: KnownError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().model_dump(mode="json"),
    )


@app.exception_handler(Exception)
async def unknown_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content=create_unknown_failure(exc).model_dump(mode="json"),
    )
