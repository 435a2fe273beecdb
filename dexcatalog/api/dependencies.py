"""
Request dependencies.

The catalog client and view live on `app.state` for the whole process and
are created by the application lifespan.
"""

from fastapi import Request

from dexcatalog.services.catalog_client import CatalogClient
from dexcatalog.services.catalog_view import CatalogView


def get_catalog_client(request: Request) -> CatalogClient:
    client: CatalogClient = request.app.state.catalog_client
    return client


def get_catalog_view(request: Request) -> CatalogView:
    view: CatalogView = request.app.state.catalog_view
    return view
