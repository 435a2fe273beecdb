from dexcatalog.api.catalog import router as catalog_router
from dexcatalog.api.health import router as health_router
from dexcatalog.api.species import router as species_router

__all__ = [
    "catalog_router",
    "health_router",
    "species_router",
]
