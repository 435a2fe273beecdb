"""
Species API endpoints.

Serves the species profile page: detail, description and evolution chain.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from dexcatalog.api.catalog import ItemDetailResponse, detail_to_response
from dexcatalog.api.dependencies import get_catalog_client, get_catalog_view
from dexcatalog.services.catalog_client import CatalogClient
from dexcatalog.services.catalog_view import CatalogView
from dexcatalog.services.species_profile import fetch_species_profile

router = APIRouter(prefix="/species", tags=["species"])


class EvolutionStageResponse(BaseModel):
    numeric_id: int
    identifier: str
    image: str | None = None
    min_level: int | None = None


class SpeciesProfileResponse(BaseModel):
    """Response model for a species profile."""

    detail: ItemDetailResponse
    description: str
    evolution_chain: list[EvolutionStageResponse] = Field(default_factory=list)


@router.get("/{identifier}/profile", response_model=SpeciesProfileResponse)
async def get_species_profile(
    identifier: str,
    client: Annotated[CatalogClient, Depends(get_catalog_client)],
    view: Annotated[CatalogView, Depends(get_catalog_view)],
    language: Annotated[str, Query(min_length=2, max_length=8)] = "en",
) -> SpeciesProfileResponse:
    """
    Get the profile of a species by name or dex number.

    Returns 404 if the catalog has no such species. Evolution artwork
    reuses details already resolved by the catalog view.
    """
    profile = await fetch_species_profile(
        client, identifier.lower(), language=language, known=view.cache
    )
    return SpeciesProfileResponse(
        detail=detail_to_response(profile.detail),
        description=profile.description,
        evolution_chain=[
            EvolutionStageResponse(
                numeric_id=stage.numeric_id,
                identifier=stage.identifier,
                image=stage.image,
                min_level=stage.min_level,
            )
            for stage in profile.evolution_chain
        ],
    )
