"""
Species profile service.

Builds the data for a species' own page: the detail record, a description
from the species record and the flattened evolution chain.
"""

import asyncio
import logging
from collections.abc import Mapping

from dexcatalog.models.failure import CatalogFetchError
from dexcatalog.models.species import EvolutionStage, ItemDetail, SpeciesProfile
from dexcatalog.parsers.pokeapi import (
    NO_DESCRIPTION,
    parse_detail,
    parse_evolution_chain,
    parse_flavor_text,
)
from dexcatalog.services.catalog_client import CatalogClient

logger = logging.getLogger(__name__)


async def _stage_image(
    client: CatalogClient,
    identifier: str,
    numeric_id: int,
    known: Mapping[str, ItemDetail],
) -> str | None:
    cached = known.get(identifier)
    if cached is not None:
        return cached.image_refs.best()
    try:
        detail = await client.fetch_detail(client.detail_url(numeric_id))
    except CatalogFetchError as e:
        logger.warning("No artwork for evolution stage %s: %s", identifier, e.detail)
        return None
    return detail.image_refs.best()


async def fetch_species_profile(
    client: CatalogClient,
    identifier: str | int,
    language: str = "en",
    known: Mapping[str, ItemDetail] | None = None,
) -> SpeciesProfile:
    """
    Fetch everything shown on a species page.

    Args:
        client: Catalog client
        identifier: Species name or dex number
        language: Preferred description language
        known: Already resolved details, reused for evolution artwork

    Returns:
        SpeciesProfile. Missing species or evolution data degrade to a
        default description and an empty chain.

    Raises:
        SpeciesNotFoundError: If the catalog has no such species
        CatalogFetchError: If the detail record itself cannot be fetched
    """
    known = known or {}
    data = await client.fetch_detail_data(identifier)
    try:
        detail = parse_detail(data)
    except (KeyError, TypeError, ValueError) as e:
        raise CatalogFetchError(
            client.detail_url(identifier), f"malformed detail record: {e}"
        ) from e

    species_url = (data.get("species") or {}).get("url") or (
        f"{client.base_url}/pokemon-species/{detail.numeric_id}/"
    )

    description = NO_DESCRIPTION
    chain: list[EvolutionStage] = []
    try:
        species = await client.fetch_json(species_url)
        description = parse_flavor_text(species, language)

        chain_url = (species.get("evolution_chain") or {}).get("url")
        if chain_url:
            stages = parse_evolution_chain(await client.fetch_json(chain_url))
            images = await asyncio.gather(
                *(_stage_image(client, name, sid, known) for name, sid, _ in stages)
            )
            chain = [
                EvolutionStage(numeric_id=sid, identifier=name, image=image, min_level=level)
                for (name, sid, level), image in zip(stages, images, strict=True)
            ]
    except CatalogFetchError as e:
        logger.warning("Species data for %s incomplete: %s", detail.identifier, e.detail)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning("Malformed species data for %s: %r", detail.identifier, e)

    return SpeciesProfile(detail=detail, description=description, evolution_chain=chain)
