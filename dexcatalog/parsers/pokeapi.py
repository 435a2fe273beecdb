"""
PokeAPI payload parsers.

Turns raw JSON payloads from the catalog service into model objects.
Only the subset of each payload the catalog needs is read; unknown keys are
ignored and missing optional keys fall back to empty values.

API docs: https://pokeapi.co/docs/v2
"""

import re
from dataclasses import dataclass, field
from typing import Any

from dexcatalog.models.species import ImageRefs, ItemDetail, ItemStub

_TRAILING_ID = re.compile(r"/(\d+)/?$")
_WHITESPACE = re.compile(r"[\f\n\r\t ]+")

NO_DESCRIPTION = "No description available."


@dataclass
class ListPage:
    """One page of the paginated species list."""

    stubs: list[ItemStub] = field(default_factory=list)
    next_url: str | None = None
    count: int = 0


def extract_id_from_url(url: str) -> int | None:
    """
    Extract the trailing numeric id from a resource URL.

    Example: "https://pokeapi.co/api/v2/pokemon-species/25/" -> 25

    Returns:
        The id, or None when the URL does not end in a number
    """
    match = _TRAILING_ID.search(url)
    return int(match.group(1)) if match else None


def parse_list_page(data: dict[str, Any]) -> ListPage:
    """
    Parse a `GET /pokemon?limit=N&offset=M` response.

    Args:
        data: Decoded JSON with count, next, previous and results

    Returns:
        ListPage with stubs in upstream order
    """
    stubs = [
        ItemStub(identifier=entry["name"], locator=entry["url"])
        for entry in data.get("results", [])
    ]
    return ListPage(
        stubs=stubs,
        next_url=data.get("next"),
        count=int(data.get("count", len(stubs))),
    )


def parse_category_members(data: dict[str, Any]) -> list[ItemStub]:
    """
    Parse the membership list of a `GET /type/{name}` response.

    Args:
        data: Decoded JSON with a "pokemon" list of {"pokemon": {name, url}}

    Returns:
        Member stubs in upstream order
    """
    return [
        ItemStub(identifier=member["pokemon"]["name"], locator=member["pokemon"]["url"])
        for member in data.get("pokemon", [])
    ]


def _parse_images(sprites: dict[str, Any]) -> ImageRefs:
    other = sprites.get("other") or {}
    artwork = other.get("official-artwork") or {}
    versions = sprites.get("versions") or {}
    black_white = (versions.get("generation-v") or {}).get("black-white") or {}
    animated = black_white.get("animated") or {}

    return ImageRefs(
        default=sprites.get("front_default"),
        back_default=sprites.get("back_default"),
        official_artwork=artwork.get("front_default"),
        animated_front=animated.get("front_default"),
        animated_back=animated.get("back_default"),
    )


def parse_detail(data: dict[str, Any]) -> ItemDetail:
    """
    Parse a `GET /pokemon/{id|name}` response.

    Args:
        data: Decoded detail JSON

    Returns:
        ItemDetail with types in slot order and stats in upstream order

    Raises:
        KeyError: If id or name is missing
    """
    types = sorted(data.get("types", []), key=lambda t: t.get("slot", 0))
    stats = {
        entry["stat"]["name"]: int(entry["base_stat"]) for entry in data.get("stats", [])
    }

    return ItemDetail(
        numeric_id=int(data["id"]),
        identifier=data["name"],
        categories=tuple(t["type"]["name"] for t in types),
        image_refs=_parse_images(data.get("sprites") or {}),
        stat_block=stats,
    )


def parse_flavor_text(species: dict[str, Any], language: str = "en") -> str:
    """
    Pick a description from a species record.

    Uses the first entry in `language`, then the first English entry.
    Control characters used as line breaks upstream are collapsed to spaces.

    Args:
        species: Decoded `GET /pokemon-species/{id}` JSON
        language: Preferred language code

    Returns:
        The description, or NO_DESCRIPTION when none exists
    """
    entries = species.get("flavor_text_entries", [])

    for wanted in (language, "en"):
        for entry in entries:
            if entry.get("language", {}).get("name") == wanted:
                return _WHITESPACE.sub(" ", entry["flavor_text"]).strip()

    return NO_DESCRIPTION


def parse_evolution_chain(
    data: dict[str, Any],
    max_depth: int = 3,
) -> list[tuple[str, int, int | None]]:
    """
    Flatten an evolution chain, breadth-first, down to `max_depth` stages.

    Args:
        data: Decoded `GET /evolution-chain/{id}` JSON
        max_depth: Number of stages to include (base form is stage 1)

    Returns:
        List of (species name, species id, min level) tuples. Min level is
        taken from the first evolution detail and is None for the base form.
    """
    result: list[tuple[str, int, int | None]] = []
    chain = data.get("chain")
    if not chain:
        return result

    stage: list[tuple[dict[str, Any], int | None]] = [(chain, None)]
    for _ in range(max_depth):
        next_stage: list[tuple[dict[str, Any], int | None]] = []
        for node, level in stage:
            species = node["species"]
            species_id = extract_id_from_url(species["url"])
            if species_id is not None:
                result.append((species["name"], species_id, level))

            for child in node.get("evolves_to", []):
                details = child.get("evolution_details") or [{}]
                next_stage.append((child, details[0].get("min_level")))
        if not next_stage:
            break
        stage = next_stage

    return result
