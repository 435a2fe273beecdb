from dexcatalog.parsers.pokeapi import (
    NO_DESCRIPTION,
    ListPage,
    extract_id_from_url,
    parse_category_members,
    parse_detail,
    parse_evolution_chain,
    parse_flavor_text,
    parse_list_page,
)

__all__ = [
    "NO_DESCRIPTION",
    "ListPage",
    "extract_id_from_url",
    "parse_category_members",
    "parse_detail",
    "parse_evolution_chain",
    "parse_flavor_text",
    "parse_list_page",
]
