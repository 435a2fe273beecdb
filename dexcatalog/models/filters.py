"""
Filter state and the acquisition modes it implies.

Ranges are generation numbers; each generation maps to a contiguous band of
national dex numbers. Categories are type names.
"""

from dataclasses import dataclass, field, replace
from enum import Enum


class AcquisitionMode(str, Enum):
    """How the stub list is acquired from the remote catalog."""

    PAGINATED = "paginated"
    RANGE_SCAN = "range_scan"
    CATEGORY_SCAN = "category_scan"


@dataclass(frozen=True, slots=True)
class Generation:
    """A contiguous band of national dex numbers (inclusive bounds)."""

    number: int
    name: str
    lower: int
    upper: int

    @property
    def offset(self) -> int:
        """List offset of the first member."""
        return self.lower - 1

    @property
    def limit(self) -> int:
        """Number of members in the band."""
        return self.upper - self.lower + 1

    def contains(self, numeric_id: int) -> bool:
        return self.lower <= numeric_id <= self.upper


GENERATIONS: dict[int, Generation] = {
    gen.number: gen
    for gen in (
        Generation(1, "Generation I", 1, 151),
        Generation(2, "Generation II", 152, 251),
        Generation(3, "Generation III", 252, 386),
        Generation(4, "Generation IV", 387, 493),
        Generation(5, "Generation V", 494, 649),
        Generation(6, "Generation VI", 650, 721),
        Generation(7, "Generation VII", 722, 809),
        Generation(8, "Generation VIII", 810, 905),
        Generation(9, "Generation IX", 906, 1025),
    )
}

CATEGORIES = frozenset(
    {
        "normal",
        "fire",
        "water",
        "electric",
        "grass",
        "ice",
        "fighting",
        "poison",
        "ground",
        "flying",
        "psychic",
        "bug",
        "rock",
        "ghost",
        "dragon",
        "dark",
        "steel",
        "fairy",
    }
)


@dataclass(frozen=True, slots=True)
class FilterState:
    """
    Active filter predicates.

    Empty `categories` or `ranges` means no constraint of that kind.
    """

    search_term: str = ""
    categories: frozenset[str] = field(default_factory=frozenset)
    ranges: frozenset[int] = field(default_factory=frozenset)

    @property
    def has_category_filter(self) -> bool:
        return bool(self.categories)

    @property
    def has_range_filter(self) -> bool:
        return bool(self.ranges)

    def with_search(self, term: str) -> "FilterState":
        return replace(self, search_term=term)

    def with_predicates(
        self,
        categories: frozenset[str] | set[str],
        ranges: frozenset[int] | set[int],
    ) -> "FilterState":
        return replace(self, categories=frozenset(categories), ranges=frozenset(ranges))
