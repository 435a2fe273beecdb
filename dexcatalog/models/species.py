from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType


@dataclass(frozen=True, slots=True)
class ItemStub:
    """
    A catalog entry before detail resolution.

    Attributes:
        identifier: Unique, stable species name (e.g., "bulbasaur")
        locator: URL of the species detail record
    """

    identifier: str
    locator: str


@dataclass(frozen=True, slots=True)
class ImageRefs:
    """Image URIs for a species. Any of them may be missing upstream."""

    default: str | None = None
    back_default: str | None = None
    official_artwork: str | None = None
    animated_front: str | None = None
    animated_back: str | None = None

    def best(self) -> str | None:
        """Preferred still image: official artwork, then the default sprite."""
        return self.official_artwork or self.default


@dataclass(frozen=True, slots=True)
class ItemDetail:
    """
    A fully resolved species record.

    Attributes:
        numeric_id: National dex number
        identifier: Species name, matches the stub identifier
        categories: Types in slot order (e.g., ("grass", "poison"))
        image_refs: Sprite and artwork URIs
        stat_block: Base stats keyed by stat name, in upstream order. Read-only.
    """

    numeric_id: int
    identifier: str
    categories: tuple[str, ...] = ()
    image_refs: ImageRefs = field(default_factory=ImageRefs)
    stat_block: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "stat_block", MappingProxyType(dict(self.stat_block)))

    def has_any_category(self, wanted: frozenset[str] | set[str]) -> bool:
        """True if at least one of this record's types is in `wanted`."""
        return any(category in wanted for category in self.categories)

    def total_stats(self) -> int:
        """Sum of all base stats."""
        return sum(self.stat_block.values())


@dataclass(frozen=True, slots=True)
class EvolutionStage:
    """One member of a flattened evolution chain."""

    numeric_id: int
    identifier: str
    image: str | None = None
    min_level: int | None = None  # None for the base form or non-level triggers


@dataclass
class SpeciesProfile:
    """Everything shown on a species' own page."""

    detail: ItemDetail
    description: str
    evolution_chain: list[EvolutionStage] = field(default_factory=list)
