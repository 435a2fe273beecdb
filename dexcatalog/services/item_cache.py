"""
Item cache.

Maps species identifiers to resolved detail records. An identifier is
"resolved" exactly when it is a key here. Stubs without an entry are simply
unresolved; lookups never fail for them.
"""

import logging
from collections.abc import Iterator, Mapping

from dexcatalog.models.species import ItemDetail

logger = logging.getLogger(__name__)


class ItemCache(Mapping[str, ItemDetail]):
    """
    Identifier -> ItemDetail mapping with idempotent insertion.

    Read access follows the Mapping protocol so the cache can be handed to
    pure functions as-is. Writes go through `insert` and `clear` only.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ItemDetail] = {}
        self._generation = 0

    def __getitem__(self, identifier: str) -> ItemDetail:
        return self._entries[identifier]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def generation(self) -> int:
        """Incremented on every clear. Lets callers detect a reset."""
        return self._generation

    def is_resolved(self, identifier: str) -> bool:
        return identifier in self._entries

    def insert(self, detail: ItemDetail) -> ItemDetail:
        """
        Store a detail record.

        If the identifier is already resolved the existing record is kept and
        returned, so repeated resolutions never replace an entry's identity.

        Returns:
            The record now stored for the identifier
        """
        existing = self._entries.get(detail.identifier)
        if existing is not None:
            return existing

        self._entries[detail.identifier] = detail
        logger.debug("Cached %s (#%d)", detail.identifier, detail.numeric_id)
        return detail

    def clear(self) -> None:
        if self._entries:
            logger.debug("Clearing %d cached details", len(self._entries))
        self._entries.clear()
        self._generation += 1

    def snapshot(self) -> dict[str, ItemDetail]:
        """Shallow copy of the current entries."""
        return dict(self._entries)
