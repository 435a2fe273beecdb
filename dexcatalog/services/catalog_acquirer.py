"""
Catalog acquirer.

Owns the stub list and the strategy used to fill it:

- PAGINATED: fixed-size pages, strictly one after another, only on request
- RANGE_SCAN: one bulk list request per selected generation, run concurrently
- CATEGORY_SCAN: one category-index request per selected type, run concurrently

INVARIANTS:
- The stub list never contains two stubs with the same identifier
  (first occurrence wins, order preserved)
- Every (re-)acquisition starts from an empty stub list AND an empty item
  cache, so details never leak from one mode into the next
- A scan pass whose sub-request fails contributes nothing (no partial data)
- Results of a pass superseded by a newer one are dropped
"""

import asyncio
import logging
from collections.abc import Iterable

from dexcatalog.config import settings
from dexcatalog.models.filters import GENERATIONS, AcquisitionMode, FilterState
from dexcatalog.models.species import ItemStub
from dexcatalog.services.cancellation import CancellationToken
from dexcatalog.services.catalog_client import CatalogClient
from dexcatalog.services.item_cache import ItemCache

logger = logging.getLogger(__name__)


def dedupe_stubs(stubs: Iterable[ItemStub]) -> list[ItemStub]:
    """Drop repeated identifiers, keeping the first occurrence and order."""
    seen: set[str] = set()
    unique: list[ItemStub] = []
    for stub in stubs:
        if stub.identifier in seen:
            continue
        seen.add(stub.identifier)
        unique.append(stub)
    return unique


class CatalogAcquirer:
    """
    Produces the ordered stub list for the active acquisition mode.

    Args:
        client: Catalog client
        cache: Item cache cleared together with the stub list
        page_size: Entries per page in PAGINATED mode
    """

    def __init__(
        self,
        client: CatalogClient,
        cache: ItemCache,
        page_size: int | None = None,
    ) -> None:
        self.client = client
        self.cache = cache
        self.page_size = page_size or settings.page_size
        self.mode: AcquisitionMode | None = None
        self.next_url: str | None = None
        self.total_count: int | None = None
        self._stubs: list[ItemStub] = []
        self._seen: set[str] = set()
        self._pass = 0
        self._page_loading = False

    @property
    def stubs(self) -> list[ItemStub]:
        """Copy of the current stub list."""
        return list(self._stubs)

    @property
    def has_more(self) -> bool:
        """True only in PAGINATED mode while the upstream reports a next page."""
        return self.mode is AcquisitionMode.PAGINATED and self.next_url is not None

    @property
    def page_loading(self) -> bool:
        return self._page_loading

    def reset(self, mode: AcquisitionMode) -> None:
        """Discard stubs and cached details and start a new pass in `mode`."""
        self._pass += 1
        self.mode = mode
        self._stubs = []
        self._seen = set()
        self.cache.clear()
        self.total_count = None
        self._page_loading = False
        if mode is AcquisitionMode.PAGINATED:
            self.next_url = self.client.list_url(0, self.page_size)
        else:
            self.next_url = None

    def _merge(self, stubs: Iterable[ItemStub]) -> int:
        added = 0
        for stub in stubs:
            if stub.identifier in self._seen:
                continue
            self._seen.add(stub.identifier)
            self._stubs.append(stub)
            added += 1
        return added

    async def acquire(
        self,
        mode: AcquisitionMode,
        filters: FilterState,
        token: CancellationToken,
    ) -> list[ItemStub]:
        """
        Reset and acquire from scratch in `mode`.

        PAGINATED loads only the first page; further pages need
        `load_next_page()`.

        Returns:
            The stub list after this pass

        Raises:
            CatalogFetchError: If any request of the pass fails. The stub list
                               stays empty for the new mode.
        """
        self.reset(mode)
        pass_id = self._pass
        logger.info("Acquiring catalog in %s mode", mode.value)

        if mode is AcquisitionMode.PAGINATED:
            await self.load_next_page(token)
            return self.stubs

        if mode is AcquisitionMode.RANGE_SCAN:
            stubs = await self._range_scan(filters.ranges)
        else:
            stubs = await self._category_scan(filters.categories)

        if token.cancelled or pass_id != self._pass:
            logger.debug("Dropping superseded %s pass", mode.value)
            return self.stubs

        added = self._merge(stubs)
        self.total_count = added
        logger.info("Acquired %d stubs in %s mode", added, mode.value)
        return self.stubs

    async def load_next_page(self, token: CancellationToken) -> bool:
        """
        Fetch and merge the next page.

        Does nothing outside PAGINATED mode, when no next page exists, or
        while a previous page request is still in flight.

        Returns:
            True if a page was merged

        Raises:
            CatalogFetchError: If the page request fails. Already merged
                               pages are kept.
        """
        url = self.next_url
        if url is None or not self.has_more or self._page_loading:
            return False

        pass_id = self._pass
        self._page_loading = True
        try:
            page = await self.client.fetch_page(url)
        finally:
            if pass_id == self._pass:
                self._page_loading = False

        if token.cancelled or pass_id != self._pass:
            return False

        added = self._merge(page.stubs)
        self.next_url = page.next_url
        self.total_count = page.count
        logger.debug(
            "Merged page with %d new stubs (%d total, more=%s)",
            added,
            len(self._stubs),
            self.has_more,
        )
        return True

    async def _range_scan(self, ranges: Iterable[int]) -> list[ItemStub]:
        generations = []
        for number in sorted(ranges):
            generation = GENERATIONS.get(number)
            if generation is None:
                logger.warning("Ignoring unknown generation %s", number)
                continue
            generations.append(generation)

        pages = await asyncio.gather(
            *(self.client.fetch_range(gen.offset, gen.limit) for gen in generations)
        )
        return dedupe_stubs(stub for page in pages for stub in page.stubs)

    async def _category_scan(self, categories: Iterable[str]) -> list[ItemStub]:
        memberships = await asyncio.gather(
            *(self.client.fetch_category(category) for category in sorted(categories))
        )
        return dedupe_stubs(stub for members in memberships for stub in members)
