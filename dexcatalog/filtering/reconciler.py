"""
Filter reconciliation.

Decides which acquisition mode a filter state needs, re-acquires when the
mode (or the remote selection it scans) changes, resolves details needed
by the category filter in bounded batches, and derives the visible list.

INVARIANTS:
- `compute_visible` is pure: same (stubs, cache, filters) -> same result
- With a category filter active, a stub without a cache entry is never
  visible (no false positives)
- Range filtering happens upstream, through RANGE_SCAN acquisition
- Category filtering is applied in memory in every mode, including
  RANGE_SCAN
"""

import asyncio
import logging
from collections.abc import Iterable, Mapping

from dexcatalog.config import (
    RESOLUTION_BATCH_PAUSE,
    RESOLUTION_BATCH_SIZE,
    RESOLUTION_CAP,
)
from dexcatalog.models.failure import CatalogFetchError
from dexcatalog.models.filters import AcquisitionMode, FilterState
from dexcatalog.models.species import ItemDetail, ItemStub
from dexcatalog.services.cancellation import CancellationToken
from dexcatalog.services.catalog_acquirer import CatalogAcquirer
from dexcatalog.services.clock import Clock
from dexcatalog.services.detail_fetcher import DetailFetcher

logger = logging.getLogger(__name__)

# What a pass actually scans; a change here forces re-acquisition
AcquisitionKey = tuple[AcquisitionMode, frozenset[int] | frozenset[str] | None]


def determine_mode(filters: FilterState) -> AcquisitionMode:
    """
    Pick the acquisition mode for a filter state.

    Ranges win over categories; categories are then applied in memory.
    """
    if filters.ranges:
        return AcquisitionMode.RANGE_SCAN
    if filters.categories:
        return AcquisitionMode.CATEGORY_SCAN
    return AcquisitionMode.PAGINATED


def acquisition_key(filters: FilterState) -> AcquisitionKey:
    """The part of a filter state that determines what is fetched remotely."""
    mode = determine_mode(filters)
    if mode is AcquisitionMode.RANGE_SCAN:
        return mode, filters.ranges
    if mode is AcquisitionMode.CATEGORY_SCAN:
        return mode, filters.categories
    return mode, None


def matches_search(stub: ItemStub, term: str) -> bool:
    return term.lower() in stub.identifier


def compute_visible(
    stubs: Iterable[ItemStub],
    cache: Mapping[str, ItemDetail],
    filters: FilterState,
) -> list[ItemStub]:
    """
    Derive the visible stub list.

    1. Keep stubs whose identifier contains the lower-cased search term
    2. With categories set, keep only resolved stubs sharing a category

    Args:
        stubs: Acquired stubs in order
        cache: Resolved details by identifier
        filters: Active filter state

    Returns:
        Visible stubs, in acquisition order
    """
    term = filters.search_term.lower()
    visible = [stub for stub in stubs if matches_search(stub, term)]

    if filters.categories:
        visible = [
            stub
            for stub in visible
            if (detail := cache.get(stub.identifier)) is not None
            and detail.has_any_category(filters.categories)
        ]

    return visible


def unresolved_stubs(
    stubs: Iterable[ItemStub],
    cache: Mapping[str, ItemDetail],
    limit: int,
    exclude: Iterable[str] = (),
) -> list[ItemStub]:
    """First `limit` stubs that have no cache entry, skipping `exclude`."""
    skip = set(exclude)
    pending: list[ItemStub] = []
    for stub in stubs:
        if len(pending) >= limit:
            break
        if stub.identifier in cache or stub.identifier in skip:
            continue
        pending.append(stub)
    return pending


def select_for_resolution(
    stubs: Iterable[ItemStub],
    cache: Mapping[str, ItemDetail],
    filters: FilterState,
    limit: int = RESOLUTION_CAP,
    exclude: Iterable[str] = (),
) -> list[ItemStub]:
    """
    Stubs whose details the category filter is waiting on.

    Empty unless a category filter is active. Only stubs passing the search
    term are considered, since no other stub can become visible.
    """
    if not filters.categories:
        return []
    term = filters.search_term.lower()
    candidates = (stub for stub in stubs if matches_search(stub, term))
    return unresolved_stubs(candidates, cache, limit, exclude)


class FilterReconciler:
    """
    Keeps the acquired data consistent with the active filters.

    Args:
        acquirer: Owner of the stub list and item cache reset
        fetcher: Detail fetcher whose callback writes the cache
        clock: Clock used for pauses between resolution batches
        batch_size: Concurrent resolutions per batch
        batch_pause: Seconds between batches
        resolution_cap: Max stubs resolved per pass
    """

    def __init__(
        self,
        acquirer: CatalogAcquirer,
        fetcher: DetailFetcher,
        clock: Clock | None = None,
        batch_size: int = RESOLUTION_BATCH_SIZE,
        batch_pause: float = RESOLUTION_BATCH_PAUSE,
        resolution_cap: int = RESOLUTION_CAP,
    ) -> None:
        self.acquirer = acquirer
        self.fetcher = fetcher
        self.clock = clock or Clock()
        self.batch_size = batch_size
        self.batch_pause = batch_pause
        self.resolution_cap = resolution_cap
        self.filters = FilterState()
        self._key: AcquisitionKey | None = None
        self._pass_token: CancellationToken | None = None
        self._pass_number = 0
        self._inflight: dict[str, asyncio.Task[ItemDetail | None]] = {}
        self._failed: set[str] = set()

    @property
    def cache(self) -> Mapping[str, ItemDetail]:
        return self.acquirer.cache

    @property
    def pass_token(self) -> CancellationToken | None:
        """Token of the current acquisition pass."""
        return self._pass_token

    @property
    def resolving(self) -> frozenset[str]:
        """Identifiers with a detail request in flight."""
        return frozenset(self._inflight)

    @property
    def failed(self) -> frozenset[str]:
        """Identifiers whose resolution gave up during the current pass."""
        return frozenset(self._failed)

    def reset(self) -> None:
        """Forget filters and the current pass, as for a freshly mounted view."""
        if self._pass_token is not None:
            self._pass_token.cancel()
        self._pass_token = None
        self._key = None
        self._inflight = {}
        self._failed = set()
        self.filters = FilterState()

    def visible(self) -> list[ItemStub]:
        return compute_visible(self.acquirer.stubs, self.cache, self.filters)

    def needs_reacquire(self, filters: FilterState) -> bool:
        return self._key is None or acquisition_key(filters) != self._key

    def set_search_term(self, term: str) -> None:
        """Update the search term. Never triggers re-acquisition."""
        self.filters = self.filters.with_search(term)

    async def reacquire(self, view_token: CancellationToken) -> None:
        """
        Start a new acquisition pass for the current filters.

        Cancels the previous pass so its late detail responses are dropped,
        then resets and refills the stub list.

        Raises:
            CatalogFetchError: If the pass fails while still current
        """
        if self._pass_token is not None:
            self._pass_token.cancel()
        self._pass_number += 1
        token = view_token.child(f"pass-{self._pass_number}")
        self._pass_token = token
        self._inflight = {}
        self._failed = set()
        self._key = acquisition_key(self.filters)

        mode = determine_mode(self.filters)
        try:
            await self.acquirer.acquire(mode, self.filters, token)
        except CatalogFetchError as e:
            if self._pass_token is not token or not token.active:
                logger.debug("Ignoring failure of superseded %s: %s", token.name, e.detail)
                return
            # Same filters must re-acquire on the next attempt
            self._key = None
            raise

    async def apply_filters(self, filters: FilterState, view_token: CancellationToken) -> bool:
        """
        Install a new filter state.

        Returns:
            True if the change required a new acquisition pass

        Raises:
            CatalogFetchError: If the new acquisition pass fails
        """
        reacquire = self.needs_reacquire(filters)
        self.filters = filters
        if reacquire:
            logger.info(
                "Filters changed acquisition to %s (ranges=%s, categories=%s)",
                determine_mode(filters).value,
                sorted(filters.ranges),
                sorted(filters.categories),
            )
            await self.reacquire(view_token)
        return reacquire

    async def resolve_pending(self, limit: int | None = None) -> int:
        """
        Resolve details the category filter is waiting on.

        Returns:
            Number of records resolved
        """
        pending = select_for_resolution(
            self.acquirer.stubs,
            self.cache,
            self.filters,
            limit or self.resolution_cap,
            exclude=self._failed,
        )
        return await self.resolve_in_batches(pending)

    async def load_more_results(self, limit: int | None = None) -> int:
        """
        Resolve the next unresolved stubs regardless of the category filter.

        Returns:
            Number of records resolved
        """
        pending = unresolved_stubs(
            self.acquirer.stubs,
            self.cache,
            limit or self.resolution_cap,
            exclude=self._inflight.keys() | self._failed,
        )
        return await self.resolve_in_batches(pending)

    async def resolve_in_batches(self, stubs: list[ItemStub]) -> int:
        """
        Resolve stubs `batch_size` at a time with a pause between batches.

        Stops early when the current pass is cancelled.
        """
        token = self._pass_token
        if token is None or not stubs:
            return 0

        resolved = 0
        for start in range(0, len(stubs), self.batch_size):
            if start:
                await self.clock.sleep(self.batch_pause)
            if token.cancelled:
                break

            batch = stubs[start : start + self.batch_size]
            results = await asyncio.gather(*(self.resolve_one(stub) for stub in batch))
            resolved += sum(1 for detail in results if detail is not None)

        logger.debug("Resolved %d/%d details", resolved, len(stubs))
        return resolved

    async def resolve_one(self, stub: ItemStub) -> ItemDetail | None:
        """
        Resolve a single stub, sharing any request already in flight.

        Returns the cached record without a request when already resolved.
        """
        cached = self.cache.get(stub.identifier)
        if cached is not None:
            return cached

        token = self._pass_token
        if token is None or token.cancelled:
            return None

        task = self._inflight.get(stub.identifier)
        if task is None:
            task = asyncio.ensure_future(self.fetcher.resolve(stub.locator, token))
            inflight = self._inflight
            inflight[stub.identifier] = task
            task.add_done_callback(lambda _: inflight.pop(stub.identifier, None))

        detail = await task
        if detail is None and token.active:
            self._failed.add(stub.identifier)
        return detail
