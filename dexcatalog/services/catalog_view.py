"""
Catalog view.

Owns every piece of state for one view lifetime (mount to teardown) and is
the single writer for it:

- item cache, stub list and acquisition mode (via the reconciler/acquirer)
- filter state, including the debounced search term
- comparison selection
- a loading/error flag per logical operation

Transport failures never escape this class. They are logged and recorded
on the operation's LoadState; the view stays usable.
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TypeVar

from dexcatalog.filtering.debounce import SearchDebouncer
from dexcatalog.filtering.reconciler import FilterReconciler
from dexcatalog.models.failure import KnownError, NotResolvedError
from dexcatalog.models.filters import AcquisitionMode, FilterState
from dexcatalog.models.species import ItemDetail, ItemStub
from dexcatalog.services.cancellation import CancellationToken
from dexcatalog.services.catalog_acquirer import CatalogAcquirer
from dexcatalog.services.catalog_client import CatalogClient
from dexcatalog.services.clock import Clock
from dexcatalog.services.comparison import ComparisonSelector, ComparisonSummary, compare_stats
from dexcatalog.services.detail_fetcher import DetailFetcher
from dexcatalog.services.item_cache import ItemCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Operation(str, Enum):
    """Logical operations that carry their own loading/error flag."""

    INITIAL = "initial"
    FILTER_RELOAD = "filter_reload"
    NEXT_PAGE = "next_page"
    DETAIL_BATCH = "detail_batch"


class ResolutionStatus(str, Enum):
    RESOLVED = "resolved"
    PENDING = "pending"
    UNRESOLVED = "unresolved"
    UNKNOWN = "unknown"  # retries exhausted, stays unresolved this pass


class ViewStatus(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    READY = "ready"


@dataclass
class LoadState:
    running: int = 0
    error: str | None = None

    @property
    def loading(self) -> bool:
        return self.running > 0


@dataclass
class CatalogEntry:
    """A visible stub together with its resolution state."""

    stub: ItemStub
    status: ResolutionStatus
    detail: ItemDetail | None = None


class CatalogView:
    """
    Catalog browsing state for one view lifetime.

    Args:
        client: Catalog client shared by all requests of the view
        clock: Clock for debounce, backoff and batch pauses
        jitter: Callable(low, high) -> float for randomized delays
        page_size: Entries per page while browsing unfiltered
    """

    def __init__(
        self,
        client: CatalogClient,
        clock: Clock | None = None,
        jitter: Callable[[float, float], float] = random.uniform,
        page_size: int | None = None,
    ) -> None:
        self.client = client
        self.clock = clock or Clock()
        self.cache = ItemCache()
        self.fetcher = DetailFetcher(
            client, on_resolved=self._record_detail, clock=self.clock, jitter=jitter
        )
        self.acquirer = CatalogAcquirer(client, self.cache, page_size=page_size)
        self.reconciler = FilterReconciler(self.acquirer, self.fetcher, clock=self.clock)
        self.comparison = ComparisonSelector()
        self.debouncer = SearchDebouncer(self.clock, self._commit_search)
        self.states: dict[Operation, LoadState] = {op: LoadState() for op in Operation}
        self.token = CancellationToken("view")
        self.token.cancel()  # not mounted yet
        self._listeners: list[Callable[[ItemDetail], None]] = []
        self._tasks: set[asyncio.Future[object]] = set()
        self._mounts = 0
        self._last_acquisition = Operation.INITIAL

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def mounted(self) -> bool:
        return self.token.active

    async def mount(self) -> None:
        """
        Start a fresh view lifetime.

        Resets filters, stubs, cache and comparison selection, then loads
        the first page.
        """
        self.token.cancel()
        self.debouncer.cancel()
        self._mounts += 1
        self.token = CancellationToken(f"view-{self._mounts}")
        self.reconciler.reset()
        self.comparison.clear()
        self.states = {op: LoadState() for op in Operation}
        self._last_acquisition = Operation.INITIAL

        await self._track(Operation.INITIAL, self.reconciler.reacquire(self.token))

    async def teardown(self) -> None:
        """
        End the view lifetime.

        In-flight work keeps running but can no longer change any state.
        """
        logger.debug("Tearing down %r", self.token)
        self.token.cancel()
        self.debouncer.cancel()

    async def aclose(self) -> None:
        """Tear down and cancel all background work (process shutdown)."""
        await self.teardown()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def drain(self) -> None:
        """Wait until background resolution work has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def add_listener(self, callback: Callable[[ItemDetail], None]) -> None:
        """Register a callback for newly resolved details."""
        self._listeners.append(callback)

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def filters(self) -> FilterState:
        return self.reconciler.filters

    @property
    def mode(self) -> AcquisitionMode | None:
        return self.acquirer.mode

    @property
    def has_more(self) -> bool:
        return self.acquirer.has_more

    @property
    def stubs(self) -> list[ItemStub]:
        return self.acquirer.stubs

    def visible(self) -> list[ItemStub]:
        return self.reconciler.visible()

    def status_of(self, identifier: str) -> ResolutionStatus:
        if identifier in self.cache:
            return ResolutionStatus.RESOLVED
        if identifier in self.reconciler.resolving:
            return ResolutionStatus.PENDING
        if identifier in self.reconciler.failed:
            return ResolutionStatus.UNKNOWN
        return ResolutionStatus.UNRESOLVED

    def entries(self) -> list[CatalogEntry]:
        return [
            CatalogEntry(
                stub=stub,
                status=self.status_of(stub.identifier),
                detail=self.cache.get(stub.identifier),
            )
            for stub in self.visible()
        ]

    def view_status(self) -> ViewStatus:
        """
        Overall state of the visible list.

        An empty list is EMPTY, not an error, unless the pass that should
        have filled it failed or is still running.
        """
        acquisition = self.states[self._last_acquisition]
        if acquisition.loading:
            return ViewStatus.LOADING
        if acquisition.error:
            return ViewStatus.ERROR

        if self.visible():
            return ViewStatus.READY
        if self.filters.categories and (
            self.states[Operation.DETAIL_BATCH].loading or self.reconciler.resolving or self._tasks
        ):
            return ViewStatus.LOADING
        return ViewStatus.EMPTY

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    async def set_filters(self, categories: Iterable[str], ranges: Iterable[int]) -> bool:
        """
        Replace the category and range predicates.

        Re-acquires when the acquisition mode or its scanned selection
        changes. With a category filter active, detail resolution for the
        first unresolved candidates continues in the background.

        Returns:
            True if the catalog was re-acquired
        """
        if not self.mounted:
            return False

        filters = self.filters.with_predicates(frozenset(categories), frozenset(ranges))
        reacquired = False
        if self.reconciler.needs_reacquire(filters):
            self._last_acquisition = Operation.FILTER_RELOAD
            result = await self._track(
                Operation.FILTER_RELOAD, self.reconciler.apply_filters(filters, self.token)
            )
            reacquired = bool(result)
        else:
            await self.reconciler.apply_filters(filters, self.token)

        if self.filters.categories and self.mounted:
            self._spawn(self._track(Operation.DETAIL_BATCH, self.reconciler.resolve_pending()))
        return reacquired

    def set_search_input(self, raw: str) -> None:
        """Feed raw search input; committed after the debounce delay."""
        if self.mounted:
            self.debouncer.push(raw)

    async def load_more_pages(self) -> bool:
        """Load the next page, if one exists and none is loading."""
        if not self.mounted:
            return False
        token = self.reconciler.pass_token or self.token
        result = await self._track(Operation.NEXT_PAGE, self.acquirer.load_next_page(token))
        return bool(result)

    async def load_more_results(self) -> int:
        """Resolve the next batch of unresolved stubs."""
        if not self.mounted:
            return 0
        result = await self._track(Operation.DETAIL_BATCH, self.reconciler.load_more_results())
        return result or 0

    async def ensure_resolved(self, identifier: str) -> ItemDetail | None:
        """
        Resolve one acquired stub on demand.

        Returns:
            The detail, or None if the identifier is not acquired or the
            fetch gave up
        """
        cached = self.cache.get(identifier)
        if cached is not None:
            return cached
        if not self.mounted:
            return None

        stub = next((s for s in self.acquirer.stubs if s.identifier == identifier), None)
        if stub is None:
            return None
        return await self.reconciler.resolve_one(stub)

    def toggle_compare(self, identifier: str) -> bool:
        """
        Toggle a resolved species in the comparison selection.

        Returns:
            True if the species is selected afterwards

        Raises:
            NotResolvedError: If the species has no cached detail
        """
        detail = self.cache.get(identifier)
        if detail is None:
            # Selected before a filter change cleared the cache
            if identifier in self.comparison:
                self.comparison.evict(identifier)
                return False
            raise NotResolvedError(identifier)
        return self.comparison.toggle(detail)

    def remove_compare(self, identifier: str) -> bool:
        return self.comparison.evict(identifier)

    def compare_summary(self) -> ComparisonSummary | None:
        """Stat comparison once two species are selected."""
        if not self.comparison.is_ready():
            return None
        first, second = self.comparison.current()
        return compare_stats(first, second)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _record_detail(self, detail: ItemDetail) -> None:
        if self.token.cancelled:
            return
        stored = self.cache.insert(detail)
        for listener in self._listeners:
            listener(stored)

    def _commit_search(self, term: str) -> None:
        if self.token.cancelled:
            return
        self.reconciler.set_search_term(term)
        if self.filters.categories:
            self._spawn(self._track(Operation.DETAIL_BATCH, self.reconciler.resolve_pending()))

    def _spawn(self, awaitable: Awaitable[object]) -> None:
        task = asyncio.ensure_future(awaitable)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _track(self, operation: Operation, awaitable: Awaitable[T]) -> T | None:
        """Run an operation, keeping its LoadState current while mounted."""
        token = self.token
        state = self.states[operation]
        state.running += 1
        state.error = None
        try:
            return await awaitable
        except KnownError as e:
            logger.error("%s failed: %s (%s)", operation.value, e.message, e.detail)
            if token.active:
                state.error = e.message
            return None
        finally:
            if token.active:
                state.running -= 1
