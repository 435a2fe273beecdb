"""Tests for filter reconciliation and the visible list."""

import httpx
import pytest
import respx

from dexcatalog.filtering.reconciler import (
    FilterReconciler,
    acquisition_key,
    compute_visible,
    determine_mode,
    select_for_resolution,
    unresolved_stubs,
)
from dexcatalog.models.failure import CatalogFetchError
from dexcatalog.models.filters import AcquisitionMode, FilterState
from dexcatalog.services.cancellation import CancellationToken
from dexcatalog.services.catalog_acquirer import CatalogAcquirer
from dexcatalog.services.catalog_client import CatalogClient
from dexcatalog.services.clock import VirtualClock
from dexcatalog.services.detail_fetcher import DetailFetcher
from dexcatalog.services.item_cache import ItemCache

BASE_URL = "https://pokeapi.co/api/v2"


@pytest.fixture
def stubs(make_stub):
    return [
        make_stub(4, "charmander"),
        make_stub(6, "charizard"),
        make_stub(113, "chansey"),
        make_stub(7, "squirtle"),
    ]


@pytest.fixture
def cache(make_detail) -> ItemCache:
    cache = ItemCache()
    cache.insert(make_detail(4, "charmander", ("fire",)))
    cache.insert(make_detail(6, "charizard", ("fire", "flying")))
    cache.insert(make_detail(113, "chansey", ("normal",)))
    return cache


class TestDetermineMode:
    def test_no_filters_paginates(self) -> None:
        assert determine_mode(FilterState()) is AcquisitionMode.PAGINATED

    def test_categories_scan(self) -> None:
        filters = FilterState(categories=frozenset({"fire"}))

        assert determine_mode(filters) is AcquisitionMode.CATEGORY_SCAN

    def test_ranges_win_over_categories(self) -> None:
        filters = FilterState(categories=frozenset({"fire"}), ranges=frozenset({1}))

        assert determine_mode(filters) is AcquisitionMode.RANGE_SCAN

    def test_search_term_does_not_change_mode(self) -> None:
        assert determine_mode(FilterState(search_term="char")) is AcquisitionMode.PAGINATED


class TestAcquisitionKey:
    def test_category_ignored_under_range_scan(self) -> None:
        a = FilterState(ranges=frozenset({1}))
        b = FilterState(ranges=frozenset({1}), categories=frozenset({"fire"}))

        assert acquisition_key(a) == acquisition_key(b)

    def test_range_selection_matters(self) -> None:
        a = FilterState(ranges=frozenset({1}))
        b = FilterState(ranges=frozenset({1, 2}))

        assert acquisition_key(a) != acquisition_key(b)


class TestComputeVisible:
    def test_search_matches_substring(self, stubs, cache) -> None:
        """'char' matches charmander and charizard but not chansey."""
        visible = compute_visible(stubs, cache, FilterState(search_term="char"))

        assert [s.identifier for s in visible] == ["charmander", "charizard"]

    def test_search_is_case_insensitive(self, stubs, cache) -> None:
        visible = compute_visible(stubs, cache, FilterState(search_term="CHAR"))

        assert [s.identifier for s in visible] == ["charmander", "charizard"]

    def test_no_filters_keeps_everything(self, stubs, cache) -> None:
        assert compute_visible(stubs, cache, FilterState()) == stubs

    def test_category_requires_resolved_detail(self, stubs, cache) -> None:
        """An unresolved stub is never shown under a category filter."""
        filters = FilterState(categories=frozenset({"water"}))

        assert compute_visible(stubs, cache, filters) == []

    def test_category_matches_any_type(self, stubs, cache) -> None:
        filters = FilterState(categories=frozenset({"flying", "normal"}))

        visible = compute_visible(stubs, cache, filters)

        assert [s.identifier for s in visible] == ["charizard", "chansey"]

    def test_search_and_category_combined(self, stubs, cache) -> None:
        filters = FilterState(search_term="char", categories=frozenset({"flying"}))

        assert [s.identifier for s in compute_visible(stubs, cache, filters)] == ["charizard"]

    def test_deterministic(self, stubs, cache) -> None:
        filters = FilterState(search_term="a", categories=frozenset({"fire"}))

        assert compute_visible(stubs, cache, filters) == compute_visible(stubs, cache, filters)

    def test_preserves_acquisition_order(self, stubs, cache) -> None:
        filters = FilterState(categories=frozenset({"fire"}))

        reordered = list(reversed(stubs))

        assert [s.identifier for s in compute_visible(reordered, cache, filters)] == [
            "charizard",
            "charmander",
        ]


class TestSelection:
    def test_unresolved_respects_limit_and_exclude(self, make_stub) -> None:
        stubs = [make_stub(i, f"mon{i}") for i in range(1, 6)]

        picked = unresolved_stubs(stubs, {}, limit=2, exclude={"mon1"})

        assert [s.identifier for s in picked] == ["mon2", "mon3"]

    def test_nothing_selected_without_category_filter(self, stubs) -> None:
        assert select_for_resolution(stubs, {}, FilterState(search_term="char")) == []

    def test_selection_follows_search_term(self, stubs, cache) -> None:
        filters = FilterState(search_term="squ", categories=frozenset({"water"}))

        picked = select_for_resolution(stubs, cache, filters)

        assert [s.identifier for s in picked] == ["squirtle"]

    def test_resolved_stubs_skipped(self, stubs, cache) -> None:
        filters = FilterState(categories=frozenset({"water"}))

        assert [s.identifier for s in select_for_resolution(stubs, cache, filters)] == [
            "squirtle"
        ]


@pytest.fixture
def reconciler(catalog_client: CatalogClient, clock: VirtualClock, no_jitter) -> FilterReconciler:
    cache = ItemCache()
    fetcher = DetailFetcher(catalog_client, on_resolved=cache.insert, clock=clock, jitter=no_jitter)
    acquirer = CatalogAcquirer(catalog_client, cache, page_size=20)
    return FilterReconciler(acquirer, fetcher, clock=clock, batch_size=2, batch_pause=0.3)


def mock_fire_scan(type_payload, detail_payload, count: int = 5) -> list[respx.Route]:
    members = [(i, f"fire{i}") for i in range(1, count + 1)]
    respx.get(f"{BASE_URL}/type/fire").mock(
        return_value=httpx.Response(200, json=type_payload("fire", members))
    )
    return [
        respx.get(f"{BASE_URL}/pokemon/{i}/").mock(
            return_value=httpx.Response(200, json=detail_payload(i, name, ("fire",)))
        )
        for i, name in members
    ]


class TestFilterReconciler:
    @respx.mock
    async def test_apply_filters_reacquires_on_mode_change(
        self, reconciler: FilterReconciler, list_payload, type_payload
    ) -> None:
        respx.get(f"{BASE_URL}/pokemon?offset=0&limit=20").mock(
            return_value=httpx.Response(200, json=list_payload([(1, "bulbasaur")]))
        )
        respx.get(f"{BASE_URL}/type/fire").mock(
            return_value=httpx.Response(200, json=type_payload("fire", [(4, "charmander")]))
        )
        token = CancellationToken()

        assert await reconciler.apply_filters(FilterState(), token)
        assert not await reconciler.apply_filters(FilterState(), token)
        assert await reconciler.apply_filters(FilterState(categories=frozenset({"fire"})), token)
        assert reconciler.acquirer.mode is AcquisitionMode.CATEGORY_SCAN

    @respx.mock
    async def test_category_change_under_range_scan_is_local(
        self, reconciler: FilterReconciler, list_payload
    ) -> None:
        route = respx.get(f"{BASE_URL}/pokemon?offset=0&limit=151").mock(
            return_value=httpx.Response(200, json=list_payload([(1, "bulbasaur")]))
        )
        token = CancellationToken()

        await reconciler.apply_filters(FilterState(ranges=frozenset({1})), token)
        changed = await reconciler.apply_filters(
            FilterState(ranges=frozenset({1}), categories=frozenset({"grass"})), token
        )

        assert not changed
        assert route.call_count == 1
        assert reconciler.filters.categories == {"grass"}

    @respx.mock
    async def test_resolve_pending_in_batches(
        self,
        reconciler: FilterReconciler,
        clock: VirtualClock,
        type_payload,
        detail_payload,
    ) -> None:
        routes = mock_fire_scan(type_payload, detail_payload, count=5)
        token = CancellationToken()
        await reconciler.apply_filters(FilterState(categories=frozenset({"fire"})), token)

        resolved = await reconciler.resolve_pending()

        assert resolved == 5
        assert all(route.call_count == 1 for route in routes)
        assert clock.sleeps.count(0.3) == 2  # three batches of up to two
        assert [s.identifier for s in reconciler.visible()] == [f"fire{i}" for i in range(1, 6)]

    @respx.mock
    async def test_resolution_capped(
        self, reconciler: FilterReconciler, type_payload, detail_payload
    ) -> None:
        mock_fire_scan(type_payload, detail_payload, count=5)
        reconciler.resolution_cap = 3
        token = CancellationToken()
        await reconciler.apply_filters(FilterState(categories=frozenset({"fire"})), token)

        resolved = await reconciler.resolve_pending()

        assert resolved == 3
        assert len(reconciler.visible()) == 3

        assert await reconciler.load_more_results() == 2
        assert len(reconciler.visible()) == 5

    @respx.mock
    async def test_reacquire_drops_stale_details(
        self, reconciler: FilterReconciler, type_payload, detail_payload
    ) -> None:
        """Details arriving for a superseded pass are not cached."""
        respx.get(f"{BASE_URL}/type/fire").mock(
            return_value=httpx.Response(200, json=type_payload("fire", [(4, "charmander")]))
        )
        token = CancellationToken()
        await reconciler.apply_filters(FilterState(categories=frozenset({"fire"})), token)

        def respond_after_switch(request: httpx.Request) -> httpx.Response:
            reconciler.pass_token.cancel()
            return httpx.Response(200, json=detail_payload(4, "charmander", ("fire",)))

        respx.get(f"{BASE_URL}/pokemon/4/").mock(side_effect=respond_after_switch)

        assert await reconciler.resolve_pending() == 0
        assert len(reconciler.cache) == 0
        assert "charmander" not in reconciler.failed

    @respx.mock
    async def test_failed_identifier_not_retried_this_pass(
        self, reconciler: FilterReconciler, type_payload
    ) -> None:
        respx.get(f"{BASE_URL}/type/fire").mock(
            return_value=httpx.Response(200, json=type_payload("fire", [(4, "charmander")]))
        )
        route = respx.get(f"{BASE_URL}/pokemon/4/").mock(return_value=httpx.Response(500))
        token = CancellationToken()
        await reconciler.apply_filters(FilterState(categories=frozenset({"fire"})), token)

        assert await reconciler.resolve_pending() == 0
        assert route.call_count == 4
        assert reconciler.failed == {"charmander"}

        assert await reconciler.resolve_pending() == 0
        assert route.call_count == 4

    @respx.mock
    async def test_failed_scan_allows_retry(
        self, reconciler: FilterReconciler, type_payload
    ) -> None:
        route = respx.get(f"{BASE_URL}/type/fire").mock(
            side_effect=[
                httpx.Response(500),
                httpx.Response(200, json=type_payload("fire", [(4, "charmander")])),
            ]
        )
        token = CancellationToken()
        filters = FilterState(categories=frozenset({"fire"}))

        with pytest.raises(CatalogFetchError):
            await reconciler.apply_filters(filters, token)
        assert reconciler.needs_reacquire(filters)

        assert await reconciler.apply_filters(filters, token)
        assert route.call_count == 2
        assert [s.identifier for s in reconciler.acquirer.stubs] == ["charmander"]

    def test_search_never_reacquires(self, reconciler: FilterReconciler) -> None:
        reconciler.set_search_term("char")

        assert reconciler.filters.search_term == "char"
        assert reconciler.pass_token is None
