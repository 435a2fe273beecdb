"""
Catalog API endpoints.

Browse the species catalog through the process-wide catalog view: paging,
filters, debounced search, on-demand resolution and the comparison
selection.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator

from dexcatalog.api.dependencies import get_catalog_view
from dexcatalog.models.failure import CatalogFetchError
from dexcatalog.models.filters import CATEGORIES, GENERATIONS
from dexcatalog.models.species import ItemDetail
from dexcatalog.services.catalog_view import CatalogView
from dexcatalog.services.comparison import ComparisonSummary

router = APIRouter(prefix="/catalog", tags=["catalog"])

ViewDep = Annotated[CatalogView, Depends(get_catalog_view)]


# =============================================================================
# RESPONSE MODELS
# =============================================================================


class ItemDetailResponse(BaseModel):
    """A resolved species record."""

    numeric_id: int
    identifier: str
    categories: list[str] = Field(default_factory=list)
    image: str | None = None
    images: dict[str, str | None] = Field(default_factory=dict)
    stats: dict[str, int] = Field(default_factory=dict)
    total_stats: int = 0


class EntryResponse(BaseModel):
    """A visible catalog entry."""

    identifier: str
    locator: str
    status: str
    detail: ItemDetailResponse | None = None


class LoadStateResponse(BaseModel):
    loading: bool
    error: str | None = None


class CatalogResponse(BaseModel):
    """Response model for the visible catalog."""

    status: str
    mode: str | None
    search_term: str
    categories: list[str]
    ranges: list[int]
    has_more: bool
    acquired: int
    entries: list[EntryResponse]
    count: int
    operations: dict[str, LoadStateResponse]


class CatalogUpdateResponse(BaseModel):
    """Response model for operations that change the catalog."""

    changed: bool
    catalog: CatalogResponse


class ResolveResponse(BaseModel):
    """Response model for a detail batch."""

    resolved: int
    catalog: CatalogResponse


class ComparisonResponse(BaseModel):
    """Response model for the comparison selection."""

    selected: list[ItemDetailResponse]
    ready: bool


class ToggleResponse(BaseModel):
    identifier: str
    selected: bool
    comparison: ComparisonResponse


class StatLineResponse(BaseModel):
    stat: str
    first: int | None
    second: int | None
    leader: str


class ComparisonSummaryResponse(BaseModel):
    """Stat-by-stat comparison of the two selected species."""

    first: str
    second: str
    lines: list[StatLineResponse]
    first_total: int
    second_total: int
    total_leader: str


# =============================================================================
# REQUEST MODELS
# =============================================================================


class FilterRequest(BaseModel):
    """Category and generation predicates. Empty lists mean no constraint."""

    categories: list[str] = Field(default_factory=list)
    ranges: list[int] = Field(default_factory=list)

    @field_validator("categories")
    @classmethod
    def validate_categories(cls, value: list[str]) -> list[str]:
        normalized = [category.strip().lower() for category in value]
        invalid = sorted(set(normalized) - CATEGORIES)
        if invalid:
            raise ValueError(f"Unknown types: {invalid}. Valid: {sorted(CATEGORIES)}")
        return normalized

    @field_validator("ranges")
    @classmethod
    def validate_ranges(cls, value: list[int]) -> list[int]:
        invalid = sorted(set(value) - set(GENERATIONS))
        if invalid:
            raise ValueError(f"Unknown generations: {invalid}. Valid: {sorted(GENERATIONS)}")
        return value


class SearchRequest(BaseModel):
    """Raw search input, committed after the debounce delay."""

    query: str = Field(default="", max_length=100)


# =============================================================================
# CONVERSION
# =============================================================================


def detail_to_response(detail: ItemDetail) -> ItemDetailResponse:
    refs = detail.image_refs
    return ItemDetailResponse(
        numeric_id=detail.numeric_id,
        identifier=detail.identifier,
        categories=list(detail.categories),
        image=refs.best(),
        images={
            "default": refs.default,
            "back_default": refs.back_default,
            "official_artwork": refs.official_artwork,
            "animated_front": refs.animated_front,
            "animated_back": refs.animated_back,
        },
        stats=dict(detail.stat_block),
        total_stats=detail.total_stats(),
    )


def catalog_to_response(view: CatalogView) -> CatalogResponse:
    entries = [
        EntryResponse(
            identifier=entry.stub.identifier,
            locator=entry.stub.locator,
            status=entry.status.value,
            detail=detail_to_response(entry.detail) if entry.detail else None,
        )
        for entry in view.entries()
    ]
    filters = view.filters
    return CatalogResponse(
        status=view.view_status().value,
        mode=view.mode.value if view.mode else None,
        search_term=filters.search_term,
        categories=sorted(filters.categories),
        ranges=sorted(filters.ranges),
        has_more=view.has_more,
        acquired=len(view.stubs),
        entries=entries,
        count=len(entries),
        operations={
            op.value: LoadStateResponse(loading=state.loading, error=state.error)
            for op, state in view.states.items()
        },
    )


def comparison_to_response(view: CatalogView) -> ComparisonResponse:
    return ComparisonResponse(
        selected=[detail_to_response(d) for d in view.comparison.current()],
        ready=view.comparison.is_ready(),
    )


def summary_to_response(summary: ComparisonSummary) -> ComparisonSummaryResponse:
    return ComparisonSummaryResponse(
        first=summary.first,
        second=summary.second,
        lines=[
            StatLineResponse(
                stat=line.stat, first=line.first, second=line.second, leader=line.leader
            )
            for line in summary.lines
        ],
        first_total=summary.first_total,
        second_total=summary.second_total,
        total_leader=summary.total_leader,
    )


# =============================================================================
# ROUTES
# =============================================================================


@router.get("", response_model=CatalogResponse)
async def get_catalog(view: ViewDep) -> CatalogResponse:
    """
    Get the visible catalog.

    Unresolved entries are listed without detail while no category filter
    is active.
    """
    return catalog_to_response(view)


@router.post("/pages", response_model=CatalogUpdateResponse)
async def load_next_page(view: ViewDep) -> CatalogUpdateResponse:
    """
    Load the next page while browsing without range or type filters.

    A request made while a page is already loading changes nothing.
    """
    changed = await view.load_more_pages()
    return CatalogUpdateResponse(changed=changed, catalog=catalog_to_response(view))


@router.post("/results", response_model=ResolveResponse)
async def load_more_results(view: ViewDep) -> ResolveResponse:
    """Resolve details for the next batch of unresolved entries."""
    resolved = await view.load_more_results()
    return ResolveResponse(resolved=resolved, catalog=catalog_to_response(view))


@router.put("/filters", response_model=CatalogUpdateResponse)
async def set_filters(request: FilterRequest, view: ViewDep) -> CatalogUpdateResponse:
    """
    Replace the type and generation filters.

    `changed` is true when the catalog had to be fetched again.
    """
    changed = await view.set_filters(request.categories, request.ranges)
    return CatalogUpdateResponse(changed=changed, catalog=catalog_to_response(view))


@router.put("/search", response_model=CatalogResponse, status_code=status.HTTP_202_ACCEPTED)
async def set_search(request: SearchRequest, view: ViewDep) -> CatalogResponse:
    """
    Feed raw search input.

    The term is committed once input has been quiet for the debounce delay;
    an empty query clears the search at once.
    """
    view.set_search_input(request.query)
    return catalog_to_response(view)


@router.get("/items/{identifier}", response_model=ItemDetailResponse)
async def get_item(identifier: str, view: ViewDep) -> ItemDetailResponse:
    """
    Get one acquired species, resolving it on demand.

    Returns 404 if the species is not part of the acquired catalog.
    """
    identifier = identifier.lower()
    stub = next((s for s in view.stubs if s.identifier == identifier), None)
    if stub is None and identifier not in view.cache:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"'{identifier}' is not in the current catalog",
        )

    detail = await view.ensure_resolved(identifier)
    if detail is None:
        locator = stub.locator if stub else identifier
        raise CatalogFetchError(locator, "details unavailable after retries")
    return detail_to_response(detail)


@router.get("/compare", response_model=ComparisonResponse)
async def get_comparison(view: ViewDep) -> ComparisonResponse:
    """Get the comparison selection, oldest first."""
    return comparison_to_response(view)


@router.get("/compare/summary", response_model=ComparisonSummaryResponse)
async def get_comparison_summary(view: ViewDep) -> ComparisonSummaryResponse:
    """
    Compare the base stats of the two selected species.

    Returns 409 until two species are selected.
    """
    summary = view.compare_summary()
    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Select two species to compare",
        )
    return summary_to_response(summary)


@router.post("/compare/{identifier}", response_model=ToggleResponse)
async def toggle_comparison(identifier: str, view: ViewDep) -> ToggleResponse:
    """
    Toggle a resolved species in the comparison selection.

    Selecting a third species drops the oldest one.
    """
    identifier = identifier.lower()
    selected = view.toggle_compare(identifier)
    return ToggleResponse(
        identifier=identifier,
        selected=selected,
        comparison=comparison_to_response(view),
    )


@router.delete("/compare/{identifier}", response_model=ComparisonResponse)
async def remove_comparison(identifier: str, view: ViewDep) -> ComparisonResponse:
    """
    Remove a species from the comparison selection.

    Returns 404 if it was not selected.
    """
    if not view.remove_compare(identifier.lower()):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"'{identifier}' is not selected",
        )
    return comparison_to_response(view)
