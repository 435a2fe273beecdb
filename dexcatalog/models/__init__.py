from dexcatalog.models.failure import (
    ApiResponse,
    CatalogFetchError,
    FailureDetail,
    FailureKind,
    KnownError,
    NotResolvedError,
    OutcomeType,
    SpeciesNotFoundError,
    create_success,
    create_unknown_failure,
)
from dexcatalog.models.filters import (
    CATEGORIES,
    GENERATIONS,
    AcquisitionMode,
    FilterState,
    Generation,
)
from dexcatalog.models.species import (
    EvolutionStage,
    ImageRefs,
    ItemDetail,
    ItemStub,
    SpeciesProfile,
)

__all__ = [
    "AcquisitionMode",
    "ApiResponse",
    "CATEGORIES",
    "CatalogFetchError",
    "EvolutionStage",
    "FailureDetail",
    "FailureKind",
    "FilterState",
    "GENERATIONS",
    "Generation",
    "ImageRefs",
    "ItemDetail",
    "ItemStub",
    "KnownError",
    "NotResolvedError",
    "OutcomeType",
    "SpeciesNotFoundError",
    "SpeciesProfile",
    "create_success",
    "create_unknown_failure",
]
