"""
Filtering for the species catalog.

Pure visible-set derivation plus the reconciler that keeps acquisition and
detail resolution in step with the active filters.
"""

from dexcatalog.filtering.debounce import SearchDebouncer
from dexcatalog.filtering.reconciler import (
    FilterReconciler,
    acquisition_key,
    compute_visible,
    determine_mode,
    select_for_resolution,
    unresolved_stubs,
)

__all__ = [
    "FilterReconciler",
    "SearchDebouncer",
    "acquisition_key",
    "compute_visible",
    "determine_mode",
    "select_for_resolution",
    "unresolved_stubs",
]
