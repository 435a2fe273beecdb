"""
DexCatalog services.

Acquisition, detail resolution, caching and comparison for the species
catalog. Import from the submodules directly; the view orchestrator depends
on the filtering package, which depends on these services.
"""
