"""DexCatalog: aggregation and filtering engine for a remote species catalog."""
