from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="DEXCATALOG_")

    app_name: str = "DexCatalog"
    debug: bool = False

    api_base_url: str = "https://pokeapi.co/api/v2"

    # Entries per request while browsing without range/category filters
    page_size: int = 20

    request_timeout: float = 30.0

    user_agent: str = "DexCatalog/1.0"


settings = Settings()


# =============================================================================
# DETAIL RESOLUTION
# =============================================================================

# Retries after the initial attempt before an item is left unresolved
DETAIL_MAX_RETRIES = 3

# Backoff before retry N (0-based) is BASE * 2**N plus uniform(0, JITTER)
DETAIL_BACKOFF_BASE = 1.0
DETAIL_BACKOFF_JITTER = 1.0

# Random delay before each attempt, spreads out concurrent resolutions
DETAIL_PREFETCH_JITTER = 0.3


# =============================================================================
# FILTER RECONCILIATION
# =============================================================================

# Details resolved concurrently per batch when a category filter is active
RESOLUTION_BATCH_SIZE = 10

# Pause between resolution batches (seconds)
RESOLUTION_BATCH_PAUSE = 0.3

# Max unresolved stubs resolved per reconciliation pass
RESOLUTION_CAP = 50

# Trailing debounce applied to raw search input (seconds)
SEARCH_DEBOUNCE_DELAY = 0.3


# =============================================================================
# COMPARISON
# =============================================================================

COMPARISON_CAPACITY = 2
