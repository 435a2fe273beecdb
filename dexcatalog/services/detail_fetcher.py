"""
Detail fetcher.

Resolves one stub's locator into an ItemDetail with jittered retry.

Behaviour per attempt:
1. Sleep a random pre-fetch delay (0 to DETAIL_PREFETCH_JITTER seconds)
2. GET the locator
3. On failure, sleep BASE * 2**attempt + uniform(0, JITTER) and retry,
   at most DETAIL_MAX_RETRIES times after the first attempt

Failures are logged and end with `None`; they never propagate. The fetcher
holds no state of its own: a successful record is handed to the owner's
`on_resolved` callback, which is the single writer of the item cache.

The cancellation token is checked after every suspension. Once it is
cancelled, no callback runs and no further request is made.
"""

import logging
import random
from collections.abc import Callable

from dexcatalog.config import (
    DETAIL_BACKOFF_BASE,
    DETAIL_BACKOFF_JITTER,
    DETAIL_MAX_RETRIES,
    DETAIL_PREFETCH_JITTER,
)
from dexcatalog.models.failure import CatalogFetchError
from dexcatalog.models.species import ItemDetail
from dexcatalog.services.cancellation import CancellationToken
from dexcatalog.services.catalog_client import CatalogClient
from dexcatalog.services.clock import Clock

logger = logging.getLogger(__name__)

ResolvedCallback = Callable[[ItemDetail], None]


class DetailFetcher:
    """
    Fetches detail records with jittered exponential backoff.

    Args:
        client: Catalog client used for the requests
        on_resolved: Called once per successful resolution, only while the
                     token passed to `resolve` is still active
        clock: Source of sleeps (swap for VirtualClock in tests)
        jitter: Callable(low, high) -> float used for random delays
        max_retries: Retries after the first attempt
    """

    def __init__(
        self,
        client: CatalogClient,
        on_resolved: ResolvedCallback | None = None,
        clock: Clock | None = None,
        jitter: Callable[[float, float], float] = random.uniform,
        max_retries: int = DETAIL_MAX_RETRIES,
    ) -> None:
        self.client = client
        self.on_resolved = on_resolved
        self.clock = clock or Clock()
        self.jitter = jitter
        self.max_retries = max_retries

    def backoff_delay(self, retry_index: int) -> float:
        """Delay before retry number `retry_index` (0-based)."""
        return DETAIL_BACKOFF_BASE * (2**retry_index) + self.jitter(0.0, DETAIL_BACKOFF_JITTER)

    async def resolve(self, locator: str, token: CancellationToken) -> ItemDetail | None:
        """
        Resolve a locator into an ItemDetail.

        Args:
            locator: Detail URL from the stub
            token: Liveness token of the owning view

        Returns:
            The record, or None if every attempt failed or the token was
            cancelled before the record could be delivered
        """
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            await self.clock.sleep(self.jitter(0.0, DETAIL_PREFETCH_JITTER))
            if token.cancelled:
                return None

            try:
                detail = await self.client.fetch_detail(locator)
            except CatalogFetchError as e:
                if token.cancelled:
                    return None
                if attempt + 1 >= attempts:
                    logger.error(
                        "Giving up on %s after %d attempts: %s", locator, attempts, e.detail
                    )
                    return None

                delay = self.backoff_delay(attempt)
                logger.warning(
                    "Attempt %d/%d for %s failed (%s). Retrying in %.1fs",
                    attempt + 1,
                    attempts,
                    locator,
                    e.detail,
                    delay,
                )
                await self.clock.sleep(delay)
                if token.cancelled:
                    return None
                continue

            if token.cancelled:
                return None
            if self.on_resolved is not None:
                self.on_resolved(detail)
            return detail

        return None
