"""
Catalog service client.

Thin async wrapper over the remote species API. Every request either returns
parsed model objects or raises `CatalogFetchError`; httpx exceptions never
leak past this module. No retries happen here.
"""

import logging
from types import TracebackType
from typing import Any

import httpx

from dexcatalog.config import settings
from dexcatalog.models.failure import CatalogFetchError, SpeciesNotFoundError
from dexcatalog.models.species import ItemDetail, ItemStub
from dexcatalog.parsers.pokeapi import (
    ListPage,
    parse_category_members,
    parse_detail,
    parse_list_page,
)

logger = logging.getLogger(__name__)


class CatalogClient:
    """
    Async client for the species catalog.

    Args:
        http: Shared httpx client. When omitted, the client creates its own
              and closes it in `aclose()` / on context exit.
        base_url: API root, e.g. "https://pokeapi.co/api/v2"
    """

    def __init__(
        self,
        http: httpx.AsyncClient | None = None,
        base_url: str | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._owns_http = http is None
        self._http = http or httpx.AsyncClient(
            timeout=settings.request_timeout,
            headers={"User-Agent": settings.user_agent},
            follow_redirects=True,
        )

    async def __aenter__(self) -> "CatalogClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    def list_url(self, offset: int, limit: int) -> str:
        return f"{self.base_url}/pokemon?offset={offset}&limit={limit}"

    def detail_url(self, identifier: str | int) -> str:
        return f"{self.base_url}/pokemon/{identifier}/"

    async def fetch_json(self, url: str) -> dict[str, Any]:
        """
        GET a URL and decode its JSON body.

        Raises:
            CatalogFetchError: On transport errors, non-2xx responses or
                               undecodable bodies
        """
        try:
            response = await self._http.get(url)
            response.raise_for_status()
            data: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as e:
            raise CatalogFetchError(
                url, f"HTTP {e.response.status_code}", status=e.response.status_code
            ) from e
        except httpx.RequestError as e:
            raise CatalogFetchError(url, f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise CatalogFetchError(url, "invalid JSON body") from e

        return data

    async def fetch_page(self, url: str) -> ListPage:
        """
        Fetch one list page by its full URL (first page or a `next` link).

        Raises:
            CatalogFetchError: On request failure or a malformed page
        """
        data = await self.fetch_json(url)
        try:
            return parse_list_page(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CatalogFetchError(url, f"malformed list page: {e!r}") from e

    async def fetch_range(self, offset: int, limit: int) -> ListPage:
        """Fetch a contiguous slice of the list in a single request."""
        return await self.fetch_page(self.list_url(offset, limit))

    async def fetch_category(self, category: str) -> list[ItemStub]:
        """Fetch the membership index of one category (type)."""
        url = f"{self.base_url}/type/{category}"
        data = await self.fetch_json(url)
        try:
            members = parse_category_members(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CatalogFetchError(url, f"malformed category index: {e!r}") from e
        logger.debug("Category %s has %d members", category, len(members))
        return members

    async def fetch_detail(self, locator: str) -> ItemDetail:
        """
        Fetch and parse one detail record.

        Raises:
            CatalogFetchError: On request failure or a malformed record
        """
        data = await self.fetch_json(locator)
        try:
            return parse_detail(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CatalogFetchError(locator, f"malformed detail record: {e}") from e

    async def fetch_detail_data(self, identifier: str | int) -> dict[str, Any]:
        """
        Fetch the raw detail record for a name or dex number.

        Raises:
            SpeciesNotFoundError: If the catalog answers 404
            CatalogFetchError: On any other failure
        """
        try:
            return await self.fetch_json(self.detail_url(identifier))
        except CatalogFetchError as e:
            if e.status == 404:
                raise SpeciesNotFoundError(str(identifier)) from e
            raise
