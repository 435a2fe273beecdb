from collections.abc import AsyncGenerator, Callable
from typing import Any

import pytest

from dexcatalog.models.species import ItemDetail, ItemStub
from dexcatalog.services.catalog_client import CatalogClient
from dexcatalog.services.clock import VirtualClock

BASE_URL = "https://pokeapi.co/api/v2"

PayloadFactory = Callable[..., dict[str, Any]]


def _detail_payload(
    numeric_id: int,
    name: str,
    types: tuple[str, ...] = ("normal",),
    stats: dict[str, int] | None = None,
) -> dict[str, Any]:
    stats = stats or {"hp": 45, "attack": 49, "defense": 49, "speed": 45}
    return {
        "id": numeric_id,
        "name": name,
        "types": [
            {"slot": slot, "type": {"name": t, "url": f"{BASE_URL}/type/{t}/"}}
            for slot, t in enumerate(types, start=1)
        ],
        "stats": [
            {"base_stat": value, "effort": 0, "stat": {"name": stat}}
            for stat, value in stats.items()
        ],
        "sprites": {
            "front_default": f"https://img.example/{numeric_id}.png",
            "back_default": None,
            "other": {
                "official-artwork": {"front_default": f"https://img.example/art/{numeric_id}.png"}
            },
        },
        "species": {"name": name, "url": f"{BASE_URL}/pokemon-species/{numeric_id}/"},
    }


def _list_payload(
    names: list[tuple[int, str]],
    next_url: str | None = None,
    count: int | None = None,
) -> dict[str, Any]:
    return {
        "count": count if count is not None else len(names),
        "next": next_url,
        "previous": None,
        "results": [
            {"name": name, "url": f"{BASE_URL}/pokemon/{numeric_id}/"} for numeric_id, name in names
        ],
    }


def _type_payload(category: str, names: list[tuple[int, str]]) -> dict[str, Any]:
    return {
        "name": category,
        "pokemon": [
            {"pokemon": {"name": name, "url": f"{BASE_URL}/pokemon/{numeric_id}/"}, "slot": 1}
            for numeric_id, name in names
        ],
    }


@pytest.fixture
def detail_payload() -> PayloadFactory:
    """Factory for `GET /pokemon/{id}` payloads."""
    return _detail_payload


@pytest.fixture
def list_payload() -> PayloadFactory:
    """Factory for `GET /pokemon?offset&limit` payloads."""
    return _list_payload


@pytest.fixture
def type_payload() -> PayloadFactory:
    """Factory for `GET /type/{name}` payloads."""
    return _type_payload


@pytest.fixture
def make_stub() -> Callable[[int, str], ItemStub]:
    def factory(numeric_id: int, name: str) -> ItemStub:
        return ItemStub(identifier=name, locator=f"{BASE_URL}/pokemon/{numeric_id}/")

    return factory


@pytest.fixture
def make_detail() -> Callable[..., ItemDetail]:
    def factory(
        numeric_id: int,
        name: str,
        categories: tuple[str, ...] = ("normal",),
        stats: dict[str, int] | None = None,
    ) -> ItemDetail:
        return ItemDetail(
            numeric_id=numeric_id,
            identifier=name,
            categories=categories,
            stat_block=stats or {"hp": 50, "attack": 50},
        )

    return factory


@pytest.fixture
def clock() -> VirtualClock:
    """Clock whose sleeps complete at once."""
    return VirtualClock()


@pytest.fixture
def no_jitter() -> Callable[[float, float], float]:
    return lambda low, high: 0.0


@pytest.fixture
async def catalog_client() -> AsyncGenerator[CatalogClient, None]:
    async with CatalogClient(base_url=BASE_URL) as client:
        yield client
