from __future__ import annotations

from typing import Dict, List, Optional

from explore.destinations import DestinationCatalog
from flight_schemas.models import ExploreDestination, ExploreLocation
from shared.cache import MemoryCache, RedisCache


class FakeRedis:
    """The three commands RedisCache issues, backed by a dict."""

    def __init__(self) -> None:
        self.data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class DestinationsClient:
    def __init__(self, destinations: List[ExploreDestination]):
        self.destinations = destinations
        self.calls: List[tuple] = []

    async def fetch_destinations(self, departure, arrival_type="country", arrival_id=None):
        self.calls.append((departure, arrival_type, arrival_id))
        return list(self.destinations)


def destination(entity_id: str, name: str, price: int) -> ExploreDestination:
    return ExploreDestination(price=price, location=ExploreLocation(entity_id=entity_id, name=name), is_direct=True)


async def test_redis_cache_stores_json_under_prefix():
    r = FakeRedis()
    cache = RedisCache(r, prefix="explore")

    await cache.set("destinations:COK", [{"price": 1}])

    assert r.data == {"explore:destinations:COK": '[{"price": 1}]'}
    assert await cache.get("destinations:COK") == [{"price": 1}]
    assert await cache.get("missing") is None

    await cache.delete("destinations:COK")
    assert r.data == {}


async def test_countries_are_fetched_once():
    client = DestinationsClient([destination("29475437", "United Arab Emirates", 12000)])
    catalog = DestinationCatalog(client, MemoryCache())

    first = await catalog.countries("cok")
    second = await catalog.countries("COK")

    assert [d.id for d in first] == ["29475437"]
    assert second == first
    assert client.calls == [("cok", "country", None)]


async def test_cities_are_keyed_by_country():
    client = DestinationsClient([destination("95673506", "Dubai", 11000)])
    catalog = DestinationCatalog(client, RedisCache(FakeRedis()))

    await catalog.cities("COK", "29475437")
    await catalog.cities("COK", "29475437")
    await catalog.cities("COK", "27538634")

    assert client.calls == [("COK", "city", "29475437"), ("COK", "city", "27538634")]


async def test_empty_lists_are_not_cached():
    client = DestinationsClient([])
    catalog = DestinationCatalog(client, MemoryCache())

    assert await catalog.countries("COK") == []
    assert await catalog.countries("COK") == []
    assert len(client.calls) == 2


async def test_clear_countries_forces_refetch():
    client = DestinationsClient([destination("29475437", "United Arab Emirates", 12000)])
    catalog = DestinationCatalog(client, MemoryCache())

    await catalog.countries("COK")
    await catalog.clear_countries("COK")
    await catalog.countries("COK")

    assert len(client.calls) == 2
