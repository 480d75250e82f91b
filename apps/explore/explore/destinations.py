from __future__ import annotations

from typing import List, Optional

from flight_schemas.models import ExploreDestination
from shared.cache import KeyValueCache
from shared.logging import get_logger

from .client import ExploreAPIClient

logger = get_logger(__name__)


class DestinationCatalog:
    """
    Countries and cities reachable from a departure airport.

    Lists are cached for the life of the process under their query key;
    there is no expiry, only explicit eviction.
    """

    def __init__(self, client: ExploreAPIClient, cache: KeyValueCache):
        self._client = client
        self._cache = cache

    @staticmethod
    def _key(departure: str, arrival_type: str, arrival_id: Optional[str]) -> str:
        return f"destinations:{departure.upper()}:{arrival_type}:{arrival_id or '-'}"

    async def _load(self, departure: str, arrival_type: str, arrival_id: Optional[str]) -> List[ExploreDestination]:
        key = self._key(departure, arrival_type, arrival_id)
        cached = await self._cache.get(key)
        if cached is not None:
            logger.debug("destinations_cache_hit key=%s", key)
            return [ExploreDestination.model_validate(d) for d in cached]

        destinations = await self._client.fetch_destinations(
            departure=departure,
            arrival_type=arrival_type,
            arrival_id=arrival_id,
        )
        if destinations:
            await self._cache.set(key, [d.model_dump(mode="json") for d in destinations])
        logger.info("destinations_fetched key=%s count=%s", key, len(destinations))
        return destinations

    async def countries(self, departure: str) -> List[ExploreDestination]:
        return await self._load(departure, "country", None)

    async def cities(self, departure: str, country_id: str) -> List[ExploreDestination]:
        return await self._load(departure, "city", country_id)

    async def clear_countries(self, departure: str) -> None:
        await self._cache.delete(self._key(departure, "country", None))
