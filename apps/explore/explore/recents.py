from __future__ import annotations

import time
from typing import Callable, List

from flight_schemas.models import AutocompleteResult, LocationSearchType, RecentPick
from shared.cache import KeyValueCache
from shared.logging import get_logger

logger = get_logger(__name__)

MAX_PICKS_PER_TYPE = 5


class RecentPicks:
    """
    Autocomplete results a user picked, newest first.

    Departure and destination picks are kept apart, each capped at
    MAX_PICKS_PER_TYPE. Picking the same airport again moves it to the front.
    """

    def __init__(
        self,
        cache: KeyValueCache,
        limit: int = MAX_PICKS_PER_TYPE,
        clock: Callable[[], float] = time.time,
    ):
        self._cache = cache
        self._limit = limit
        self._clock = clock

    @staticmethod
    def _key(owner: str, search_type: LocationSearchType) -> str:
        return f"recents:{owner}:{search_type.value}"

    async def list(self, owner: str, search_type: LocationSearchType) -> List[RecentPick]:
        raw = await self._cache.get(self._key(owner, search_type))
        if not raw:
            return []
        return [RecentPick.model_validate(p) for p in raw]

    async def _save(self, owner: str, search_type: LocationSearchType, picks: List[RecentPick]) -> None:
        key = self._key(owner, search_type)
        if picks:
            await self._cache.set(key, [p.model_dump(mode="json") for p in picks])
        else:
            await self._cache.delete(key)

    async def add(self, owner: str, result: AutocompleteResult, search_type: LocationSearchType) -> List[RecentPick]:
        pick = RecentPick(
            iata_code=result.iata_code,
            city_name=result.city_name,
            country_name=result.country_name,
            airport_name=result.airport_name,
            type=result.type,
            image_url=result.image_url,
            search_type=search_type,
            timestamp=self._clock(),
        )
        current = await self.list(owner, search_type)
        picks = [pick] + [p for p in current if p.iata_code != pick.iata_code]
        picks = picks[: self._limit]
        await self._save(owner, search_type, picks)
        logger.info("recent_pick_added owner=%s type=%s iata=%s kept=%s", owner, search_type.value, pick.iata_code, len(picks))
        return picks

    async def remove(self, owner: str, search_type: LocationSearchType, iata_code: str) -> List[RecentPick]:
        picks = [p for p in await self.list(owner, search_type) if p.iata_code != iata_code]
        await self._save(owner, search_type, picks)
        return picks

    async def clear(self, owner: str, search_type: LocationSearchType) -> None:
        await self._cache.delete(self._key(owner, search_type))
