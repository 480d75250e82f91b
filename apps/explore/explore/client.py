from __future__ import annotations

import time
from typing import Any, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from flight_schemas.filters import FilterRequest
from flight_schemas.models import (
    AutocompleteResponse,
    AutocompleteResult,
    ExploreCurrency,
    ExploreDestination,
    ExploreDestinationsResponse,
    ExploreFlightsResponse,
    PollResponse,
    SearchRequest,
    SearchResponse,
)
from shared.logging import get_logger, preview

from .config import ExploreConfig
from .errors import DecodeError, NetworkError, PaginationExhausted, ValidationError

logger = get_logger(__name__)

M = TypeVar("M", bound=BaseModel)


class ExploreAPIClient:
    """
    Request/response mapping for the flight search backend.

    Every call is a single round trip: no caching, no retries and no
    pagination policy live here. Callers own those decisions.
    """

    def __init__(self, cfg: ExploreConfig, http: Optional[httpx.AsyncClient] = None):
        self._cfg = cfg
        self._http = http
        self.last_currency: Optional[ExploreCurrency] = None

    @property
    def config(self) -> ExploreConfig:
        return self._cfg

    def http(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(timeout=self._cfg.timeout_s)
        return self._http

    async def close(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _url(self, path: str) -> str:
        return f"{self._cfg.base_url}{path}"

    async def _send(
        self,
        op: str,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Any] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        started = time.time()
        try:
            resp = await self.http().request(method, self._url(path), params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("%s_transport_failed path=%s err=%s", op, path, repr(e))
            raise NetworkError(f"{op} request failed: {e!r}") from e

        elapsed_ms = int((time.time() - started) * 1000)
        if resp.status_code >= 400:
            logger.warning(
                "%s_http_error status=%s latency_ms=%s body=%s",
                op,
                resp.status_code,
                elapsed_ms,
                preview(resp.text),
            )
            raise NetworkError(
                f"{op} returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=resp.text,
            )

        logger.debug("%s_ok status=%s latency_ms=%s", op, resp.status_code, elapsed_ms)
        return resp

    @staticmethod
    def _decode(op: str, model: Type[M], resp: httpx.Response) -> M:
        try:
            return model.model_validate_json(resp.content)
        except PydanticValidationError as e:
            logger.warning("%s_decode_failed errors=%s body=%s", op, e.error_count(), preview(resp.text))
            raise DecodeError(f"{op} response did not match {model.__name__}: {e}", body=resp.text) from e

    # Search

    @staticmethod
    def validate_search(request: SearchRequest) -> None:
        if not request.legs:
            raise ValidationError("at least one leg is required")
        for i, leg in enumerate(request.legs):
            if not leg.origin.strip():
                raise ValidationError(f"leg {i}: origin is required")
            if not leg.destination.strip():
                raise ValidationError(f"leg {i}: destination is required")
            if not leg.date.strip():
                raise ValidationError(f"leg {i}: date is required")

    async def search(self, request: SearchRequest) -> SearchResponse:
        self.validate_search(request)
        params = {
            "user_id": self._cfg.user_id,
            "currency": self._cfg.currency,
            "language": self._cfg.language,
            "app_code": self._cfg.app_code,
        }
        resp = await self._send(
            "search",
            "POST",
            "/search/",
            params=params,
            json=request.to_body(),
            headers={"country": self._cfg.country},
        )
        result = self._decode("search", SearchResponse, resp)
        logger.info(
            "search_submitted search_id=%s origin=%s destination=%s legs=%s",
            result.search_id,
            request.origin_code,
            request.destination_code,
            len(request.legs),
        )
        return result

    async def submit_search(self, request: SearchRequest) -> str:
        return (await self.search(request)).search_id

    # Poll

    async def poll_results(
        self,
        search_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        filter: Optional[FilterRequest] = None,
    ) -> PollResponse:
        params = {
            "search_id": search_id,
            "page": page,
            "limit": limit or self._cfg.page_limit,
        }
        body = filter.to_body() if filter is not None else {}
        try:
            resp = await self._send(
                "poll",
                "POST",
                "/poll/",
                params=params,
                json=body,
                headers={"country": self._cfg.country},
            )
        except NetworkError as e:
            if page > 1 and e.is_pagination_exhausted:
                raise PaginationExhausted(str(e), status_code=e.status_code, body=e.body) from e
            raise

        result = self._decode("poll", PollResponse, resp)
        logger.info(
            "poll_ok search_id=%s page=%s results=%s count=%s cache=%s has_next=%s filters=%s",
            search_id,
            page,
            len(result.results),
            result.count,
            result.cache,
            result.has_next,
            sorted(body),
        )
        return result

    # Autocomplete / explore

    async def fetch_autocomplete(
        self,
        query: str,
        country: Optional[str] = None,
        language: Optional[str] = None,
    ) -> List[AutocompleteResult]:
        q = query.strip()
        if not q:
            return []
        params = {
            "search": q,
            "country": country or self._cfg.country,
            "language": language or self._cfg.language,
        }
        resp = await self._send("autocomplete", "GET", "/autocomplete", params=params)
        return self._decode("autocomplete", AutocompleteResponse, resp).data

    async def fetch_destinations(
        self,
        departure: str,
        arrival_type: str = "country",
        arrival_id: Optional[str] = None,
    ) -> List[ExploreDestination]:
        params = {
            "country": self._cfg.country,
            "currency": self._cfg.currency,
            "departure": departure,
            "language": self._cfg.language,
            "arrival_type": arrival_type,
        }
        if arrival_id:
            params["arrival_id"] = arrival_id
        resp = await self._send("destinations", "GET", "/explore/", params=params)
        result = self._decode("destinations", ExploreDestinationsResponse, resp)
        if result.currency is not None:
            self.last_currency = result.currency
        return result.data

    async def fetch_explore_flights(
        self,
        origin: str,
        destination: str,
        departure: str,
        round_trip: bool = True,
    ) -> ExploreFlightsResponse:
        params = {"currency": self._cfg.currency, "country": self._cfg.country}
        body = {
            "origin": origin,
            "destination": destination,
            "departure": departure,
            "round_trip": round_trip,
        }
        resp = await self._send("explore_flights", "POST", "/explore/", params=params, json=body)
        result = self._decode("explore_flights", ExploreFlightsResponse, resp)
        # drop rows the backend sends without a route or departure
        result.results = [r for r in result.results if r.is_valid]
        return result
