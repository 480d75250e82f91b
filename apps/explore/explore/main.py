from __future__ import annotations

import asyncio
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query
from pydantic import BaseModel

from flight_schemas.api_schemas import (
    ApiError,
    ApplyFilterIn,
    AutocompleteOut,
    DestinationsOut,
    PreviewCountOut,
    RecentPicksOut,
    SearchSessionIn,
)
from flight_schemas.filters import FilterRequest, QuickFilter
from flight_schemas.models import AutocompleteResult, LocationSearchType, SearchRequest
from shared.cache import KeyValueCache, MemoryCache, RedisCache
from shared.logging import configure_logging, get_logger
from shared.redis_client import RedisClient

from .client import ExploreAPIClient
from .config import LOG_LEVEL, ExploreConfig
from .destinations import DestinationCatalog
from .errors import ExploreError, ValidationError
from .orchestrator import PollOrchestrator, Sleep
from .recents import RecentPicks
from .sessions import Session, SessionStore
from .state import SearchSnapshot

logger = get_logger(__name__)


class SessionOut(BaseModel):
    session_id: str
    snapshot: SearchSnapshot
    is_loading: bool
    empty_message: Optional[str] = None


def _session_out(session: Session) -> SessionOut:
    snap = session.orchestrator.snapshot()
    return SessionOut(
        session_id=session.id,
        snapshot=snap,
        is_loading=snap.is_loading,
        empty_message=snap.empty_message,
    )


def _upstream_error(e: ExploreError) -> HTTPException:
    return HTTPException(
        status_code=502,
        detail=ApiError(code="upstream_failed", message=e.user_message()).model_dump(),
    )


def _to_search_request(body: SearchSessionIn) -> SearchRequest:
    if body.legs:
        return SearchRequest(
            legs=body.legs,
            round_trip=body.round_trip,
            adults=body.adults,
            children_ages=body.children_ages,
            cabin_class=body.cabin_class,
        )
    return SearchRequest.build(
        origin=(body.origin or "").upper(),
        destination=(body.destination or "").upper(),
        departure_date=body.departure_date or "",
        return_date=body.return_date,
        round_trip=body.round_trip,
        adults=body.adults,
        children_ages=body.children_ages,
        cabin_class=body.cabin_class,
    )


def build_app(
    client: Optional[Any] = None,
    cache: Optional[KeyValueCache] = None,
    cfg: Optional[ExploreConfig] = None,
    sleep: Sleep = asyncio.sleep,
) -> FastAPI:
    cfg = cfg or ExploreConfig.from_env()
    app = FastAPI(title="explore", version="0.1.0")

    @app.on_event("startup")
    async def startup() -> None:
        configure_logging(LOG_LEVEL)
        logger.info("explore starting base_url=%s country=%s", cfg.base_url, cfg.country)

        app.state.client = client or ExploreAPIClient(cfg)
        app.state.redis = None
        kv = cache
        if kv is None:
            r = RedisClient.from_env()
            if r is not None and await r.ping():
                logger.info("redis ping ok=True prefix=%s", r.key_prefix)
                app.state.redis = r
                kv = RedisCache(r.client(), prefix=r.key_prefix)
            else:
                if r is not None:
                    logger.warning("redis ping ok=False, using in-memory cache")
                    await r.close()
                kv = MemoryCache()
        app.state.catalog = DestinationCatalog(app.state.client, kv)
        app.state.recents = RecentPicks(kv)
        app.state.sessions = SessionStore(lambda: PollOrchestrator(app.state.client, cfg, sleep=sleep))

    @app.on_event("shutdown")
    async def shutdown() -> None:
        app.state.sessions.clear_all()
        if client is None:
            await app.state.client.close()
        if app.state.redis is not None:
            await app.state.redis.close()

    def _session(session_id: str) -> Session:
        session = app.state.sessions.get(session_id)
        if session is None:
            raise HTTPException(
                status_code=404,
                detail=ApiError(code="session_not_found", message=f"no search session {session_id}").model_dump(),
            )
        return session

    @app.get("/health")
    async def health() -> dict:
        return {"ok": True, "service": "explore"}

    @app.post("/v1/searches", response_model=SessionOut)
    async def start_search(body: SearchSessionIn) -> SessionOut:
        request = _to_search_request(body)
        try:
            ExploreAPIClient.validate_search(request)
        except ValidationError as e:
            raise HTTPException(
                status_code=422,
                detail=ApiError(code="invalid_search", message=str(e)).model_dump(),
            )

        session = app.state.sessions.start(body.session_id)
        await session.orchestrator.search(request)
        return _session_out(session)

    @app.get("/v1/searches/{session_id}", response_model=SessionOut)
    async def get_search(session_id: str, wait: bool = False) -> SessionOut:
        session = _session(session_id)
        if wait:
            await session.orchestrator.wait_settled()
        return _session_out(session)

    @app.post("/v1/searches/{session_id}/filters", response_model=SessionOut)
    async def apply_filters(session_id: str, body: ApplyFilterIn) -> SessionOut:
        session = _session(session_id)
        await session.orchestrator.apply_filter(body.filter, body.stops)
        return _session_out(session)

    @app.delete("/v1/searches/{session_id}/filters", response_model=SessionOut)
    async def clear_filters(session_id: str) -> SessionOut:
        session = _session(session_id)
        await session.orchestrator.clear_filters()
        return _session_out(session)

    @app.post("/v1/searches/{session_id}/filters/preview", response_model=PreviewCountOut)
    async def preview_filters(session_id: str, body: FilterRequest) -> PreviewCountOut:
        session = _session(session_id)
        try:
            count = await session.orchestrator.preview_count(body)
        except ValidationError as e:
            raise HTTPException(
                status_code=409,
                detail=ApiError(code="no_search", message=str(e)).model_dump(),
            )
        except ExploreError as e:
            raise _upstream_error(e)
        return PreviewCountOut(session_id=session_id, count=count)

    @app.post("/v1/searches/{session_id}/quick_filter/{option}", response_model=SessionOut)
    async def quick_filter(session_id: str, option: QuickFilter) -> SessionOut:
        session = _session(session_id)
        await session.orchestrator.apply_quick_filter(option)
        return _session_out(session)

    @app.post("/v1/searches/{session_id}/more", response_model=SessionOut)
    async def load_more(session_id: str) -> SessionOut:
        session = _session(session_id)
        await session.orchestrator.load_more()
        return _session_out(session)

    @app.post("/v1/searches/{session_id}/retry", response_model=SessionOut)
    async def retry(session_id: str) -> SessionOut:
        session = _session(session_id)
        await session.orchestrator.retry()
        return _session_out(session)

    @app.delete("/v1/searches/{session_id}")
    async def end_search(session_id: str) -> dict:
        _session(session_id)
        app.state.sessions.clear(session_id)
        return {"ok": True}

    @app.get("/v1/autocomplete", response_model=AutocompleteOut)
    async def autocomplete(
        q: str = Query(..., max_length=64),
        country: Optional[str] = None,
        language: Optional[str] = None,
    ) -> AutocompleteOut:
        try:
            results = await app.state.client.fetch_autocomplete(q, country=country, language=language)
        except ExploreError as e:
            raise _upstream_error(e)
        return AutocompleteOut(results=results)

    @app.get("/v1/destinations", response_model=DestinationsOut)
    async def destinations(
        departure: str = Query(..., min_length=3, max_length=3),
        arrival_type: str = Query("country", pattern="^(country|city)$"),
        arrival_id: Optional[str] = None,
    ) -> DestinationsOut:
        catalog: DestinationCatalog = app.state.catalog
        try:
            if arrival_type == "city":
                if not arrival_id:
                    raise HTTPException(
                        status_code=422,
                        detail=ApiError(code="missing_arrival_id", message="arrival_id is required for cities").model_dump(),
                    )
                found = await catalog.cities(departure, arrival_id)
            else:
                found = await catalog.countries(departure)
        except ExploreError as e:
            raise _upstream_error(e)
        return DestinationsOut(departure=departure.upper(), arrival_type=arrival_type, destinations=found)

    @app.get("/v1/recents/{search_type}", response_model=RecentPicksOut)
    async def list_recents(search_type: LocationSearchType, owner: Optional[str] = None) -> RecentPicksOut:
        picks = await app.state.recents.list(owner or cfg.user_id, search_type)
        return RecentPicksOut(search_type=search_type, picks=picks)

    @app.post("/v1/recents/{search_type}", response_model=RecentPicksOut)
    async def add_recent(
        search_type: LocationSearchType,
        body: AutocompleteResult,
        owner: Optional[str] = None,
    ) -> RecentPicksOut:
        if not body.iata_code.strip():
            raise HTTPException(
                status_code=422,
                detail=ApiError(code="missing_iata_code", message="iata_code is required").model_dump(),
            )
        picks = await app.state.recents.add(owner or cfg.user_id, body, search_type)
        return RecentPicksOut(search_type=search_type, picks=picks)

    @app.delete("/v1/recents/{search_type}/{iata_code}", response_model=RecentPicksOut)
    async def remove_recent(search_type: LocationSearchType, iata_code: str, owner: Optional[str] = None) -> RecentPicksOut:
        picks = await app.state.recents.remove(owner or cfg.user_id, search_type, iata_code)
        return RecentPicksOut(search_type=search_type, picks=picks)

    @app.delete("/v1/recents/{search_type}")
    async def clear_recents(search_type: LocationSearchType, owner: Optional[str] = None) -> dict:
        await app.state.recents.clear(owner or cfg.user_id, search_type)
        return {"ok": True}

    return app


app = build_app()
