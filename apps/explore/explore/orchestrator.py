from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, List, Optional, Protocol, Set

from flight_schemas.filters import FilterRequest, QuickFilter, StopSelection, quick_filter_request
from flight_schemas.models import FlightResult, PollResponse, SearchRequest
from shared.logging import get_logger

from .config import ExploreConfig
from .errors import ExploreError, PaginationExhausted, ValidationError
from .state import PaginationState, SearchPhase, SearchSnapshot

logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]
Subscriber = Callable[[SearchSnapshot], None]


class SearchClient(Protocol):
    async def submit_search(self, request: SearchRequest) -> str: ...

    async def poll_results(
        self,
        search_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        filter: Optional[FilterRequest] = None,
    ) -> PollResponse: ...


class PollOrchestrator:
    """
    Owns one logical "current search": submits it, polls the results
    endpoint until the backend reports its cache as ready, pages through
    results on demand and re-polls from page 1 whenever a filter changes.

    Every search and every filter application starts a new generation.
    A response (or a retry timer) tagged with an older generation is
    dropped without touching state, so there is never more than one
    authoritative poll stream.

    All mutation happens on the event loop that awaits these coroutines;
    no locks are taken.
    """

    def __init__(
        self,
        client: SearchClient,
        cfg: Optional[ExploreConfig] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        self._client = client
        self._cfg = cfg or ExploreConfig()
        self._sleep = sleep

        self._generation = 0
        self._state = PaginationState()
        self._phase = SearchPhase.IDLE
        self._request: Optional[SearchRequest] = None
        self._results: List[FlightResult] = []
        self._seen_ids: Set[str] = set()
        self._last_response: Optional[PollResponse] = None
        self._error: Optional[str] = None
        self._is_initial_empty = False
        # single in-flight flag: first poll, processing retry or load_more
        self._in_flight = False
        self._retry_task: Optional[asyncio.Task] = None
        self._subscribers: List[Subscriber] = []

    # Observation

    @property
    def phase(self) -> SearchPhase:
        return self._phase

    @property
    def pagination(self) -> PaginationState:
        return self._state

    @property
    def results(self) -> List[FlightResult]:
        return list(self._results)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def snapshot(self) -> SearchSnapshot:
        st = self._state
        last = self._last_response
        return SearchSnapshot(
            phase=self._phase,
            generation=self._generation,
            search_id=st.search_id,
            results=list(self._results),
            current_page=st.current_page,
            total_count=st.total_count,
            loaded_count=st.loaded_count,
            has_more=st.has_more,
            is_backend_cache_ready=st.is_backend_cache_ready,
            is_initial_empty_result=self._is_initial_empty,
            active_filter=st.active_filter,
            stop_selection=st.stop_selection,
            error=self._error,
            min_price=last.min_price if last else None,
            max_price=last.max_price if last else None,
            airlines=list(last.airlines) if last else [],
            agencies=list(last.agencies) if last else [],
        )

    def _notify(self) -> None:
        if not self._subscribers:
            return
        snap = self.snapshot()
        for callback in list(self._subscribers):
            try:
                callback(snap)
            except Exception:
                logger.exception("subscriber_failed generation=%s", self._generation)

    # Generations

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _next_generation(self) -> int:
        self._cancel_retry()
        self._generation += 1
        self._in_flight = False
        return self._generation

    def _cancel_retry(self) -> None:
        task = self._retry_task
        self._retry_task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _reset(self, state: PaginationState) -> None:
        self._state = state
        self._results = []
        self._seen_ids = set()
        self._last_response = None
        self._error = None
        self._is_initial_empty = False

    def cancel(self) -> None:
        """Invalidate whatever is outstanding. Late responses become no-ops."""
        self._next_generation()
        logger.info("search_cancelled generation=%s", self._generation)

    # Operations

    async def search(self, request: SearchRequest) -> None:
        gen = self._next_generation()
        self._request = request
        self._reset(PaginationState(generation=gen))
        self._phase = SearchPhase.SUBMITTING
        self._notify()

        try:
            search_id = await self._client.submit_search(request)
        except ExploreError as e:
            if self._is_current(gen):
                self._fail(gen, e, clear_results=True)
            return

        if not self._is_current(gen):
            logger.info("stale_search_discarded generation=%s current=%s", gen, self._generation)
            return

        self._state.search_id = search_id
        self._phase = SearchPhase.POLLING_FIRST_PAGE
        self._notify()
        await self._poll_first_page(gen)

    async def apply_filter(
        self,
        filter_request: Optional[FilterRequest],
        stop_selection: Optional[StopSelection] = None,
    ) -> None:
        search_id = self._state.search_id
        if search_id is None:
            logger.info("apply_filter_ignored reason=no_search")
            return

        if filter_request is not None and filter_request.is_empty:
            filter_request = None
        if stop_selection is not None and not stop_selection.is_refining:
            stop_selection = None
        if stop_selection is not None and (filter_request is None or filter_request.stop_count_max is None):
            bound = stop_selection.stop_count_max()
            if bound is not None:
                base = filter_request or FilterRequest()
                filter_request = base.model_copy(update={"stop_count_max": bound})

        gen = self._next_generation()
        self._reset(
            PaginationState(
                generation=gen,
                search_id=search_id,
                active_filter=filter_request,
                stop_selection=stop_selection,
            )
        )
        self._phase = SearchPhase.POLLING_FIRST_PAGE
        self._notify()
        await self._poll_first_page(gen)

    async def clear_filters(self) -> None:
        await self.apply_filter(None)

    async def apply_quick_filter(self, option: QuickFilter) -> None:
        st = self._state
        request = quick_filter_request(option, st.active_filter)
        # "direct" already pins stops to zero; band refinement would fight it
        selection = None if option is QuickFilter.DIRECT else st.stop_selection
        await self.apply_filter(request, selection)

    async def load_more(self) -> bool:
        """
        Fetch the next page. Returns False without doing anything unless the
        search is ready, reports more pages and nothing else is in flight.
        """
        st = self._state
        if self._phase is not SearchPhase.READY or not st.has_more or self._in_flight or st.search_id is None:
            return False

        gen = self._generation
        page = st.current_page + 1
        self._in_flight = True
        self._phase = SearchPhase.LOADING_MORE
        self._notify()

        attempt = 0
        while True:
            try:
                resp = await self._poll(page)
                break
            except ExploreError as e:
                if not self._is_current(gen):
                    return False
                if attempt >= self._cfg.load_more_max_retries:
                    self._give_up_paging(page, e)
                    return False
                delay = self._cfg.backoff_delay(attempt)
                attempt += 1
                logger.info(
                    "load_more_retry search_id=%s page=%s attempt=%s delay_s=%s err=%s",
                    st.search_id,
                    page,
                    attempt,
                    delay,
                    e,
                )
                await self._sleep(delay)
                if not self._is_current(gen):
                    return False

        if not self._is_current(gen):
            logger.info("stale_page_discarded page=%s generation=%s", page, gen)
            return False

        self._in_flight = False
        self._apply(gen, resp, page)
        return True

    async def preview_count(self, filter_request: Optional[FilterRequest]) -> int:
        """Server count for a filter, without touching held state."""
        search_id = self._state.search_id
        if search_id is None:
            raise ValidationError("no active search to preview filters against")
        resp = await self._client.poll_results(search_id, page=1, limit=1, filter=filter_request)
        return resp.count

    async def retry(self) -> None:
        """Re-run whatever failed: the whole search if no search id was ever obtained."""
        st = self._state
        if st.search_id is None:
            if self._request is not None:
                await self.search(self._request)
            return
        await self.apply_filter(st.active_filter, st.stop_selection)

    async def wait_settled(self) -> None:
        """Wait until no processing-retry chain is pending for this orchestrator."""
        while True:
            task = self._retry_task
            if task is None or task.done():
                return
            await asyncio.gather(task, return_exceptions=True)

    # Internals

    async def _poll(self, page: int) -> PollResponse:
        st = self._state
        return await self._client.poll_results(
            st.search_id,
            page=page,
            limit=self._cfg.page_limit,
            filter=st.active_filter,
        )

    async def _poll_first_page(self, gen: int) -> None:
        self._in_flight = True
        try:
            resp = await self._poll(1)
        except ExploreError as e:
            if self._is_current(gen):
                self._fail(gen, e, clear_results=True)
            return

        if not self._is_current(gen):
            logger.info("stale_poll_discarded page=1 generation=%s current=%s", gen, self._generation)
            return

        self._in_flight = False
        self._apply(gen, resp, 1)

    async def _processing_retry(self, gen: int, page: int) -> None:
        await self._sleep(self._cfg.processing_retry_delay_s)
        if not self._is_current(gen):
            return

        self._in_flight = True
        try:
            resp = await self._poll(page)
        except ExploreError as e:
            if self._is_current(gen):
                # keep what is already on screen
                self._fail(gen, e, clear_results=False)
            return

        if not self._is_current(gen):
            logger.info("stale_retry_discarded page=%s generation=%s", page, gen)
            return

        self._in_flight = False
        self._apply(gen, resp, page)

    def _schedule_retry(self, gen: int, page: int) -> None:
        pending = self._retry_task
        if pending is not None and not pending.done() and pending is not asyncio.current_task():
            return
        self._retry_task = asyncio.create_task(self._processing_retry(gen, page))

    def _merge(self, incoming: List[FlightResult]) -> int:
        selection = self._state.stop_selection
        added = 0
        for result in incoming:
            if result.id in self._seen_ids:
                continue
            self._seen_ids.add(result.id)
            if selection is not None and not selection.matches(result):
                continue
            self._results.append(result)
            added += 1
        self._state.loaded_count = len(self._results)
        return added

    def _apply(self, gen: int, resp: PollResponse, page: int) -> None:
        st = self._state
        added = self._merge(resp.results)

        st.total_count = resp.count
        st.is_backend_cache_ready = resp.cache
        self._last_response = resp
        self._error = None

        if not resp.cache:
            # page boundary is not authoritative yet; stay on this page
            st.has_more = True
            self._phase = SearchPhase.BACKEND_PROCESSING
            self._schedule_retry(gen, page)
        else:
            st.current_page = page
            st.has_more = resp.has_next and resp.count > 0
            # stop-band refinement can leave nothing from a non-empty server page
            if not st.has_more and not self._results:
                self._phase = SearchPhase.EMPTY
                self._is_initial_empty = st.is_first_poll_for_query
            elif resp.count == 0:
                self._phase = SearchPhase.EMPTY
                self._is_initial_empty = False
            else:
                self._phase = SearchPhase.READY

        if self._results:
            st.is_first_poll_for_query = False

        logger.info(
            "poll_merged search_id=%s generation=%s page=%s added=%s loaded=%s total=%s phase=%s",
            st.search_id,
            gen,
            page,
            added,
            st.loaded_count,
            st.total_count,
            self._phase.value,
        )
        self._notify()

    def _fail(self, gen: int, e: ExploreError, clear_results: bool) -> None:
        logger.warning(
            "search_failed search_id=%s generation=%s err=%s",
            self._state.search_id,
            gen,
            repr(e),
        )
        self._in_flight = False
        if clear_results:
            self._results = []
            self._seen_ids = set()
            self._state.loaded_count = 0
            self._state.total_count = 0
        self._state.has_more = False
        self._error = e.user_message()
        self._phase = SearchPhase.FAILED
        self._notify()

    def _give_up_paging(self, page: int, e: ExploreError) -> None:
        st = self._state
        exhausted = isinstance(e, PaginationExhausted)
        logger.warning(
            "load_more_gave_up search_id=%s page=%s exhausted=%s err=%s",
            st.search_id,
            page,
            exhausted,
            repr(e),
        )
        self._in_flight = False
        st.has_more = False
        self._error = None if exhausted else e.user_message()
        self._phase = SearchPhase.READY
        self._notify()
