from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from flight_schemas.filters import FilterRequest, StopSelection
from flight_schemas.models import Agency, FlightResult, PollAirline


class SearchPhase(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    POLLING_FIRST_PAGE = "polling_first_page"
    BACKEND_PROCESSING = "backend_processing"
    READY = "ready"
    LOADING_MORE = "loading_more"
    EMPTY = "empty"
    FAILED = "failed"


NO_FLIGHTS_MESSAGE = "No flights found for this search"
NO_FILTER_MATCHES_MESSAGE = "No flights match these filters"
NO_FLIGHTS_ROUTE_MESSAGE = "No flights found for this route and date"


@dataclass
class PaginationState:
    """
    Counters for one search + filter generation.
    Replaced wholesale when a new search starts or a filter is applied.
    """

    generation: int = 0
    search_id: Optional[str] = None
    current_page: int = 1
    total_count: int = 0
    loaded_count: int = 0
    is_backend_cache_ready: bool = False
    has_more: bool = True
    # stays true until a poll for this query has shown at least one result
    is_first_poll_for_query: bool = True
    active_filter: Optional[FilterRequest] = None
    stop_selection: Optional[StopSelection] = None


class SearchSnapshot(BaseModel):
    """Immutable view handed to subscribers and returned by the HTTP service."""

    model_config = ConfigDict(frozen=True)

    phase: SearchPhase
    generation: int
    search_id: Optional[str] = None
    results: List[FlightResult] = []
    current_page: int = 1
    total_count: int = 0
    loaded_count: int = 0
    has_more: bool = False
    is_backend_cache_ready: bool = False
    is_initial_empty_result: bool = False
    active_filter: Optional[FilterRequest] = None
    stop_selection: Optional[StopSelection] = None
    error: Optional[str] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    airlines: List[PollAirline] = []
    agencies: List[Agency] = []

    @property
    def is_loading(self) -> bool:
        if self.phase in (SearchPhase.SUBMITTING, SearchPhase.POLLING_FIRST_PAGE):
            return True
        return self.phase is SearchPhase.BACKEND_PROCESSING and not self.results

    @property
    def is_filtered(self) -> bool:
        if self.active_filter is not None:
            return True
        return self.stop_selection is not None and self.stop_selection.is_refining

    @property
    def empty_message(self) -> Optional[str]:
        if self.phase is not SearchPhase.EMPTY:
            return None
        if self.is_filtered:
            return NO_FILTER_MATCHES_MESSAGE
        if self.is_initial_empty_result:
            return NO_FLIGHTS_MESSAGE
        return NO_FLIGHTS_ROUTE_MESSAGE
