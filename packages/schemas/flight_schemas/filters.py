from __future__ import annotations
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from pydantic import BaseModel, Field, conint

from .models import FlightResult

SORT_BY_VALUES = ("price", "duration", "departure", "arrival")
SORT_ORDER_VALUES = ("asc", "desc")
DEFAULT_SORT_ORDER = "asc"

SECONDS_PER_DAY = 24 * 60 * 60


class TimeWindow(BaseModel):
    """Second-of-day bounds; either side may be open."""

    min: Optional[conint(ge=0, le=SECONDS_PER_DAY)] = None
    max: Optional[conint(ge=0, le=SECONDS_PER_DAY)] = None

    def to_body(self) -> Dict[str, int]:
        body: Dict[str, int] = {}
        if self.min is not None:
            body["min"] = self.min
        if self.max is not None:
            body["max"] = self.max
        return body


class ArrivalDepartureRange(BaseModel):
    arrival: Optional[TimeWindow] = None
    departure: Optional[TimeWindow] = None

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        for key, window in (("arrival", self.arrival), ("departure", self.departure)):
            if window is None:
                continue
            w = window.to_body()
            if w:
                body[key] = w
        return body


class FilterRequest(BaseModel):
    """
    Optional constraints sent with every poll.

    Unset fields, empty lists and zero price/duration bounds are never
    serialized: the backend treats any key it receives as an active
    constraint. `stop_count_max=0` is meaningful (direct only) and is kept.
    """

    duration_max: Optional[int] = Field(None, description="minutes")
    stop_count_max: Optional[conint(ge=0)] = None
    arrival_departure_ranges: Optional[List[ArrivalDepartureRange]] = None
    iata_codes_include: Optional[List[str]] = None
    iata_codes_exclude: Optional[List[str]] = None
    agency_include: Optional[List[str]] = None
    agency_exclude: Optional[List[str]] = None
    # plain strings: unknown values are dropped at serialization, not rejected
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    price_min: Optional[float] = None
    price_max: Optional[float] = None

    def to_body(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {}

        if self.duration_max is not None and self.duration_max > 0:
            body["duration_max"] = self.duration_max

        if self.stop_count_max is not None:
            body["stop_count_max"] = self.stop_count_max

        if self.arrival_departure_ranges:
            ranges = [r.to_body() for r in self.arrival_departure_ranges]
            ranges = [r for r in ranges if r]
            if ranges:
                body["arrival_departure_ranges"] = ranges

        for key in ("iata_codes_exclude", "iata_codes_include"):
            codes = getattr(self, key)
            if codes:
                body[key] = list(codes)

        if self.sort_by in SORT_BY_VALUES:
            body["sort_by"] = self.sort_by
            order = self.sort_order if self.sort_order in SORT_ORDER_VALUES else DEFAULT_SORT_ORDER
            body["sort_order"] = order

        for key in ("agency_exclude", "agency_include"):
            agencies = getattr(self, key)
            if agencies:
                body[key] = list(agencies)

        if self.price_min is not None and self.price_min > 0:
            body["price_min"] = self.price_min
        if self.price_max is not None and self.price_max > 0:
            body["price_max"] = self.price_max

        return body

    @property
    def is_empty(self) -> bool:
        return not self.to_body()

    @property
    def has_sort(self) -> bool:
        return self.sort_by in SORT_BY_VALUES

    def constraints(self) -> "FilterRequest":
        """Copy without sorting and without airline/agency exclusions."""
        return FilterRequest(
            duration_max=self.duration_max,
            stop_count_max=self.stop_count_max,
            arrival_departure_ranges=self.arrival_departure_ranges,
            iata_codes_include=self.iata_codes_include,
            price_min=self.price_min,
            price_max=self.price_max,
        )


class StopSelection(BaseModel):
    """
    Exact stop bands picked in the filter sheet.

    The backend only understands an upper bound (`stop_count_max`), so
    "1 stop only" is sent as `stop_count_max=1` and direct flights are then
    removed client-side from every page that arrives.
    """

    direct: bool = True
    one_stop: bool = True
    multi_stop: bool = True

    def _selected(self) -> List[bool]:
        return [self.direct, self.one_stop, self.multi_stop]

    @property
    def is_refining(self) -> bool:
        picked = sum(self._selected())
        return 0 < picked < 3

    def stop_count_max(self) -> Optional[int]:
        if not self.is_refining or self.multi_stop:
            return None
        if self.one_stop:
            return 1
        return 0

    def matches(self, result: FlightResult) -> bool:
        if not self.is_refining:
            return True
        stops = result.max_stops
        if stops == 0:
            return self.direct
        if stops == 1:
            return self.one_stop
        return self.multi_stop

    def refine(self, results: Iterable[FlightResult]) -> List[FlightResult]:
        return [r for r in results if self.matches(r)]


class QuickFilter(str, Enum):
    ALL = "all"
    BEST = "best"
    CHEAPEST = "cheapest"
    FASTEST = "fastest"
    DIRECT = "direct"


def quick_filter_request(option: QuickFilter, base: Optional[FilterRequest] = None) -> FilterRequest:
    """
    Build the request behind a quick-filter tab.

    `all` and `best` keep the active filter as is ("best" is the backend's
    default ordering, so no sort_by is sent). The others keep the active
    constraints and add their own sort or stop bound.
    """
    if option in (QuickFilter.ALL, QuickFilter.BEST):
        return base.model_copy(deep=True) if base is not None else FilterRequest()

    req = base.constraints() if base is not None else FilterRequest()
    if option is QuickFilter.CHEAPEST:
        return req.model_copy(update={"sort_by": "price", "sort_order": "asc"})
    if option is QuickFilter.FASTEST:
        return req.model_copy(update={"sort_by": "duration", "sort_order": "asc"})
    return req.model_copy(update={"stop_count_max": 0})
