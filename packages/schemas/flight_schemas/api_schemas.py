from __future__ import annotations
from typing import List, Optional
from pydantic import BaseModel, Field, conint
from .filters import FilterRequest, StopSelection
from .models import AutocompleteResult, ExploreDestination, LocationSearchType, RecentPick, TripLeg

# Explore service bodies

class SearchSessionIn(BaseModel):
    # one leg per hop; round trips send two legs or origin/destination/dates
    legs: Optional[List[TripLeg]] = Field(None, min_length=1, max_length=6)
    origin: Optional[str] = Field(None, max_length=3)
    destination: Optional[str] = Field(None, max_length=3)
    departure_date: Optional[str] = Field(None, max_length=10, description="YYYY-MM-DD")
    return_date: Optional[str] = Field(None, max_length=10, description="YYYY-MM-DD")
    round_trip: bool = False
    adults: conint(ge=1, le=9) = 1
    children_ages: List[Optional[int]] = Field(default_factory=list)
    cabin_class: str = "economy"
    session_id: Optional[str] = None


class ApplyFilterIn(BaseModel):
    filter: Optional[FilterRequest] = None
    stops: Optional[StopSelection] = None


class PreviewCountOut(BaseModel):
    session_id: str
    count: int


class AutocompleteOut(BaseModel):
    results: List[AutocompleteResult]


class DestinationsOut(BaseModel):
    departure: str
    arrival_type: str
    destinations: List[ExploreDestination]


class ApiError(BaseModel):
    code: str
    message: str
    details: Optional[dict] = None


class RecentPicksOut(BaseModel):
    search_type: LocationSearchType
    picks: List[RecentPick]
