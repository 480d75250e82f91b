from __future__ import annotations
from enum import Enum
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, conint


def _wire(name: str, camel: str, default=None, **kw):
    # the backend mixes camelCase and snake_case keys; accept both
    alias = AliasChoices(name, camel)
    if "default_factory" in kw:
        return Field(validation_alias=alias, **kw)
    return Field(default, validation_alias=alias, **kw)


class WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


# Search

class TripLeg(WireModel):
    origin: str = ""
    destination: str = ""
    date: str = Field("", description="YYYY-MM-DD")


class SearchRequest(WireModel):
    """
    One submitted search. Multi-city searches carry one leg per hop;
    a round trip carries the return leg as its second leg.
    """

    legs: List[TripLeg] = Field(default_factory=list, max_length=6)
    round_trip: bool = False
    adults: conint(ge=1, le=9) = 1
    children_ages: List[Optional[int]] = Field(default_factory=list)
    cabin_class: str = "economy"

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def build(
        cls,
        origin: str,
        destination: str,
        departure_date: str,
        return_date: Optional[str] = None,
        round_trip: bool = False,
        adults: int = 1,
        children_ages: Optional[List[Optional[int]]] = None,
        cabin_class: str = "economy",
    ) -> "SearchRequest":
        legs = [TripLeg(origin=origin, destination=destination, date=departure_date)]
        if round_trip and return_date:
            legs.append(TripLeg(origin=destination, destination=origin, date=return_date))
        return cls(
            legs=legs,
            round_trip=round_trip,
            adults=adults,
            children_ages=children_ages or [],
            cabin_class=cabin_class,
        )

    @property
    def origin_code(self) -> str:
        return self.legs[0].origin if self.legs else ""

    @property
    def destination_code(self) -> str:
        if not self.legs:
            return ""
        if self.round_trip:
            return self.legs[0].destination
        return self.legs[-1].destination

    def to_body(self) -> dict:
        return {
            "legs": [leg.model_dump() for leg in self.legs],
            "cabin_class": self.cabin_class.lower(),
            "adults": self.adults,
            # ages not picked yet are dropped rather than sent as null
            "children_ages": [age for age in self.children_ages if age is not None],
        }


class CurrencyInfo(WireModel):
    code: str
    symbol: str = ""
    thousands_separator: str = ","
    decimal_separator: str = "."
    symbol_on_left: bool = True
    space_between_amount_and_symbol: bool = False
    decimal_digits: int = 2


class SearchResponse(WireModel):
    search_id: str = Field(..., min_length=1)
    language: Optional[str] = None
    currency: Optional[str] = None
    mode: Optional[int] = None
    currency_info: Optional[CurrencyInfo] = None


# Poll

class FlightSegment(WireModel):
    id: str = ""
    arrive_time_airport: int = _wire("arrive_time_airport", "arriveTimeAirport", 0)
    departure_time_airport: int = _wire("departure_time_airport", "departureTimeAirport", 0)
    duration: int = 0
    flight_number: str = _wire("flight_number", "flightNumber", "")
    airline_name: str = _wire("airline_name", "airlineName", "")
    airline_iata: str = _wire("airline_iata", "airlineIata", "")
    airline_logo: str = _wire("airline_logo", "airlineLogo", "")
    origin_code: str = _wire("origin_code", "originCode", "")
    origin: str = ""
    destination_code: str = _wire("destination_code", "destinationCode", "")
    destination: str = ""
    arrival_day_difference: int = _wire("arrival_day_difference", "arrivalDayDifference", 0)
    wifi: bool = False
    cabin_class: Optional[str] = _wire("cabin_class", "cabinClass")
    aircraft: Optional[str] = None


class FlightLeg(WireModel):
    """One direction of an itinerary (outbound or return)."""

    arrive_time_airport: int = _wire("arrive_time_airport", "arriveTimeAirport", 0)
    departure_time_airport: int = _wire("departure_time_airport", "departureTimeAirport", 0)
    duration: int = 0
    origin: str = ""
    origin_code: str = _wire("origin_code", "originCode", "")
    destination: str = ""
    destination_code: str = _wire("destination_code", "destinationCode", "")
    stop_count: int = _wire("stop_count", "stopCount", 0, ge=0)
    segments: List[FlightSegment] = Field(default_factory=list)


class SplitProvider(WireModel):
    name: str
    image_url: str = _wire("image_url", "imageURL", "")
    price: float = 0.0
    deeplink: str = ""
    rating: Optional[float] = None
    rating_count: Optional[int] = _wire("rating_count", "ratingCount")
    fare_family: Optional[str] = _wire("fare_family", "fareFamily")


class FlightProvider(WireModel):
    is_split: bool = _wire("is_split", "isSplit", False)
    transfer_type: str = _wire("transfer_type", "transferType", "")
    price: float = 0.0
    split_providers: List[SplitProvider] = _wire("split_providers", "splitProviders", default_factory=list)


class FlightResult(WireModel):
    id: str = Field(..., min_length=1)
    total_duration: int = 0
    min_price: float = 0.0
    max_price: float = 0.0
    legs: List[FlightLeg] = Field(default_factory=list)
    providers: List[FlightProvider] = Field(default_factory=list)
    is_best: bool = False
    is_cheapest: bool = False
    is_fastest: bool = False

    @property
    def price(self) -> float:
        return self.min_price

    @property
    def max_stops(self) -> int:
        """Largest stop count across legs; 0 for an itinerary without legs."""
        return max((leg.stop_count for leg in self.legs), default=0)


class PollAirline(WireModel):
    airline_name: str = _wire("airline_name", "airlineName", "")
    airline_iata: str = _wire("airline_iata", "airlineIata", "")
    airline_logo: str = _wire("airline_logo", "airlineLogo", "")


class Agency(WireModel):
    code: str
    name: str = ""
    image: str = ""


class FlightSummary(WireModel):
    price: float = 0.0
    duration: int = 0


class PollResponse(WireModel):
    count: int = Field(..., ge=0)
    results: List[FlightResult] = Field(default_factory=list)
    cache: bool
    next: Optional[str] = None
    previous: Optional[str] = None
    passenger_count: Optional[int] = None
    min_duration: Optional[int] = None
    max_duration: Optional[int] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    airlines: List[PollAirline] = Field(default_factory=list)
    agencies: List[Agency] = Field(default_factory=list)
    cheapest_flight: Optional[FlightSummary] = None
    best_flight: Optional[FlightSummary] = None
    fastest_flight: Optional[FlightSummary] = None

    @property
    def has_next(self) -> bool:
        return bool(self.next)


# Autocomplete

class AutocompleteCoordinates(WireModel):
    latitude: str = ""
    longitude: str = ""


class AutocompleteResult(WireModel):
    iata_code: str = _wire("iata_code", "iataCode", "")
    airport_name: str = _wire("airport_name", "airportName", "")
    type: str = ""
    display_name: str = _wire("display_name", "displayName", "")
    city_name: str = _wire("city_name", "cityName", "")
    country_name: str = _wire("country_name", "countryName", "")
    country_code: str = _wire("country_code", "countryCode", "")
    image_url: str = _wire("image_url", "imageUrl", "")
    coordinates: Optional[AutocompleteCoordinates] = None


class AutocompleteResponse(WireModel):
    data: List[AutocompleteResult] = Field(default_factory=list)
    language: Optional[str] = None


class LocationSearchType(str, Enum):
    DEPARTURE = "departure"
    DESTINATION = "destination"


class RecentPick(WireModel):
    """An autocomplete result the user picked, remembered per search type."""

    iata_code: str = Field(..., min_length=1)
    city_name: str = ""
    country_name: str = ""
    airport_name: str = ""
    type: str = ""
    image_url: str = ""
    search_type: LocationSearchType
    timestamp: float = 0.0

    @property
    def display_name(self) -> str:
        return f"{self.city_name}, {self.country_name}"

    @property
    def display_description(self) -> str:
        return self.airport_name if self.type == "airport" else "All Airports"


# Explore (countries / cities / cheapest dates)

class ExploreLocation(WireModel):
    entity_id: str = _wire("entity_id", "entityId", "")
    name: str = ""
    iata: str = ""


class ExploreDestination(WireModel):
    price: int = 0
    location: ExploreLocation
    is_direct: bool = False

    @property
    def id(self) -> str:
        return self.location.entity_id


class ExploreCurrency(WireModel):
    code: str = ""
    symbol: str = ""


class ExploreDestinationsResponse(WireModel):
    data: List[ExploreDestination] = Field(default_factory=list)
    currency: Optional[ExploreCurrency] = None


class PlaceRef(WireModel):
    iata: str
    name: str = ""
    country: str = ""


class AirlineRef(WireModel):
    iata: str
    name: str = ""
    logo: str = ""


class ExploreFlightLeg(WireModel):
    origin: PlaceRef
    destination: PlaceRef
    airline: AirlineRef
    departure: Optional[int] = None
    departure_datetime: Optional[str] = None
    direct: bool = False


class PriceStats(WireModel):
    mean: float
    std_dev: float
    lower_threshold: float
    upper_threshold: float


class ExploreFlight(WireModel):
    date: int
    price: int
    currency: str
    outbound: ExploreFlightLeg
    inbound: Optional[ExploreFlightLeg] = None
    price_category: str = ""

    @property
    def is_valid(self) -> bool:
        return (
            bool(self.outbound.origin.iata)
            and bool(self.outbound.destination.iata)
            and self.price > 0
            and self.outbound.departure is not None
        )


class ExploreFlightsResponse(WireModel):
    price_stats: Optional[PriceStats] = None
    results: List[ExploreFlight] = Field(default_factory=list)
