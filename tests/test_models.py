from __future__ import annotations

from flight_schemas.models import AutocompleteResponse, PollResponse, SearchRequest

POLL_BODY = {
    "count": 2,
    "next": "https://api.test/api/poll/?page=2",
    "previous": None,
    "cache": True,
    "passenger_count": 1,
    "min_duration": 185,
    "max_duration": 960,
    "min_price": 10234.0,
    "max_price": 48110.0,
    "airlines": [{"airlineName": "Emirates", "airlineIata": "EK", "airlineLogo": "https://img/ek.png"}],
    "agencies": [{"code": "mmt", "name": "MakeMyTrip", "image": "https://img/mmt.png"}],
    "cheapest_flight": {"price": 10234.0, "duration": 240},
    "best_flight": {"price": 11000.0, "duration": 200},
    "fastest_flight": {"price": 15000.0, "duration": 185},
    "results": [
        {
            "id": "COK-DXB-EK531",
            "total_duration": 240,
            "min_price": 10234.0,
            "max_price": 12000.0,
            "is_best": True,
            "is_cheapest": True,
            "is_fastest": False,
            "legs": [
                {
                    "arriveTimeAirport": 1767004200,
                    "departureTimeAirport": 1766989800,
                    "duration": 240,
                    "origin": "Kochi",
                    "originCode": "COK",
                    "destination": "Dubai",
                    "destinationCode": "DXB",
                    "stopCount": 0,
                    "segments": [
                        {
                            "id": "seg-1",
                            "arriveTimeAirport": 1767004200,
                            "departureTimeAirport": 1766989800,
                            "duration": 240,
                            "flightNumber": "EK531",
                            "airlineName": "Emirates",
                            "airlineIata": "EK",
                            "airlineLogo": "https://img/ek.png",
                            "originCode": "COK",
                            "origin": "Kochi",
                            "destinationCode": "DXB",
                            "destination": "Dubai",
                            "arrival_day_difference": 0,
                            "wifi": True,
                            "cabinClass": "economy",
                            "aircraft": None,
                        }
                    ],
                }
            ],
            "providers": [
                {
                    "isSplit": False,
                    "transferType": "none",
                    "price": 10234.0,
                    "splitProviders": [
                        {"name": "MakeMyTrip", "imageURL": "https://img/mmt.png", "price": 10234.0, "deeplink": "https://mmt/x"}
                    ],
                }
            ],
        },
        {"id": "COK-DXB-AI933", "legs": [{"stopCount": 1}, {"stopCount": 2}]},
    ],
}


def test_poll_response_decodes_wire_shape():
    resp = PollResponse.model_validate(POLL_BODY)

    assert resp.count == 2
    assert resp.cache is True
    assert resp.has_next
    assert resp.airlines[0].airline_iata == "EK"
    assert resp.fastest_flight.duration == 185

    first = resp.results[0]
    assert first.price == 10234.0
    assert first.is_cheapest
    assert first.legs[0].origin_code == "COK"
    assert first.legs[0].segments[0].flight_number == "EK531"
    assert first.providers[0].split_providers[0].image_url == "https://img/mmt.png"
    assert first.max_stops == 0

    assert resp.results[1].max_stops == 2


def test_poll_response_minimal_envelope():
    resp = PollResponse.model_validate({"count": 0, "results": [], "cache": False})

    assert resp.next is None
    assert not resp.has_next
    assert resp.airlines == []


def test_search_request_round_trip_adds_return_leg():
    req = SearchRequest.build(
        origin="COK",
        destination="DXB",
        departure_date="2025-12-29",
        return_date="2026-01-05",
        round_trip=True,
        adults=2,
        children_ages=[4, None, 9],
        cabin_class="Business",
    )

    assert req.origin_code == "COK"
    assert req.destination_code == "DXB"
    assert req.to_body() == {
        "legs": [
            {"origin": "COK", "destination": "DXB", "date": "2025-12-29"},
            {"origin": "DXB", "destination": "COK", "date": "2026-01-05"},
        ],
        "cabin_class": "business",
        "adults": 2,
        "children_ages": [4, 9],
    }


def test_search_request_one_way_ignores_return_date():
    req = SearchRequest.build(origin="COK", destination="DXB", departure_date="2025-12-29", return_date="2026-01-05")

    assert len(req.legs) == 1
    assert req.destination_code == "DXB"


def test_autocomplete_accepts_snake_and_camel_keys():
    resp = AutocompleteResponse.model_validate(
        {
            "data": [
                {"iata_code": "DXB", "city_name": "Dubai", "country_name": "UAE", "type": "airport", "airport_name": "Dubai Intl"},
                {"iataCode": "COK", "cityName": "Kochi", "countryName": "India", "type": "airport", "airportName": "Cochin Intl"},
            ],
            "language": "en-GB",
        }
    )

    assert [(r.iata_code, r.city_name) for r in resp.data] == [("DXB", "Dubai"), ("COK", "Kochi")]
