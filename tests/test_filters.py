from __future__ import annotations

from conftest import make_result

from flight_schemas.filters import (
    ArrivalDepartureRange,
    FilterRequest,
    QuickFilter,
    StopSelection,
    TimeWindow,
    quick_filter_request,
)


def test_empty_filter_serializes_to_empty_body():
    assert FilterRequest().to_body() == {}
    assert FilterRequest().is_empty


def test_direct_only_is_a_real_constraint():
    assert FilterRequest(stop_count_max=0).to_body() == {"stop_count_max": 0}


def test_zero_and_empty_values_are_not_sent():
    req = FilterRequest(
        duration_max=0,
        price_min=0,
        price_max=0.0,
        iata_codes_include=[],
        iata_codes_exclude=[],
        agency_include=[],
        agency_exclude=[],
        arrival_departure_ranges=[ArrivalDepartureRange(), ArrivalDepartureRange(arrival=TimeWindow())],
    )
    assert req.to_body() == {}


def test_full_filter_body():
    req = FilterRequest(
        duration_max=600,
        stop_count_max=1,
        arrival_departure_ranges=[
            ArrivalDepartureRange(
                departure=TimeWindow(min=0, max=43200),
                arrival=TimeWindow(max=86400),
            )
        ],
        iata_codes_include=["EK", "AI"],
        iata_codes_exclude=["FZ"],
        agency_include=["mmt"],
        agency_exclude=["kiwi"],
        sort_by="duration",
        sort_order="desc",
        price_min=1000,
        price_max=25000.5,
    )
    assert req.to_body() == {
        "duration_max": 600,
        "stop_count_max": 1,
        "arrival_departure_ranges": [
            {"arrival": {"max": 86400}, "departure": {"min": 0, "max": 43200}},
        ],
        "iata_codes_include": ["EK", "AI"],
        "iata_codes_exclude": ["FZ"],
        "agency_include": ["mmt"],
        "agency_exclude": ["kiwi"],
        "sort_by": "duration",
        "sort_order": "desc",
        "price_min": 1000,
        "price_max": 25000.5,
    }


def test_invalid_sort_by_is_dropped_with_its_order():
    assert FilterRequest(sort_by="best", sort_order="desc").to_body() == {}


def test_sort_order_defaults_to_ascending():
    assert FilterRequest(sort_by="price").to_body() == {"sort_by": "price", "sort_order": "asc"}
    assert FilterRequest(sort_by="arrival", sort_order="sideways").to_body() == {
        "sort_by": "arrival",
        "sort_order": "asc",
    }


def test_stop_selection_bounds():
    assert StopSelection().stop_count_max() is None
    assert StopSelection(direct=False, one_stop=False, multi_stop=False).stop_count_max() is None
    assert StopSelection(direct=True, one_stop=False, multi_stop=False).stop_count_max() == 0
    assert StopSelection(direct=True, one_stop=True, multi_stop=False).stop_count_max() == 1
    assert StopSelection(direct=False, one_stop=True, multi_stop=False).stop_count_max() == 1
    assert StopSelection(direct=False, one_stop=False, multi_stop=True).stop_count_max() is None


def test_stop_selection_uses_worst_leg():
    direct_out_one_stop_back = make_result("rt", [0, 1])
    multi = make_result("m", [2])

    one_stop_only = StopSelection(direct=False, one_stop=True, multi_stop=False)
    assert one_stop_only.matches(direct_out_one_stop_back)
    assert not one_stop_only.matches(make_result("d", 0))

    no_direct = StopSelection(direct=False, one_stop=True, multi_stop=True)
    assert no_direct.refine([make_result("d", 0), direct_out_one_stop_back, multi]) == [
        direct_out_one_stop_back,
        multi,
    ]


def test_all_or_no_bands_do_not_refine():
    results = [make_result("a", 0), make_result("b", 3)]
    assert StopSelection().refine(results) == results
    assert StopSelection(direct=False, one_stop=False, multi_stop=False).refine(results) == results


def test_quick_filters():
    base = FilterRequest(
        stop_count_max=1,
        price_max=30000,
        iata_codes_exclude=["FZ"],
        sort_by="duration",
    )

    assert quick_filter_request(QuickFilter.ALL, base) == base
    assert quick_filter_request(QuickFilter.BEST, None) == FilterRequest()

    cheapest = quick_filter_request(QuickFilter.CHEAPEST, base).to_body()
    assert cheapest == {"stop_count_max": 1, "price_max": 30000, "sort_by": "price", "sort_order": "asc"}

    fastest = quick_filter_request(QuickFilter.FASTEST, None).to_body()
    assert fastest == {"sort_by": "duration", "sort_order": "asc"}

    direct = quick_filter_request(QuickFilter.DIRECT, base).to_body()
    assert direct == {"stop_count_max": 0, "price_max": 30000}
