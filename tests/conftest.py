from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Union

import pytest

from explore.config import ExploreConfig
from explore.errors import ExploreError
from explore.orchestrator import PollOrchestrator
from flight_schemas.filters import FilterRequest
from flight_schemas.models import FlightLeg, FlightResult, PollResponse, SearchRequest


def make_result(result_id: str, stops: Union[int, List[int]] = 0, price: float = 100.0) -> FlightResult:
    per_leg = stops if isinstance(stops, list) else [stops]
    return FlightResult(
        id=result_id,
        min_price=price,
        max_price=price,
        legs=[FlightLeg(origin_code="COK", destination_code="DXB", stop_count=s) for s in per_leg],
    )


def make_results(prefix: str, n: int, start: int = 0) -> List[FlightResult]:
    return [make_result(f"{prefix}{i}") for i in range(start, start + n)]


def poll(results: List[FlightResult], cache: bool, count: Optional[int] = None, next: Optional[str] = None) -> PollResponse:
    return PollResponse(
        count=len(results) if count is None else count,
        results=results,
        cache=cache,
        next=next,
        min_price=50.0,
        max_price=900.0,
    )


class FakeSearchClient:
    """
    Scripted stand-in for ExploreAPIClient.

    Poll replies are consumed in order; an ExploreError instance in the
    script is raised instead of returned. A `gate` (asyncio.Event) makes the
    next poll suspend until the test releases it.
    """

    def __init__(self, search_id: str = "abc123"):
        self.search_id = search_id
        self.search_calls: List[SearchRequest] = []
        self.poll_calls: List[Dict[str, Any]] = []
        self.replies: List[Union[PollResponse, ExploreError]] = []
        self.search_error: Optional[ExploreError] = None
        self.gates: List[Optional[asyncio.Event]] = []

    def script(self, *replies: Union[PollResponse, ExploreError]) -> "FakeSearchClient":
        self.replies.extend(replies)
        return self

    async def submit_search(self, request: SearchRequest) -> str:
        self.search_calls.append(request)
        if self.search_error is not None:
            raise self.search_error
        return self.search_id

    async def poll_results(
        self,
        search_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        filter: Optional[FilterRequest] = None,
    ) -> PollResponse:
        self.poll_calls.append({"search_id": search_id, "page": page, "limit": limit, "filter": filter})
        gate = self.gates.pop(0) if self.gates else None
        reply = self.replies.pop(0)
        if gate is not None:
            await gate.wait()
        if isinstance(reply, ExploreError):
            raise reply
        return reply


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: List[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def client() -> FakeSearchClient:
    return FakeSearchClient()


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def cfg() -> ExploreConfig:
    return ExploreConfig(base_url="https://api.test/api", page_limit=30)


@pytest.fixture
def orchestrator(client: FakeSearchClient, cfg: ExploreConfig, sleep: RecordingSleep) -> PollOrchestrator:
    return PollOrchestrator(client, cfg, sleep=sleep)


@pytest.fixture
def cok_dxb() -> SearchRequest:
    return SearchRequest.build(origin="COK", destination="DXB", departure_date="2025-12-29", round_trip=False)
