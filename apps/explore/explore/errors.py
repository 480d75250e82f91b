from __future__ import annotations

from typing import Optional

from shared.logging import preview


class ExploreError(Exception):
    """Base for every failure the explore client reports."""

    def user_message(self) -> str:
        return str(self)


class ValidationError(ExploreError):
    """Search input rejected before any network call."""


class NetworkError(ExploreError):
    """Transport failure or non-2xx status. Carries the raw body when one arrived."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    @property
    def is_pagination_exhausted(self) -> bool:
        return self.status_code == 404

    def body_preview(self) -> str:
        return preview(self.body)

    def user_message(self) -> str:
        if self.status_code is not None:
            return f"Flight search service returned HTTP {self.status_code}"
        return "Could not reach the flight search service"


class PaginationExhausted(NetworkError):
    """A page past the end was requested (404 on a page > 1)."""

    def user_message(self) -> str:
        return "No more flights to load"


class DecodeError(ExploreError):
    """Response body does not match the expected envelope."""

    def __init__(self, message: str, body: Optional[str] = None):
        super().__init__(message)
        self.body = body

    def body_preview(self) -> str:
        return preview(self.body)

    def user_message(self) -> str:
        return "Flight search service sent an unexpected response"
