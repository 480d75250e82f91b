from __future__ import annotations

import os
from dataclasses import dataclass

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class ExploreConfig:
    base_url: str = "https://staging.plane.lascade.com/api"
    country: str = "IN"
    currency: str = "INR"
    language: str = "en-GB"
    app_code: str = "D1WF"
    user_id: str = "-0"
    timeout_s: float = 30.0
    page_limit: int = 30
    processing_retry_delay_s: float = 2.0
    load_more_max_retries: int = 3
    load_more_backoff_base_s: float = 1.0

    @classmethod
    def from_env(cls) -> "ExploreConfig":
        return cls(
            base_url=os.getenv("EXPLORE_API_BASE_URL", cls.base_url).rstrip("/"),
            country=os.getenv("EXPLORE_COUNTRY", cls.country),
            currency=os.getenv("EXPLORE_CURRENCY", cls.currency),
            language=os.getenv("EXPLORE_LANGUAGE", cls.language),
            app_code=os.getenv("EXPLORE_APP_CODE", cls.app_code),
            user_id=os.getenv("EXPLORE_USER_ID", cls.user_id),
            timeout_s=float(os.getenv("EXPLORE_HTTP_TIMEOUT_S", str(cls.timeout_s))),
            page_limit=int(os.getenv("EXPLORE_PAGE_LIMIT", str(cls.page_limit))),
            processing_retry_delay_s=float(
                os.getenv("EXPLORE_PROCESSING_RETRY_DELAY_S", str(cls.processing_retry_delay_s))
            ),
            load_more_max_retries=int(
                os.getenv("EXPLORE_LOAD_MORE_MAX_RETRIES", str(cls.load_more_max_retries))
            ),
            load_more_backoff_base_s=float(
                os.getenv("EXPLORE_LOAD_MORE_BACKOFF_BASE_S", str(cls.load_more_backoff_base_s))
            ),
        )

    def backoff_delay(self, attempt: int) -> float:
        """Delay before retry number `attempt` (0-based): 1s, 2s, 4s with defaults."""
        return self.load_more_backoff_base_s * (2 ** attempt)
