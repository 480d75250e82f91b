import logging
import sys
from typing import Optional


_LOGGING_CONFIGURED = False

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

# Upstream bodies attached to failures are cut to this many characters in logs.
BODY_PREVIEW_CHARS = 500


def configure_logging(level: str = "INFO") -> None:
    """
    Configure process logging once.
    Safe to call multiple times; only the first call takes effect.
    """
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        stream=sys.stdout,
    )
    # httpx logs every request at INFO; the poll loop would drown the service log.
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _LOGGING_CONFIGURED = True


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a named logger.
    If name is None, returns root logger.
    """
    return logging.getLogger(name)


def preview(body: Optional[str], limit: int = BODY_PREVIEW_CHARS) -> str:
    if not body:
        return ""
    if len(body) <= limit:
        return body
    return body[:limit] + "..."
