from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from service import logging_utils

# Crawl input keys that carry credentials (proxy URLs, session cookies)
_CRAWL_SECRET_KEYS = frozenset({
    "proxy_url",
    "proxy_urls",
    "proxyconfiguration",
    "proxy_configuration",
    "cookies",
    "auth",
})

_fallback = logging.getLogger("job_crawler.structured")


def _scrub(record: dict[str, Any]) -> dict[str, Any]:
    """Top-level pass for crawl-specific keys; logging_utils runs its deep pass on write."""
    return {
        k: "***REDACTED***" if str(k).lower() in _CRAWL_SECRET_KEYS else v
        for k, v in record.items()
    }


def _emit(write: Callable[[dict[str, Any]], None], level: int, record: dict[str, Any]) -> None:
    payload = _scrub(record)
    try:
        write(payload)
    except (OSError, TypeError, ValueError) as e:
        _fallback.log(level, "%s (structured log unavailable: %s)", payload, e)


def activity(record: dict[str, Any]) -> None:
    """Run lifecycle events (start, summary) to the JSONL activity log."""
    _emit(logging_utils.write_activity_log, logging.INFO, record)


def error(record: dict[str, Any]) -> None:
    """Terminal task failures and worker crashes to the JSONL error log."""
    _emit(logging_utils.write_error_log, logging.ERROR, record)
