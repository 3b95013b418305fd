from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from urllib.parse import urldefrag, urlsplit


def truthy(v: Any) -> bool:
    """
    Normalize common truthy inputs from env/kwargs.
    Accepts bools or strings like: '1', 'true', 'yes', 'on'.
    """
    if isinstance(v, bool):
        return v
    if v is None:
        return False
    if isinstance(v, (int, float)):
        return v != 0
    s = str(v).strip().lower()
    return s in {"1", "true", "yes", "on", "y", "t"}


def now_iso() -> str:
    """
    UTC ISO-8601 timestamp with 'Z' suffix.
    """
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def canonical_url(url: str) -> str:
    """Drop the #fragment; the rest of the URL is kept verbatim."""
    return urldefrag(url)[0]


def host_of(url: str) -> str:
    return (urlsplit(url).hostname or "").lower()
