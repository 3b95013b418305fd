"""
Structured job data embedded in pages.

Two sources:
  - JSON-LD (schema.org JobPosting) blocks
  - inline script state: `window.__PRELOADED_STATE__ = {...}` and similar
    assignments, or bare `"jobs": [...]` arrays, searched for a list of
    job-shaped objects

Blocks that fail to decode are skipped; the scan continues with the next one.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Iterator
from typing import Any

from bs4 import BeautifulSoup

from .errors import ParseFailure

log = logging.getLogger(__name__)

JOB_POSTING = "JobPosting"

# Inline script assignments and keys that hold application state or job lists
STATE_MARKERS = (
    re.compile(r"window\.__PRELOADED_STATE__\s*=\s*"),
    re.compile(r"window\.__INITIAL_STATE__\s*=\s*"),
    re.compile(r"window\.INITIAL_DATA\s*=\s*"),
    re.compile(r"\"job_results\"\s*:\s*(?=\[)"),
    re.compile(r"\"jobs\"\s*:\s*(?=\[)"),
    re.compile(r"\bjobResults\s*=\s*(?=\[)"),
)
STATE_MAX_DEPTH = 5

_TITLE_KEYS = ("title", "jobTitle", "job_title", "name")

_decoder = json.JSONDecoder()


def _load_block(raw: str | None) -> Any:
    text = (raw or "").strip()
    if not text:
        raise ParseFailure("empty structured-data block")
    try:
        return json.loads(text)
    except ValueError as e:
        raise ParseFailure(f"invalid JSON-LD: {e}") from e


def _iter_blocks(soup: BeautifulSoup) -> Iterator[Any]:
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            yield _load_block(script.string or script.get_text())
        except ParseFailure as e:
            log.debug("Skipping structured-data block: %s", e)


def is_job_posting(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    typ = item.get("@type")
    if isinstance(typ, list):
        return JOB_POSTING in typ
    return typ == JOB_POSTING


def _flatten(data: Any) -> Iterator[Any]:
    """Yield candidate objects: the block itself, list members, @graph and ItemList entries."""
    if isinstance(data, list):
        for item in data:
            yield from _flatten(item)
        return
    if not isinstance(data, dict):
        return
    yield data
    graph = data.get("@graph")
    if isinstance(graph, list):
        yield from _flatten(graph)
    elements = data.get("itemListElement")
    if isinstance(elements, list):
        for element in elements:
            if isinstance(element, dict) and isinstance(element.get("item"), dict):
                yield element["item"]
            else:
                yield element


def iter_job_postings(soup: BeautifulSoup) -> Iterator[dict[str, Any]]:
    """Every JobPosting object embedded in the page, in document order."""
    for block in _iter_blocks(soup):
        for item in _flatten(block):
            if is_job_posting(item):
                yield item


def extract_job_posting(soup: BeautifulSoup) -> dict[str, Any] | None:
    """First JobPosting object on the page, or None."""
    return next(iter_job_postings(soup), None)


# ---- field accessors --------------------------------------------------------


def org_name(posting: dict[str, Any]) -> str | None:
    org = posting.get("hiringOrganization")
    if isinstance(org, dict):
        return org.get("name") or None
    if isinstance(org, str):
        return org or None
    return None


def location_text(posting: dict[str, Any]) -> str | None:
    """'Locality, Region, Country' from jobLocation.address (first location if a list)."""
    loc = posting.get("jobLocation")
    if isinstance(loc, list):
        loc = loc[0] if loc else None
    if not isinstance(loc, dict):
        return None
    address = loc.get("address")
    if isinstance(address, str):
        return address.strip() or None
    if not isinstance(address, dict):
        return None
    country = address.get("addressCountry")
    if isinstance(country, dict):
        country = country.get("name")
    parts = [address.get("addressLocality"), address.get("addressRegion"), country]
    joined = ", ".join(str(p).strip() for p in parts if p and str(p).strip())
    return joined or None


def salary_text(posting: dict[str, Any]) -> str | None:
    """Render baseSalary as '<min> - <max> <currency>' (or '<value> <currency>')."""
    base = posting.get("baseSalary")
    if not isinstance(base, dict):
        return None
    value = base.get("value")
    currency = base.get("currency") or ""
    unit = value.get("unitText") if isinstance(value, dict) else None
    if isinstance(value, dict):
        lo, hi = value.get("minValue"), value.get("maxValue")
        if lo is None and hi is None:
            lo = value.get("value")
        text = f"{lo} - {hi}" if lo is not None and hi is not None else f"{lo if lo is not None else hi}"
    elif value is not None:
        text = str(value)
    else:
        return None
    if unit:
        text = f"{text} / {str(unit).lower()}"
    return f"{text} {currency}".strip()


def employment_type(posting: dict[str, Any]) -> str | None:
    value = posting.get("employmentType")
    if isinstance(value, list):
        value = ", ".join(str(v) for v in value if v)
    return value or None


# ---- inline script state ----------------------------------------------------


def _decode_at(text: str, pos: int) -> Any:
    try:
        value, _ = _decoder.raw_decode(text, pos)
    except ValueError as e:
        raise ParseFailure(f"invalid embedded state at offset {pos}: {e}") from e
    return value


def _inline_scripts(soup: BeautifulSoup) -> Iterator[str]:
    for script in soup.find_all("script", src=False):
        if (script.get("type") or "").lower() == "application/ld+json":
            continue
        text = script.string or script.get_text()
        if text:
            yield text


def _script_states(text: str) -> Iterator[Any]:
    for marker in STATE_MARKERS:
        for m in marker.finditer(text):
            try:
                yield _decode_at(text, m.end())
            except ParseFailure as e:
                log.debug("Skipping embedded state: %s", e)


def iter_embedded_states(soup: BeautifulSoup) -> Iterator[Any]:
    """Decoded values assigned by STATE_MARKERS in inline scripts (JSON-LD excluded)."""
    for text in _inline_scripts(soup):
        yield from _script_states(text)


def find_job_array(obj: Any, depth: int = 0, max_depth: int = STATE_MAX_DEPTH) -> list | None:
    """
    First list (depth-first, at most `max_depth` levels down) whose first
    element is an object with a title-like key.
    """
    if depth > max_depth:
        return None
    if isinstance(obj, list):
        first = obj[0] if obj else None
        if isinstance(first, dict) and any(first.get(k) for k in _TITLE_KEYS):
            return obj
        return None
    if isinstance(obj, dict):
        for value in obj.values():
            found = find_job_array(value, depth + 1, max_depth)
            if found is not None:
                return found
    return None


def iter_state_jobs(soup: BeautifulSoup) -> Iterator[dict[str, Any]]:
    """Job objects from inline script state; the first job list per script wins."""
    for text in _inline_scripts(soup):
        for state in _script_states(text):
            jobs = find_job_array(state)
            if jobs:
                yield from (item for item in jobs if isinstance(item, dict))
                break


def state_value(item: dict[str, Any], *keys: str) -> str | None:
    """
    First non-empty scalar under `keys`. A key may be dotted
    ("hiring_company.name") to reach into a nested object.
    """
    for key in keys:
        value: Any = item
        for part in key.split("."):
            value = value.get(part) if isinstance(value, dict) else None
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, (str, int, float)):
            text = str(value).strip()
            if text:
                return text
    return None
