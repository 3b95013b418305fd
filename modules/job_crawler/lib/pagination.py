"""
Next-page discovery for listing pages.

Cascade (first hit wins):
  1. <link rel="next"> in the document
  2. an anchor marked as the "next" control (rel, aria-label, class or text)
  3. numeric pagination: smallest linked page number greater than the current one
  4. synthesized: current page number + 1 on the base URL

Script and mail hrefs are skipped. A next control that points back at the
current page ("#", a self link) only yields to numeric links; without them
the current URL is returned so the controller stops the branch.

A URL is always produced unless URL construction fails; stopping is the
controller's job.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import parse_qs, urlencode, urljoin, urlsplit, urlunsplit

from bs4 import BeautifulSoup

from .utils import canonical_url

log = logging.getLogger(__name__)

DEFAULT_PAGE_PARAM = "page"

NEXT_LINK_SELECTORS = ("link[rel~=next][href]",)
NEXT_ANCHOR_SELECTORS = (
    "a[rel~=next][href]",
    "a.next-page[href]",
    ".pagination a.next[href]",
)
_NEXT_LABEL_RE = re.compile(r"^\s*next(\s+page)?\s*(›|»|>)?\s*$", re.I)
_DEAD_HREF_SCHEMES = ("javascript:", "mailto:", "tel:")


def page_number(url: str, page_param: str = DEFAULT_PAGE_PARAM) -> int | None:
    values = parse_qs(urlsplit(url).query).get(page_param)
    if not values:
        return None
    try:
        return int(values[0])
    except ValueError:
        return None


def with_page(url: str, page: int, page_param: str = DEFAULT_PAGE_PARAM) -> str:
    """Return `url` with its page query parameter set to `page` (other params kept)."""
    parts = urlsplit(url)
    query = parse_qs(parts.query, keep_blank_values=True)
    query[page_param] = [str(page)]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query, doseq=True), ""))


def _is_labelled_next(a) -> bool:
    label = a.get("aria-label") or ""
    if label and _NEXT_LABEL_RE.match(label):
        return True
    return bool(_NEXT_LABEL_RE.match(a.get_text(" ")))


def _usable(href: str | None, base_url: str) -> str | None:
    """Absolute http(s) URL for a pager href; None for script/mail links and junk."""
    href = (href or "").strip()
    if not href or href.lower().startswith(_DEAD_HREF_SCHEMES):
        return None
    try:
        url = canonical_url(urljoin(base_url, href))
        parts = urlsplit(url)
    except ValueError:
        return None
    if parts.scheme not in ("http", "https") or not parts.netloc:
        return None
    return url


def _explicit_next(soup: BeautifulSoup, base_url: str) -> tuple[str | None, bool]:
    """(next URL, whether a next control pointed back at the current page)."""
    here = canonical_url(base_url)
    points_here = False
    candidates = []
    for selector in NEXT_LINK_SELECTORS + NEXT_ANCHOR_SELECTORS:
        candidates.extend(soup.select(selector))
    # accessible label or visible "Next" text
    candidates.extend(a for a in soup.select("a[href]") if _is_labelled_next(a))
    for el in candidates:
        url = _usable(el.get("href"), base_url)
        if url is None:
            log.debug("Skipping unusable next href %r on %s", el.get("href"), base_url)
            continue
        if url == here:
            points_here = True
            continue
        return url, False
    return None, points_here


def _numeric_next(soup: BeautifulSoup, base_url: str, page_param: str) -> str | None:
    here = canonical_url(base_url)
    current = page_number(base_url, page_param) or 1
    best: tuple[int, str] | None = None
    for a in soup.select(f"a[href*='{page_param}=']"):
        url = _usable(a["href"], base_url)
        if url is None or url == here:
            continue
        number = page_number(url, page_param)
        if number is None or number <= current:
            continue
        if best is None or number < best[0]:
            best = (number, url)
    return best[1] if best else None


def resolve_next_url(
    soup: BeautifulSoup,
    base_url: str,
    page_param: str = DEFAULT_PAGE_PARAM,
) -> str | None:
    try:
        explicit, points_here = _explicit_next(soup, base_url)
        if explicit:
            return explicit
        numeric = _numeric_next(soup, base_url, page_param)
        if numeric:
            return numeric
        if points_here:
            # last page: the next control leads back here
            return canonical_url(base_url)
        current = page_number(base_url, page_param) or 1
        return with_page(base_url, current + 1, page_param)
    except ValueError as e:
        log.debug("Next page for %s could not be built: %s", base_url, e)
        return None
