"""
Listing-page parser: job cards out of a search results page.

Anchors are collected through a prioritized list of link shapes. For each one
the enclosing card container gives a bounded text window used for regex
fallbacks (location, posted age, salary). When no anchor yields a card, jobs
embedded in inline script state are used, followed by JSON-LD JobPosting
entries.
"""

from __future__ import annotations

import logging
import re
from urllib.parse import urljoin, urlsplit

from bs4 import BeautifulSoup, Tag

from . import structured
from .errors import ResolutionFailure
from .models import JobCard
from .normalize import clean, parse_posted, parse_salary
from .strategies import Css, Pattern, first_value
from .utils import canonical_url

log = logging.getLogger(__name__)

LINK_SELECTORS = (
    "a.job_link",
    "a.jobList-title",
    "a[class*='job_link']",
    "a[class*='job-link']",
    "a[class*='job-title']",
    "a[href*='/c/'][href*='/Job/']",
    "a[href*='/job/']",
    "a[href*='/jobs/'][href*='jid=']",
)

JOB_PATH_MARKERS = ("/c/", "/job/", "/jobs/")

CARD_TAGS = ["article", "li"]
SCAN_WINDOW = 800

CITY_ST_RE = re.compile(r"\b([A-Z][A-Za-z.'-]+(?:\s[A-Z][A-Za-z.'-]+){0,2},\s?[A-Z]{2})\b")
POSTED_SNIPPET_RE = re.compile(r"(?:posted\s+)?\b\d+\s+(?:minute|hour|day|week|month)s?\s+ago\b", re.I)
SALARY_SNIPPET_RE = re.compile(
    r"\$\s?\d[\d,.]*(?:\s?[km]\b)?"
    r"(?:\s*(?:-|–|—|to)\s*\$?\s?\d[\d,.]*(?:\s?[km]\b)?)?"
    r"(?:\s*(?:/|per)\s*(?:yr|hr|year|hour)\b|\s+(?:annually|monthly)\b)?",
    re.I,
)
EMPLOYMENT_RE = re.compile(
    r"\b(full[- ]time|part[- ]time|contract(?:or)?|temporary|internship|per diem)\b",
    re.I,
)

COMPANY = (
    Css(".company_name"),
    Css(".hiring_company"),
    Css("[data-company-name]"),
    Css(".job-company-name"),
    Css("a.company"),
    Css(".company"),
)
LOCATION = (
    Css(".location"),
    Css(".job_location"),
    Css("[data-location]"),
    Css(".job-location"),
    Css(".job-location-text"),
)
EMPLOYMENT_TYPE = (
    Css(".employment-type"),
    Css(".job-type"),
    Css("[data-job-type]"),
    Css(".job_type"),
)

_LOCATION_FALLBACK = Pattern(CITY_ST_RE, 1)
_POSTED = Pattern(POSTED_SNIPPET_RE)
_SALARY = Pattern(SALARY_SNIPPET_RE)
_EMPLOYMENT_FALLBACK = Pattern(EMPLOYMENT_RE, 1)


def resolve_job_url(href: str | None, base_url: str) -> str:
    """Absolute, fragment-free job URL. Raises ResolutionFailure if unusable."""
    href = (href or "").strip()
    if not href or href.startswith(("#", "javascript:", "mailto:")):
        raise ResolutionFailure(f"not a link: {href!r}")
    try:
        url = canonical_url(urljoin(base_url, href))
        parts = urlsplit(url)
    except ValueError as e:
        raise ResolutionFailure(f"cannot resolve {href!r} against {base_url!r}: {e}") from e
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ResolutionFailure(f"not an http(s) URL: {url!r}")
    if not any(marker in parts.path for marker in JOB_PATH_MARKERS):
        raise ResolutionFailure(f"not a job path: {url!r}")
    return url


def _candidate_anchors(soup: BeautifulSoup) -> list[Tag]:
    anchors: list[Tag] = []
    seen: set[int] = set()
    for selector in LINK_SELECTORS:
        for a in soup.select(selector):
            if id(a) not in seen:
                seen.add(id(a))
                anchors.append(a)
    return anchors


def _card_container(a: Tag) -> Tag:
    return a.find_parent(CARD_TAGS) or a.find_parent("div") or a.parent or a


def _title(a: Tag, card: Tag) -> str | None:
    title = clean(a.get_text(" ")) or clean(a.get("title") or a.get("aria-label") or "")
    if title:
        return title
    heading = card.find(["h1", "h2", "h3", "h4"])
    return clean(heading.get_text(" ")) if heading else None


def _card_from_anchor(a: Tag, base_url: str) -> JobCard | None:
    try:
        url = resolve_job_url(a.get("href"), base_url)
    except ResolutionFailure as e:
        log.debug("Dropping listing candidate: %s", e)
        return None

    card = _card_container(a)
    buffer = clean(card.get_text(" "))[:SCAN_WINDOW]

    location = first_value(card, LOCATION) or _LOCATION_FALLBACK.search(buffer)
    employment_type = first_value(card, EMPLOYMENT_TYPE) or _EMPLOYMENT_FALLBACK.search(buffer)
    posted_text = _POSTED.search(buffer)
    salary_raw = _SALARY.search(buffer)

    return JobCard(
        url=url,
        title=_title(a, card) or None,
        company=first_value(card, COMPANY),
        location=location,
        posted_text=posted_text,
        posted_guess=parse_posted(posted_text) if posted_text else None,
        salary=parse_salary(salary_raw) if salary_raw else None,
        employment_type=employment_type,
    )


STATE_FIELDS = {
    "title": ("title", "jobTitle", "job_title", "name"),
    "company": (
        "company",
        "companyName",
        "employer",
        "hiring_company.name",
        "hiringCompany.name",
        "company.name",
    ),
    "location": ("location", "city", "jobLocation", "location_name", "formatted_location"),
    "salary": ("salary", "compensation", "salary_text", "posted_salary", "salaryText"),
    "employment_type": ("employment_type", "employmentType", "job_type", "jobType", "type"),
    "posted": ("posted_time", "postedTime", "postedDate", "datePosted", "posted_date", "date_posted"),
    "url": ("url", "link", "job_url", "jobUrl"),
}


def _cards_from_state(soup: BeautifulSoup, base_url: str) -> list[JobCard]:
    cards: list[JobCard] = []
    for item in structured.iter_state_jobs(soup):
        value = {field: structured.state_value(item, *keys) for field, keys in STATE_FIELDS.items()}
        try:
            url = resolve_job_url(value["url"], base_url)
        except ResolutionFailure as e:
            log.debug("Dropping embedded-state card: %s", e)
            continue
        posted = clean(value["posted"]) or None
        salary = value["salary"]
        cards.append(
            JobCard(
                url=url,
                title=clean(value["title"]) or None,
                company=clean(value["company"]) or None,
                location=clean(value["location"]) or None,
                posted_text=posted,
                posted_guess=parse_posted(posted) if posted else None,
                salary=parse_salary(salary) if salary else None,
                employment_type=clean(value["employment_type"]) or None,
            )
        )
    return cards


def _cards_from_structured(soup: BeautifulSoup, base_url: str) -> list[JobCard]:
    cards: list[JobCard] = []
    for posting in structured.iter_job_postings(soup):
        try:
            url = resolve_job_url(posting.get("url"), base_url)
        except ResolutionFailure as e:
            log.debug("Dropping JSON-LD card: %s", e)
            continue
        posted = clean(posting.get("datePosted")) or None
        salary = structured.salary_text(posting)
        cards.append(
            JobCard(
                url=url,
                title=clean(posting.get("title")) or None,
                company=structured.org_name(posting),
                location=structured.location_text(posting),
                posted_text=posted,
                posted_guess=parse_posted(posted) if posted else None,
                salary=parse_salary(salary) if salary else None,
                employment_type=structured.employment_type(posting),
            )
        )
    return cards


def parse_listing(soup: BeautifulSoup, base_url: str) -> list[JobCard]:
    """Ordered job cards for one listing page, unique by URL (first occurrence wins)."""
    found = [c for c in (_card_from_anchor(a, base_url) for a in _candidate_anchors(soup)) if c]
    if not found:
        state = _cards_from_state(soup, base_url)
        ld = _cards_from_structured(soup, base_url)
        found = state + ld
        if found:
            log.debug("Listing %s: %d cards from script state, %d from JSON-LD",
                      base_url, len(state), len(ld))

    cards: list[JobCard] = []
    seen: set[str] = set()
    for card in found:
        if card.url in seen:
            continue
        seen.add(card.url)
        cards.append(card)
    return cards
