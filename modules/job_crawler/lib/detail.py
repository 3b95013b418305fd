from __future__ import annotations

import logging

from bs4 import BeautifulSoup

from . import structured
from .models import JobDetail
from .normalize import clean, strip_html
from .strategies import Css, CssAttr, first_element, first_value

log = logging.getLogger(__name__)

# Semantic markup first, class-name heuristics after.
TITLE = (
    Css("[itemprop='title']"),
    Css("[data-testid='job-title']"),
    Css("h1.job_title"),
    Css("h1.job-title"),
    Css(".job_title"),
    Css("h1"),
)
COMPANY = (
    Css("[itemprop='hiringOrganization'] [itemprop='name']"),
    CssAttr("[itemprop='hiringOrganization'] meta[itemprop='name']", "content"),
    Css("[itemprop='hiringOrganization']"),
    Css("[data-testid='company-name']"),
    Css(".hiring_company"),
    Css(".company_name"),
    Css("a.company"),
    Css(".company"),
)
LOCATION = (
    Css("[itemprop='jobLocation']"),
    Css("[itemprop='addressLocality']"),
    Css("[data-testid='job-location']"),
    Css(".job_location"),
    Css(".job-location"),
    Css(".location"),
)
POSTED = (
    CssAttr("meta[itemprop='datePosted']", "content"),
    Css("[itemprop='datePosted']"),
    Css("[data-testid='posted-date']"),
    Css(".posted_time"),
    Css(".job-posted"),
    Css(".post-time"),
    Css("time"),
)
EMPLOYMENT_TYPE = (
    CssAttr("meta[itemprop='employmentType']", "content"),
    Css("[itemprop='employmentType']"),
    Css("[data-testid='employment-type']"),
    Css(".employment-type"),
    Css(".job-type"),
    Css(".job_type"),
)
DESCRIPTION_CONTAINERS = (
    "[itemprop='description']",
    ".job_description",
    ".jobDescriptionSection",
    "[data-test='job-description']",
    ".job-description-container",
    "#job-description",
    ".job-description",
)


def parse_detail(soup: BeautifulSoup, url: str) -> JobDetail:
    """
    Extract a JobDetail from a posting page.

    DOM values always win; the first JSON-LD JobPosting only fills fields the
    DOM left empty, plus the date/salary fields that have no DOM counterpart.
    """
    detail = JobDetail(
        detail_url=url,
        title=first_value(soup, TITLE),
        company=first_value(soup, COMPANY),
        location=first_value(soup, LOCATION),
        posted_text=first_value(soup, POSTED),
        employment_type=first_value(soup, EMPLOYMENT_TYPE),
    )

    container = first_element(soup, DESCRIPTION_CONTAINERS)
    if container is not None:
        detail.description_html = container.decode_contents().strip() or None
        detail.description_text = clean(container.get_text(" ")) or None

    posting = structured.extract_job_posting(soup)
    if posting:
        _fill_from_structured(detail, posting)
    return detail


def _fill_from_structured(detail: JobDetail, posting: dict) -> None:
    if not detail.title:
        detail.title = clean(posting.get("title")) or None
    if not detail.company:
        detail.company = structured.org_name(posting)
    if not detail.location:
        detail.location = structured.location_text(posting)
    if not detail.employment_type:
        detail.employment_type = structured.employment_type(posting)
    if not detail.description_html:
        description = posting.get("description")
        if isinstance(description, str) and description.strip():
            detail.description_html = description.strip()
            detail.description_text = strip_html(description) or None
    if not detail.posted_text:
        detail.posted_text = clean(posting.get("datePosted")) or None

    detail.date_posted_iso = posting.get("datePosted") or None
    detail.valid_through_iso = posting.get("validThrough") or None
    detail.base_salary = posting.get("baseSalary") or None
    detail.structured_data = posting
    log.debug("Detail %s: JSON-LD block merged", detail.detail_url)
