from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any

# Request roles
LIST = "LIST"
DETAIL = "DETAIL"

# Per-task lifecycle
PENDING = "PENDING"
IN_FLIGHT = "IN_FLIGHT"
RETRYING = "RETRYING"
SUCCEEDED = "SUCCEEDED"
FAILED = "FAILED"


def _compact(d: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in d.items() if v is not None}


@dataclass(frozen=True)
class SalaryInfo:
    raw: str
    min: int | float | None = None
    max: int | float | None = None
    period: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return _compact(asdict(self))


@dataclass(frozen=True)
class PostedInfo:
    raw: str
    relative: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return _compact(asdict(self))


@dataclass(frozen=True)
class JobCard:
    """
    A job summary scraped from a listing page.
    `url` is absolute and canonical; every other field is best-effort.
    """

    url: str
    title: str | None = None
    company: str | None = None
    location: str | None = None
    posted_text: str | None = None
    posted_guess: PostedInfo | None = None
    salary: SalaryInfo | None = None
    employment_type: str | None = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "posted_text": self.posted_text,
            "posted_guess": self.posted_guess.as_dict() if self.posted_guess else None,
            "salary": self.salary.as_dict() if self.salary else None,
            "employment_type": self.employment_type,
        }


@dataclass
class JobDetail:
    """Fields scraped from a single posting page, JSON-LD gaps already filled."""

    detail_url: str
    title: str | None = None
    company: str | None = None
    location: str | None = None
    description_html: str | None = None
    description_text: str | None = None
    posted_text: str | None = None
    employment_type: str | None = None
    date_posted_iso: str | None = None
    valid_through_iso: str | None = None
    base_salary: Any = None
    structured_data: dict[str, Any] | None = None

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CrawlTask:
    url: str
    role: str
    card: JobCard | None = None
    attempt: int = 0
    page: int = 1
    empty_pages: int = 0
    referer: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        return (self.role, self.url)

    def retried(self) -> CrawlTask:
        return replace(self, attempt=self.attempt + 1)


@dataclass(frozen=True)
class ErrorRecord:
    url: str
    role: str
    message: str
    timestamp: str
    attempts: int = 0

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CrawlStats:
    """Run statistics, logged once at the end of a crawl."""

    list_pages: int = 0
    detail_pages: int = 0
    cards_found: int = 0
    records_emitted: int = 0
    duplicates_skipped: int = 0
    retries: int = 0
    failed_tasks: int = 0
    started_at: str | None = None
    finished_at: str | None = None
    duration_s: float = 0.0
    stop_reason: str | None = None
    errors: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
