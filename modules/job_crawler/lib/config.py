from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlencode

from .utils import host_of, truthy

DEFAULT_SEARCH_BASE_URL = "https://www.ziprecruiter.com/jobs-search"
MAX_RESULTS_WANTED = 10000


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/input cannot form a valid Settings."""


# -----------------------------
# Models
# -----------------------------
@dataclass
class Settings:
    """
    Canonical configuration for one crawl run.

    Input keys are accepted in the actor-style camelCase form (startUrl,
    maxConcurrency, ...) or in snake_case. An optional JSON file given as
    `input_path` supplies defaults; explicit kwargs win over the file.
    """

    start_url: str = ""
    keyword: str = ""
    location: str = ""
    radius: str = ""
    days_back: str = ""
    search_base_url: str = DEFAULT_SEARCH_BASE_URL

    results_wanted: int = 50
    collect_details: bool = True

    max_concurrency: int = 5
    max_request_retries: int = 3
    request_timeout_secs: float = 30.0
    download_interval_ms: int = 0
    proxy_configuration: Any = None

    # Pagination guard
    max_pages: int = 20
    max_empty_pages: int = 2
    page_param: str = "page"

    source: str = ""
    output_dir: str | None = None
    user_agents: list[str] = field(default_factory=list)

    # ------------- convenience -------------
    @property
    def search_url(self) -> str:
        """The listing URL that seeds the frontier."""
        if self.start_url:
            return self.start_url
        params: dict[str, str] = {}
        if self.keyword:
            params["search"] = self.keyword
        if self.location:
            params["location"] = self.location
        if self.radius:
            params["radius"] = self.radius
        if self.days_back and self.days_back.lower() != "any":
            params["days"] = self.days_back
        return f"{self.search_base_url}?{urlencode(params)}"

    @property
    def source_label(self) -> str:
        return self.source or host_of(self.search_url) or "unknown"

    def proxy_urls(self) -> list[str]:
        """Proxy URLs from proxyConfiguration ({"proxyUrls": [...]}, a list, or a single URL)."""
        cfg = self.proxy_configuration
        if not cfg:
            return []
        if isinstance(cfg, str):
            return [cfg]
        if isinstance(cfg, list):
            return [str(u) for u in cfg if u]
        if isinstance(cfg, Mapping):
            urls = cfg.get("proxyUrls") or cfg.get("proxy_urls") or []
            if isinstance(urls, str):
                urls = [urls]
            return [str(u) for u in urls if u]
        return []

    # ------------- constructors -------------
    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None) -> Settings:
        """
        Build Settings from kwargs with validation.

        Expected kwargs (all optional, but a start URL or keyword/location is required):

            startUrl: str
            keyword: str, location: str, radius: str, days_back: str
            results_wanted: int = 50     # 0 = no cap
            collect_details: bool = true
            maxConcurrency: int = 5
            maxRequestRetries: int = 3
            requestHandlerTimeoutSecs: float = 30
            proxyConfiguration: {"proxyUrls": [...]} | str
            downloadIntervalMs: int = 0
            max_pages: int = 20, max_empty_pages: int = 2, page_param: str = "page"
            source: str, output_dir: str
            input_path: str  # JSON file with any of the above
        """
        kw = dict(kwargs or {})

        input_path = kw.pop("input_path", None)
        if input_path:
            merged = _load_input_file(str(input_path))
            merged.update(kw)
            kw = merged

        def pick(*names: str, default: Any = None) -> Any:
            for name in names:
                if kw.get(name) is not None and kw.get(name) != "":
                    return kw[name]
            return default

        try:
            settings = cls(
                start_url=str(pick("startUrl", "start_url", "searchUrl", default="")).strip(),
                keyword=str(pick("keyword", "searchQuery", default="")).strip(),
                location=str(pick("location", default="")).strip(),
                radius=str(pick("radius", default="")).strip(),
                days_back=str(pick("days_back", "daysBack", default="")).strip(),
                search_base_url=str(pick("search_base_url", default=DEFAULT_SEARCH_BASE_URL)).strip(),
                results_wanted=int(pick("results_wanted", "maxJobs", default=50)),
                collect_details=truthy(pick("collect_details", "collectDetails", default=True)),
                max_concurrency=int(pick("maxConcurrency", "max_concurrency", default=5)),
                max_request_retries=int(pick("maxRequestRetries", "max_request_retries", default=3)),
                request_timeout_secs=float(
                    pick("requestHandlerTimeoutSecs", "request_timeout_secs", default=30)
                ),
                download_interval_ms=int(pick("downloadIntervalMs", "download_interval_ms", default=0)),
                proxy_configuration=pick("proxyConfiguration", "proxy_configuration"),
                max_pages=int(pick("max_pages", "maxPages", default=20)),
                max_empty_pages=int(pick("max_empty_pages", "maxEmptyPages", default=2)),
                page_param=str(pick("page_param", default="page")).strip(),
                source=str(pick("source", default="")).strip(),
                output_dir=pick("output_dir"),
                user_agents=_as_list(pick("user_agents", "userAgents", default=[])),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid crawl input: {e}") from e

        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _as_list(value: Any) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value if v]


def _load_input_file(path: str) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"crawl input file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"crawl input file is invalid JSON: {path}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"crawl input file must hold a JSON object: {path}")
    return data


def _validate_settings(s: Settings) -> None:
    if not s.start_url and not s.keyword and not s.location:
        raise ConfigError("Either 'startUrl' or 'keyword'/'location' must be provided.")
    if not s.search_url.startswith(("http://", "https://")):
        raise ConfigError(f"Start URL must be http(s): {s.search_url!r}")
    if not 0 <= s.results_wanted <= MAX_RESULTS_WANTED:
        raise ConfigError(f"'results_wanted' must be between 0 and {MAX_RESULTS_WANTED}.")
    if s.max_concurrency <= 0:
        raise ConfigError("'maxConcurrency' must be >= 1.")
    if s.max_request_retries < 0:
        raise ConfigError("'maxRequestRetries' cannot be negative.")
    if s.request_timeout_secs <= 0:
        raise ConfigError("'requestHandlerTimeoutSecs' must be > 0.")
    if s.download_interval_ms < 0:
        raise ConfigError("'downloadIntervalMs' cannot be negative.")
    if s.max_pages < 1:
        raise ConfigError("'max_pages' must be >= 1.")
    if s.max_empty_pages < 1:
        raise ConfigError("'max_empty_pages' must be >= 1.")
    if not s.page_param:
        raise ConfigError("'page_param' cannot be empty.")
