# job_crawler/http_client.py
from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

import requests
from bs4 import BeautifulSoup
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import FetchError
from .models import DETAIL, CrawlTask

LOG = logging.getLogger(__name__)

DEFAULT_USER_AGENTS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:128.0) Gecko/20100101 Firefox/128.0",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) "
    "Version/17.4 Safari/605.1.15",
    "Mozilla/5.0 (X11; Linux x86_64; rv:127.0) Gecko/20100101 Firefox/127.0",
)

BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# Markers of an interstitial bot-challenge page served with a 200
CHALLENGE_TITLES = ("just a moment", "attention required", "cloudflare")
CHALLENGE_MARKERS = ("cf-browser-verification", "cf-challenge", "challenge-platform")
BLOCK_STATUSES = (403, 503)


class CrawlSession:
    """
    One worker's identity: a requests.Session with a fixed User-Agent, its own
    cookie jar and (optionally) a proxy. Only the worker holding it mutates it.
    """

    def __init__(self, session_id: int, user_agent: str, proxy_url: str | None = None) -> None:
        self.id = session_id
        self.user_agent = user_agent
        self.proxy_url = proxy_url
        self.http = requests.Session()
        if proxy_url:
            self.http.proxies.update({"http": proxy_url, "https": proxy_url})

        # Connection-level retries only; page-level retries belong to the controller.
        retry = Retry(
            total=2,
            connect=2,
            read=0,
            status=0,
            backoff_factor=0.3,
            allowed_methods=frozenset(["GET", "HEAD"]),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry, pool_connections=4, pool_maxsize=4)
        self.http.mount("http://", adapter)
        self.http.mount("https://", adapter)

    @property
    def cookies(self) -> requests.cookies.RequestsCookieJar:
        return self.http.cookies

    def close(self) -> None:
        try:
            self.http.close()
        except Exception:
            LOG.debug("CrawlSession.close() swallow", exc_info=True)

    def __repr__(self) -> str:
        return f"CrawlSession(id={self.id}, proxy={'yes' if self.proxy_url else 'no'})"


class SessionPool:
    """Hands out sessions round-robin over user agents and proxies."""

    def __init__(self, user_agents: Sequence[str] | None = None, proxy_urls: Sequence[str] | None = None) -> None:
        self._agents = list(user_agents or DEFAULT_USER_AGENTS)
        self._proxies = list(proxy_urls or [])
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        self._live: dict[int, CrawlSession] = {}

    def create(self) -> CrawlSession:
        with self._lock:
            sid = next(self._ids)
            agent = self._agents[(sid - 1) % len(self._agents)]
            proxy = self._proxies[(sid - 1) % len(self._proxies)] if self._proxies else None
            session = CrawlSession(sid, agent, proxy)
            self._live[sid] = session
        return session

    def retire(self, session: CrawlSession) -> None:
        with self._lock:
            self._live.pop(session.id, None)
        session.close()

    def rotate(self, session: CrawlSession) -> CrawlSession:
        """Drop `session` (cookies and all) and return a fresh identity."""
        self.retire(session)
        fresh = self.create()
        LOG.debug("Rotated session %d -> %d", session.id, fresh.id)
        return fresh

    def close_all(self) -> None:
        with self._lock:
            sessions = list(self._live.values())
            self._live.clear()
        for s in sessions:
            s.close()


def build_headers(task: CrawlTask, session: CrawlSession) -> dict[str, str]:
    """Request headers for one fetch. Pure: depends only on the task and session."""
    headers = dict(BASE_HEADERS)
    headers["User-Agent"] = session.user_agent
    if task.role == DETAIL and task.referer:
        headers["Referer"] = task.referer
        headers["Sec-Fetch-Site"] = "same-origin"
    else:
        headers["Sec-Fetch-Site"] = "none"
    return headers


@dataclass
class Page:
    soup: BeautifulSoup
    url: str
    status: int


def looks_like_challenge(soup: BeautifulSoup, html: str) -> bool:
    title = soup.title.get_text(" ").strip().lower() if soup.title else ""
    if any(t in title for t in CHALLENGE_TITLES):
        return True
    return any(m in html for m in CHALLENGE_MARKERS)


class Fetcher:
    """Fetch collaborator: GET a task URL under a session and parse the HTML."""

    def __init__(self, timeout: float = 30.0) -> None:
        self.timeout = float(timeout)

    def fetch(
        self,
        task: CrawlTask,
        session: CrawlSession,
        *,
        headers: Mapping[str, str] | None = None,
    ) -> Page:
        merged = build_headers(task, session)
        if headers:
            merged.update(headers)
        try:
            resp = session.http.get(task.url, headers=merged, timeout=self.timeout, allow_redirects=True)
        except requests.Timeout as e:
            raise FetchError(f"timeout after {self.timeout:.0f}s", url=task.url) from e
        except requests.RequestException as e:
            raise FetchError(f"network error: {e}", url=task.url) from e

        if resp.status_code in BLOCK_STATUSES:
            raise FetchError(f"blocked (HTTP {resp.status_code})", url=task.url, status=resp.status_code)
        if not 200 <= resp.status_code < 300:
            raise FetchError(f"HTTP {resp.status_code}", url=task.url, status=resp.status_code)

        if not resp.encoding and resp.apparent_encoding:
            resp.encoding = resp.apparent_encoding
        html = resp.text
        soup = BeautifulSoup(html, "html.parser")
        if looks_like_challenge(soup, html):
            raise FetchError("bot challenge page", url=task.url, status=resp.status_code)
        return Page(soup=soup, url=resp.url or task.url, status=resp.status_code)
