"""
Crawl controller: owns the frontier, the worker pool and the failure path.

Features:
  - LIST tasks -> listing parser + pagination resolver (DETAIL tasks / next LIST task)
  - DETAIL tasks -> detail parser, merged with the carried card and emitted
  - Bounded worker pool, one session per worker, rotated after a failure
  - Per-task retries up to maxRequestRetries, then one ErrorRecord
  - Stops when the frontier drains, or closes it once results_wanted is met
  - Pagination guard: max_pages and max_empty_pages per listing branch
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, as_completed

from . import logging_bridge
from .config import Settings
from .dedup import CLAIMED, DUPLICATE, DedupStore, RecordAssembler
from .detail import parse_detail
from .errors import FetchError, RetryExhausted
from .frontier import Frontier
from .http_client import CrawlSession, Fetcher, Page, SessionPool
from .listing import parse_listing
from .models import (
    DETAIL,
    FAILED,
    IN_FLIGHT,
    LIST,
    PENDING,
    RETRYING,
    SUCCEEDED,
    CrawlStats,
    CrawlTask,
    ErrorRecord,
    JobCard,
)
from .pagination import resolve_next_url
from .sink import MemorySink, RecordSink
from .utils import canonical_url, now_iso

log = logging.getLogger(__name__)


class CrawlController:
    def __init__(
        self,
        settings: Settings,
        sink: RecordSink | None = None,
        *,
        fetcher: Fetcher | None = None,
        sessions: SessionPool | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.sink = sink if sink is not None else MemorySink()
        self.fetcher = fetcher or Fetcher(timeout=settings.request_timeout_secs)
        self.sessions = sessions or SessionPool(settings.user_agents, settings.proxy_urls())
        self.store = DedupStore(settings.results_wanted)
        self.assembler = RecordAssembler(
            self.store,
            self.sink,
            source=settings.source_label,
            search_url=settings.search_url,
        )
        self.frontier = Frontier()
        self.stats = CrawlStats()
        self.task_states: dict[tuple[str, str], str] = {}
        self._lock = threading.Lock()
        self._sleep = sleep

    # =========================================================================
    # RUN
    # =========================================================================
    def run(self) -> CrawlStats:
        start = time.perf_counter()
        self.stats.started_at = now_iso()
        seed = CrawlTask(url=self.settings.search_url, role=LIST)
        self._enqueue(seed)

        logging_bridge.activity({
            "component": "job_crawler.controller",
            "op": "start",
            "search_url": self.settings.search_url,
            "results_wanted": self.settings.results_wanted,
            "collect_details": self.settings.collect_details,
            "max_concurrency": self.settings.max_concurrency,
        })

        workers = self.settings.max_concurrency
        try:
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="crawl") as pool:
                futures = {pool.submit(self._worker, i): i for i in range(workers)}
                for fut in as_completed(futures):
                    try:
                        fut.result()
                    except Exception as e:
                        logging_bridge.error({
                            "component": "job_crawler.controller",
                            "op": "worker",
                            "worker": futures[fut],
                            "error": repr(e),
                        })
        finally:
            self.sessions.close_all()

        self.stats.records_emitted = self.store.produced
        self.stats.finished_at = now_iso()
        self.stats.duration_s = round(time.perf_counter() - start, 3)
        self.stats.stop_reason = "target_reached" if self.store.reached() else "frontier_empty"

        logging_bridge.activity({
            "component": "job_crawler.controller",
            "op": "summary",
            "search_url": self.settings.search_url,
            **{k: v for k, v in self.stats.as_dict().items() if k != "errors"},
        })
        return self.stats

    # =========================================================================
    # WORKER LOOP
    # =========================================================================
    def _worker(self, worker_id: int) -> None:
        session: CrawlSession | None = None
        try:
            while True:
                task = self.frontier.get()
                if task is None:
                    return
                if session is None:
                    session = self.sessions.create()
                try:
                    session = self._process(task, session)
                finally:
                    self.frontier.task_done()
        finally:
            if session is not None:
                self.sessions.retire(session)
            log.debug("worker %d done", worker_id)

    def _process(self, task: CrawlTask, session: CrawlSession) -> CrawlSession:
        if task.role == DETAIL and self.store.reached():
            log.debug("Target reached; dropping queued detail %s", task.url)
            return session

        self._set_state(task, IN_FLIGHT)
        if self.settings.download_interval_ms > 0:
            self._sleep(self.settings.download_interval_ms / 1000.0)

        try:
            page = self.fetcher.fetch(task, session)
            if task.role == LIST:
                self._handle_list(task, page)
            else:
                self._handle_detail(task, page)
        except Exception as e:
            return self._handle_failure(task, session, e)

        self._set_state(task, SUCCEEDED)
        if self.store.reached():
            log.info("Target of %d reached; dropping %d queued tasks",
                     self.settings.results_wanted, self.frontier.pending)
            self.frontier.close()
        return session

    # =========================================================================
    # HANDLERS
    # =========================================================================
    def _handle_list(self, task: CrawlTask, page: Page) -> None:
        cards = parse_listing(page.soup, page.url)
        self._bump("list_pages")
        self._bump("cards_found", len(cards))
        log.info("Listing page %d (%s): %d cards", task.page, page.url, len(cards))

        fresh = 0
        for card in cards:
            if self.store.reached():
                break
            if self.settings.collect_details:
                accepted = not self.store.seen(card.url) and self._enqueue(
                    CrawlTask(url=card.url, role=DETAIL, card=card, referer=page.url)
                )
                if accepted:
                    fresh += 1
                else:
                    self._bump("duplicates_skipped")
            else:
                outcome = self.assembler.emit(card)
                if outcome == CLAIMED:
                    fresh += 1
                elif outcome == DUPLICATE:
                    self._bump("duplicates_skipped")

        if self.store.reached():
            return
        self._enqueue_next_page(task, page, fresh)

    def _enqueue_next_page(self, task: CrawlTask, page: Page, fresh: int) -> None:
        empty_pages = 0 if fresh else task.empty_pages + 1
        if empty_pages >= self.settings.max_empty_pages:
            log.info("Stopping pagination: %d listing pages in a row without new jobs", empty_pages)
            return
        if task.page >= self.settings.max_pages:
            log.info("Stopping pagination: page limit %d reached", self.settings.max_pages)
            return

        next_url = resolve_next_url(page.soup, page.url, self.settings.page_param)
        if not next_url:
            return
        next_url = canonical_url(next_url)
        if next_url in (canonical_url(task.url), canonical_url(page.url)):
            log.info("Stopping pagination: next page resolves to the current page %s", next_url)
            return

        queued = self._enqueue(
            CrawlTask(url=next_url, role=LIST, page=task.page + 1, empty_pages=empty_pages)
        )
        if not queued:
            log.info("Stopping pagination: %s was already visited", next_url)

    def _handle_detail(self, task: CrawlTask, page: Page) -> None:
        detail = parse_detail(page.soup, page.url)
        self._bump("detail_pages")
        card = task.card or JobCard(url=task.url)
        if self.assembler.emit(card, detail) == DUPLICATE:
            self._bump("duplicates_skipped")

    # =========================================================================
    # FAILURE PATH
    # =========================================================================
    def _handle_failure(self, task: CrawlTask, session: CrawlSession, exc: Exception) -> CrawlSession:
        message = str(exc) or repr(exc)
        attempts = task.attempt + 1
        if not isinstance(exc, FetchError):
            log.exception("Handler failed for %s %s", task.role, task.url)

        if attempts <= self.settings.max_request_retries:
            self._set_state(task, RETRYING)
            self._bump("retries")
            log.warning("%s %s failed (%s); retry %d/%d", task.role, task.url, message,
                        attempts, self.settings.max_request_retries)
            self.frontier.put(task.retried(), retry=True)
            return self.sessions.rotate(session)

        self._set_state(task, FAILED)
        exhausted = RetryExhausted(f"{message} (gave up after {attempts} attempts)", attempts=attempts)
        record = ErrorRecord(
            url=task.url,
            role=task.role,
            message=str(exhausted),
            timestamp=now_iso(),
            attempts=exhausted.attempts,
        )
        self.sink.push_error(record.as_dict())
        with self._lock:
            self.stats.failed_tasks += 1
            self.stats.errors.append(f"{task.role} {task.url}: {message}")
        logging_bridge.error({
            "component": "job_crawler.controller",
            "op": "task_failed",
            **record.as_dict(),
        })
        return self.sessions.rotate(session)

    # =========================================================================
    # HELPERS
    # =========================================================================
    def _enqueue(self, task: CrawlTask) -> bool:
        with self._lock:
            if task.key in self.task_states:
                return False
            self.task_states[task.key] = PENDING
        return self.frontier.put(task)

    def _set_state(self, task: CrawlTask, state: str) -> None:
        with self._lock:
            self.task_states[task.key] = state

    def _bump(self, name: str, n: int = 1) -> None:
        with self._lock:
            setattr(self.stats, name, getattr(self.stats, name) + n)


def run_crawl(
    settings: Settings,
    sink: RecordSink | None = None,
    *,
    fetcher: Fetcher | None = None,
) -> tuple[CrawlStats, RecordSink]:
    """Convenience wrapper: build a controller, run it, return (stats, sink)."""
    controller = CrawlController(settings, sink, fetcher=fetcher)
    stats = controller.run()
    return stats, controller.sink
