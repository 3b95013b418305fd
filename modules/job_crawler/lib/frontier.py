from __future__ import annotations

import threading
from collections import deque

from .models import CrawlTask


class Frontier:
    """
    Shared FIFO of pending CrawlTasks.

    `get()` blocks until a task is available or the crawl has drained (no
    queued tasks and none in flight), in which case it returns None. A
    (role, url) pair is accepted once per run; retries bypass that check.
    Callers must `put(..., retry=True)` a failed task *before* calling
    `task_done()` for it so the queue never looks drained in between.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._items: deque[CrawlTask] = deque()
        self._seen: set[tuple[str, str]] = set()
        self._in_flight = 0
        self._closed = False

    def put(self, task: CrawlTask, *, retry: bool = False) -> bool:
        with self._cond:
            if self._closed:
                return False
            if not retry:
                if task.key in self._seen:
                    return False
                self._seen.add(task.key)
            self._items.append(task)
            self._cond.notify()
            return True

    def get(self) -> CrawlTask | None:
        with self._cond:
            while not self._items and self._in_flight > 0 and not self._closed:
                self._cond.wait()
            if not self._items or self._closed:
                return None
            self._in_flight += 1
            return self._items.popleft()

    def task_done(self) -> None:
        with self._cond:
            self._in_flight -= 1
            self._cond.notify_all()

    def close(self) -> None:
        """Stop handing out work; blocked getters return None."""
        with self._cond:
            self._closed = True
            self._items.clear()
            self._cond.notify_all()

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._items)

    @property
    def in_flight(self) -> int:
        with self._cond:
            return self._in_flight
