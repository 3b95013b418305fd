"""
Record assembly and run-wide deduplication.

DedupStore is the only state shared by every worker: the set of emitted URLs
and the produced count live behind one lock, and `claim()` does the whole
check-and-insert in a single critical section.
"""

from __future__ import annotations

import threading
from typing import Any

from .models import JobCard, JobDetail
from .sink import RecordSink
from .utils import now_iso

# claim() outcomes
CLAIMED = "claimed"
DUPLICATE = "duplicate"
TARGET_REACHED = "target_reached"


class DedupStore:
    def __init__(self, target: int = 0) -> None:
        # target <= 0 means "no cap"
        self.target = int(target)
        self._lock = threading.Lock()
        self._seen: set[str] = set()
        self._produced = 0

    @property
    def produced(self) -> int:
        with self._lock:
            return self._produced

    def reached(self) -> bool:
        with self._lock:
            return self._reached_locked()

    def _reached_locked(self) -> bool:
        return self.target > 0 and self._produced >= self.target

    def seen(self, url: str) -> bool:
        with self._lock:
            return url in self._seen

    def claim(self, url: str) -> str:
        with self._lock:
            if url in self._seen:
                return DUPLICATE
            if self._reached_locked():
                return TARGET_REACHED
            self._seen.add(url)
            self._produced += 1
            return CLAIMED


def merge(card: JobCard, detail: JobDetail | None = None) -> dict[str, Any]:
    """Card fields overlaid by detail fields; a detail value of None never erases a card value."""
    record = card.as_dict()
    if detail is not None:
        for key, value in detail.as_dict().items():
            if value is not None or key not in record:
                record[key] = value
    return record


class RecordAssembler:
    def __init__(self, store: DedupStore, sink: RecordSink, *, source: str, search_url: str) -> None:
        self.store = store
        self.sink = sink
        self.source = source
        self.search_url = search_url

    def emit(self, card: JobCard, detail: JobDetail | None = None) -> str:
        """Push one JobRecord unless its URL was already emitted or the target is met."""
        outcome = self.store.claim(card.url)
        if outcome != CLAIMED:
            return outcome
        record = merge(card, detail)
        record["source"] = self.source
        record["scraped_at"] = now_iso()
        record["search_url"] = self.search_url
        self.sink.push_record(record)
        return outcome
