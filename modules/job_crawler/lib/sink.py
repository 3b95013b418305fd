"""
Output sinks. Append-only: one JobRecord per successful task, one ErrorRecord
per terminal failure, kept in separate streams.
The run statistics are written once, after the crawl.
"""

from __future__ import annotations

import json
import os
import threading
from typing import Any


class RecordSink:
    """Interface the controller writes to."""

    def push_record(self, record: dict[str, Any]) -> None:
        raise NotImplementedError

    def push_error(self, error: dict[str, Any]) -> None:
        raise NotImplementedError

    def write_stats(self, stats: dict[str, Any]) -> None:
        pass

    def close(self) -> None:
        pass


class MemorySink(RecordSink):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.records: list[dict[str, Any]] = []
        self.errors: list[dict[str, Any]] = []

    def push_record(self, record: dict[str, Any]) -> None:
        with self._lock:
            self.records.append(record)

    def push_error(self, error: dict[str, Any]) -> None:
        with self._lock:
            self.errors.append(error)


class JsonlSink(RecordSink):
    """
    Writes <output_dir>/records.jsonl and <output_dir>/errors.jsonl, and
    <output_dir>/stats.json at the end of the run.
    Each line is appended with a single os.write on an O_APPEND descriptor.
    """

    RECORDS = "records.jsonl"
    ERRORS = "errors.jsonl"
    STATS = "stats.json"

    def __init__(self, output_dir: str) -> None:
        os.makedirs(output_dir, exist_ok=True)
        self.output_dir = output_dir
        self.records_path = os.path.join(output_dir, self.RECORDS)
        self.errors_path = os.path.join(output_dir, self.ERRORS)
        self.stats_path = os.path.join(output_dir, self.STATS)
        self._lock = threading.Lock()
        self.record_count = 0
        self.error_count = 0

    def _append(self, path: str, obj: dict[str, Any]) -> None:
        data = (json.dumps(obj, ensure_ascii=False, separators=(",", ":"), default=str) + "\n").encode("utf-8")
        fd = os.open(path, os.O_CREAT | os.O_APPEND | os.O_WRONLY, 0o644)
        try:
            os.write(fd, data)
        finally:
            os.close(fd)

    def push_record(self, record: dict[str, Any]) -> None:
        with self._lock:
            self._append(self.records_path, record)
            self.record_count += 1

    def push_error(self, error: dict[str, Any]) -> None:
        with self._lock:
            self._append(self.errors_path, error)
            self.error_count += 1

    def write_stats(self, stats: dict[str, Any]) -> None:
        tmp = f"{self.stats_path}.tmp"
        with open(tmp, "w", encoding="utf-8") as fh:
            json.dump(stats, fh, ensure_ascii=False, indent=2, default=str)
            fh.write("\n")
        os.replace(tmp, self.stats_path)
