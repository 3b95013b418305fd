from __future__ import annotations

from typing import Any

from .lib.config import Settings
from .lib.controller import CrawlController
from .lib.logging_bridge import activity as log_activity
from .lib.sink import JsonlSink, MemorySink, RecordSink


def run(sink: RecordSink | None = None, **kwargs: Any) -> dict:
    """
    Entry point for the 'job_crawler' module.

    Accepts the crawl input as kwargs, including:
      startUrl: str                  # or keyword/location to build one
      results_wanted: int = 50
      collect_details: bool = True
      maxConcurrency: int = 5
      maxRequestRetries: int = 3
      requestHandlerTimeoutSecs: float = 30
      downloadIntervalMs: int = 0
      proxyConfiguration: dict | str
      input_path: str                # JSON input file (kwargs win)
      output_dir: str                # records.jsonl, errors.jsonl, stats.json; in-memory when absent

    Returns:
      The run statistics as a dict, plus "records"/"error_records" when the
      in-memory sink was used.

    A `sink` passed in receives the statistics via write_stats() and is left
    open; sinks built here are closed before returning.
    """
    settings = Settings.from_env_and_kwargs(kwargs)

    owns_sink = sink is None
    if owns_sink:
        sink = JsonlSink(settings.output_dir) if settings.output_dir else MemorySink()

    log_activity({
        "component": "job_crawler.main",
        "op": "start",
        "search_url": settings.search_url,
        "source": settings.source_label,
        "output_dir": settings.output_dir,
    })

    try:
        stats = CrawlController(settings, sink).run()
        sink.write_stats(stats.as_dict())
    finally:
        # a caller-supplied sink stays open for the caller
        if owns_sink:
            sink.close()

    result = stats.as_dict()
    if isinstance(sink, MemorySink):
        result["records"] = list(sink.records)
        result["error_records"] = list(sink.errors)
    return result
