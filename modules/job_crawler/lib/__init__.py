# modules/job_crawler/lib/__init__.py
from __future__ import annotations

# Re-export commonly-used types for convenience
from .config import ConfigError, Settings
from .controller import CrawlController, run_crawl
from .models import CrawlStats, CrawlTask, ErrorRecord, JobCard, JobDetail
from .sink import JsonlSink, MemorySink, RecordSink

__all__ = [
    "ConfigError",
    "CrawlController",
    "CrawlStats",
    "CrawlTask",
    "ErrorRecord",
    "JobCard",
    "JobDetail",
    "JsonlSink",
    "MemorySink",
    "RecordSink",
    "Settings",
    "run_crawl",
]
