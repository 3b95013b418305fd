# tests/conftest.py
import os
import threading
import warnings

import pytest
from freezegun import freeze_time

from modules.job_crawler.lib import config as jc_config
from modules.job_crawler.lib.errors import FetchError
from modules.job_crawler.lib.http_client import Page
from pages import SEARCH_URL, soup_of

warnings.filterwarnings("error", category=DeprecationWarning)


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (network calls or external services).",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "live: marks tests that perform live network calls (skipped by default).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch, tmp_path):
    # Write logs to a throwaway dir so real logs stay clean (per test)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")
    yield


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


# ---------------------------------------------------------------------
# Fake fetch collaborator
# ---------------------------------------------------------------------
class FakeFetcher:
    """
    Serves canned HTML by URL. A value may be a string (HTML), an Exception
    (raised on every call) or a list consumed one outcome per call.
    Unknown URLs get an empty page.
    """

    EMPTY = "<html><head><title>No results</title></head><body><p>No jobs found.</p></body></html>"

    def __init__(self, pages: dict):
        self.pages = dict(pages)
        self.calls: list[str] = []
        self.tasks: list = []
        self.sessions: list[int] = []
        self._lock = threading.Lock()

    def fetch(self, task, session, *, headers=None):
        with self._lock:
            self.calls.append(task.url)
            self.tasks.append(task)
            self.sessions.append(session.id)
            outcome = self.pages.get(task.url, self.EMPTY)
            if isinstance(outcome, list):
                outcome = outcome.pop(0) if len(outcome) > 1 else outcome[0]
        if isinstance(outcome, Exception):
            raise outcome
        return Page(soup=soup_of(outcome), url=task.url, status=200)

    def count(self, url: str) -> int:
        return sum(1 for u in self.calls if u == url)


@pytest.fixture
def fake_fetcher_cls():
    return FakeFetcher


@pytest.fixture
def make_settings():
    def _make(**overrides):
        kwargs = {
            "startUrl": SEARCH_URL,
            "results_wanted": 10,
            "collect_details": False,
            "maxConcurrency": 2,
            "maxRequestRetries": 2,
            "requestHandlerTimeoutSecs": 5,
            "source": "jobs.example.com",
        }
        kwargs.update(overrides)
        return jc_config.Settings.from_env_and_kwargs(kwargs)

    return _make


@pytest.fixture
def fetch_error():
    def _make(message="connection reset", status=None):
        return FetchError(message, status=status)

    return _make
