# tests/test_http_client.py
from unittest import mock

import pytest
import requests

from modules.job_crawler.lib import http_client
from modules.job_crawler.lib.errors import FetchError
from modules.job_crawler.lib.models import DETAIL, LIST, CrawlTask
from pages import SEARCH_URL, job_url, listing_html, soup_of


def _response(status=200, text="", url=SEARCH_URL):
    resp = mock.Mock()
    resp.status_code = status
    resp.text = text
    resp.url = url
    resp.encoding = "utf-8"
    resp.apparent_encoding = "utf-8"
    return resp


@pytest.fixture
def session():
    s = http_client.CrawlSession(1, "TestAgent/1.0")
    yield s
    s.close()


def test_build_headers_is_pure_and_role_aware(session):
    listing = CrawlTask(url=SEARCH_URL, role=LIST)
    detail = CrawlTask(url=job_url("a"), role=DETAIL, referer=SEARCH_URL)

    h1 = http_client.build_headers(listing, session)
    assert h1["User-Agent"] == "TestAgent/1.0"
    assert "Referer" not in h1
    assert http_client.build_headers(listing, session) == h1

    h2 = http_client.build_headers(detail, session)
    assert h2["Referer"] == SEARCH_URL
    assert h2["Sec-Fetch-Site"] == "same-origin"


def test_fetch_success_returns_parsed_page(session):
    html = listing_html([])
    fetcher = http_client.Fetcher(timeout=7)
    with mock.patch.object(session.http, "get", return_value=_response(text=html)) as get:
        page = fetcher.fetch(CrawlTask(url=SEARCH_URL, role=LIST), session)

    assert page.status == 200
    assert page.url == SEARCH_URL
    assert page.soup.title.get_text() == "Jobs"
    _, kwargs = get.call_args
    assert kwargs["timeout"] == 7.0
    assert kwargs["headers"]["User-Agent"] == "TestAgent/1.0"


@pytest.mark.parametrize(
    "status, text, fragment",
    [
        (403, "", "blocked"),
        (503, "", "blocked"),
        (404, "", "HTTP 404"),
        (200, "<html><head><title>Just a moment...</title></head></html>", "challenge"),
        (200, '<html><body><div id="cf-browser-verification"></div></body></html>', "challenge"),
    ],
)
def test_fetch_maps_bad_responses_to_fetch_error(session, status, text, fragment):
    fetcher = http_client.Fetcher()
    with mock.patch.object(session.http, "get", return_value=_response(status=status, text=text)):
        with pytest.raises(FetchError) as ei:
            fetcher.fetch(CrawlTask(url=SEARCH_URL, role=LIST), session)
    assert fragment in str(ei.value)
    assert ei.value.url == SEARCH_URL
    assert ei.value.status == status


@pytest.mark.parametrize(
    "exc, fragment",
    [
        (requests.Timeout("read timed out"), "timeout"),
        (requests.ConnectionError("reset by peer"), "network error"),
    ],
)
def test_fetch_maps_transport_errors(session, exc, fragment):
    fetcher = http_client.Fetcher()
    with mock.patch.object(session.http, "get", side_effect=exc):
        with pytest.raises(FetchError) as ei:
            fetcher.fetch(CrawlTask(url=SEARCH_URL, role=LIST), session)
    assert fragment in str(ei.value)
    assert ei.value.status is None


def test_looks_like_challenge():
    assert http_client.looks_like_challenge(soup_of("<title>Attention Required! | Cloudflare</title>"), "")
    assert not http_client.looks_like_challenge(soup_of(listing_html([])), listing_html([]))


def test_session_pool_round_robin_and_rotation():
    pool = http_client.SessionPool(["ua-1", "ua-2"], ["http://user:pw@proxy-a:8000", "http://proxy-b:8000"])
    s1 = pool.create()
    s2 = pool.create()
    assert (s1.user_agent, s2.user_agent) == ("ua-1", "ua-2")
    assert s1.http.proxies["https"] == "http://user:pw@proxy-a:8000"
    assert s2.proxy_url == "http://proxy-b:8000"

    s1.cookies.set("sid", "abc")
    s3 = pool.rotate(s1)
    assert s3.id != s1.id
    assert s3.cookies.get("sid") is None
    assert s3.user_agent == "ua-1"

    pool.close_all()


def test_session_pool_defaults_to_builtin_agents():
    pool = http_client.SessionPool()
    session = pool.create()
    assert session.user_agent in http_client.DEFAULT_USER_AGENTS
    assert session.proxy_url is None
    pool.close_all()
