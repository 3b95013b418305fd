# tests/test_pagination.py
from modules.job_crawler.lib import pagination
from pages import BASE, SEARCH_URL, page_url, soup_of


def _resolve(body: str, base_url: str = SEARCH_URL, head: str = "", **kw) -> str | None:
    html = f"<html><head>{head}</head><body>{body}</body></html>"
    return pagination.resolve_next_url(soup_of(html), base_url, **kw)


def test_link_rel_next_wins():
    head = '<link rel="next" href="/jobs-search?search=python&amp;page=9">'
    body = '<a rel="next" href="/other?page=2">Next</a>'
    assert _resolve(body, head=head) == f"{BASE}/jobs-search?search=python&page=9"


def test_next_anchor_by_rel_class_or_label():
    assert _resolve('<a rel="nofollow next" href="?page=2">»</a>') == f"{BASE}/jobs-search?page=2"
    assert _resolve('<a class="next-page" href="/n1">go</a>') == f"{BASE}/n1"
    assert _resolve('<a aria-label="Next Page" href="/n2"><svg></svg></a>') == f"{BASE}/n2"
    assert _resolve('<a href="/p/1">Prev</a> <a href="/n3">Next ›</a>') == f"{BASE}/n3"


def test_numeric_pagination_picks_smallest_higher_page():
    links = "".join(
        f'<a href="/jobs-search?search=python&amp;page={n}">{n}</a>' for n in (1, 5, 3, 2)
    )
    assert _resolve(links) == f"{BASE}/jobs-search?search=python&page=2"
    assert _resolve(links, base_url=page_url(2)) == f"{BASE}/jobs-search?search=python&page=3"


def test_synthesizes_next_page_when_markup_has_none():
    assert _resolve("<p>no pager</p>") == page_url(2)
    assert _resolve("<p>no pager</p>", base_url=page_url(4)) == page_url(5)


def test_custom_page_param():
    url = f"{BASE}/search?q=python&p=3"
    assert _resolve("", base_url=url, page_param="p") == f"{BASE}/search?q=python&p=4"


def test_with_page_and_page_number():
    url = f"{SEARCH_URL}&page=2#results"
    assert pagination.page_number(url) == 2
    assert pagination.with_page(url, 7) == page_url(7)
    assert pagination.page_number(f"{BASE}/s?page=abc") is None
    assert pagination.page_number(SEARCH_URL) is None


def test_script_next_href_falls_through_to_numeric_links():
    page2 = '<a href="/jobs-search?search=python&amp;location=Austin&amp;page=2">2</a>'
    body = f'<a rel="next" href="javascript:void(0)">Next</a> {page2}'
    assert _resolve(body) == page_url(2)
    # no numeric links either: synthesized page+1
    assert _resolve('<a rel="next" href="javascript:void(0)">Next</a>') == page_url(2)


def test_fragment_or_self_next_href_does_not_stop_pagination():
    page3 = '<a href="/jobs-search?search=python&amp;location=Austin&amp;page=3">3</a>'
    body = f'<a aria-label="Next" href="#">›</a> {page3}'
    assert _resolve(body, base_url=page_url(2)) == page_url(3)

    self_link = f'<link rel="next" href="{page_url(2).replace("&", "&amp;")}#top">'
    assert _resolve(page3, base_url=page_url(2), head=self_link) == page_url(3)


def test_later_usable_next_anchor_is_taken():
    body = '<a class="next-page" href="#">Next</a> <a href="/n4">Next page</a>'
    assert _resolve(body) == f"{BASE}/n4"


def test_next_control_pointing_here_without_page_links_returns_current_url():
    assert _resolve('<a aria-label="Next" href="#">›</a>', base_url=page_url(3)) == page_url(3)
