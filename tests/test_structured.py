# tests/test_structured.py
import copy
import json

from modules.job_crawler.lib import structured
from pages import POSTING, jsonld, soup_of


def _page(*blocks: str) -> str:
    return f"<html><head>{''.join(blocks)}</head><body></body></html>"


def test_extracts_posting_from_graph_and_item_list():
    graph = {"@context": "https://schema.org", "@graph": [{"@type": "WebPage"}, POSTING]}
    item_list = {
        "@type": "ItemList",
        "itemListElement": [
            {"@type": "ListItem", "position": 1, "item": dict(POSTING, title="From list")},
        ],
    }
    assert structured.extract_job_posting(soup_of(_page(jsonld(graph))))["title"] == POSTING["title"]
    assert structured.extract_job_posting(soup_of(_page(jsonld(item_list))))["title"] == "From list"


def test_type_may_be_a_list():
    posting = dict(POSTING, **{"@type": ["Thing", "JobPosting"]})
    assert structured.is_job_posting(posting)
    assert not structured.is_job_posting({"@type": "Organization"})
    assert not structured.is_job_posting("JobPosting")


def test_malformed_block_is_skipped_and_scan_continues():
    html = _page(
        '<script type="application/ld+json">{"@type": "JobPosting", broken</script>',
        '<script type="application/ld+json">   </script>',
        jsonld(POSTING),
    )
    postings = list(structured.iter_job_postings(soup_of(html)))
    assert [p["title"] for p in postings] == [POSTING["title"]]


def test_page_without_postings_returns_none():
    assert structured.extract_job_posting(soup_of(_page(jsonld({"@type": "Organization"})))) is None


def test_field_accessors():
    assert structured.org_name(POSTING) == "Acme Corp"
    assert structured.location_text(POSTING) == "Austin, TX, US"
    assert structured.salary_text(POSTING) == "120000 - 150000 / year USD"
    assert structured.employment_type(POSTING) == "FULL_TIME, CONTRACTOR"


def test_field_accessors_on_sparse_postings():
    sparse = copy.deepcopy(POSTING)
    sparse["hiringOrganization"] = "Globex"
    sparse["jobLocation"] = [{"address": "Remote, US"}]
    sparse["baseSalary"] = {"currency": "USD", "value": 50}
    sparse["employmentType"] = "PART_TIME"

    assert structured.org_name(sparse) == "Globex"
    assert structured.location_text(sparse) == "Remote, US"
    assert structured.salary_text(sparse) == "50 USD"
    assert structured.employment_type(sparse) == "PART_TIME"

    assert structured.location_text({"jobLocation": []}) is None
    assert structured.salary_text({}) is None


def _state_script(body: str) -> str:
    return f"<script>{body}</script>"


STATE = {
    "page": {"search": {"query": "python"}},
    "results": {
        "list": {
            "job_results": [
                {"jobTitle": "Data Engineer", "hiring_company": {"name": "Globex"}, "job_url": "/c/Globex/Job/de"},
                {"title": "Backend Developer", "companyName": "Initech", "url": "/c/Initech/Job/bd"},
            ],
        },
    },
}


def test_preloaded_state_jobs_are_found_in_nested_state():
    html = _page(_state_script(f"window.__PRELOADED_STATE__ = {json.dumps(STATE)};\nwindow.ready = true;"))
    jobs = list(structured.iter_state_jobs(soup_of(html)))
    assert [structured.state_value(j, "title", "jobTitle") for j in jobs] == ["Data Engineer", "Backend Developer"]
    assert structured.state_value(jobs[0], "company", "hiring_company.name") == "Globex"


def test_bare_jobs_array_and_other_assignments():
    jobs = [{"title": "QA Lead", "url": "/job/qa"}]
    html = _page(
        _state_script('var cfg = {"jobs": ' + json.dumps(jobs) + "};"),
        _state_script("window.__INITIAL_STATE__ = " + json.dumps({"data": {"jobs": [{"name": "SRE"}]}}) + ";"),
    )
    assert [j.get("title") or j.get("name") for j in structured.iter_state_jobs(soup_of(html))] == ["QA Lead", "SRE"]


def test_broken_state_is_skipped_and_ld_json_is_not_state():
    html = _page(
        _state_script("window.__PRELOADED_STATE__ = {not json};"),
        jsonld({"jobs": [{"title": "Only in JSON-LD"}]}),
        '<script src="/app.js"></script>',
    )
    assert list(structured.iter_state_jobs(soup_of(html))) == []


def test_find_job_array_depth_limit():
    deep = {"a": {"b": {"c": {"d": {"e": {"f": [{"title": "Too deep"}]}}}}}}
    assert structured.find_job_array(deep) is None
    assert structured.find_job_array(deep["a"]) == [{"title": "Too deep"}]
    assert structured.find_job_array({"tags": ["python"], "items": [{"id": 1}]}) is None


def test_state_value_skips_empty_and_non_scalar_values():
    item = {"title": "  ", "jobTitle": "Engineer", "salary": {"min": 1}, "pay": 95000, "remote": True}
    assert structured.state_value(item, "title", "jobTitle") == "Engineer"
    assert structured.state_value(item, "salary", "pay") == "95000"
    assert structured.state_value(item, "remote") is None
    assert structured.state_value(item, "company.name") is None
