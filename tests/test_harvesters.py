from config import SEARCH_ENDPOINT
from harvesters import (
    decode_search_result_url,
    extract_hrefs,
    harvest_homepage,
    harvest_search,
    parse_search_results,
)

ROOT = "https://example.org"

SEARCH_PAGE = """
<html><body>
  <div class="result">
    <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.org%2Fservices%2Fapply&amp;rut=abc">Apply</a>
  </div>
  <div class="result">
    <a class="result__a" href="https://www.example.org/contact">Contact</a>
  </div>
  <div class="result">
    <a class="result__a" href="//duckduckgo.com/l/?uddg=https%3A%2F%2Fother.example%2Fx">Elsewhere</a>
  </div>
  <div class="result">
    <a class="result__a" href="https://duckduckgo.com/settings">Settings</a>
  </div>
  <div class="result">
    <a class="result__a" href="https://example.org/contact">Contact again</a>
  </div>
</body></html>
"""


def test_decode_search_result_url():
    assert decode_search_result_url("//duckduckgo.com/l/?uddg=https%3A%2F%2Fexample.org%2Fa%3Fb%3D1") == "https://example.org/a?b=1"
    assert decode_search_result_url("https://example.org/x") == "https://example.org/x"
    assert decode_search_result_url("javascript:void(0)") is None
    assert decode_search_result_url("") is None


def test_parse_search_results_keeps_in_scope_unique_urls():
    urls = parse_search_results(SEARCH_PAGE, "example.org", max_results=40)
    assert urls == [
        "https://example.org/services/apply",
        "https://www.example.org/contact",
        "https://example.org/contact",
    ]


def test_parse_search_results_respects_max():
    assert len(parse_search_results(SEARCH_PAGE, "example.org", max_results=1)) == 1


def test_harvest_search_queries_site_operator(site, make_ctx):
    site.add(SEARCH_ENDPOINT, SEARCH_PAGE)
    ctx = make_ctx()

    found = harvest_search(ctx)
    assert [c.source for c in found] == ["search"] * 3
    assert site.params[site.requests.index(SEARCH_ENDPOINT)] == {"q": "site:example.org"}
    assert ctx.log.warnings == []


def test_harvest_search_blocked_is_a_warning(site, make_ctx):
    site.add(SEARCH_ENDPOINT, "<html><body>Please solve this CAPTCHA</body></html>")
    ctx = make_ctx()

    assert harvest_search(ctx) == []
    assert ctx.log.warnings == ["Search results blocked by the search provider."]


def test_harvest_search_unavailable_is_a_warning(site, make_ctx):
    site.add(SEARCH_ENDPOINT, "", status=503)
    ctx = make_ctx()

    assert harvest_search(ctx) == []
    assert ctx.log.warnings == ["Search results unavailable (HTTP 503)."]


def test_extract_hrefs_resolves_relative_links():
    html = '<a href="/about">About</a><a href="#top">Top</a><a href="news/">News</a><a>none</a>'
    assert extract_hrefs(html, f"{ROOT}/en/") == [f"{ROOT}/about", f"{ROOT}/en/news/"]


def test_harvest_homepage_uses_final_url_after_redirect(site, make_ctx):
    site.add(f"{ROOT}/", "", status=301, headers={"Location": f"{ROOT}/en/"})
    site.add(f"{ROOT}/en/", '<a href="contact">Contact</a><a href="https://other.example/">Out</a>')
    ctx = make_ctx()

    found = harvest_homepage(ctx)
    assert [c.url for c in found] == [f"{ROOT}/en/contact", "https://other.example/"]
    assert {c.source for c in found} == {"homepage-fallback"}


def test_harvest_homepage_failure_is_a_warning(site, make_ctx):
    ctx = make_ctx()
    assert harvest_homepage(ctx) == []
    assert ctx.log.warnings == ["Homepage fallback unavailable (HTTP 404)."]
