from site_crawl import crawl_site, partition_links

ROOT = "https://example.org"

HOME = """
<html><body>
  <header><a href="/services">Services</a></header>
  <div class="main-menu"><a href="/news">News</a></div>
  <main>
    <a href="/blog/post-1">Post</a>
    <a href="/files/report.pdf">PDF</a>
    <a href="https://other.example/">Elsewhere</a>
  </main>
  <div id="site-footer"><a href="/accessibility">Accessibility</a></div>
  <footer><a href="/contact">Contact</a></footer>
</body></html>
"""


def test_partition_links_by_region():
    buckets = partition_links(HOME, f"{ROOT}/")
    assert buckets["footer"] == [f"{ROOT}/accessibility", f"{ROOT}/contact"]
    assert buckets["nav"] == [f"{ROOT}/services", f"{ROOT}/news"]
    assert buckets["other"] == [f"{ROOT}/blog/post-1", f"{ROOT}/files/report.pdf", "https://other.example/"]


def test_role_attributes_count_as_regions():
    html = '<div role="contentinfo"><a href="/a">a</a></div><ul role="navigation"><li><a href="/b">b</a></li></ul>'
    buckets = partition_links(html, f"{ROOT}/")
    assert buckets["footer"] == [f"{ROOT}/a"]
    assert buckets["nav"] == [f"{ROOT}/b"]


def test_crawl_emits_in_scope_html_footer_first(site, make_ctx):
    site.add(f"{ROOT}/", HOME)
    ctx = make_ctx(crawl_max_pages=1)

    found = crawl_site(ctx, target_count=100)
    assert [c.url for c in found] == [
        f"{ROOT}/accessibility",
        f"{ROOT}/contact",
        f"{ROOT}/services",
        f"{ROOT}/news",
        f"{ROOT}/blog/post-1",
    ]
    assert {c.source for c in found} == {"crawl"}
    assert any("page limit reached" in w for w in ctx.log.warnings)


def test_crawl_follows_only_footer_and_nav(site, make_ctx):
    site.add(f"{ROOT}/", HOME)
    site.add(f"{ROOT}/contact", '<footer><a href="/contact/offices">Offices</a></footer>')
    ctx = make_ctx(crawl_max_depth=1, fetch_workers=1)

    urls = [c.url for c in crawl_site(ctx, target_count=100)]
    assert f"{ROOT}/contact/offices" in urls
    assert f"{ROOT}/blog/post-1" not in site.requests
    assert f"{ROOT}/contact" in site.requests
    assert f"{ROOT}/contact/offices" not in site.requests


def test_crawl_stops_once_count_and_coverage_are_met(site, make_ctx):
    site.add(f"{ROOT}/", HOME)
    ctx = make_ctx()

    found = crawl_site(ctx, known_keys=set(), target_count=1, missing_signals={"accessibility"})
    assert [c.url for c in found] == [f"{ROOT}/accessibility"]
    assert site.requests.count(f"{ROOT}/") == 1


def test_crawl_respects_robots(site, make_ctx):
    site.add(f"{ROOT}/robots.txt", "User-agent: *\nDisallow: /contact\n", content_type="text/plain")
    site.add(f"{ROOT}/", HOME)
    ctx = make_ctx(fetch_workers=1)

    crawl_site(ctx, target_count=100)
    assert f"{ROOT}/contact" not in site.requests
    assert f"{ROOT}/services" in site.requests


def test_crawl_ignores_robots_when_disabled(site, make_ctx):
    site.add(f"{ROOT}/robots.txt", "User-agent: *\nDisallow: /\n", content_type="text/plain")
    site.add(f"{ROOT}/", HOME)
    ctx = make_ctx(respect_robots=False)

    assert crawl_site(ctx, target_count=100)
    assert f"{ROOT}/robots.txt" not in site.requests


def test_crawl_skips_non_html_responses(site, make_ctx):
    site.add(f"{ROOT}/", HOME, content_type="application/json")
    ctx = make_ctx()

    assert crawl_site(ctx, target_count=100) == []
    assert ctx.log.warnings == []


def test_crawl_unreachable_homepage_warns(site, make_ctx):
    ctx = make_ctx()
    assert crawl_site(ctx, target_count=100) == []
    assert ctx.log.warnings == ["Crawl could not fetch any page for example.org."]


def test_crawl_stops_at_count_when_nothing_is_missing(site, make_ctx):
    site.add(f"{ROOT}/", HOME)
    ctx = make_ctx()

    found = crawl_site(ctx, known_keys=set(), target_count=2, missing_signals=set())
    assert [c.url for c in found] == [f"{ROOT}/accessibility", f"{ROOT}/contact"]
    assert f"{ROOT}/contact" not in site.requests
    assert ctx.log.warnings == []


def test_crawl_keeps_going_past_count_for_missing_coverage(site, make_ctx):
    site.add(f"{ROOT}/", '<footer><a href="/p1">One</a><a href="/p2">Two</a></footer>')
    site.add(f"{ROOT}/p1", '<footer><a href="/accessibility">Accessibility</a></footer>')
    site.add(f"{ROOT}/p2", "<footer></footer>")
    ctx = make_ctx(fetch_workers=1)

    found = crawl_site(ctx, known_keys=set(), target_count=2, missing_signals={"accessibility"})
    assert [c.url for c in found] == [f"{ROOT}/p1", f"{ROOT}/p2", f"{ROOT}/accessibility"]
    assert f"{ROOT}/p1" in site.requests
    assert f"{ROOT}/p2" not in site.requests


def test_cancel_mid_crawl_keeps_partial_results(site, make_ctx):
    site.add(f"{ROOT}/", HOME)
    site.add(f"{ROOT}/contact", '<footer><a href="/contact/offices">Offices</a></footer>')
    ctx = make_ctx(fetch_workers=1)
    site.cancel_event = ctx.cancel_event
    site.cancel_after = f"{ROOT}/"

    found = crawl_site(ctx, target_count=100)
    assert f"{ROOT}/accessibility" in [c.url for c in found]
    assert site.requests == [f"{ROOT}/robots.txt", f"{ROOT}/"]
    assert ctx.log.warnings == ["Crawl cancelled; partial results kept."]
