import httpx

from analyzers.seo import SEOAnalyzer
from extraction.models import Heading, Image


def site_files(status_code):
    return httpx.MockTransport(lambda request: httpx.Response(status_code, text="User-agent: *"))


def test_well_optimized_page_scores_full_marks(make_page):
    result = SEOAnalyzer(transport=site_files(200)).analyze(make_page())

    assert result.analyzed
    assert result.score == 100
    assert result.recommendations == []
    assert result.insights.startswith("Excellent SEO optimization")
    checks = result.raw_data["checks"]
    assert checks["canonical"]["matches_page"]
    assert checks["structured_data"]["types"] == ["Organization"]
    assert result.raw_data["headings"]["counts"]["h1"] == 1


def test_bare_page_accumulates_every_penalty(make_page):
    data = make_page(
        html="<html><body><p>Hello</p></body></html>",
        title="",
        description="",
        headings=(),
        images=tuple(Image(src=f"/{i}.png") for i in range(12)),
    )

    result = SEOAnalyzer(transport=site_files(404)).analyze(data)

    # 20 + 15 + 15 + 20 (capped) + 10 + 12 + 8 + 6 + 10 + 8 = 124, clamped
    assert result.score == 0
    checks = result.raw_data["checks"]
    assert checks["alt_tags"]["penalty"] == 20
    assert checks["robots_txt"]["status_code"] == 404
    assert not checks["sitemap"]["passed"]
    assert "Missing page title" in result.raw_data["issues"]
    assert result.insights.startswith("Very poor SEO optimization")


def test_length_and_heading_penalties(make_page):
    data = make_page(
        title="Too short",
        description="Short description.",
        headings=(Heading(1, "One"), Heading(1, "Two")),
    )

    result = SEOAnalyzer(transport=site_files(200)).analyze(data)

    # title 10, description 8, multiple H1 10
    assert result.score == 72
    assert "Use only one H1 heading per page" in result.recommendations


def test_unreachable_site_files_are_penalized(make_page):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = SEOAnalyzer(transport=httpx.MockTransport(handler)).analyze(make_page())

    assert result.analyzed
    assert result.score == 82
    assert result.raw_data["checks"]["robots_txt"]["status_code"] is None


def test_links_are_split_into_internal_and_external(make_page):
    html = (
        '<html><body><a href="/about">About</a>'
        '<a href="https://example.org/blog">Blog</a>'
        '<a href="https://other.example/" rel="nofollow">Partner</a></body></html>'
    )
    result = SEOAnalyzer(transport=site_files(200)).analyze(make_page(html=html))

    assert result.raw_data["links"] == {"total": 3, "internal": 2, "external": 1, "nofollow": 1}
