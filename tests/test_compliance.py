import pytest

from bs4 import BeautifulSoup

from analyzers.compliance import (
    ComplianceAnalyzer,
    audit_accessibility,
    has_cookie_consent,
    merge_recommendations,
    wcag_level_for,
)
from vision.schemas import (
    ComplianceVision,
    CookieBannerVision,
    OverallComplianceVision,
    VisionComplianceResult,
    degraded_compliance_vision,
)

BARE_HTML = "<html><body><p>Welcome</p></body></html>"


@pytest.fixture
def bare_page(make_page):
    return make_page(html=BARE_HTML, links=(), headings=(), images=())


def test_bare_page_scores_low(bare_page):
    result = ComplianceAnalyzer().analyze(bare_page)

    assert result.analyzed
    assert result.raw_data["categories"] == {
        "accessibility": 80,
        "privacy": 30,
        "legal": 20,
        "cookies": 50,
    }
    assert result.score == 45
    assert result.raw_data["gdpr_compliant"] is False
    assert "Implement a legally compliant cookie consent banner" in result.recommendations
    assert result.insights.startswith("Poor compliance.")


def test_complete_page_scores_full(make_page):
    result = ComplianceAnalyzer().analyze(make_page())

    assert result.score == 100
    assert result.recommendations == []
    assert result.raw_data["wcag_level"] == "AA"
    assert result.raw_data["cookie_consent"] is True
    assert result.raw_data["terms_of_service"] is True


def test_accessibility_penalties(make_page):
    from extraction.models import Heading, Image

    page = make_page(
        html="<html><body><form><input name='q'></form></body></html>",
        images=(Image(src="/a.png", alt=""), Image(src="/b.png", alt=" ")),
        headings=(Heading(level=1, text="One"), Heading(level=1, text="Two")),
    )

    result = ComplianceAnalyzer().analyze(page)

    # 100 - 10 (alt) - 10 (two H1) - 25 (unlabelled inputs)
    assert result.raw_data["categories"]["accessibility"] == 55
    assert result.raw_data["wcag_level"] == "Fail"
    assert "2 images missing alt text" in result.raw_data["issues"]


@pytest.mark.parametrize(
    "form",
    [
        "<form><label for='q'>Search</label><input id='q'></form>",
        "<form><textarea aria-label='Message'></textarea></form>",
        "<p>Search for &lt;input&gt; elements in the docs</p>",
    ],
)
def test_labelled_or_absent_form_fields_are_not_penalized(make_page, form):
    page = make_page(html=f"<html><body><h1>Docs</h1>{form}</body></html>")

    result = audit_accessibility(page, BeautifulSoup(page.html, "lxml"))

    assert result["score"] == 100
    assert result["issues"] == []


def test_unlabelled_select_is_penalized(make_page):
    page = make_page(html="<html><body><h1>Shop</h1><select name='size'></select></body></html>")

    result = audit_accessibility(page, BeautifulSoup(page.html, "lxml"))

    assert result["score"] == 75
    assert "Form inputs may be missing labels" in result["issues"]


def test_inline_text_colour_asks_for_a_contrast_check(make_page):
    page = make_page(html="<html><body><h1 style='color: #999'>Sale</h1></body></html>")

    result = ComplianceAnalyzer().analyze(page)

    assert result.raw_data["categories"]["accessibility"] == 90
    assert "Verify color contrast meets WCAG standards" in result.recommendations


def test_stylesheet_colours_do_not_trigger_the_contrast_check(make_page):
    page = make_page(html="<html><head><style>h1 { color: #999; }</style></head><body><h1>Sale</h1></body></html>")

    result = audit_accessibility(page, BeautifulSoup(page.html, "lxml"))

    assert result["score"] == 100
    assert result["recommendations"] == []


def test_vision_score_can_lift_the_pillar(bare_page):
    vision = ComplianceVision(
        cookie_banner=CookieBannerVision(detected=True, confidence=88),
        overall_compliance=OverallComplianceVision(
            score=95,
            recommendations=[
                "Add a cookie consent banner",
                "Publish a GDPR notice",
                "Increase contrast of footer links",
            ],
        ),
    )

    result = ComplianceAnalyzer().analyze(bare_page, vision=vision)

    assert result.score == 95
    assert result.raw_data["text_score"] == 45
    assert result.raw_data["cookie_consent"] is True
    assert result.recommendations[-1] == "Increase contrast of footer links"
    assert "Add a cookie consent banner" not in result.recommendations
    assert "Publish a GDPR notice" not in result.recommendations
    assert "visually detected with 88% confidence" in result.insights


def test_vision_never_lowers_the_score(make_page):
    vision = ComplianceVision(overall_compliance=OverallComplianceVision(score=40))

    result = ComplianceAnalyzer().analyze(make_page(), vision=vision)

    assert result.score == 100


def test_missing_vision_score_leaves_text_score(bare_page):
    vision = ComplianceVision(overall_compliance=OverallComplianceVision(score=None))

    result = ComplianceAnalyzer().analyze(bare_page, vision=vision)

    assert result.score == 45
    assert "vision_analysis" in result.raw_data


def test_degraded_vision_is_ignored(bare_page):
    result = ComplianceAnalyzer().analyze(bare_page, vision=degraded_compliance_vision())

    assert result.score == 45
    assert "vision_analysis" not in result.raw_data


def test_screenshot_review_used_when_no_view_given(bare_page):
    class FakeVisionClient:
        def __init__(self):
            self.calls = []

        def analyze_screenshot_for_compliance(self, screenshot_base64, url):
            self.calls.append((screenshot_base64, url))
            return VisionComplianceResult(overall_compliance=OverallComplianceVision(score=70))

    client = FakeVisionClient()

    result = ComplianceAnalyzer(vision_client=client).analyze(bare_page, screenshot_base64="abc")

    assert client.calls == [("abc", "https://example.org")]
    assert result.score == 70


def test_cookie_wording_alone_is_not_consent():
    assert not has_cookie_consent("<p>we bake cookies</p>")
    assert not has_cookie_consent("<p>we use cookies</p>")
    assert has_cookie_consent("<p>we use cookies</p><button>accept all</button>")
    assert has_cookie_consent("<p>we use cookies</p><script src='cookiebot.js'></script>")


@pytest.mark.parametrize("score, level", [(100, "AA"), (80, "AA"), (79, "A"), (60, "A"), (59, "Fail")])
def test_wcag_levels(score, level):
    assert wcag_level_for(score) == level


def test_merge_recommendations_skips_near_duplicates():
    existing = ["Add descriptive alt text to all images"]

    merged = merge_recommendations(
        existing, ["Add descriptive alt text to hero images", "Add skip links"]
    )

    assert merged == ["Add descriptive alt text to all images", "Add skip links"]
    assert existing == ["Add descriptive alt text to all images"]
