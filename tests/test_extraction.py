import pytest
from playwright.sync_api import Error as PlaywrightError

from analyzers.base import PillarResult
from config import settings
from exceptions import ExtractionError
from extraction import ConsentOutcome, ExtractedData, ExtractionEngine, dismiss_cookie_consent
from extraction.engine import _build_snapshot
from extraction.models import Cookie, ExtractionOptions, Heading, Image, Link, PageTimings, Viewport


class FakeElement:
    def __init__(self, visible=True, fail_click=False):
        self.visible = visible
        self.fail_click = fail_click
        self.clicked = False

    def is_visible(self):
        return self.visible

    def click(self, timeout=None):
        if self.fail_click:
            raise PlaywrightError("element detached")
        self.clicked = True


class FakePage:
    def __init__(self, elements=None, text_click=None, broken=False):
        self.elements = elements or {}
        self.text_click = text_click
        self.broken = broken
        self.waits = []

    def wait_for_timeout(self, ms):
        if self.broken:
            raise RuntimeError("page crashed")
        self.waits.append(ms)

    def query_selector(self, selector):
        return self.elements.get(selector)

    def evaluate(self, script, arg=None):
        return self.text_click


@pytest.fixture
def engine():
    engine = ExtractionEngine(headless=True, attempt_timeouts=[100, 200], retry_delay=0)
    yield engine
    engine.close()


def test_extract_retries_once_then_succeeds(engine, make_page, monkeypatch):
    attempts = []
    page = make_page()

    def flaky(url, options):
        attempts.append(options.timeout)
        if len(attempts) == 1:
            raise ExtractionError("Failed to load page: 503 Service Unavailable")
        return page

    monkeypatch.setattr(engine, "_extract_once", flaky)

    assert engine.extract("https://example.org") is page
    assert attempts == [100, 200]


def test_extract_gives_up_after_two_attempts(engine, monkeypatch):
    attempts = []

    def broken(url, options):
        attempts.append(options.timeout)
        raise RuntimeError(f"navigation failed {len(attempts)}")

    monkeypatch.setattr(engine, "_extract_once", broken)

    with pytest.raises(ExtractionError, match="navigation failed 2"):
        engine.extract("https://example.org")
    assert len(attempts) == 2


def test_extract_reraises_extraction_errors_unchanged(engine, monkeypatch):
    def not_found(url, options):
        raise ExtractionError("Failed to load page: 404 Not Found")

    monkeypatch.setattr(engine, "_extract_once", not_found)

    with pytest.raises(ExtractionError) as excinfo:
        engine.extract("https://example.org/missing")
    assert excinfo.value.message == "Failed to load page: 404 Not Found"


def test_close_without_browser_is_safe(engine):
    engine.close()
    engine.close()


def test_consent_not_found_when_page_has_no_banner():
    page = FakePage()
    result = dismiss_cookie_consent(page, settle_ms=0, click_pause_ms=0)
    assert result.outcome == ConsentOutcome.NOT_FOUND


def test_consent_clicks_first_visible_selector():
    hidden = FakeElement(visible=False)
    button = FakeElement()
    page = FakePage(elements={'button[id*="accept"]': hidden, "#onetrust-accept-btn-handler": button})

    result = dismiss_cookie_consent(page, settle_ms=0, click_pause_ms=0)

    assert result.outcome == ConsentOutcome.DISMISSED
    assert result.matched == "#onetrust-accept-btn-handler"
    assert button.clicked and not hidden.clicked


def test_consent_skips_elements_that_fail_to_click():
    page = FakePage(
        elements={'button[id*="accept"]': FakeElement(fail_click=True)},
        text_click="Accept all",
    )
    result = dismiss_cookie_consent(page, settle_ms=0, click_pause_ms=0)
    assert result.outcome == ConsentOutcome.DISMISSED
    assert result.matched == "Accept all"


def test_consent_failure_never_raises():
    result = dismiss_cookie_consent(FakePage(broken=True), settle_ms=0)
    assert result.outcome == ConsentOutcome.FAILED
    assert "page crashed" in result.reason


def test_snapshot_to_dict_drops_screenshot_bytes(make_page):
    data = make_page(cookies=(Cookie(name="sid", value="1", domain="example.org"),))
    snapshot = data.to_dict()

    assert "screenshot" not in snapshot
    assert snapshot["screenshot_size"] == len(data.screenshot)
    assert snapshot["headings"][0] == {"level": 1, "text": "Hand-made widgets", "id": None}
    assert snapshot["cookies"][0]["name"] == "sid"


def test_headings_at_filters_by_level():
    data = ExtractedData(
        url="https://example.org",
        html="",
        headings=(Heading(1, "One"), Heading(2, "Two"), Heading(1, "Another")),
    )
    assert [heading.text for heading in data.headings_at(1)] == ["One", "Another"]
    assert not data.has_screenshot


class NavigatingPage:
    def __init__(self, fail_first=True):
        self.fail_first = fail_first
        self.calls = []

    def goto(self, url, wait_until=None, timeout=None):
        self.calls.append((wait_until, timeout))
        if self.fail_first and len(self.calls) == 1:
            raise PlaywrightError("Timeout 20000ms exceeded")
        return "response"


def test_navigate_uses_dom_ready_with_capped_timeout(engine, monkeypatch):
    monkeypatch.setattr(settings, "navigation_timeout", 20000)
    page = NavigatingPage(fail_first=False)

    assert engine._navigate(page, "https://example.org", 45000) == "response"
    assert page.calls == [("domcontentloaded", 20000)]


def test_navigate_falls_back_to_full_load_with_whole_budget(engine, monkeypatch):
    monkeypatch.setattr(settings, "navigation_timeout", 20000)
    page = NavigatingPage()

    assert engine._navigate(page, "https://example.org", 45000) == "response"
    assert page.calls == [("domcontentloaded", 20000), ("load", 45000)]


def test_navigate_never_exceeds_a_smaller_budget(engine, monkeypatch):
    monkeypatch.setattr(settings, "navigation_timeout", 20000)
    page = NavigatingPage()

    engine._navigate(page, "https://example.org", 8000)

    assert page.calls == [("domcontentloaded", 8000), ("load", 8000)]


def test_build_snapshot_maps_page_payload():
    payload = {
        "html": "<html><body><h1 id='top'>Widgets</h1></body></html>",
        "title": "Widgets",
        "description": "Hand-made widgets",
        "metaTags": {"viewport": "width=device-width, initial-scale=1"},
        "headings": [{"level": 1, "text": "Widgets", "id": "top"}, {"level": 2, "text": "Range"}],
        "images": [{"src": "https://example.org/a.png", "alt": "A widget", "width": 640, "height": 480}],
        "links": [{"href": "https://example.org/shop", "text": "Shop", "internal": 1}],
        "scripts": ["https://cdn.example.org/app.js"],
        "styles": ["https://example.org/site.css"],
        "canonicalUrl": "https://example.org/",
        "lang": "en",
        "charset": "UTF-8",
    }
    cookies = [{"name": "sid", "value": "abc", "domain": "example.org", "httpOnly": True}]
    timings = PageTimings(load_time=900, dom_content_loaded=500, first_contentful_paint=300)
    options = ExtractionOptions(viewport=Viewport(width=390, height=844))

    data = _build_snapshot(
        "https://example.org", payload, screenshot=b"jpeg", cookies=cookies, timings=timings, options=options
    )

    assert data.headings == (Heading(1, "Widgets", "top"), Heading(2, "Range"))
    assert data.images == (Image(src="https://example.org/a.png", alt="A widget", width=640, height=480),)
    assert data.links == (Link(href="https://example.org/shop", text="Shop", internal=True),)
    assert data.cookies == (Cookie(name="sid", value="abc", domain="example.org", http_only=True),)
    assert data.scripts == ("https://cdn.example.org/app.js",)
    assert data.meta_tags["viewport"].startswith("width=device-width")
    assert data.viewport == Viewport(width=390, height=844)
    assert data.timings is timings
    assert (data.canonical_url, data.lang, data.charset) == ("https://example.org/", "en", "UTF-8")


def test_build_snapshot_tolerates_sparse_payload():
    data = _build_snapshot(
        "https://example.org",
        {},
        screenshot=b"",
        cookies=[],
        timings=PageTimings(load_time=0, dom_content_loaded=0, first_contentful_paint=0),
        options=ExtractionOptions(),
    )

    assert data.html == ""
    assert data.headings == ()
    assert data.canonical_url is None


def test_analyzed_result_score_is_clamped_integer():
    result = PillarResult(score=150.7, analyzed=True)

    assert result.score == 100
    assert isinstance(result.score, int)
    assert PillarResult(score=-3, analyzed=True).score == 0
    assert PillarResult(score=72.6, analyzed=True).score == 73


def test_unanalyzed_result_has_zero_score_and_an_error():
    result = PillarResult(score=55, analyzed=False)

    assert result.score == 0
    assert result.error


def test_failed_result_carries_the_reason():
    result = PillarResult.failed("Timeout")

    assert not result.analyzed
    assert result.error == "Timeout"
    assert result.insights == "Analysis failed: Timeout"
