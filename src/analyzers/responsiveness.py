"""Responsiveness analysis by rendering the page at three device viewports."""

import logging
import re
from dataclasses import asdict, dataclass, field

from playwright.sync_api import Browser, Page, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from analyzers.base import BaseAnalyzer, PillarResult
from config import settings
from extraction.engine import BROWSER_ARGS, new_isolated_context
from extraction.models import ExtractedData
from vision.schemas import ResponsivenessVision

logger = logging.getLogger(__name__)

DEVICES = {
    "mobile": {"viewport": {"width": 390, "height": 844}, "is_mobile": True, "has_touch": True},
    "tablet": {"viewport": {"width": 768, "height": 1024}},
    "desktop": {"viewport": {"width": 1920, "height": 1080}},
}

HAS_OVERFLOW_JS = "() => document.documentElement.scrollWidth > window.innerWidth"

HAS_SMALL_TEXT_JS = """
() => Array.from(document.querySelectorAll('*')).some((el) => {
    const size = parseFloat(window.getComputedStyle(el).fontSize);
    return size > 0 && size < 14;
})
"""

HAS_SMALL_TARGETS_JS = """
() => Array.from(document.querySelectorAll('button, a, [onclick]')).some((el) => {
    const rect = el.getBoundingClientRect();
    return rect.width < 44 || rect.height < 44;
})
"""

NAVIGATION_ISSUES_JS = """
() => {
    const nav = document.querySelector('nav');
    if (nav && nav.getBoundingClientRect().width > window.innerWidth) {
        return ['Navigation too wide for tablet'];
    }
    return [];
}
"""

UNUSED_SPACE_JS = "() => document.body.getBoundingClientRect().width < window.innerWidth * 0.7"

PX_FONT_SIZE = re.compile(r"font-size:\s*(\d+(?:\.\d+)?)px", re.IGNORECASE)
RELATIVE_FONT_SIZE = re.compile(r"font-size:\s*(\d+(?:\.\d+)?)(?:rem|em)", re.IGNORECASE)
SMALL_CLICKABLE_PATTERNS = [
    re.compile(r'<button[^>]*style="[^"]*(?:width|height):\s*(?:[1-9]|[12]\d|3[0-9])px', re.IGNORECASE),
    re.compile(r'<a[^>]*style="[^"]*(?:width|height):\s*(?:[1-9]|[12]\d|3[0-9])px', re.IGNORECASE),
    re.compile(r"\.btn[^{]*{[^}]*(?:width|height):\s*(?:[1-9]|[12]\d|3[0-9])px", re.IGNORECASE),
]


@dataclass
class MobileFindings:
    has_overflow: bool = False
    has_small_text: bool = False
    has_small_touch_targets: bool = False
    layout_breaks: list[str] = field(default_factory=list)


@dataclass
class TabletFindings:
    has_overflow: bool = False
    layout_breaks: list[str] = field(default_factory=list)
    navigation_issues: list[str] = field(default_factory=list)


@dataclass
class DesktopFindings:
    unused_space: bool = False
    layout_breaks: list[str] = field(default_factory=list)


@dataclass
class DeviceTestResults:
    mobile: MobileFindings = field(default_factory=MobileFindings)
    tablet: TabletFindings = field(default_factory=TabletFindings)
    desktop: DesktopFindings = field(default_factory=DesktopFindings)

    @property
    def total_layout_breaks(self) -> int:
        return (
            len(self.mobile.layout_breaks)
            + len(self.tablet.layout_breaks)
            + len(self.desktop.layout_breaks)
        )


class DeviceTester:
    """
    Renders a URL at mobile, tablet and desktop viewports, one after another.

    Reuses the caller's browser when given one, opening an isolated context
    per device; otherwise launches and closes its own Chromium.
    """

    def __init__(self, headless: bool | None = None):
        self.headless = settings.browser_headless if headless is None else headless

    def run(self, url: str, browser: Browser | None = None) -> DeviceTestResults:
        if browser is not None:
            return self._run_devices(url, browser)

        with sync_playwright() as playwright:
            own_browser = playwright.chromium.launch(headless=self.headless, args=BROWSER_ARGS)
            try:
                return self._run_devices(url, own_browser)
            finally:
                own_browser.close()

    def _run_devices(self, url: str, browser: Browser) -> DeviceTestResults:
        results = DeviceTestResults()
        for device, context_options in DEVICES.items():
            context = new_isolated_context(browser, **context_options)
            try:
                page = context.new_page()
                self._navigate(page, url)
                if device == "mobile":
                    results.mobile = self._test_mobile(page)
                elif device == "tablet":
                    results.tablet = self._test_tablet(page)
                else:
                    results.desktop = self._test_desktop(page)
            finally:
                context.close()
        return results

    def _navigate(self, page: Page, url: str) -> None:
        try:
            page.goto(url, wait_until="domcontentloaded", timeout=15000)
        except PlaywrightError:
            page.goto(url, wait_until="load", timeout=10000)

    def _test_mobile(self, page: Page) -> MobileFindings:
        findings = MobileFindings()
        try:
            html = page.content()

            findings.has_overflow = bool(page.evaluate(HAS_OVERFLOW_JS))
            if findings.has_overflow:
                findings.layout_breaks.append("Horizontal scrolling detected")

            findings.has_small_text = bool(page.evaluate(HAS_SMALL_TEXT_JS)) or has_small_fonts(html)
            if findings.has_small_text:
                findings.layout_breaks.append("Text smaller than 14px found")

            findings.has_small_touch_targets = bool(
                page.evaluate(HAS_SMALL_TARGETS_JS)
            ) or has_small_clickable_elements(html)
            if findings.has_small_touch_targets:
                findings.layout_breaks.append("Touch targets smaller than 44px found")
        except PlaywrightError as e:
            logger.warning(f"Mobile layout checks incomplete: {e}")
        return findings

    def _test_tablet(self, page: Page) -> TabletFindings:
        findings = TabletFindings()
        try:
            findings.has_overflow = bool(page.evaluate(HAS_OVERFLOW_JS))
            if findings.has_overflow:
                findings.layout_breaks.append("Horizontal overflow on tablet")
            findings.navigation_issues = list(page.evaluate(NAVIGATION_ISSUES_JS) or [])
        except PlaywrightError as e:
            logger.warning(f"Tablet layout checks incomplete: {e}")
        return findings

    def _test_desktop(self, page: Page) -> DesktopFindings:
        findings = DesktopFindings()
        try:
            findings.unused_space = bool(page.evaluate(UNUSED_SPACE_JS))
        except PlaywrightError as e:
            logger.warning(f"Desktop layout checks incomplete: {e}")
        return findings


class ResponsivenessAnalyzer(BaseAnalyzer):
    """
    Scores layout behaviour across devices.

    Four sub-scores (mobile, tablet, desktop, cross-device consistency)
    each start at 100; the pillar score is their plain average. Vision
    findings add issue text and recommendations but never move the score.
    """

    def __init__(self, device_tester: DeviceTester | None = None):
        self.device_tester = device_tester or DeviceTester()

    @property
    def name(self) -> str:
        return "responsiveness"

    def analyze(
        self,
        data: ExtractedData,
        vision: ResponsivenessVision | None = None,
        browser: Browser | None = None,
    ) -> PillarResult:
        try:
            testing = self.device_tester.run(data.url, browser=browser)
        except Exception as e:
            logger.exception(f"Device testing failed for {data.url}: {e}")
            return PillarResult.failed(f"Device testing failed: {e}")

        issues: list[str] = []
        categories = {
            "mobile_layout": _mobile_score(testing.mobile, issues),
            "tablet_layout": _tablet_score(testing.tablet, issues),
            "desktop_layout": _desktop_score(testing.desktop, issues),
            "cross_device_consistency": _consistency_score(testing, issues),
        }
        score = round(sum(categories.values()) / len(categories))

        recommendations: list[str] = []
        ai_insights = {"specific_issues": [], "visual_recommendations": [], "source": "none"}
        if vision is not None and vision.available:
            ai_insights = {
                "source": "vision",
                "layout_structure": vision.layout_structure,
                "mobile_optimization": vision.mobile_optimization,
                "specific_issues": list(vision.issues),
                "visual_recommendations": list(vision.recommendations),
            }
            recommendations.extend(vision.recommendations)

        recommendations.extend(_device_recommendations(testing, has_prior=bool(recommendations)))

        return PillarResult(
            score=score,
            analyzed=True,
            insights=(
                "Responsiveness analysis completed with actual device testing. "
                f"Found {len(issues)} layout issues across devices."
            ),
            recommendations=recommendations,
            raw_data={
                "score": score,
                "categories": categories,
                "issues": issues,
                "device_testing": asdict(testing),
                "ai_insights": ai_insights,
            },
        )


def has_small_fonts(html: str) -> bool:
    """Static check for explicitly declared font sizes under 14px (0.875rem)."""
    px_sizes = PX_FONT_SIZE.findall(html)
    if px_sizes:
        return any(float(size) < 14 for size in px_sizes)
    return any(float(size) < 0.875 for size in RELATIVE_FONT_SIZE.findall(html))


def has_small_clickable_elements(html: str) -> bool:
    return any(pattern.search(html) for pattern in SMALL_CLICKABLE_PATTERNS)


def _mobile_score(findings: MobileFindings, issues: list[str]) -> int:
    score = 100
    if findings.has_overflow:
        score -= 30
        issues.append("Mobile: Horizontal scrolling detected")
    if findings.has_small_text:
        score -= 20
        issues.append("Mobile: Text too small for mobile reading")
    if findings.has_small_touch_targets:
        score -= 25
        issues.append("Mobile: Touch targets too small")
    score -= len(findings.layout_breaks) * 10
    return max(0, score)


def _tablet_score(findings: TabletFindings, issues: list[str]) -> int:
    score = 100
    if findings.has_overflow:
        score -= 25
        issues.append("Tablet: Layout overflow detected")
    score -= len(findings.layout_breaks) * 15
    score -= len(findings.navigation_issues) * 20
    return max(0, score)


def _desktop_score(findings: DesktopFindings, issues: list[str]) -> int:
    score = 100
    if findings.unused_space:
        score -= 15
        issues.append("Desktop: Poor use of available screen space")
    score -= len(findings.layout_breaks) * 20
    return max(0, score)


def _consistency_score(testing: DeviceTestResults, issues: list[str]) -> int:
    if testing.total_layout_breaks > 5:
        issues.append("Inconsistent layout behavior across devices")
        return 70
    return 100


def _device_recommendations(testing: DeviceTestResults, has_prior: bool) -> list[str]:
    """Recommendations for findings that were actually observed."""
    mobile, tablet, desktop = testing.mobile, testing.tablet, testing.desktop
    recommendations = []

    if mobile.has_overflow:
        recommendations.append(
            "Fix horizontal scrolling on mobile by adjusting container widths and using max-width: 100%"
        )
    if mobile.has_small_text:
        recommendations.append("Increase font sizes to at least 14px for mobile readability")
    if mobile.has_small_touch_targets:
        recommendations.append(
            "Increase touch target sizes to minimum 44x44px for buttons, links, and clickable elements"
        )
    if mobile.layout_breaks:
        recommendations.append(f"Fix mobile layout issues: {', '.join(mobile.layout_breaks)}")

    if tablet.has_overflow:
        recommendations.append("Optimize layout for tablet viewport to prevent horizontal scrolling")
    if tablet.navigation_issues:
        recommendations.append(f"Fix tablet navigation: {', '.join(tablet.navigation_issues)}")
    if tablet.layout_breaks:
        recommendations.append(f"Address tablet layout issues: {', '.join(tablet.layout_breaks)}")

    if desktop.unused_space:
        recommendations.append(
            "Better utilize available desktop screen space with wider layouts or centered content"
        )
    if desktop.layout_breaks:
        recommendations.append(f"Fix desktop layout issues: {', '.join(desktop.layout_breaks)}")

    if not recommendations and not has_prior:
        recommendations = [
            "Your responsive design looks good! Consider testing on more devices and screen sizes",
            "Ensure consistent user experience across all breakpoints",
        ]
    return recommendations
