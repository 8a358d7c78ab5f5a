"""Analytics and marketing-tag analysis."""

import logging
import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

from analyzers.base import BaseAnalyzer, PillarResult
from extraction.models import ExtractedData

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackingTool:
    name: str
    type: str  # analytics, marketing, social
    pattern: re.Pattern


def _tool(name: str, tool_type: str, *patterns: str) -> TrackingTool:
    return TrackingTool(name, tool_type, re.compile("|".join(patterns), re.IGNORECASE))


TRACKING_TOOLS = [
    _tool(
        "Google Analytics", "analytics",
        r"google-analytics\.com", r"googletagmanager\.com/gtag", r"gtag\(", r"\bga\(",
        r"GA_MEASUREMENT_ID", r"\bG-[A-Z0-9]{10}\b", r"\bUA-\d+-\d+",
    ),
    _tool(
        "Google Tag Manager", "analytics",
        r"googletagmanager\.com/gtm", r"gtm\.js", r"\bGTM-[A-Z0-9]+", r"dataLayer",
    ),
    _tool(
        "Facebook Pixel", "marketing",
        r"connect\.facebook\.net", r"facebook\.net/tr", r"fbq\(", r"facebook-pixel", r"_fbp",
    ),
    _tool("Hotjar", "analytics", r"static\.hotjar\.com", r"hotjar", r"\bhjid", r"\bhj\(", r"_hjid"),
    _tool("Mixpanel", "analytics", r"cdn\.mxpnl\.com", r"mixpanel"),
    _tool("Amplitude", "analytics", r"cdn\.amplitude\.com", r"amplitude"),
    _tool("Adobe Analytics", "analytics", r"adobe.*analytics", r"omniture", r"sc\.omtrdc\.net", r"s_code", r"\bs\.t\("),
    _tool("Segment", "analytics", r"cdn\.segment\.com", r"segment\.com", r"segment\.io", r"analytics\.track", r"analytics\.page"),
    _tool("Intercom", "social", r"widget\.intercom\.io", r"intercom"),
    _tool("Zendesk", "social", r"zendesk", r"zdassets\.com", r"zopim"),
    _tool("Crisp", "social", r"crisp\.chat", r"\$crisp", r"CRISP_WEBSITE_ID"),
]

GOAL_MARKERS = ("gtag('event'", "ga('send', 'event'", "fbq('track'")
ECOMMERCE_MARKERS = ("ecommerce", "purchase", "transaction")
EVENT_MARKERS = ("gtag('event'", "ga('send', 'event'", "onclick")

CONSENT_FRAMEWORK_MARKERS = (
    "cookiebot", "onetrust", "cookieconsent", "gdpr", "cc-window", "cookie-notice", "consent-banner",
)

HIGH_PAYLOAD_BYTES = 50_000
MEDIUM_PAYLOAD_BYTES = 20_000


class AnalyticsAnalyzer(BaseAnalyzer):
    """
    Scores the site's measurement setup.

    Categories (each 0-100, averaged):
    - tracking: breadth of the detected tool inventory
    - conversion: goals, e-commerce and event tracking
    - performance: tracking payload and synchronous tracking scripts
    - privacy: consent and policy signals around tracking
    """

    @property
    def name(self) -> str:
        return "analytics"

    def analyze(self, data: ExtractedData) -> PillarResult:
        try:
            soup = BeautifulSoup(data.html, "lxml")
            html = data.html.lower()
            scripts = [script.lower() for script in data.scripts]

            tools = identify_tracking_tools(data.html, data.scripts)
            tracking = self._tracking(tools)
            conversion = self._conversion(html, scripts)
            performance = self._performance(soup)
            privacy = self._privacy(html)

            categories = {
                "tracking": tracking,
                "conversion": conversion,
                "performance": performance,
                "privacy": privacy,
            }
            score = round(sum(category["score"] for category in categories.values()) / 4)
            general, detailed = _recommendations(tracking, conversion, performance, privacy)

            return PillarResult(
                score=score,
                analyzed=True,
                insights=_insights(tracking, conversion, performance, privacy, tools),
                recommendations=general,
                raw_data={
                    "score": score,
                    "categories": categories,
                    "tracking_tools": tools,
                    "recommendations_detailed": detailed,
                },
            )

        except Exception as e:
            logger.exception(f"Analytics analysis failed for {data.url}: {e}")
            return PillarResult.failed(str(e))

    def _tracking(self, tools: list[dict]) -> dict:
        names = {tool["name"] for tool in tools}
        has_tag_manager = "Google Tag Manager" in names

        if not tools:
            implementation, score = "none", 20
        elif len(tools) <= 2:
            implementation, score = "basic", 60
        else:
            implementation, score = "comprehensive", 90

        if has_tag_manager:
            score += 10

        return {
            "score": min(100, score),
            "has_google_analytics": "Google Analytics" in names,
            "has_google_tag_manager": has_tag_manager,
            "has_facebook_pixel": "Facebook Pixel" in names,
            "other_tracking": sorted(
                names - {"Google Analytics", "Google Tag Manager", "Facebook Pixel"}
            ),
            "implementation": implementation,
        }

    def _conversion(self, html: str, scripts: list[str]) -> dict:
        has_goals = any(marker in html for marker in GOAL_MARKERS) or any(
            "event" in script or "conversion" in script for script in scripts
        )
        has_ecommerce = any(marker in html for marker in ECOMMERCE_MARKERS) or any(
            "ecommerce" in script or "purchase" in script for script in scripts
        )
        has_event_tracking = any(marker in html for marker in EVENT_MARKERS) or any(
            "click" in script or "event" in script for script in scripts
        )

        features = sum([has_goals, has_ecommerce, has_event_tracking])
        level, score = [("poor", 20), ("basic", 50), ("good", 75), ("excellent", 95)][features]

        return {
            "score": score,
            "has_goals": has_goals,
            "has_ecommerce": has_ecommerce,
            "has_event_tracking": has_event_tracking,
            "optimization": level,
        }

    def _performance(self, soup: BeautifulSoup) -> dict:
        """Payload estimate and loading mode of tracking scripts only."""
        payload = 0
        sync_scripts = []

        for script in soup.find_all("script"):
            src = script.get("src")
            if src:
                if not _is_tracking(src):
                    continue
                payload += len(src)
                if not script.has_attr("async") and not script.has_attr("defer"):
                    sync_scripts.append(src)
            else:
                body = script.string or ""
                if _is_tracking(body):
                    payload += len(body.encode("utf-8"))

        score = 100
        if payload > HIGH_PAYLOAD_BYTES:
            impact = "high"
            score -= 30
        elif payload > MEDIUM_PAYLOAD_BYTES:
            impact = "medium"
            score -= 15
        else:
            impact = "low"

        async_loading = not sync_scripts
        if not async_loading:
            score -= 20

        return {
            "score": max(0, score),
            "tracking_impact": impact,
            "async_loading": async_loading,
            "synchronous_scripts": sync_scripts,
            "tracking_size": payload,
            "performance_impact": f"{impact.capitalize()} impact on page load performance",
        }

    def _privacy(self, html: str) -> dict:
        has_cookie = "cookie" in html
        has_consent_word = any(word in html for word in ("consent", "accept", "agree", "allow", "approve"))
        has_banner_word = any(word in html for word in ("banner", "notice", "popup", "modal", "dialog"))
        has_framework = any(marker in html for marker in CONSENT_FRAMEWORK_MARKERS)

        has_cookie_consent = (
            (has_cookie and has_consent_word) or has_framework or (has_cookie and has_banner_word)
        )
        has_privacy_policy = "privacy" in html and "policy" in html

        if has_cookie_consent and has_privacy_policy:
            level, score = "good", 85
        elif has_cookie_consent or has_privacy_policy:
            level, score = "basic", 60
        else:
            level, score = "poor", 20

        if "gdpr" in html or "ccpa" in html or "data protection" in html:
            level, score = "excellent", 95

        return {
            "score": score,
            "has_cookie_consent": has_cookie_consent,
            "has_privacy_policy": has_privacy_policy,
            "gdpr_compliant": has_cookie_consent and has_privacy_policy,
            "implementation": level,
        }


def identify_tracking_tools(html: str, scripts) -> list[dict]:
    """Catalogue entries whose signature appears in the markup or script URLs."""
    content = f"{html} {' '.join(scripts)}"
    return [
        {"name": tool.name, "type": tool.type}
        for tool in TRACKING_TOOLS
        if tool.pattern.search(content)
    ]


def _is_tracking(text: str) -> bool:
    return any(tool.pattern.search(text) for tool in TRACKING_TOOLS)


def _insights(tracking: dict, conversion: dict, performance: dict, privacy: dict, tools: list) -> str:
    insights = []

    if tracking["implementation"] == "none":
        insights.append("No analytics tracking detected - you're missing valuable user behavior data")
    elif tracking["implementation"] == "basic":
        insights.append("Basic analytics tracking in place - consider expanding for better insights")
    else:
        insights.append("Comprehensive analytics tracking detected - good data collection setup")

    if conversion["optimization"] == "poor":
        insights.append("No conversion tracking found - you can't measure goal completions")
    elif conversion["optimization"] == "excellent":
        insights.append("Excellent conversion tracking setup with goals, events, and ecommerce")

    if performance["tracking_impact"] == "high":
        insights.append("Analytics scripts are significantly impacting page load performance")
    elif not performance["async_loading"]:
        insights.append("Analytics scripts should be loaded asynchronously for better performance")

    if privacy["has_cookie_consent"] or privacy["has_privacy_policy"]:
        insights.append(
            "Privacy-related elements detected in code (cookie consent/privacy policy references)"
        )
    else:
        insights.append("No privacy-related tracking controls detected in code")

    if len(tools) > 5:
        insights.append(
            f"Many tracking tools detected ({len(tools)}) - consider consolidating to reduce performance impact"
        )

    return ". ".join(insights) + "."


def _recommendations(
    tracking: dict, conversion: dict, performance: dict, privacy: dict
) -> tuple[list[str], dict[str, list[str]]]:
    general = []
    detailed = {"tracking": [], "conversion": [], "performance": [], "privacy": []}

    if tracking["implementation"] == "none":
        general.append("Implement Google Analytics or similar analytics tool")
        detailed["tracking"].append("Set up Google Analytics 4 for basic website analytics")
        detailed["tracking"].append("Consider Google Tag Manager for easier tag management")
    elif not tracking["has_google_tag_manager"]:
        detailed["tracking"].append("Implement Google Tag Manager for better tag management")

    if not conversion["has_goals"]:
        general.append("Set up conversion goals to measure success")
        detailed["conversion"].append(
            "Define and track key conversion goals (form submissions, downloads, etc.)"
        )
    if not conversion["has_event_tracking"]:
        detailed["conversion"].append(
            "Implement event tracking for user interactions (clicks, scrolls, video plays)"
        )
    if not conversion["has_ecommerce"] and tracking["has_google_analytics"]:
        detailed["conversion"].append("Set up Enhanced Ecommerce tracking if you sell products online")

    if not performance["async_loading"]:
        general.append("Load analytics scripts asynchronously")
        detailed["performance"].append("Add async or defer attributes to analytics script tags")
    if performance["tracking_impact"] == "high":
        general.append("Optimize analytics implementation to reduce performance impact")
        detailed["performance"].append(
            "Review and consolidate tracking scripts to reduce page load time"
        )

    if not privacy["has_cookie_consent"] and (
        tracking["has_google_analytics"] or tracking["has_google_tag_manager"]
    ):
        detailed["privacy"].append("Consider implementing consent management for tracking scripts")
    if tracking["implementation"] != "none":
        detailed["privacy"].append(
            "Ensure tracking scripts respect user consent preferences when implemented"
        )

    if not general:
        general.append(
            "Analytics implementation looks good! Consider advanced features like custom dimensions and audiences"
        )

    return general, detailed
