"""Legal, privacy and accessibility compliance analysis."""

import logging

from bs4 import BeautifulSoup

from analyzers.base import BaseAnalyzer, PillarResult, clamp_score
from extraction.models import ExtractedData
from vision.client import VisionAnalyzer
from vision.schemas import ComplianceVision

logger = logging.getLogger(__name__)

COOKIE_KEYWORDS = [
    "cookie consent", "accept cookies", "cookie banner", "cookie notice",
    "cookie policy", "we use cookies", "this site uses cookies", "cookies help us",
    "accept all cookies", "manage cookies", "cookie preferences", "cookie settings",
    "essential cookies", "analytics cookies", "marketing cookies", "functional cookies",
]

CONSENT_BUTTON_TEXT = [
    "accept all", "accept cookies", "allow cookies", "agree and continue",
    "i agree", "ok", "got it", "understand", "continue", "close",
]

CONSENT_FRAMEWORKS = [
    "cookiebot", "onetrust", "cookiepro", "trustarc", "cookielaw",
    "quantcast", "iubenda", "termly", "cookiefirst", "klaro",
]

PRIVACY_CONTEXT_TERMS = [
    "gdpr", "privacy policy", "data protection", "personal data",
    "tracking", "analytics", "third party", "legitimate interest",
]

PRIVACY_POLICY_KEYWORDS = ["privacy policy", "data protection", "personal information"]
TERMS_KEYWORDS = ["terms of service", "terms and conditions", "terms of use"]

GDPR_KEYWORDS = [
    "gdpr", "data protection", "right to be forgotten", "data subject rights",
    "lawful basis", "consent", "legitimate interest",
]

# Two recommendations sharing this many leading characters are duplicates
DEDUP_PREFIX_LENGTH = 20


class ComplianceAnalyzer(BaseAnalyzer):
    """
    Scores cookie consent, privacy and legal pages, and basic accessibility.

    Four category scores (accessibility, privacy, legal, cookies) start at
    100 and are averaged. A vision review of the screenshot can only raise
    the score and add recommendations.
    """

    def __init__(self, vision_client: VisionAnalyzer | None = None):
        self.vision_client = vision_client

    @property
    def name(self) -> str:
        return "compliance"

    def analyze(
        self,
        data: ExtractedData,
        vision: ComplianceVision | None = None,
        screenshot_base64: str | None = None,
    ) -> PillarResult:
        """
        Run compliance analysis.

        Args:
            data: Page snapshot
            vision: Compliance view of an existing screenshot review
            screenshot_base64: Screenshot to review when no view is given;
                needs a vision client

        Returns:
            PillarResult with category scores, WCAG level and findings
        """
        try:
            result = self._text_analysis(data)
        except Exception as e:
            logger.exception(f"Compliance analysis failed for {data.url}: {e}")
            return PillarResult.failed(str(e))

        if vision is None and screenshot_base64 and self.vision_client is not None:
            vision = self.vision_client.analyze_screenshot_for_compliance(
                screenshot_base64, data.url
            )

        if vision is not None and vision.available:
            try:
                result = _merge_vision(result, vision)
            except Exception as e:
                logger.warning(f"Vision enhancement failed for {data.url}, using text result: {e}")

        return result

    def _text_analysis(self, data: ExtractedData) -> PillarResult:
        html = data.html.lower()
        issues: list[str] = []
        recommendations: list[str] = []
        categories = {"accessibility": 100, "privacy": 100, "legal": 100, "cookies": 100}

        cookie_consent = has_cookie_consent(html)
        if not cookie_consent:
            categories["cookies"] -= 50
            issues.append("No cookie consent banner detected")
            recommendations.append("Implement a legally compliant cookie consent banner")

        privacy_policy = has_privacy_policy(data, html)
        if not privacy_policy:
            categories["privacy"] -= 40
            categories["legal"] -= 30
            issues.append("Privacy policy not found or not accessible")
            recommendations.append("Add a clear and accessible privacy policy")

        terms = has_terms_of_service(data, html)
        if not terms:
            categories["legal"] -= 30
            issues.append("Terms of service not found")
            recommendations.append("Add clear terms of service")

        accessibility = audit_accessibility(data, BeautifulSoup(data.html, "lxml"))
        categories["accessibility"] = accessibility["score"]
        issues.extend(accessibility["issues"])
        recommendations.extend(accessibility["recommendations"])

        gdpr_compliant = (
            cookie_consent
            and privacy_policy
            and any(keyword in html for keyword in GDPR_KEYWORDS)
        )
        if not gdpr_compliant:
            categories["privacy"] -= 30
            categories["legal"] -= 20
            issues.append("GDPR compliance issues detected")
            recommendations.append("Ensure GDPR compliance with proper consent mechanisms")

        categories = {name: max(0, value) for name, value in categories.items()}
        score = round(sum(categories.values()) / len(categories))
        wcag_level = wcag_level_for(accessibility["score"])

        details = [
            _accessibility_summary(accessibility["score"]),
            "Cookie consent implemented" if cookie_consent else "Missing cookie consent",
            "Privacy policy present" if privacy_policy else "No privacy policy found",
        ]

        return PillarResult(
            score=score,
            analyzed=True,
            insights=f"{_lead(score)} {'. '.join(details)}. WCAG Level: {wcag_level}.",
            recommendations=recommendations,
            raw_data={
                "score": score,
                "text_score": score,
                "categories": categories,
                "wcag_level": wcag_level,
                "gdpr_compliant": gdpr_compliant,
                "cookie_consent": cookie_consent,
                "privacy_policy": privacy_policy,
                "terms_of_service": terms,
                "issues": issues,
            },
        )


def has_cookie_consent(html: str) -> bool:
    """Cookie wording plus a consent button, a known vendor, or privacy context."""
    if not any(keyword in html for keyword in COOKIE_KEYWORDS):
        return False
    has_button = any(
        f">{text}<" in html or f'"{text}"' in html for text in CONSENT_BUTTON_TEXT
    )
    has_framework = any(framework in html for framework in CONSENT_FRAMEWORKS)
    has_privacy_terms = any(term in html for term in PRIVACY_CONTEXT_TERMS)
    return has_button or has_framework or has_privacy_terms


def has_privacy_policy(data: ExtractedData, html: str) -> bool:
    if any("privacy" in link.text.lower() or "privacy" in link.href.lower() for link in data.links):
        return True
    return any(keyword in html for keyword in PRIVACY_POLICY_KEYWORDS)


def has_terms_of_service(data: ExtractedData, html: str) -> bool:
    if any("terms" in link.text.lower() or "terms" in link.href.lower() for link in data.links):
        return True
    return any(keyword in html for keyword in TERMS_KEYWORDS)


def audit_accessibility(data: ExtractedData, soup: BeautifulSoup) -> dict:
    """Alt text, heading structure, form labels and inline colour contrast."""
    score = 100
    issues = []
    recommendations = []

    missing_alt = [image for image in data.images if not image.alt.strip()]
    if missing_alt:
        score -= min(30, len(missing_alt) * 5)
        issues.append(f"{len(missing_alt)} images missing alt text")
        recommendations.append("Add descriptive alt text to all images")

    if not data.headings:
        score -= 20
        issues.append("No headings found")
        recommendations.append("Use proper heading structure (H1, H2, H3, etc.)")
    else:
        h1_count = len(data.headings_at(1))
        if h1_count == 0:
            score -= 15
            issues.append("No H1 heading found")
            recommendations.append("Add a main H1 heading to the page")
        elif h1_count > 1:
            score -= 10
            issues.append("Multiple H1 headings found")
            recommendations.append("Use only one H1 heading per page")

    has_inputs = soup.find(["input", "textarea", "select"]) is not None
    has_labels = soup.find("label") is not None or soup.find(attrs={"aria-label": True}) is not None
    if has_inputs and not has_labels:
        score -= 25
        issues.append("Form inputs may be missing labels")
        recommendations.append("Ensure all form inputs have proper labels")

    inline_styles = " ".join(tag["style"].lower() for tag in soup.find_all(style=True))
    if "color:" in inline_styles and "contrast" not in inline_styles:
        score -= 10
        recommendations.append("Verify color contrast meets WCAG standards")

    return {"score": clamp_score(score), "issues": issues, "recommendations": recommendations}


def wcag_level_for(accessibility_score: int) -> str:
    if accessibility_score >= 80:
        return "AA"
    if accessibility_score >= 60:
        return "A"
    return "Fail"


def merge_recommendations(existing: list[str], additions: list[str]) -> list[str]:
    """Append additions that do not repeat what is already recommended."""
    merged = list(existing)
    for recommendation in additions:
        lowered = recommendation.lower()
        merged_lower = [item.lower() for item in merged]

        if "cookie" in lowered and "consent" in lowered and any("cookie" in item for item in merged_lower):
            continue
        if "gdpr" in lowered and any("gdpr" in item for item in merged_lower):
            continue

        prefix = lowered[:DEDUP_PREFIX_LENGTH]
        if any(
            item.startswith(prefix) or lowered.startswith(item[:DEDUP_PREFIX_LENGTH])
            for item in merged_lower
        ):
            continue
        merged.append(recommendation)
    return merged


def _merge_vision(result: PillarResult, vision: ComplianceVision) -> PillarResult:
    raw = dict(result.raw_data)
    vision_score = vision.overall_compliance.score
    score = result.score if vision_score is None else max(result.score, vision_score)
    cookie_consent = raw["cookie_consent"] or vision.cookie_banner.detected

    raw.update(
        score=score,
        cookie_consent=cookie_consent,
        vision_analysis=vision.model_dump(),
    )

    return PillarResult(
        score=score,
        analyzed=True,
        insights=_vision_insights(score, raw, vision),
        recommendations=merge_recommendations(
            result.recommendations, vision.overall_compliance.recommendations
        ),
        raw_data=raw,
    )


def _vision_insights(score: int, raw: dict, vision: ComplianceVision) -> str:
    banner = vision.cookie_banner
    notes = []

    if banner.detected and banner.confidence > 70:
        notes.append(f"Cookie consent banner visually detected with {banner.confidence}% confidence")
    elif raw["cookie_consent"] and banner.detected:
        notes.append(
            "Cookie consent detected in code but may not be visually prominent "
            f"({banner.confidence}% visual confidence)"
        )
    elif raw["cookie_consent"]:
        notes.append("Cookie consent detected in code but not visually prominent")
    else:
        notes.append("No cookie consent banner found")

    accessibility = vision.accessibility
    if accessibility.color_contrast == "good":
        notes.append("Good color contrast detected")
    elif accessibility.color_contrast == "poor":
        notes.append("Poor color contrast detected")

    if accessibility.text_readability == "good":
        notes.append("Text is readable and well-sized")
    elif accessibility.text_readability == "poor":
        notes.append("Text readability issues detected")

    if accessibility.button_sizes == "adequate":
        notes.append("Interactive elements are appropriately sized")
    elif accessibility.button_sizes == "small":
        notes.append("Some interactive elements may be too small")

    wcag = raw["wcag_level"]
    if wcag == "AA":
        notes.append("Meets WCAG 2.1 AA standards")
    elif wcag == "A":
        notes.append("Meets WCAG 2.1 A standards (consider upgrading to AA)")
    else:
        notes.append("Does not meet WCAG accessibility standards")

    return f"{_lead(score)} {'. '.join(notes)}."


def _lead(score: int) -> str:
    if score >= 90:
        return "Excellent compliance! Your site meets high standards for accessibility and legal requirements."
    if score >= 70:
        return "Good compliance with some areas for improvement."
    if score >= 50:
        return "Moderate compliance. Several important compliance issues need attention."
    return "Poor compliance. Immediate action required to meet legal and accessibility standards."


def _accessibility_summary(accessibility_score: int) -> str:
    if accessibility_score >= 80:
        return "Strong accessibility foundation"
    if accessibility_score >= 60:
        return "Accessibility needs improvement"
    return "Significant accessibility issues"
