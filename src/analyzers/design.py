"""Visual design analysis from page markup, layout stability and vision critique."""

import logging
import re

from bs4 import BeautifulSoup, Comment, Doctype

from analyzers.base import BaseAnalyzer, PillarResult, clamp_score, score_band
from extraction.models import ExtractedData
from vision.schemas import DesignVision

logger = logging.getLogger(__name__)

HEX_COLOR = re.compile(r"#[0-9a-fA-F]{3,6}")
RGB_COLOR = re.compile(r"rgb\(\s*\d+\s*,\s*\d+\s*,\s*\d+\s*\)")
FONT_FAMILY = re.compile(r"font-family:\s*([^;]+)", re.IGNORECASE)
FONT_SIZE = re.compile(r"font-size:\s*(\d+(?:\.\d+)?)(?:px|em|rem|%)", re.IGNORECASE)

CTA_PHRASES = ("get started", "sign up", "buy now", "contact", "learn more")
HIDDEN_TEXT_TAGS = {"script", "style", "noscript", "template"}

# First matching keyword group wins
VISUAL_STYLES = [
    (("bootstrap", "corporate"), "Corporate/Professional"),
    (("minimal", "clean"), "Minimalist"),
    (("creative", "artistic"), "Creative/Artistic"),
    (("modern", "contemporary"), "Modern"),
    (("traditional", "classic"), "Traditional"),
]

INSIGHT_BANDS = [
    (90, "Excellent design! Clean palette, readable typography and a stable layout."),
    (70, "Good design with room for polish. Tighten the palette and typography."),
    (50, "Average design. Colour, typography and layout stability need attention."),
]
POOR_INSIGHT = "Design needs significant work. Visual consistency and readability issues detected."


class DesignAnalyzer(BaseAnalyzer):
    """
    Scores visual design.

    Checks:
    - Colour palette size and a contrast estimate
    - Font family count and readability of declared sizes
    - Layout shift (CLS from the performance pillar)
    - Viewport utilisation
    """

    @property
    def name(self) -> str:
        return "design"

    def analyze(
        self,
        data: ExtractedData,
        cls: float | None = None,
        vision: DesignVision | None = None,
    ) -> PillarResult:
        """
        Run design analysis.

        Args:
            data: Page snapshot
            cls: Cumulative layout shift reported by the performance pillar
            vision: Design view of the combined screenshot review

        Returns:
            PillarResult with colour, typography and layout details
        """
        try:
            soup = BeautifulSoup(data.html, "lxml")
            css = _collect_css(soup)
            color_scheme = self._analyze_colors(css)
            typography = self._analyze_typography(css)
            layout = self._analyze_layout(data.html, soup, cls)
            ai_insights = self._ai_insights(data, soup, color_scheme, vision)

            score = 100
            issues: list[str] = []
            recommendations: list[str] = []

            if color_scheme["color_count"] > 10:
                score -= 15
                issues.append("Too many colors used - consider simplifying the color palette")
                recommendations.append(
                    "Limit your color palette to 3-5 main colors for better visual consistency"
                )

            if color_scheme["contrast_ratio"] < 4.5:
                score -= 20
                issues.append("Poor color contrast detected - may affect readability")
                recommendations.append(
                    "Improve color contrast to meet WCAG AA standards (4.5:1 ratio minimum)"
                )

            if len(typography["font_families"]) > 3:
                score -= 10
                issues.append("Too many font families used - affects visual consistency")
                recommendations.append(
                    "Limit to 2-3 font families maximum for better typography consistency"
                )

            if typography["readability_score"] < 70:
                score -= 15
                issues.append("Typography readability could be improved")
                recommendations.append("Increase font sizes and line height for better readability")

            if layout["cumulative_layout_shift"] > 0.1:
                score -= 20
                issues.append("High layout shift detected - affects user experience")
                recommendations.append(
                    "Set explicit dimensions for images and videos to prevent layout shifts"
                )

            if layout["viewport_utilization"] < 60:
                score -= 10
                issues.append(
                    "Poor viewport utilization - content appears cramped or poorly distributed"
                )
                recommendations.append("Optimize layout to better utilize available screen space")

            if any(not image.alt for image in data.images):
                recommendations.append("Add alt text to all images for better accessibility and SEO")

            if len(data.headings_at(1)) != 1:
                recommendations.append("Use exactly one H1 tag per page for better content hierarchy")

            recommendations.extend(ai_insights["vision_recommendations"])

            score = clamp_score(score)
            return PillarResult(
                score=score,
                analyzed=True,
                insights=score_band(score, INSIGHT_BANDS, POOR_INSIGHT),
                recommendations=recommendations,
                raw_data={
                    "score": score,
                    "color_scheme": color_scheme,
                    "typography": typography,
                    "layout": layout,
                    "ai_insights": ai_insights,
                    "issues": issues,
                },
            )

        except Exception as e:
            logger.exception(f"Design analysis failed for {data.url}: {e}")
            return PillarResult.failed(str(e))

    def _analyze_colors(self, css: str) -> dict:
        colors = _unique(HEX_COLOR.findall(css) + RGB_COLOR.findall(css))
        return {
            "dominant_colors": colors[:5],
            "color_count": len(colors),
            "contrast_ratio": _contrast_estimate(colors),
        }

    def _analyze_typography(self, css: str) -> dict:
        families = _unique(
            match.replace('"', "").replace("'", "").split(",")[0].strip()
            for match in FONT_FAMILY.findall(css)
        )
        families = [family for family in families if family]
        sizes = _unique(float(size) for size in FONT_SIZE.findall(css))
        return {
            "font_families": families,
            "font_sizes": sizes,
            "readability_score": _readability(sizes),
        }

    def _analyze_layout(self, html: str, soup: BeautifulSoup, cls: float | None) -> dict:
        return {
            "cumulative_layout_shift": cls or 0,
            "viewport_utilization": _viewport_utilization(html),
            "whitespace_ratio": _whitespace_ratio(html, soup),
        }

    def _ai_insights(
        self,
        data: ExtractedData,
        soup: BeautifulSoup,
        color_scheme: dict,
        vision: DesignVision | None,
    ) -> dict:
        if vision is not None and vision.available:
            return {
                "source": "vision",
                "primary_cta": vision.primary_cta or "No clear primary call-to-action identified",
                "visual_style": vision.visual_style or "Contemporary",
                "design_issues": list(vision.design_issues),
                "vision_recommendations": list(vision.recommendations),
            }

        return {
            "source": "heuristic",
            "primary_cta": _primary_cta(data, soup),
            "visual_style": _visual_style(data.html, color_scheme["color_count"]),
            "design_issues": _design_issues(data),
            "vision_recommendations": [],
        }


def _unique(items) -> list:
    """Deduplicate while keeping first-seen order."""
    return list(dict.fromkeys(items))


def _contrast_estimate(colors: list[str]) -> float:
    # Palette-size proxy, not a WCAG luminance calculation
    if len(colors) < 2:
        return 7
    return min(21, max(1, len(colors) * 1.5))


def _collect_css(soup: BeautifulSoup) -> str:
    """Stylesheet text from <style> blocks and inline style attributes."""
    blocks = [style.get_text() for style in soup.find_all("style")]
    blocks.extend(tag["style"] for tag in soup.find_all(style=True))
    return "\n".join(blocks)


def _readability(sizes: list[float]) -> int:
    score = 100
    score -= 5 * len([size for size in sizes if size < 14])
    if len(sizes) > 8:
        score -= (len(sizes) - 8) * 3
    return clamp_score(score)


def _viewport_utilization(html: str) -> int:
    utilization = 70
    if "container" in html or "wrapper" in html:
        utilization += 10
    if "grid" in html or "flex" in html:
        utilization += 10
    if "responsive" in html or "col-" in html:
        utilization += 10
    return min(100, utilization)


def _whitespace_ratio(html: str, soup: BeautifulSoup) -> int:
    if not html:
        return 0
    visible = [
        text for text in soup.find_all(string=True)
        if text.parent.name not in HIDDEN_TEXT_TAGS
        and not isinstance(text, (Comment, Doctype))
    ]
    text_length = len("".join(visible).strip())
    return round((len(html) - text_length) / len(html) * 100)


def _primary_cta(data: ExtractedData, soup: BeautifulSoup) -> str:
    for link in data.links:
        if any(phrase in link.text.lower() for phrase in CTA_PHRASES):
            return f'Primary CTA appears to be: "{link.text}"'

    for button in soup.find_all("button"):
        text = button.get_text(" ", strip=True)
        if text:
            return f'Primary CTA appears to be: "{text}"'

    return "No clear primary call-to-action identified"


def _visual_style(html: str, color_count: int) -> str:
    lowered = html.lower()
    for keywords, style in VISUAL_STYLES:
        if any(keyword in lowered for keyword in keywords):
            return style

    if color_count <= 3:
        return "Minimalist"
    if color_count > 8:
        return "Colorful/Vibrant"
    return "Contemporary"


def _design_issues(data: ExtractedData) -> list[str]:
    issues = []
    if len(data.images) > 20:
        issues.append("High number of images may slow page load and clutter design")

    h1_count = len(data.headings_at(1))
    if h1_count > 1:
        issues.append("Multiple H1 tags detected - should use only one per page")
    elif h1_count == 0:
        issues.append("No H1 tag detected - important for content hierarchy")

    missing_alt = [image for image in data.images if not image.alt.strip()]
    if missing_alt:
        issues.append(f"{len(missing_alt)} images missing alt text")
    return issues
