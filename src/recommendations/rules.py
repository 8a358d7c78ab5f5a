"""Performance recommendation rules."""

from dataclasses import dataclass
from typing import Any, Callable


@dataclass
class Rule:
    """A single recommendation rule evaluated against a performance report."""

    id: str
    severity: str  # high, medium, low
    fixes: tuple[str, ...]  # Recommendation lines emitted when triggered
    condition: Callable[[dict], bool]
    reference_url: str | None = None


def _get_nested(data: dict, path: str, default: Any = None) -> Any:
    """Get a nested value from a dict using dot notation."""
    keys = path.split(".")
    value = data
    for key in keys:
        if isinstance(value, dict):
            value = value.get(key, default)
        else:
            return default
    return value


def _metric(path: str) -> Callable[[dict], float]:
    return lambda ctx: _get_nested(ctx, path) or 0


# =============================================================================
# Core Web Vitals (thresholds in ms, CLS unitless)
# =============================================================================

CORE_WEB_VITAL_RULES = [
    Rule(
        id="slow-lcp",
        severity="high",
        fixes=(
            "Optimize images: Use WebP format, add width/height attributes, and implement lazy loading",
            "Improve server response time: Use a CDN, optimize database queries, and enable compression",
            "Remove render-blocking resources: Inline critical CSS and defer non-critical JavaScript",
        ),
        condition=lambda ctx: _metric("core_web_vitals.lcp")(ctx) > 2500,
        reference_url="https://web.dev/lcp/",
    ),
    Rule(
        id="slow-fid",
        severity="high",
        fixes=(
            "Reduce JavaScript execution time: Split large bundles and remove unused code",
            "Use a web worker for heavy computations to keep the main thread responsive",
            "Minimize main thread work: Defer non-essential JavaScript until after page load",
        ),
        condition=lambda ctx: _metric("core_web_vitals.fid")(ctx) > 100,
        reference_url="https://web.dev/fid/",
    ),
    Rule(
        id="high-cls",
        severity="high",
        fixes=(
            "Set explicit dimensions for images and videos to prevent layout shifts",
            "Reserve space for ads and embeds with CSS min-height properties",
            "Avoid inserting content above existing content unless in response to user interaction",
        ),
        condition=lambda ctx: _metric("core_web_vitals.cls")(ctx) > 0.1,
        reference_url="https://web.dev/cls/",
    ),
]

# =============================================================================
# Supporting lab metrics
# =============================================================================

METRIC_RULES = [
    Rule(
        id="slow-fcp",
        severity="medium",
        fixes=(
            "Improve First Contentful Paint: Optimize critical rendering path and reduce server response time",
        ),
        condition=lambda ctx: _metric("metrics.first_contentful_paint")(ctx) > 1800,
        reference_url="https://web.dev/fcp/",
    ),
    Rule(
        id="slow-tti",
        severity="medium",
        fixes=(
            "Reduce Time to Interactive: Minimize JavaScript execution and optimize third-party scripts",
        ),
        condition=lambda ctx: _metric("metrics.time_to_interactive")(ctx) > 3800,
        reference_url="https://web.dev/tti/",
    ),
    Rule(
        id="high-tbt",
        severity="high",
        fixes=("Reduce Total Blocking Time: Break up long tasks and optimize JavaScript execution",),
        condition=lambda ctx: _metric("metrics.total_blocking_time")(ctx) > 200,
        reference_url="https://web.dev/tbt/",
    ),
]

# =============================================================================
# Fixes for page-speed opportunity audits, keyed by audit id
# =============================================================================

OPPORTUNITY_FIXES = {
    "unused-css-rules": "Remove unused CSS: Use tools like PurgeCSS to eliminate unused styles",
    "unused-javascript": "Remove unused JavaScript: Use code splitting and tree shaking to reduce bundle size",
    "modern-image-formats": "Serve images in next-gen formats: Use WebP or AVIF instead of JPEG/PNG",
    "offscreen-images": "Defer offscreen images: Implement lazy loading for images below the fold",
    "render-blocking-resources": "Eliminate render-blocking resources: Inline critical CSS and defer JavaScript",
    "unminified-css": "Minify CSS: Use build tools to remove whitespace and comments from stylesheets",
    "unminified-javascript": "Minify JavaScript: Use build tools to compress and optimize JavaScript files",
    "efficient-animated-content": "Use video formats for animated content: Replace GIFs with MP4 or WebM videos",
    "duplicated-javascript": "Remove duplicate modules: Consolidate shared code to reduce bundle size",
}

# Used when no rule fires
HEALTHY_DEFAULTS = (
    "Excellent performance! Monitor Core Web Vitals and maintain current optimization levels",
    "Consider implementing performance budgets to prevent regression",
)
BASELINE_DEFAULTS = (
    "Enable compression (Gzip/Brotli) to reduce file sizes",
    "Optimize images: Compress and use appropriate formats for better loading times",
    "Minimize HTTP requests by combining CSS and JavaScript files where possible",
)

INSIGHT_BANDS = [
    (90, "Excellent performance! Your site loads quickly and provides a great user experience."),
    (70, "Good performance with room for improvement. Consider optimizing images and reducing JavaScript."),
    (50, "Average performance. Focus on Core Web Vitals and loading speed optimizations."),
]
POOR_INSIGHT = "Poor performance detected. Immediate optimization needed for better user experience."
