"""Performance analysis through the PageSpeed Insights API."""

import logging
from concurrent.futures import ThreadPoolExecutor

import httpx

from analyzers.base import BaseAnalyzer, PillarResult, clamp_score
from config import settings
from extraction.models import ExtractedData
from grading import score_to_grade
from recommendations import RecommendationEngine

logger = logging.getLogger(__name__)

PAGESPEED_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"

CATEGORIES = {
    "performance": "performance",
    "accessibility": "accessibility",
    "best-practices": "best_practices",
    "seo": "seo",
}

OPPORTUNITY_AUDITS = [
    "unused-css-rules",
    "unused-javascript",
    "modern-image-formats",
    "offscreen-images",
    "render-blocking-resources",
    "unminified-css",
    "unminified-javascript",
    "efficient-animated-content",
    "duplicated-javascript",
]

DIAGNOSTIC_AUDITS = [
    "mainthread-work-breakdown",
    "bootup-time",
    "uses-long-cache-ttl",
    "total-byte-weight",
    "dom-size",
    "critical-request-chains",
    "user-timings",
    "third-party-summary",
]

NO_API_KEY = "Performance analysis skipped - API key not configured"


class PageSpeedError(Exception):
    """The PageSpeed API could not produce a report."""


class PerformanceAnalyzer(BaseAnalyzer):
    """
    Scores page speed from desktop and mobile PageSpeed runs.

    Category scores are averaged over both strategies; Core Web Vitals and
    lab metrics come from the mobile run. When the API is unavailable and
    a page snapshot exists, a local heuristic score is used instead.
    """

    def __init__(
        self,
        api_key: str | None = None,
        timeout: int | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = settings.pagespeed_api_key if api_key is None else api_key
        self.timeout = timeout or settings.pagespeed_timeout
        self._transport = transport
        self._engine = RecommendationEngine()

    @property
    def name(self) -> str:
        return "performance"

    def analyze(self, url: str, data: ExtractedData | None = None) -> PillarResult:
        """
        Run the performance audit.

        Args:
            url: Website URL to audit
            data: Page snapshot used by the heuristic fallback

        Returns:
            PillarResult; raw_data holds the full performance report
        """
        try:
            if not self.api_key:
                if data is None:
                    return PillarResult.failed(NO_API_KEY)
                logger.info(f"No PageSpeed key configured, using heuristics for {url}")
                report = self._heuristic_report(data, NO_API_KEY)
            else:
                report = self._pagespeed_report(url, data)
        except PageSpeedError as e:
            logger.warning(f"PageSpeed unavailable for {url}: {e}")
            if data is None:
                return PillarResult.failed(f"Performance analysis skipped - {e}")
            report = self._heuristic_report(data, str(e))
        except Exception as e:
            if data is None:
                logger.exception(f"Performance analysis failed for {url}: {e}")
                return PillarResult.failed(str(e))
            logger.warning(f"Unusable PageSpeed report for {url}, using heuristics: {e}")
            report = self._heuristic_report(data, f"Unusable PageSpeed API response: {e}")

        return PillarResult(
            score=report["score"],
            analyzed=True,
            insights=self._engine.insights(report["score"]),
            recommendations=self._engine.generate(report),
            raw_data=report,
            error=report.get("error"),
        )

    def _pagespeed_report(self, url: str, data: ExtractedData | None) -> dict:
        # Both strategies run concurrently and are joined before scoring
        with ThreadPoolExecutor(max_workers=2) as pool:
            desktop_future = pool.submit(self._fetch, url, "desktop")
            mobile_future = pool.submit(self._fetch, url, "mobile")
            desktop, mobile = desktop_future.result(), mobile_future.result()

        desktop_result = desktop.get("lighthouseResult") or {}
        mobile_result = mobile.get("lighthouseResult") or {}
        desktop_categories = desktop_result.get("categories") or {}
        mobile_categories = mobile_result.get("categories") or {}

        if "performance" not in desktop_categories and "performance" not in mobile_categories:
            if data is not None:
                return self._heuristic_report(
                    data, "Performance category missing from PageSpeed API response"
                )
            raise PageSpeedError("Performance category missing from PageSpeed API response")

        scores = {
            key: round(
                (
                    _category_score(desktop_categories, api_name)
                    + _category_score(mobile_categories, api_name)
                )
                / 2
                * 100
            )
            for api_name, key in CATEGORIES.items()
        }

        mobile_audits = mobile_result.get("audits", {})
        field_metrics = (mobile.get("loadingExperience") or {}).get("metrics") or {}

        core_web_vitals = {
            "lcp": _percentile(field_metrics, "LARGEST_CONTENTFUL_PAINT_MS")
            or _numeric(mobile_audits, "largest-contentful-paint"),
            "fid": _percentile(field_metrics, "FIRST_INPUT_DELAY_MS")
            or _numeric(mobile_audits, "max-potential-fid"),
            # Field CLS percentiles are reported multiplied by 100
            "cls": (_percentile(field_metrics, "CUMULATIVE_LAYOUT_SHIFT_SCORE") / 100)
            or _numeric(mobile_audits, "cumulative-layout-shift"),
        }

        metrics = {
            "first_contentful_paint": _numeric(mobile_audits, "first-contentful-paint")
            or (data.timings.first_contentful_paint if data else 0),
            "speed_index": _numeric(mobile_audits, "speed-index"),
            "time_to_interactive": _numeric(mobile_audits, "interactive"),
            "total_blocking_time": _numeric(mobile_audits, "total-blocking-time"),
        }

        opportunities = _merge_opportunities(
            _audit_items(mobile_audits, OPPORTUNITY_AUDITS),
            _audit_items(desktop_result.get("audits", {}), OPPORTUNITY_AUDITS),
        )

        return {
            "source": "pagespeed",
            "score": scores["performance"],
            "grade": score_to_grade(scores["performance"]),
            "category_scores": scores,
            "categories": {key: score_to_grade(value) for key, value in scores.items()},
            "core_web_vitals": core_web_vitals,
            "metrics": metrics,
            "opportunities": opportunities,
            "diagnostics": _audit_items(mobile_audits, DIAGNOSTIC_AUDITS),
            "mobile_score": round(_category_score(mobile_categories, "performance") * 100),
            "desktop_score": round(_category_score(desktop_categories, "performance") * 100),
        }

    def _fetch(self, url: str, strategy: str) -> dict:
        params = [
            ("url", url),
            *[("category", category) for category in CATEGORIES],
            ("strategy", strategy),
            ("key", self.api_key),
        ]
        try:
            with httpx.Client(
                timeout=self.timeout,
                transport=self._transport,
                headers={"User-Agent": "SiteGrade-Analyzer/1.0", "Accept": "application/json"},
            ) as client:
                response = client.get(PAGESPEED_URL, params=params)
        except httpx.TimeoutException as e:
            raise PageSpeedError("PageSpeed API request timed out - using basic analysis") from e
        except httpx.HTTPError as e:
            raise PageSpeedError(f"Network error contacting PageSpeed API ({strategy}): {e}") from e

        if response.status_code == 403:
            if "SERVICE_DISABLED" in response.text or "accessNotConfigured" in response.text:
                raise PageSpeedError(f"PageSpeed Insights API is not enabled ({strategy})")
            raise PageSpeedError(f"PageSpeed API quota exceeded or invalid API key ({strategy})")
        if response.status_code == 429:
            raise PageSpeedError(f"PageSpeed API rate limit exceeded ({strategy})")
        if response.status_code == 400:
            raise PageSpeedError(f"Invalid URL or request parameters ({strategy})")
        if response.is_error:
            raise PageSpeedError(
                f"PageSpeed API error ({strategy}): {response.status_code} {response.reason_phrase}"
            )
        try:
            payload = response.json()
        except ValueError as e:
            raise PageSpeedError(f"PageSpeed API returned invalid JSON ({strategy})") from e
        if not isinstance(payload, dict):
            raise PageSpeedError(f"Unexpected PageSpeed API response ({strategy})")
        return payload

    def _heuristic_report(self, data: ExtractedData, reason: str) -> dict:
        """Score from load time and resource counts when PageSpeed is unavailable."""
        load_time = data.timings.load_time
        score = 100
        opportunities = []

        if load_time > 3000:
            score -= 30
            opportunities.append(_opportunity(
                "slow-load-time", "Improve Page Load Time",
                "Page takes longer than 3 seconds to load", 30, load_time, f"{load_time}ms",
            ))
        elif load_time > 2000:
            score -= 20
            opportunities.append(_opportunity(
                "moderate-load-time", "Optimize Page Load Time",
                "Page load time could be improved", 20, load_time, f"{load_time}ms",
            ))
        elif load_time > 1000:
            score -= 10

        if len(data.scripts) > 10:
            score -= 15
            opportunities.append(_opportunity(
                "too-many-scripts", "Reduce JavaScript Files",
                f"Found {len(data.scripts)} script files. Consider bundling or removing unused scripts.",
                15, len(data.scripts), f"{len(data.scripts)} scripts",
            ))

        if len(data.styles) > 5:
            score -= 10
            opportunities.append(_opportunity(
                "too-many-styles", "Reduce CSS Files",
                f"Found {len(data.styles)} stylesheet files. Consider combining CSS files.",
                10, len(data.styles), f"{len(data.styles)} stylesheets",
            ))

        if len(data.images) > 50:
            score -= 10
            opportunities.append(_opportunity(
                "too-many-images", "Optimize Image Loading",
                f"Found {len(data.images)} images. Consider lazy loading or image optimization.",
                10, len(data.images), f"{len(data.images)} images",
            ))

        score = clamp_score(score)
        if not opportunities:
            opportunities.append(_opportunity(
                "basic-analysis-complete", "Basic Performance Check Complete",
                "Site appears to have good basic performance metrics.",
                100, load_time, f"{load_time}ms load time",
            ))

        report = {
            "source": "heuristic",
            "score": score,
            "grade": score_to_grade(score),
            "category_scores": {"performance": score},
            "categories": {"performance": score_to_grade(score)},
            "core_web_vitals": {
                "lcp": data.timings.first_contentful_paint,
                "fid": 0,
                "cls": 0,
            },
            "metrics": {
                "first_contentful_paint": data.timings.first_contentful_paint,
                "speed_index": 0,
                "time_to_interactive": 0,
                "total_blocking_time": 0,
                "load_time": load_time,
            },
            "opportunities": opportunities,
            "diagnostics": [],
        }
        # Expected degradations (no key, timeouts, quota) are not surfaced as errors
        lowered = reason.lower()
        if not any(term in lowered for term in ("timed out", "access", "quota", "not configured")):
            report["error"] = reason
        report["fallback_reason"] = reason
        return report


def _category_score(categories: dict, name: str) -> float:
    return (categories.get(name) or {}).get("score") or 0


def _percentile(field_metrics: dict, name: str) -> float:
    return (field_metrics.get(name) or {}).get("percentile") or 0


def _numeric(audits: dict, audit_id: str) -> float:
    return (audits.get(audit_id) or {}).get("numericValue") or 0


def _audit_items(audits: dict, audit_ids: list[str]) -> list[dict]:
    items = []
    for audit_id in audit_ids:
        audit = audits.get(audit_id)
        if not audit or audit.get("score") is None:
            continue
        items.append(
            _opportunity(
                audit.get("id", audit_id),
                audit.get("title", ""),
                audit.get("description", ""),
                round((audit.get("score") or 0) * 100),
                audit.get("numericValue") or 0,
                audit.get("displayValue", ""),
            )
        )
    return items


def _merge_opportunities(mobile: list[dict], desktop: list[dict]) -> list[dict]:
    """Mobile entries win on id clashes; lowest audit score (biggest win) first."""
    merged = list(mobile)
    seen = {item["id"] for item in merged}
    merged.extend(item for item in desktop if item["id"] not in seen)
    return sorted(merged, key=lambda item: item["score"])


def _opportunity(
    opportunity_id: str,
    title: str,
    description: str,
    score: int,
    numeric_value: float,
    display_value: str,
) -> dict:
    return {
        "id": opportunity_id,
        "title": title,
        "description": description,
        "score": score,
        "numeric_value": numeric_value,
        "display_value": display_value,
    }
