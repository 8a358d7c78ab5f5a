"""SEO analysis engine."""

import json
import logging
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup

from analyzers.base import BaseAnalyzer, PillarResult, clamp_score, score_band
from config import settings
from extraction.models import ExtractedData

logger = logging.getLogger(__name__)

INSIGHT_BANDS = [
    (90, "Excellent SEO optimization! Your website follows most SEO best practices."),
    (75, "Good SEO foundation with room for improvement. Address the identified issues to boost your search rankings."),
    (60, "Moderate SEO optimization. Several important SEO elements need attention to improve search visibility."),
    (40, "Poor SEO optimization. Many critical SEO elements are missing, significantly impacting search rankings."),
]
POOR_INSIGHT = "Very poor SEO optimization. Major SEO improvements needed to achieve any search visibility."


class SEOAnalyzer(BaseAnalyzer):
    """
    Analyzes the page snapshot for SEO best practices.

    Checks (penalty when failing):
    - Title tag: missing 20, outside 30-60 chars 10
    - Meta description: missing 15, outside 120-160 chars 8
    - H1 headings: none 15, more than one 10
    - Image alt attributes: 2 per image, at most 20
    - robots.txt reachable: 10
    - Canonical URL: 12
    - Open Graph tags: 8
    - Twitter Card tags: 6
    - Structured data (JSON-LD or microdata): 10
    - sitemap.xml reachable: 8
    """

    def __init__(self, transport: httpx.BaseTransport | None = None):
        self._transport = transport

    @property
    def name(self) -> str:
        return "seo"

    def analyze(self, data: ExtractedData) -> PillarResult:
        """
        Run SEO analysis on the extracted page.

        Args:
            data: Page snapshot

        Returns:
            PillarResult with per-check details in raw_data
        """
        try:
            soup = BeautifulSoup(data.html, "lxml")

            checks = {
                "title": self._check_title(data.title),
                "meta_description": self._check_meta_description(data.description),
                "h1": self._check_h1(data),
                "alt_tags": self._check_alt_tags(data),
            }

            if data.url and data.html:
                with self._client() as client:
                    checks["robots_txt"] = self._check_site_file(
                        client, data.url, "/robots.txt", 10,
                        "Missing robots.txt file",
                        "Create a robots.txt file to guide search engine crawlers",
                    )
                    checks["canonical"] = self._check_canonical(soup, data.url)
                    checks["open_graph"] = self._check_open_graph(soup)
                    checks["twitter_card"] = self._check_twitter_card(soup)
                    checks["structured_data"] = self._check_structured_data(soup, data.html)
                    checks["sitemap"] = self._check_site_file(
                        client, data.url, "/sitemap.xml", 8,
                        "Missing sitemap.xml",
                        "Create and submit a sitemap.xml to help search engines index your site",
                    )

            score = clamp_score(100 - sum(check["penalty"] for check in checks.values()))
            issues = [issue for check in checks.values() for issue in check["issues"]]
            recommendations = [
                rec for check in checks.values() for rec in check["recommendations"]
            ]

            return PillarResult(
                score=score,
                analyzed=True,
                insights=score_band(score, INSIGHT_BANDS, POOR_INSIGHT),
                recommendations=recommendations,
                raw_data={
                    "score": score,
                    "checks": checks,
                    "issues": issues,
                    "headings": self._analyze_heading_structure(data),
                    "links": self._analyze_links(soup, data.url),
                },
            )

        except Exception as e:
            logger.exception(f"SEO analysis failed for {data.url}: {e}")
            return PillarResult.failed(str(e), insights="SEO analysis failed due to an error")

    def _client(self) -> httpx.Client:
        return httpx.Client(
            timeout=settings.http_timeout,
            follow_redirects=True,
            transport=self._transport,
            headers={"User-Agent": "Mozilla/5.0 (compatible; SiteGradeBot/1.0)"},
        )

    def _check_title(self, title: str) -> dict:
        """Check title tag."""
        result = _check(value=title, length=len(title))
        if not title:
            _fail(result, 20, "Missing page title", "Add a descriptive page title")
        elif len(title) < 30 or len(title) > 60:
            _fail(
                result, 10,
                "Title length not optimal (30-60 characters recommended)",
                "Optimize title length to 30-60 characters",
            )
        return result

    def _check_meta_description(self, description: str) -> dict:
        """Check meta description."""
        result = _check(value=description, length=len(description))
        if not description:
            _fail(result, 15, "Missing meta description", "Add a compelling meta description")
        elif len(description) < 120 or len(description) > 160:
            _fail(
                result, 8,
                "Meta description length not optimal (120-160 characters recommended)",
                "Optimize meta description length to 120-160 characters",
            )
        return result

    def _check_h1(self, data: ExtractedData) -> dict:
        """Check H1 headings."""
        h1_texts = [heading.text for heading in data.headings_at(1)]
        result = _check(count=len(h1_texts), values=h1_texts[:5])
        if not h1_texts:
            _fail(result, 15, "Missing H1 heading", "Add a clear H1 heading to your page")
        elif len(h1_texts) > 1:
            _fail(result, 10, "Multiple H1 headings found", "Use only one H1 heading per page")
        return result

    def _check_alt_tags(self, data: ExtractedData) -> dict:
        """Check image alt attributes."""
        missing = [image.src[:100] for image in data.images if not image.alt]
        result = _check(
            total_images=len(data.images),
            missing_alt=len(missing),
            missing_alt_samples=missing[:5],
        )
        if missing:
            _fail(
                result, min(20, len(missing) * 2),
                f"{len(missing)} images missing alt text",
                "Add descriptive alt text to all images",
            )
        return result

    def _check_site_file(
        self,
        client: httpx.Client,
        page_url: str,
        path: str,
        penalty: int,
        issue: str,
        recommendation: str,
    ) -> dict:
        """Check that a well-known file such as /robots.txt is served."""
        file_url = urljoin(page_url, path)
        result = _check(url=file_url, status_code=None)
        try:
            response = client.get(file_url)
            result["status_code"] = response.status_code
            if response.is_success:
                return result
        except httpx.HTTPError as e:
            logger.debug(f"Fetching {file_url} failed: {e}")
        _fail(result, penalty, issue, recommendation)
        return result

    def _check_canonical(self, soup: BeautifulSoup, page_url: str) -> dict:
        """Check canonical URL."""
        canonical = soup.find("link", attrs={"rel": "canonical"})
        canonical_url = canonical.get("href", "").strip() if canonical else None
        result = _check(value=canonical_url, matches_page=False)

        if not canonical_url:
            _fail(
                result, 12, "Missing canonical tag",
                "Add canonical tags to prevent duplicate content issues",
            )
        else:
            page_parsed = urlparse(page_url)
            canonical_parsed = urlparse(urljoin(page_url, canonical_url))
            result["matches_page"] = (
                page_parsed.netloc == canonical_parsed.netloc
                and page_parsed.path.rstrip("/") == canonical_parsed.path.rstrip("/")
            )
        return result

    def _check_open_graph(self, soup: BeautifulSoup) -> dict:
        """Check Open Graph tags."""
        og_tags = _meta_by_prefix(soup, "property", "og:")
        required = ["og:title", "og:description", "og:image", "og:url"]
        missing = [tag for tag in required if tag not in og_tags]
        result = _check(og_tags=og_tags, missing=missing)
        if missing:
            _fail(
                result, 8, "Incomplete Open Graph metadata",
                "Add complete Open Graph tags for better social media sharing",
            )
        return result

    def _check_twitter_card(self, soup: BeautifulSoup) -> dict:
        """Check Twitter Card tags."""
        twitter_tags = _meta_by_prefix(soup, "name", "twitter:")
        required = ["twitter:card", "twitter:title", "twitter:description"]
        missing = [tag for tag in required if tag not in twitter_tags]
        result = _check(twitter_tags=twitter_tags, missing=missing)
        if missing:
            _fail(
                result, 6, "Missing Twitter Card metadata",
                "Add Twitter Card tags for better Twitter sharing",
            )
        return result

    def _check_structured_data(self, soup: BeautifulSoup, html: str) -> dict:
        """Check for structured data (JSON-LD or microdata)."""
        json_ld_scripts = soup.find_all("script", attrs={"type": "application/ld+json"})
        has_microdata = soup.find(attrs={"itemscope": True}) is not None or "microdata" in html

        result = _check(
            has_json_ld=bool(json_ld_scripts),
            has_microdata=has_microdata,
            types=[],
        )

        for script in json_ld_scripts:
            try:
                payload = json.loads(script.string or "")
            except (json.JSONDecodeError, TypeError):
                continue
            items = payload if isinstance(payload, list) else [payload]
            result["types"].extend(
                item["@type"] for item in items if isinstance(item, dict) and "@type" in item
            )

        if not json_ld_scripts and not has_microdata:
            _fail(
                result, 10, "Missing structured data",
                "Add structured data (JSON-LD) to help search engines understand your content",
            )
        return result

    def _analyze_heading_structure(self, data: ExtractedData) -> dict:
        """Heading counts per level."""
        counts = {f"h{level}": len(data.headings_at(level)) for level in range(1, 7)}
        return {"counts": counts, "total": sum(counts.values())}

    def _analyze_links(self, soup: BeautifulSoup, page_url: str) -> dict:
        """Analyze internal and external links."""
        links = soup.find_all("a", href=True)
        page_domain = urlparse(page_url).netloc

        internal = 0
        external = 0
        nofollow = 0

        for link in links:
            link_domain = urlparse(urljoin(page_url, link.get("href", ""))).netloc
            if link_domain == page_domain:
                internal += 1
            elif link_domain:
                external += 1
            if "nofollow" in (link.get("rel") or []):
                nofollow += 1

        return {
            "total": len(links),
            "internal": internal,
            "external": external,
            "nofollow": nofollow,
        }


def _check(**details) -> dict:
    return {**details, "passed": True, "penalty": 0, "issues": [], "recommendations": []}


def _fail(result: dict, penalty: int, issue: str, recommendation: str) -> None:
    result["passed"] = False
    result["penalty"] += penalty
    result["issues"].append(issue)
    result["recommendations"].append(recommendation)


def _meta_by_prefix(soup: BeautifulSoup, attribute: str, prefix: str) -> dict:
    tags = {}
    for meta in soup.find_all("meta"):
        key = meta.get(attribute) or ""
        if key.startswith(prefix):
            tags[key] = meta.get("content", "")
    return tags
