"""Headless-browser extraction engine."""

import logging
import time
from dataclasses import replace

from playwright.sync_api import Browser, BrowserContext, Page, Playwright, Response, sync_playwright
from playwright.sync_api import Error as PlaywrightError

from config import settings
from exceptions import ExtractionError
from extraction.consent import dismiss_cookie_consent
from extraction.models import (
    Cookie,
    ExtractedData,
    ExtractionOptions,
    Heading,
    Image,
    Link,
    PageTimings,
)

logger = logging.getLogger(__name__)

BROWSER_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",
    "--no-sandbox",
    "--disable-setuid-sandbox",
]

# Collects everything the analyzers need in one round trip
EXTRACT_PAGE_JS = """
(currentUrl) => {
    const resolveUrl = (url) => {
        try { return new URL(url, currentUrl).href; } catch { return url; }
    };
    const origin = new URL(currentUrl).origin;
    const isInternal = (href) => {
        try { return new URL(href, currentUrl).origin === origin; } catch { return !href.includes('://'); }
    };

    const metaTags = {};
    document.querySelectorAll('meta').forEach((meta) => {
        const name = meta.getAttribute('name') || meta.getAttribute('property') || meta.getAttribute('http-equiv');
        const content = meta.getAttribute('content');
        if (name && content) metaTags[name.toLowerCase()] = content;
    });

    const headings = Array.from(document.querySelectorAll('h1, h2, h3, h4, h5, h6'))
        .map((h) => ({ level: parseInt(h.tagName[1]), text: (h.textContent || '').trim(), id: h.id || null }))
        .filter((h) => h.text.length > 0);

    const images = Array.from(document.querySelectorAll('img'))
        .map((img) => ({
            src: img.src ? resolveUrl(img.src) : '',
            alt: img.alt || '',
            width: img.naturalWidth || null,
            height: img.naturalHeight || null,
        }))
        .filter((img) => img.src && !img.src.startsWith('data:'));

    const links = Array.from(document.querySelectorAll('a[href]'))
        .map((a) => {
            const href = resolveUrl(a.getAttribute('href'));
            return { href, text: (a.textContent || '').trim(), internal: isInternal(href) };
        })
        .filter((link) => link.href && link.text);

    const scripts = Array.from(document.querySelectorAll('script[src]'))
        .map((s) => resolveUrl(s.getAttribute('src') || ''))
        .filter(Boolean);
    const styles = Array.from(document.querySelectorAll('link[rel="stylesheet"]'))
        .map((l) => resolveUrl(l.getAttribute('href') || ''))
        .filter(Boolean);

    const canonical = document.querySelector('link[rel="canonical"]');

    return {
        html: document.documentElement.outerHTML,
        metaTags,
        headings,
        images,
        links,
        scripts,
        styles,
        title: document.title || '',
        description: metaTags['description'] || '',
        canonicalUrl: canonical && canonical.href ? resolveUrl(canonical.href) : null,
        lang: document.documentElement.lang || null,
        charset: document.characterSet || null,
    };
}
"""

FIRST_CONTENTFUL_PAINT_JS = """
() => {
    const entry = performance.getEntriesByType('paint').find((e) => e.name === 'first-contentful-paint');
    return entry ? entry.startTime : 0;
}
"""


class ExtractionEngine:
    """
    Owns one headless Chromium for the duration of an analysis run.

    The browser is launched lazily on first use and released by close().
    Use as a context manager or call close() explicitly; an unclosed
    engine leaks the browser process.
    """

    def __init__(
        self,
        headless: bool | None = None,
        attempt_timeouts: list[int] | None = None,
        retry_delay: float | None = None,
    ):
        self.headless = settings.browser_headless if headless is None else headless
        self.attempt_timeouts = attempt_timeouts or list(settings.extraction_timeouts)
        self.retry_delay = settings.extraction_retry_delay if retry_delay is None else retry_delay
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None

    def __enter__(self) -> "ExtractionEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def browser(self) -> Browser:
        """The run's browser, launched on first access."""
        if self._browser is None:
            logger.info("Launching headless Chromium")
            self._playwright = sync_playwright().start()
            self._browser = self._playwright.chromium.launch(
                headless=self.headless,
                args=BROWSER_ARGS,
            )
        return self._browser

    def close(self) -> None:
        """Release the browser process; safe to call more than once."""
        if self._browser is not None:
            try:
                self._browser.close()
            except PlaywrightError as e:
                logger.warning(f"Error closing browser: {e}")
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None

    def extract(self, url: str, options: ExtractionOptions | None = None) -> ExtractedData:
        """
        Load the page and capture an ExtractedData snapshot.

        Each attempt gets a larger time budget. The error of the final
        attempt is raised once every attempt has failed.
        """
        options = options or ExtractionOptions()
        last_error: Exception | None = None

        for attempt, timeout in enumerate(self.attempt_timeouts, start=1):
            try:
                logger.info(f"Extracting {url} (attempt {attempt}, timeout {timeout}ms)")
                return self._extract_once(url, replace(options, timeout=timeout))
            except Exception as e:
                last_error = e
                logger.warning(f"Extraction attempt {attempt} failed for {url}: {e}")
                if attempt < len(self.attempt_timeouts) and self.retry_delay > 0:
                    time.sleep(self.retry_delay)

        if isinstance(last_error, ExtractionError):
            raise last_error
        raise ExtractionError(f"Data extraction failed: {last_error}") from last_error

    def _extract_once(self, url: str, options: ExtractionOptions) -> ExtractedData:
        context = self.browser.new_context(
            viewport={"width": options.viewport.width, "height": options.viewport.height},
            user_agent=options.user_agent,
            ignore_https_errors=True,
        )
        try:
            page = context.new_page()
            started = time.monotonic()
            dom_ready: dict[str, int] = {}
            page.once(
                "domcontentloaded",
                lambda _: dom_ready.setdefault("ms", _elapsed_ms(started)),
            )

            response = self._navigate(page, url, options.timeout)
            if response is None:
                raise ExtractionError(f"Failed to load page: no response from {url}")
            if not response.ok:
                raise ExtractionError(
                    f"Failed to load page: {response.status} {response.status_text}"
                )

            if options.wait_for_selector:
                try:
                    page.wait_for_selector(options.wait_for_selector, timeout=5000)
                except PlaywrightError:
                    logger.debug(f"Selector {options.wait_for_selector} never appeared")

            consent = dismiss_cookie_consent(page, settle_ms=settings.consent_settle_ms)
            logger.debug(f"Cookie consent outcome for {url}: {consent.outcome.value}")

            first_paint = self._first_contentful_paint(page)
            payload = page.evaluate(EXTRACT_PAGE_JS, url)
            screenshot = page.screenshot(
                full_page=options.full_page_screenshot,
                type="jpeg",
                quality=80,
            )
            cookies = context.cookies()
            load_time = _elapsed_ms(started)

            return _build_snapshot(
                url,
                payload,
                screenshot=screenshot,
                cookies=cookies,
                timings=PageTimings(
                    load_time=load_time,
                    dom_content_loaded=dom_ready.get("ms", load_time),
                    first_contentful_paint=first_paint,
                ),
                options=options,
            )
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Data extraction failed: {e}") from e
        finally:
            context.close()

    def _navigate(self, page: Page, url: str, timeout: int) -> Response | None:
        """Try a quick DOM-ready navigation, then a full load with the whole budget."""
        try:
            return page.goto(
                url,
                wait_until="domcontentloaded",
                timeout=min(settings.navigation_timeout, timeout),
            )
        except PlaywrightError as e:
            logger.info(f"DOM-ready navigation failed for {url} ({e}), retrying with load")
            return page.goto(url, wait_until="load", timeout=timeout)

    def _first_contentful_paint(self, page: Page) -> float:
        try:
            return float(page.evaluate(FIRST_CONTENTFUL_PAINT_JS) or 0)
        except PlaywrightError:
            return 0


def new_isolated_context(browser: Browser, **kwargs) -> BrowserContext:
    """Open a fresh context on a shared browser, ignoring certificate errors."""
    kwargs.setdefault("ignore_https_errors", True)
    return browser.new_context(**kwargs)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _build_snapshot(
    url: str,
    payload: dict,
    screenshot: bytes,
    cookies: list[dict],
    timings: PageTimings,
    options: ExtractionOptions,
) -> ExtractedData:
    return ExtractedData(
        url=url,
        html=payload.get("html", ""),
        screenshot=screenshot,
        meta_tags=dict(payload.get("metaTags") or {}),
        headings=tuple(
            Heading(level=h["level"], text=h["text"], id=h.get("id"))
            for h in payload.get("headings", [])
        ),
        images=tuple(
            Image(src=i["src"], alt=i.get("alt", ""), width=i.get("width"), height=i.get("height"))
            for i in payload.get("images", [])
        ),
        links=tuple(
            Link(href=l["href"], text=l["text"], internal=bool(l["internal"]))
            for l in payload.get("links", [])
        ),
        scripts=tuple(payload.get("scripts", [])),
        styles=tuple(payload.get("styles", [])),
        cookies=tuple(
            Cookie(
                name=c.get("name", ""),
                value=c.get("value", ""),
                domain=c.get("domain", ""),
                http_only=bool(c.get("httpOnly", False)),
            )
            for c in cookies
        ),
        timings=timings,
        viewport=options.viewport,
        title=payload.get("title", ""),
        description=payload.get("description", ""),
        canonical_url=payload.get("canonicalUrl"),
        lang=payload.get("lang"),
        charset=payload.get("charset"),
    )
