"""Best-effort cookie-consent dismissal."""

import enum
import logging
from dataclasses import dataclass

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import Page

logger = logging.getLogger(__name__)


class ConsentOutcome(str, enum.Enum):
    DISMISSED = "dismissed"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass(frozen=True)
class ConsentResult:
    outcome: ConsentOutcome
    matched: str | None = None  # selector or button text that was clicked
    reason: str | None = None


# Tried in order; the first visible match is clicked
CONSENT_SELECTORS = (
    'button[id*="accept"]',
    'button[class*="accept"]',
    'button[id*="consent"]',
    'button[class*="consent"]',
    'button[id*="agree"]',
    'button[class*="agree"]',
    'button[id*="allow"]',
    'button[class*="allow"]',
    'a[id*="accept"]',
    'a[class*="accept"]',
    '[id*="accept"]',
    '[data-testid*="accept"]',
    '[data-testid*="consent"]',
    "#onetrust-accept-btn-handler",
    "#CybotCookiebotDialogBodyLevelButtonLevelOptinAllowAll",
    "#CybotCookiebotDialogBodyButtonAccept",
    ".cc-allow",
    ".cc-dismiss",
    ".cookie-accept",
    ".accept-cookies",
    ".gdpr-accept",
    ".consent-accept",
)

CONSENT_PHRASES = (
    "Accept",
    "Accept All",
    "I Accept",
    "Agree",
    "I Agree",
    "Allow All",
    "OK",
    "Got it",
    "Continue",
    "Proceed",
    "Accept Cookies",
    "Accept all cookies",
    "Agree and continue",
    "Akzeptieren",
    "Alle akzeptieren",
    "Accepter",
    "Accepter tout",
    "Aceptar",
    "Aceptar todo",
    "Accetta",
    "Accetta tutto",
)

# Clicks the first visible clickable element whose text matches a phrase
CLICK_BY_TEXT_JS = """
(phrases) => {
    const wanted = phrases.map((p) => p.toLowerCase());
    const candidates = document.querySelectorAll(
        'button, a, div[role="button"], span[role="button"], [onclick]'
    );
    for (const el of candidates) {
        const text = (el.textContent || '').trim().toLowerCase();
        if (!text || !wanted.includes(text)) continue;
        const rect = el.getBoundingClientRect();
        if (rect.width > 0 && rect.height > 0) {
            el.click();
            return el.textContent.trim();
        }
    }
    return null;
}
"""


def dismiss_cookie_consent(
    page: Page,
    settle_ms: int = 3000,
    click_pause_ms: int = 1500,
) -> ConsentResult:
    """
    Try to close a cookie banner so the screenshot shows the real page.

    Never raises: every failure is reported as a ConsentResult.
    """
    try:
        page.wait_for_timeout(settle_ms)

        for selector in CONSENT_SELECTORS:
            try:
                element = page.query_selector(selector)
                if element is None or not element.is_visible():
                    continue
                element.click(timeout=2000)
            except PlaywrightError:
                continue
            page.wait_for_timeout(click_pause_ms)
            logger.debug(f"Dismissed cookie banner via {selector}")
            return ConsentResult(ConsentOutcome.DISMISSED, matched=selector)

        clicked_text = page.evaluate(CLICK_BY_TEXT_JS, list(CONSENT_PHRASES))
        if clicked_text:
            page.wait_for_timeout(click_pause_ms)
            logger.debug(f"Dismissed cookie banner via text '{clicked_text}'")
            return ConsentResult(ConsentOutcome.DISMISSED, matched=clicked_text)

        return ConsentResult(ConsentOutcome.NOT_FOUND)

    except Exception as e:
        logger.debug(f"Cookie consent handling failed: {e}")
        return ConsentResult(ConsentOutcome.FAILED, reason=str(e))
