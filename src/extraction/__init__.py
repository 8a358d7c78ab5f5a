"""SiteGrade page extraction package."""

from extraction.consent import ConsentOutcome, ConsentResult, dismiss_cookie_consent
from extraction.engine import ExtractionEngine
from extraction.models import (
    Cookie,
    ExtractedData,
    ExtractionOptions,
    Heading,
    Image,
    Link,
    PageTimings,
    Viewport,
)

__all__ = [
    "ConsentOutcome",
    "ConsentResult",
    "dismiss_cookie_consent",
    "ExtractionEngine",
    "Cookie",
    "ExtractedData",
    "ExtractionOptions",
    "Heading",
    "Image",
    "Link",
    "PageTimings",
    "Viewport",
]
