"""Immutable page snapshot produced by the extraction engine."""

import base64
from dataclasses import asdict, dataclass, field

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass(frozen=True)
class Viewport:
    width: int = 1920
    height: int = 1080


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    id: str | None = None


@dataclass(frozen=True)
class Image:
    src: str
    alt: str = ""
    width: int | None = None
    height: int | None = None


@dataclass(frozen=True)
class Link:
    href: str
    text: str
    internal: bool


@dataclass(frozen=True)
class Cookie:
    name: str
    value: str
    domain: str
    http_only: bool = False


@dataclass(frozen=True)
class PageTimings:
    """Timings in milliseconds measured from navigation start."""

    load_time: int = 0
    dom_content_loaded: int = 0
    first_contentful_paint: float = 0


@dataclass(frozen=True)
class ExtractionOptions:
    timeout: int = 45000  # ms, budget for the whole attempt
    full_page_screenshot: bool = True
    viewport: Viewport = field(default_factory=Viewport)
    user_agent: str = DEFAULT_USER_AGENT
    wait_for_selector: str | None = None


@dataclass(frozen=True)
class ExtractedData:
    """
    Snapshot of a rendered page shared by every pillar analyzer.

    Produced once per analysis run and never mutated afterwards.
    """

    url: str
    html: str
    screenshot: bytes = field(default=b"", repr=False)
    meta_tags: dict[str, str] = field(default_factory=dict)
    headings: tuple[Heading, ...] = ()
    images: tuple[Image, ...] = ()
    links: tuple[Link, ...] = ()
    scripts: tuple[str, ...] = ()
    styles: tuple[str, ...] = ()
    cookies: tuple[Cookie, ...] = ()
    timings: PageTimings = field(default_factory=PageTimings)
    viewport: Viewport = field(default_factory=Viewport)
    title: str = ""
    description: str = ""
    canonical_url: str | None = None
    lang: str | None = None
    charset: str | None = None

    @property
    def has_screenshot(self) -> bool:
        return bool(self.screenshot)

    def screenshot_base64(self) -> str:
        return base64.b64encode(self.screenshot).decode("ascii")

    def headings_at(self, level: int) -> list[Heading]:
        return [heading for heading in self.headings if heading.level == level]

    def to_dict(self) -> dict:
        """JSON-safe view of the snapshot; screenshot bytes are replaced by their size."""
        data = asdict(self)
        data.pop("screenshot")
        data["screenshot_size"] = len(self.screenshot)
        for key in ("headings", "images", "links", "scripts", "styles", "cookies"):
            data[key] = list(data[key])
        return data
