import os
import tempfile
from pathlib import Path

# Settings are read at import time, so the environment is fixed before any
# project module is imported.
_DB_DIR = Path(tempfile.mkdtemp(prefix="sitegrade-tests-"))
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_DB_DIR / 'sitegrade.db'}"
os.environ["DEBUG"] = "true"
os.environ["EMAIL_PROVIDER"] = "console"
os.environ["PAGESPEED_API_KEY"] = ""
os.environ["OPENAI_API_KEY"] = ""
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import NullPool

from config import settings
from db.models import Base
from db.session import get_db_session, sync_database_url
from extraction.models import ExtractedData, Heading, Image, Link, PageTimings
from worker.store import AnalysisStore

GOOD_HTML = """<!DOCTYPE html>
<html lang="en">
<head>
  <title>Example Widgets - Hand-made widgets for every home</title>
  <link rel="canonical" href="https://example.org/">
  <meta property="og:title" content="Example Widgets">
  <meta property="og:description" content="Hand-made widgets">
  <meta property="og:image" content="https://example.org/og.png">
  <meta property="og:url" content="https://example.org/">
  <meta name="twitter:card" content="summary">
  <meta name="twitter:title" content="Example Widgets">
  <meta name="twitter:description" content="Hand-made widgets">
  <script type="application/ld+json">{"@context": "https://schema.org", "@type": "Organization"}</script>
  <style>body { color: #333333; }</style>
</head>
<body>
  <div class="container">
    <h1>Hand-made widgets</h1>
    <h2>Our range</h2>
    <img src="/widget.jpg" alt="A blue widget">
    <a href="/shop">Get started</a>
  </div>
  <footer>
    <a href="/privacy-policy">Privacy Policy</a>
    <a href="/terms">Terms of Service</a>
    <p>We process personal data under the GDPR.</p>
  </footer>
  <div id="cookie-notice">We use cookies to improve your visit. <button>Accept all</button></div>
</body>
</html>
"""

GOOD_DESCRIPTION = (
    "Example Widgets makes durable, hand-made widgets for kitchens, gardens and workshops. "
    "Browse the full range and order online today."
)


@pytest.fixture
def make_page():
    """Builder for ExtractedData snapshots; keyword overrides replace defaults."""

    def build(**overrides) -> ExtractedData:
        fields = {
            "url": "https://example.org",
            "html": GOOD_HTML,
            "screenshot": b"\xff\xd8\xff\xe0fake-jpeg",
            "title": "Example Widgets - Hand-made widgets for every home",
            "description": GOOD_DESCRIPTION,
            "headings": (
                Heading(level=1, text="Hand-made widgets"),
                Heading(level=2, text="Our range"),
            ),
            "images": (Image(src="/widget.jpg", alt="A blue widget"),),
            "links": (
                Link(href="https://example.org/shop", text="Get started", internal=True),
                Link(href="https://example.org/privacy-policy", text="Privacy Policy", internal=True),
                Link(href="https://example.org/terms", text="Terms of Service", internal=True),
            ),
            "timings": PageTimings(load_time=800, dom_content_loaded=400, first_contentful_paint=350),
        }
        fields.update(overrides)
        return ExtractedData(**fields)

    return build


@pytest.fixture
def sync_session_factory():
    engine = create_engine(sync_database_url(), poolclass=NullPool)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def store(sync_session_factory):
    return AnalysisStore(sync_session_factory)


@pytest.fixture
def enqueued(monkeypatch):
    """Records Celery hand-offs instead of talking to a broker."""
    calls = []

    def fake_enqueue(request_id, claimed=False):
        calls.append((request_id, claimed))

    monkeypatch.setattr("api.routes.analyses.enqueue_analysis", fake_enqueue)
    monkeypatch.setattr("api.routes.debug.enqueue_analysis", fake_enqueue)
    return calls


@pytest.fixture
def client(sync_session_factory, enqueued):
    from main import app

    # NullPool: TestClient runs each request on its own event loop
    engine = create_async_engine(settings.database_url, poolclass=NullPool)
    factory = async_sessionmaker(engine, expire_on_commit=False)

    async def override_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_session
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
