import json
from datetime import datetime, timezone

import httpx
import pytest

from config import settings
from notifications import (
    AnalysisEmailData,
    ConsoleEmailService,
    EmailTemplate,
    PillarSummary,
    ResendEmailService,
    SmtpEmailService,
    create_email_service,
    render_analysis_complete,
    render_analysis_failed,
    send_analysis_complete_email,
    send_analysis_failed_email,
)
from notifications.email import RESEND_URL


@pytest.fixture
def report():
    return AnalysisEmailData(
        url="https://example.org/?q=<b>",
        email="owner@example.org",
        request_id="4f5b7c1e-0000-4000-8000-000000000001",
        overall_score=90,
        pillars=[
            PillarSummary(
                name="performance",
                score=99,
                analyzed=True,
                recommendations=["Compress images", "Cache assets", "Use a CDN"],
            ),
            PillarSummary(name="seo", score=80, analyzed=True),
            PillarSummary(name="security", score=0, analyzed=False),
        ],
        analysis_date=datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc),
        report_url="http://localhost:8000/api/v1/analyses/4f5b7c1e",
    )


class RecordingService:
    def __init__(self, result=True):
        self.result = result
        self.sent = []

    def send_email(self, to, template):
        self.sent.append((to, template))
        return self.result


class ExplodingService:
    def send_email(self, to, template):
        raise RuntimeError("relay down")


def test_report_email_lists_analyzed_pillars(report):
    template = render_analysis_complete(report)

    # A (12) and C+ (7) average to 9.5
    assert template.subject == "Your SiteGrade Report is Ready - Grade B+"
    assert "Performance: A (Excellent)" in template.text
    assert "Seo: C+ (Fair)" in template.text
    assert "Security" not in template.text
    assert "Overall Grade: B+ - Good" in template.text
    assert "  - Compress images" in template.text
    assert "  - Cache assets" in template.text
    assert "Use a CDN" not in template.text
    assert "View Full Report: http://localhost:8000/api/v1/analyses/4f5b7c1e" in template.text
    assert "14 March 2026, 09:30 UTC" in template.text


def test_report_html_is_escaped(report):
    template = render_analysis_complete(report)

    assert "https://example.org/?q=&lt;b&gt;" in template.html
    assert "<b>" not in template.html
    assert "https://example.org/?q=<b>" in template.text


def test_all_a_report_is_promoted(report):
    report.pillars = [PillarSummary(name="seo", score=98, analyzed=True)]

    assert render_analysis_complete(report).subject.endswith("Grade A+")


def test_failure_email():
    template = render_analysis_failed("https://example.org", "Navigation timed out")

    assert template.subject == "SiteGrade Analysis Failed - https://example.org"
    assert "Error Details: Navigation timed out" in template.text
    assert "- Invalid URL - ensure the address is correct and publicly reachable" in template.text
    assert "Navigation timed out" in template.html


def test_resend_posts_message():
    captured = []

    def handler(request):
        captured.append(request)
        return httpx.Response(200, json={"id": "msg_1"})

    service = ResendEmailService(
        api_key="re_test", from_email="hello@example.org", transport=httpx.MockTransport(handler)
    )
    template = EmailTemplate(subject="Hi", html="<p>Hi</p>", text="Hi")

    assert service.send_email("owner@example.org", template) is True

    request = captured[0]
    assert str(request.url) == RESEND_URL
    assert request.headers["Authorization"] == "Bearer re_test"
    assert json.loads(request.content) == {
        "from": "hello@example.org",
        "to": ["owner@example.org"],
        "subject": "Hi",
        "html": "<p>Hi</p>",
        "text": "Hi",
    }


def test_resend_error_status_returns_false():
    transport = httpx.MockTransport(lambda request: httpx.Response(422, json={"message": "bad"}))
    service = ResendEmailService(api_key="re_test", transport=transport)

    assert service.send_email("owner@example.org", EmailTemplate("Hi", "<p>Hi</p>", "Hi")) is False


def test_resend_network_error_returns_false():
    def handler(request):
        raise httpx.ConnectError("unreachable", request=request)

    service = ResendEmailService(api_key="re_test", transport=httpx.MockTransport(handler))

    assert service.send_email("owner@example.org", EmailTemplate("Hi", "<p>Hi</p>", "Hi")) is False


def test_resend_requires_key(monkeypatch):
    monkeypatch.setattr(settings, "resend_api_key", "")

    with pytest.raises(ValueError):
        ResendEmailService()


def test_console_service_always_succeeds():
    assert ConsoleEmailService().send_email("a@example.org", EmailTemplate("s", "h", "t")) is True


@pytest.mark.parametrize(
    "provider, api_key, expected",
    [
        ("console", "", ConsoleEmailService),
        ("smtp", "", SmtpEmailService),
        ("resend", "re_live", ResendEmailService),
        ("resend", "", ConsoleEmailService),
        ("carrier-pigeon", "", ConsoleEmailService),
    ],
)
def test_create_email_service(monkeypatch, provider, api_key, expected):
    monkeypatch.setattr(settings, "email_provider", provider)
    monkeypatch.setattr(settings, "resend_api_key", api_key)

    assert isinstance(create_email_service(), expected)


def test_send_helpers_use_given_service(report):
    service = RecordingService()

    assert send_analysis_complete_email(report, service=service) is True
    assert send_analysis_failed_email("https://example.org", "owner@example.org", "boom", service=service)

    assert [to for to, _ in service.sent] == ["owner@example.org", "owner@example.org"]
    assert service.sent[1][1].subject == "SiteGrade Analysis Failed - https://example.org"


def test_send_helpers_never_raise(report):
    assert send_analysis_complete_email(report, service=ExplodingService()) is False
    assert send_analysis_failed_email("https://example.org", "o@example.org", "x", service=ExplodingService()) is False
