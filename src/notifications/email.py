"""Outbound email transports."""

import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

import httpx

from config import settings
from notifications.templates import (
    AnalysisEmailData,
    EmailTemplate,
    render_analysis_complete,
    render_analysis_failed,
)

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"


class EmailService(Protocol):
    def send_email(self, to: str, template: EmailTemplate) -> bool:
        """Deliver one message; returns False instead of raising on failure."""
        ...


class ResendEmailService:
    """Sends through the Resend HTTP API."""

    def __init__(
        self,
        api_key: str | None = None,
        from_email: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ):
        self.api_key = api_key or settings.resend_api_key
        self.from_email = from_email or settings.from_email
        self._transport = transport
        if not self.api_key:
            raise ValueError("Resend API key is required")

    def send_email(self, to: str, template: EmailTemplate) -> bool:
        try:
            with httpx.Client(timeout=settings.http_timeout, transport=self._transport) as client:
                response = client.post(
                    RESEND_URL,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                    json={
                        "from": self.from_email,
                        "to": [to],
                        "subject": template.subject,
                        "html": template.html,
                        "text": template.text,
                    },
                )
            if response.is_error:
                logger.error(f"Email send failed for {to}: {response.status_code} - {response.text}")
                return False
            logger.info(f"Email sent to {to}: {template.subject}")
            return True
        except Exception as e:
            logger.exception(f"Email send error for {to}: {e}")
            return False


class SmtpEmailService:
    """Sends through an SMTP relay with STARTTLS."""

    def __init__(
        self,
        host: str | None = None,
        port: int | None = None,
        username: str | None = None,
        password: str | None = None,
        use_tls: bool | None = None,
        from_email: str | None = None,
    ):
        self.host = host or settings.smtp_host
        self.port = port or settings.smtp_port
        self.username = settings.smtp_username if username is None else username
        self.password = settings.smtp_password if password is None else password
        self.use_tls = settings.smtp_use_tls if use_tls is None else use_tls
        self.from_email = from_email or settings.from_email

    def send_email(self, to: str, template: EmailTemplate) -> bool:
        message = EmailMessage()
        message["Subject"] = template.subject
        message["From"] = self.from_email
        message["To"] = to
        message.set_content(template.text)
        message.add_alternative(template.html, subtype="html")

        try:
            with smtplib.SMTP(self.host, self.port, timeout=settings.http_timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
            logger.info(f"Email sent to {to}: {template.subject}")
            return True
        except Exception as e:
            logger.exception(f"SMTP send error for {to}: {e}")
            return False


class ConsoleEmailService:
    """Development transport: logs the message instead of sending it."""

    def send_email(self, to: str, template: EmailTemplate) -> bool:
        logger.info(f"[console email] to={to} subject={template.subject!r}\n{template.text}")
        return True


def create_email_service() -> EmailService:
    """Pick the transport named by settings.email_provider."""
    provider = settings.email_provider.lower()
    if provider == "resend" and settings.resend_api_key:
        return ResendEmailService()
    if provider == "smtp":
        return SmtpEmailService()
    if provider != "console":
        logger.warning(f"Email provider {provider!r} is not usable, falling back to console")
    return ConsoleEmailService()


def send_analysis_complete_email(
    data: AnalysisEmailData, service: EmailService | None = None
) -> bool:
    """Render and send the report email; never raises."""
    try:
        service = service or create_email_service()
        return service.send_email(data.email, render_analysis_complete(data))
    except Exception as e:
        logger.exception(f"Could not send completion email for {data.request_id}: {e}")
        return False


def send_analysis_failed_email(
    url: str, email: str, error: str, service: EmailService | None = None
) -> bool:
    """Render and send the failure email; never raises."""
    try:
        service = service or create_email_service()
        return service.send_email(email, render_analysis_failed(url, error))
    except Exception as e:
        logger.exception(f"Could not send failure email for {url}: {e}")
        return False
