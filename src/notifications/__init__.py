"""SiteGrade email notifications package."""

from notifications.email import (
    ConsoleEmailService,
    EmailService,
    ResendEmailService,
    SmtpEmailService,
    create_email_service,
    send_analysis_complete_email,
    send_analysis_failed_email,
)
from notifications.templates import (
    AnalysisEmailData,
    EmailTemplate,
    PillarSummary,
    render_analysis_complete,
    render_analysis_failed,
)

__all__ = [
    "ConsoleEmailService",
    "EmailService",
    "ResendEmailService",
    "SmtpEmailService",
    "create_email_service",
    "send_analysis_complete_email",
    "send_analysis_failed_email",
    "AnalysisEmailData",
    "EmailTemplate",
    "PillarSummary",
    "render_analysis_complete",
    "render_analysis_failed",
]
