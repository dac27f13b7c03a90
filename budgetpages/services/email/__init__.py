"""Weekly report mail rendering and delivery."""

from budgetpages.services.email.mailer import (
    SUBJECT,
    MailConfigurationError,
    MailDeliveryError,
    MailError,
    SMTPMailer,
    WeeklyEmailData,
    render_html,
    render_text,
)

__all__ = [
    "SUBJECT",
    "MailConfigurationError",
    "MailDeliveryError",
    "MailError",
    "SMTPMailer",
    "WeeklyEmailData",
    "render_html",
    "render_text",
]
