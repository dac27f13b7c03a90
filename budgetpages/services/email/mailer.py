"""
Weekly Report Mailer

Renders the weekly budget report (plain text + HTML) and sends it over
SMTP.

DESIGN DECISION: Rendering and sending are separate so the content can
be tested without a mail server. Templates live next to this module and
go through Jinja2; the HTML one is autoescaped because it embeds the
user's name and free-form AI text.
"""

import asyncio
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import formataddr
from typing import Callable, Optional

from jinja2 import Environment, PackageLoader, select_autoescape
from pydantic import BaseModel
from pydantic import ValidationError as SettingsValidationError

from budgetpages.config import MailSettings, get_settings
from budgetpages.log import get_logger


SUBJECT = "Your Weekly Budget AI Summary"
IMPLICIT_TLS_PORT = 465

OVER_STATUS = "⚠️ You overspent this week"
UNDER_STATUS = "✓ You stayed under your weekly budget"


logger = get_logger(__name__)

TEMPLATES = Environment(
    loader=PackageLoader("budgetpages.services.email", "templates"),
    autoescape=select_autoescape(["html"]),
    keep_trailing_newline=True,
)


class MailError(Exception):
    """Base exception for mail errors."""
    pass


class MailConfigurationError(MailError):
    """SMTP settings are missing or invalid."""
    pass


class MailDeliveryError(MailError):
    """The SMTP server refused or dropped the message."""
    pass


class WeeklyEmailData(BaseModel):
    """Everything the weekly report shows."""

    user_name: str
    currency: str
    monthly_budget: float
    fixed_expenses_total: float
    real_monthly_budget: float
    weekly_budget: float
    week_total: float
    difference: float
    is_over_budget: bool
    ai_analysis: str

    @property
    def status(self) -> str:
        return OVER_STATUS if self.is_over_budget else UNDER_STATUS


def _render(template_name: str, data: WeeklyEmailData) -> str:
    template = TEMPLATES.get_template(template_name)
    return template.render(**data.model_dump(), status=data.status)


def render_text(data: WeeklyEmailData) -> str:
    return _render("weekly_report.txt", data)


def render_html(data: WeeklyEmailData) -> str:
    return _render("weekly_report.html", data)


class SMTPMailer:
    """
    Sends the weekly report through the configured SMTP server.

    Port 465 uses implicit TLS; any other port upgrades with STARTTLS.
    """

    def __init__(
        self,
        settings: Optional[MailSettings] = None,
        smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None,
    ):
        self._settings = settings
        self._smtp_factory = smtp_factory

    def _get_settings(self) -> MailSettings:
        if self._settings is None:
            try:
                self._settings = get_settings().mail
            except SettingsValidationError as e:
                raise MailConfigurationError(
                    "Mail server settings not configured in environment variables"
                ) from e
        if not (self._settings.host and self._settings.user and self._settings.password):
            raise MailConfigurationError(
                "Mail server settings not configured in environment variables"
            )
        return self._settings

    def build_message(self, recipient: str, data: WeeklyEmailData) -> EmailMessage:
        settings = self._get_settings()
        message = EmailMessage()
        message["Subject"] = SUBJECT
        message["From"] = formataddr((settings.sender_name, settings.user))
        message["To"] = recipient
        message.set_content(render_text(data))
        message.add_alternative(render_html(data), subtype="html")
        return message

    def _connect(self, settings: MailSettings) -> smtplib.SMTP:
        if self._smtp_factory is not None:
            return self._smtp_factory(settings.host, settings.port, timeout=settings.timeout)
        if settings.port == IMPLICIT_TLS_PORT:
            return smtplib.SMTP_SSL(
                settings.host,
                settings.port,
                timeout=settings.timeout,
                context=ssl.create_default_context(),
            )
        return smtplib.SMTP(settings.host, settings.port, timeout=settings.timeout)

    def _send(self, message: EmailMessage) -> None:
        settings = self._get_settings()
        try:
            with self._connect(settings) as smtp:
                if settings.port != IMPLICIT_TLS_PORT:
                    smtp.starttls(context=ssl.create_default_context())
                smtp.login(settings.user, settings.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(f"Failed to send email: {e}") from e

    async def send_weekly_report(self, recipient: str, data: WeeklyEmailData) -> None:
        """
        Send one weekly report.

        Raises:
            MailConfigurationError: SMTP settings are missing
            MailDeliveryError: the server could not be reached or refused
        """
        message = self.build_message(recipient, data)
        await asyncio.to_thread(self._send, message)
        logger.info("weekly_report_sent", recipient=recipient)
