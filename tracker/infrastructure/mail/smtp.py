"""
Outbound email: Jinja2-rendered HTML over SMTP.

With EMAIL_SMTP_HOST unset the mailer only logs and reports the message as
not delivered.
"""
import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader, select_autoescape

from tracker.config import Settings, get_settings
from tracker.domain.errors import MailTransportError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parents[2] / "templates" / "email"

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


def render_email(template: str, **context: Any) -> str:
    return _env.get_template(template).render(**context)


class SmtpMailer:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()

    def send(self, to: str, subject: str, html: str) -> bool:
        s = self.settings
        if not s.mail_enabled:
            logger.info("EMAIL disabled: to=%s subject=%s", to, subject)
            return False

        msg = EmailMessage()
        msg["From"] = s.EMAIL_FROM
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")

        try:
            with smtplib.SMTP(s.EMAIL_SMTP_HOST, s.EMAIL_SMTP_PORT, timeout=s.EMAIL_TIMEOUT) as smtp:
                if s.EMAIL_USE_TLS:
                    smtp.starttls()
                if s.EMAIL_SMTP_USER:
                    smtp.login(s.EMAIL_SMTP_USER, s.EMAIL_SMTP_PASSWORD)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise MailTransportError(f"Failed to send email to {to}: {e}") from e

        logger.info("EMAIL sent: to=%s subject=%s", to, subject)
        return True
