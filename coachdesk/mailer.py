"""
Mail transport.

Sending is fire-and-forget from the caller's point of view: failures are
logged and reported as False, never raised, so a failed notification can
never undo the state change that triggered it.
"""

import asyncio
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

from coachdesk.config import Settings, get_settings
from coachdesk.logging_config import get_logger

logger = get_logger(__name__)


def _redact_email(email: str) -> str:
    """Redact an email address for logging."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class Mailer:
    """SMTP mailer; logs instead of sending when SMTP is not configured."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_password = settings.smtp_password
        self.smtp_use_tls = settings.smtp_use_tls
        self.from_email = settings.smtp_from_email or settings.smtp_user
        self.from_name = settings.smtp_from_name

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    def _deliver(self, to: str, subject: str, html: str) -> None:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to
        msg.attach(MIMEText(html, "html", "utf-8"))

        if self.smtp_use_tls:
            context = ssl.create_default_context()
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                server.starttls(context=context)
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, [to], msg.as_string())
        else:
            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                if self.smtp_user and self.smtp_password:
                    server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, [to], msg.as_string())

    async def send_email(self, to: str, subject: str, html: str) -> bool:
        """
        Send one HTML email.

        Returns:
            True if handed to the SMTP server (or logged in dev mode),
            False if delivery failed.
        """
        if not self.is_configured:
            logger.info(
                "Email not sent (SMTP not configured)",
                extra={"to": _redact_email(to), "subject": subject},
            )
            return True

        try:
            # smtplib blocks; keep it off the event loop
            await asyncio.to_thread(self._deliver, to, subject, html)
        except (smtplib.SMTPException, OSError):
            logger.exception(
                "Email delivery failed",
                extra={"to": _redact_email(to), "subject": subject},
            )
            return False

        logger.info("Email sent", extra={"to": _redact_email(to), "subject": subject})
        return True


_mailer: Optional[Mailer] = None


def get_mailer() -> Mailer:
    """Get or create the default mailer (FastAPI dependency)."""
    global _mailer
    if _mailer is None:
        _mailer = Mailer()
    return _mailer
