"""Outbound mail."""
import asyncio
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage

from pensive.config import settings

logger = logging.getLogger(__name__)


class Mailer(ABC):
    """Sends one HTML message. ``send`` returns False when delivery failed."""

    @abstractmethod
    async def send(self, to: str, subject: str, html: str) -> bool:
        pass


class SmtpMailer(Mailer):
    """Deliver through an SMTP relay."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        use_starttls: bool = True,
        sender: str = "",
        timeout_seconds: int = 30,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_starttls = use_starttls
        self.sender = sender or settings.mail_from
        self.timeout_seconds = timeout_seconds

    def build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This digest is best viewed in an HTML mail client.")
        message.add_alternative(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as smtp:
            if self.use_starttls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)

    async def send(self, to: str, subject: str, html: str) -> bool:
        message = self.build_message(to, subject, html)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Mail to %s failed: %s", to, exc)
            return False
        logger.info("Sent '%s' to %s", subject, to)
        return True


class LogMailer(Mailer):
    """Logs messages instead of sending them (development, no SMTP host)."""

    async def send(self, to: str, subject: str, html: str) -> bool:
        logger.info("Mail delivery disabled; would send '%s' to %s (%s chars)", subject, to, len(html))
        return True


def build_mailer() -> Mailer:
    """Mailer for the configured environment."""
    if not settings.smtp_host:
        return LogMailer()
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_starttls=settings.smtp_use_starttls,
        sender=settings.mail_from,
        timeout_seconds=settings.mail_timeout_seconds,
    )
