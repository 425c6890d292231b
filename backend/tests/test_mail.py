"""Tests for outbound mail."""

import smtplib
from unittest.mock import MagicMock, patch

from pensive.config import settings
from pensive.services.mail import LogMailer, SmtpMailer, build_mailer


class TestSmtpMailer:
    """Tests for SmtpMailer.send."""

    async def test_delivers_html_message(self):
        smtp = MagicMock()
        mailer = SmtpMailer(host="smtp.example.com", username="user", password="pw", sender="digest@example.com")

        with patch("pensive.services.mail.smtplib.SMTP") as smtp_class:
            smtp_class.return_value.__enter__.return_value = smtp
            delivered = await mailer.send("reader@example.com", "Weekly digest", "<p>Hi</p>")

        assert delivered is True
        smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=30)
        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("user", "pw")
        message = smtp.send_message.call_args.args[0]
        assert message["To"] == "reader@example.com"
        assert message["Subject"] == "Weekly digest"

    async def test_connection_failure_returns_false(self):
        mailer = SmtpMailer(host="smtp.example.com")

        with patch("pensive.services.mail.smtplib.SMTP", side_effect=ConnectionRefusedError("refused")):
            assert await mailer.send("reader@example.com", "Weekly digest", "<p>Hi</p>") is False

    async def test_smtp_error_returns_false(self):
        smtp = MagicMock()
        smtp.send_message.side_effect = smtplib.SMTPRecipientsRefused({})
        mailer = SmtpMailer(host="smtp.example.com", use_starttls=False)

        with patch("pensive.services.mail.smtplib.SMTP") as smtp_class:
            smtp_class.return_value.__enter__.return_value = smtp
            assert await mailer.send("reader@example.com", "Weekly digest", "<p>Hi</p>") is False

        smtp.starttls.assert_not_called()


class TestBuildMailer:
    def test_without_smtp_host_logs_instead(self, monkeypatch):
        monkeypatch.setattr(settings, "smtp_host", "")
        assert isinstance(build_mailer(), LogMailer)

    def test_with_smtp_host(self, monkeypatch):
        monkeypatch.setattr(settings, "smtp_host", "smtp.example.com")
        mailer = build_mailer()
        assert isinstance(mailer, SmtpMailer)
        assert mailer.host == "smtp.example.com"

    async def test_log_mailer_always_succeeds(self):
        assert await LogMailer().send("reader@example.com", "s", "<p>b</p>") is True
