"""
tests/test_email.py — SMTP Delivery & Templates
================================================
``aiosmtplib.send`` is patched; nothing leaves the process.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import aiosmtplib
import pytest
from conftest import run

from lasexta.errors import EmailDeliveryError
from lasexta.services.email_service import Mailer, SMTPSettings, smtp_settings_from_env
from lasexta.services.email_templates import format_date, reset_code_email, ticket_email

SETTINGS = SMTPSettings(
    host="smtp.example.com",
    port=587,
    username="mailer",
    password="pw",
    sender="La Sexta <no-reply@lasexta.com>",
)


class TestSettings:
    def test_missing_values_yield_none(self):
        with patch.dict(os.environ, {"SMTP_HOST": "smtp.example.com", "SMTP_PORT": "587"}, clear=True):
            assert smtp_settings_from_env() is None

    def test_complete_values(self):
        env = {
            "SMTP_HOST": "smtp.example.com",
            "SMTP_PORT": "465",
            "SMTP_USER": "mailer",
            "SMTP_PASSWORD": "pw",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = smtp_settings_from_env()
        assert settings is not None
        assert settings.implicit_tls is True


class TestMailer:
    def test_unconfigured_mailer_raises(self):
        with pytest.raises(EmailDeliveryError):
            run(Mailer(None).send("a@example.com", "s", "<p>h</p>", "t"))

    def test_send_builds_multipart_message(self):
        with patch("aiosmtplib.send", new_callable=AsyncMock) as send:
            run(Mailer(SETTINGS).send("a@example.com", "Asunto", "<p>h</p>", "t"))

        message = send.await_args.args[0]
        kwargs = send.await_args.kwargs
        assert message["To"] == "a@example.com"
        assert message["Subject"] == "Asunto"
        assert message.get_content_type() == "multipart/alternative"
        assert kwargs["hostname"] == "smtp.example.com"
        assert kwargs["use_tls"] is False

    def test_smtp_failure_is_wrapped(self):
        error = aiosmtplib.SMTPException("boom")
        with patch("aiosmtplib.send", new_callable=AsyncMock, side_effect=error):
            with pytest.raises(EmailDeliveryError):
                run(Mailer(SETTINGS).send("a@example.com", "s", "h", "t"))

    def test_ticket_email_subject(self):
        with patch("aiosmtplib.send", new_callable=AsyncMock) as send:
            run(Mailer(SETTINGS, venue_name="La Sexta").send_ticket_email(
                to="a@example.com",
                user_name="Ana",
                ticket_code="QR-ABCD-EFGH",
                issued_at=datetime(2026, 11, 7, 20, 0, tzinfo=UTC),
                expires_at=None,
            ))
        assert "Tu ticket de bebida gratuita" in send.await_args.args[0]["Subject"]


class TestTemplates:
    def test_ticket_email_contains_code_and_open_expiry(self):
        subject, html, text = ticket_email(
            "Ana <b>", "QR-ABCD-EFGH", datetime(2026, 11, 7, 20, 0, tzinfo=UTC), None
        )
        assert "QR-ABCD-EFGH" in html and "QR-ABCD-EFGH" in text
        assert "Sin vencimiento" in text
        assert "Ana &lt;b&gt;" in html

    def test_reset_email(self):
        subject, html, text = reset_code_email("Ana", "012345", 15)
        assert "restablecer" in subject
        assert "012345" in html
        assert "15 minutos" in text

    def test_format_date_month_names(self):
        assert format_date(None) == "Sin vencimiento"
        assert "nov" in format_date(datetime(2026, 11, 15, 12, 0, tzinfo=UTC))
