"""
lasexta.services.email_service — SMTP Delivery
===============================================

Thin wrapper around :mod:`aiosmtplib`.  SMTP settings come from the
environment (``SMTP_HOST``, ``SMTP_PORT``, ``SMTP_USER``,
``SMTP_PASSWORD``, ``SMTP_FROM``); a :class:`Mailer` built without them can
still be constructed (so the API starts) but every send raises
:class:`EmailDeliveryError`.

Delivery is attempted once.  Failures surface to the caller, who decides
whether to retry.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from lasexta.errors import EmailDeliveryError
from lasexta.services.email_templates import reset_code_email, ticket_email

logger = logging.getLogger(__name__)

DEFAULT_SENDER = "La Sexta <no-reply@lasexta.com>"
SMTP_TIMEOUT_SECONDS = 15


@dataclass(frozen=True, slots=True)
class SMTPSettings:
    host: str
    port: int
    username: str
    password: str
    sender: str = DEFAULT_SENDER

    @property
    def implicit_tls(self) -> bool:
        return self.port == 465


def smtp_settings_from_env() -> SMTPSettings | None:
    """Return SMTP settings, or ``None`` when any required variable is missing."""
    host = os.getenv("SMTP_HOST", "").strip()
    port_raw = os.getenv("SMTP_PORT", "").strip()
    username = os.getenv("SMTP_USER", "").strip()
    password = os.getenv("SMTP_PASSWORD", "")
    sender = os.getenv("SMTP_FROM", "").strip() or DEFAULT_SENDER

    if not host or not port_raw or not username or not password:
        return None
    try:
        port = int(port_raw)
    except ValueError:
        logger.warning("SMTP_PORT is not a number: %r", port_raw)
        return None
    return SMTPSettings(host=host, port=port, username=username, password=password, sender=sender)


class Mailer:
    """Sends the venue's transactional emails."""

    def __init__(self, settings: SMTPSettings | None, venue_name: str = "La Sexta") -> None:
        self.settings = settings
        self.venue_name = venue_name

    @classmethod
    def from_env(cls, venue_name: str = "La Sexta") -> Mailer:
        settings = smtp_settings_from_env()
        if settings is None:
            logger.warning("SMTP is not configured; emails will fail until SMTP_* is set.")
        return cls(settings, venue_name=venue_name)

    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> None:
        """Deliver one message or raise :class:`EmailDeliveryError`."""
        if self.settings is None:
            raise EmailDeliveryError(
                "Email could not be sent: SMTP settings are missing "
                "(SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD)."
            )

        msg = MIMEMultipart("alternative")
        msg["From"] = self.settings.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            await aiosmtplib.send(
                msg,
                hostname=self.settings.host,
                port=self.settings.port,
                username=self.settings.username,
                password=self.settings.password,
                use_tls=self.settings.implicit_tls,
                start_tls=False if self.settings.implicit_tls else None,
                timeout=SMTP_TIMEOUT_SECONDS,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.warning("Email to %s failed: %s", to, exc)
            raise EmailDeliveryError("Email could not be sent. Try again later.") from exc

        logger.info("Email sent to %s (%s)", to, subject)

    async def send_ticket_email(
        self,
        *,
        to: str,
        user_name: str,
        ticket_code: str,
        issued_at: datetime,
        expires_at: datetime | None,
    ) -> None:
        subject, html_body, text_body = ticket_email(
            user_name, ticket_code, issued_at, expires_at, venue_name=self.venue_name
        )
        await self.send(to, subject, html_body, text_body)

    async def send_reset_code_email(
        self,
        *,
        to: str,
        user_name: str,
        code: str,
        ttl_minutes: int,
    ) -> None:
        subject, html_body, text_body = reset_code_email(
            user_name, code, ttl_minutes, venue_name=self.venue_name
        )
        await self.send(to, subject, html_body, text_body)
