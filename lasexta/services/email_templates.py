"""
Email templates for La Sexta.

All templates use inline CSS for maximum email client compatibility.
Each template function returns (subject, html_body, text_body).
"""

from __future__ import annotations

from datetime import datetime
from html import escape

from lasexta.engine.calendar import as_utc

# Color constants
BG_DARK = "#101015"
BG_CARD = "#181825"
ACCENT = "#FFEB3B"
TEXT_PRIMARY = "#F3F3F3"
TEXT_SECONDARY = "rgba(255,255,255,0.6)"
BORDER = "rgba(255,255,255,0.1)"

_MONTHS = ("ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sep", "oct", "nov", "dic")


def format_date(value: datetime | None) -> str:
    """``7 nov 2026`` style dates; ``Sin vencimiento`` for open-ended tickets."""
    if value is None:
        return "Sin vencimiento"
    local = as_utc(value).astimezone()
    return f"{local.day} {_MONTHS[local.month - 1]} {local.year}"


def _base_layout(content: str, venue_name: str) -> str:
    """Wrap content in the base email layout."""
    return f"""\
<!DOCTYPE html>
<html lang="es">
<head>
    <meta charset="UTF-8">
    <title>{escape(venue_name)}</title>
</head>
<body style="margin: 0; padding: 24px; background-color: {BG_DARK}; font-family: Arial, Helvetica, sans-serif; color: {TEXT_PRIMARY};">
    {content}
    <p style="margin-top: 24px; font-size: 12px; color: rgba(255,255,255,0.4);">
        Este correo fue enviado por {escape(venue_name)}.
    </p>
</body>
</html>"""


def _code_card(code: str, lines: list[str]) -> str:
    details = "".join(
        f'<p style="margin: 4px 0; color: {TEXT_SECONDARY};">{line}</p>' for line in lines
    )
    return f"""\
<div style="margin: 24px 0; padding: 20px; border: 1px solid {BORDER}; border-radius: 16px; background: {BG_CARD}; text-align: center;">
    <p style="font-size: 26px; letter-spacing: 4px; font-weight: bold; color: #FFFFFF; margin: 16px 0;">{escape(code)}</p>
    {details}
</div>"""


def ticket_email(
    user_name: str,
    ticket_code: str,
    issued_at: datetime,
    expires_at: datetime | None,
    venue_name: str = "La Sexta",
    description: str | None = None,
) -> tuple[str, str, str]:
    """Drink voucher delivered by an administrator."""
    subject = f"Tu ticket de bebida gratuita - {venue_name}"
    issued = format_date(issued_at)
    expires = format_date(expires_at)
    note = description or "Ticket válido por una bebida gratuita."
    card = _code_card(ticket_code, [
        f"Emitido: <strong>{issued}</strong>",
        f"Vence: <strong>{expires}</strong>",
        escape(note),
    ])

    content = f"""\
<h1 style="color: {ACCENT};">¡Hola {escape(user_name)}!</h1>
<p>Recibiste un nuevo ticket de cortesía para usar en el complejo.</p>
<p style="font-size: 14px; color: rgba(255,255,255,0.7);">Presentá este código al momento de canjear tu bebida:</p>
{card}
<p>¡Te esperamos en la próxima fecha!</p>
<p style="font-size: 12px; color: rgba(255,255,255,0.4);">Si no solicitaste este ticket, avisá al equipo administrador.</p>"""

    text = (
        f"¡Hola {user_name}!\n\n"
        "Recibiste un nuevo ticket de cortesía para usar en el complejo.\n\n"
        f"Código: {ticket_code}\n"
        f"Emitido: {issued}\n"
        f"Vence: {expires}\n\n"
        f"{note}\n"
    )
    return subject, _base_layout(content, venue_name), text


def reset_code_email(
    user_name: str,
    code: str,
    ttl_minutes: int,
    venue_name: str = "La Sexta",
) -> tuple[str, str, str]:
    """Six-digit code for the forgot-password flow."""
    subject = f"Código para restablecer tu contraseña - {venue_name}"
    card = _code_card(code, [f"Vence en {ttl_minutes} minutos."])

    content = f"""\
<h1 style="color: {ACCENT};">¡Hola {escape(user_name)}!</h1>
<p>Recibimos un pedido para restablecer tu contraseña. Ingresá este código en la aplicación:</p>
{card}
<p style="font-size: 12px; color: rgba(255,255,255,0.4);">Si no pediste el cambio, ignorá este correo.</p>"""

    text = (
        f"¡Hola {user_name}!\n\n"
        "Recibimos un pedido para restablecer tu contraseña.\n\n"
        f"Código: {code}\n"
        f"Vence en {ttl_minutes} minutos.\n"
    )
    return subject, _base_layout(content, venue_name), text
