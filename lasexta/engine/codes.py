"""
lasexta.engine.codes — Voucher, Redeem and Reset Code Generation
=================================================================

All codes are drawn from :mod:`secrets`.  Uniqueness is enforced by the
database (unique columns); these helpers only make collisions improbable.
"""

from __future__ import annotations

import base64
import secrets
import string

TICKET_PREFIX = "QR"
REDEEM_PREFIX = "REDEEM"

_REDEEM_ALPHABET = string.ascii_uppercase + string.digits
_REDEEM_LENGTH = 8
_RESET_DIGITS = 6


def generate_ticket_code() -> str:
    """Return a human-readable voucher code such as ``QR-7KQ2-MZ4D``.

    Five random bytes are base32-encoded into exactly eight characters
    (``A-Z2-7``), then split in two groups of four.
    """
    raw = base64.b32encode(secrets.token_bytes(5)).decode("ascii")
    groups = [raw[i:i + 4] for i in range(0, len(raw), 4)]
    return "-".join([TICKET_PREFIX, *groups])


def generate_redeem_code() -> str:
    """Return a redeem code such as ``REDEEM-8F2KQ1ZX``."""
    body = "".join(secrets.choice(_REDEEM_ALPHABET) for _ in range(_REDEEM_LENGTH))
    return f"{REDEEM_PREFIX}-{body}"


def generate_reset_code() -> str:
    """Return a zero-padded 6-digit password reset code."""
    return f"{secrets.randbelow(10 ** _RESET_DIGITS):0{_RESET_DIGITS}d}"


def normalize_code(code: str) -> str:
    """Codes are typed or scanned by staff; tolerate case and padding."""
    return code.strip().upper()
