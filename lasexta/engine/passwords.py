"""
Password hashing and validation using argon2id.
"""

from __future__ import annotations

import argon2

from lasexta.errors import ValidationError

MIN_PASSWORD_LENGTH = 6
MAX_PASSWORD_LENGTH = 128  # huge inputs make hashing a DoS vector

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,
)


def hash_password(password: str) -> str:
    """Hash a password using argon2id. Returns the full hash string."""
    return _hasher.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Return True if *password* matches. Never raises on mismatch.

    Accounts created through social sign-in have no hash and never match.
    """
    if not password_hash:
        return False
    try:
        return _hasher.verify(password_hash, password)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False


def validate_password(password: str | None) -> str:
    """Return *password* unchanged or raise :class:`ValidationError`."""
    if not password or not password.strip():
        raise ValidationError("Password is required.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {MIN_PASSWORD_LENGTH} characters."
        )
    if len(password) > MAX_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must not exceed {MAX_PASSWORD_LENGTH} characters."
        )
    return password
