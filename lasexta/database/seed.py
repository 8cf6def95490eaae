"""
lasexta.database.seed — Default Account Seeder
===============================================

Creates the venue's first administrator and a demo client on startup so a
fresh deployment can log in immediately.  Credentials come from the
environment (``SEED_ADMIN_*`` / ``SEED_CLIENT_*``, see ``.env.example``).

Idempotent — an account whose email already exists is left untouched,
including its password.
"""

from __future__ import annotations

import logging
import os

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from lasexta.database.models import Role, User
from lasexta.engine.passwords import hash_password

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default accounts
# ---------------------------------------------------------------------------
DEFAULT_ACCOUNTS: dict[Role, tuple[str, str, str, str]] = {
    Role.ADMIN: ("SEED_ADMIN", "admin@example.com", "Admin123!", "Administrador"),
    Role.CLIENT: ("SEED_CLIENT", "cliente-demo@example.com", "Demo123!", "Cliente Demo"),
}
"""Each entry maps ``role`` → ``(env_prefix, email, password, name)``."""


def _account_from_env(prefix: str, email: str, password: str, name: str) -> tuple[str, str, str]:
    return (
        os.getenv(f"{prefix}_EMAIL", email).strip().lower(),
        os.getenv(f"{prefix}_PASSWORD", password),
        os.getenv(f"{prefix}_NAME", name).strip(),
    )


# ---------------------------------------------------------------------------
# Seeder
# ---------------------------------------------------------------------------
def seed_accounts(engine: Engine) -> None:
    """Insert the default admin and demo client if their emails are free."""
    session = Session(engine)
    inserted = 0
    try:
        for role, defaults in DEFAULT_ACCOUNTS.items():
            email, password, name = _account_from_env(*defaults)
            existing = session.scalar(select(User).where(User.email == email))
            if existing is None:
                session.add(User(
                    name=name,
                    email=email,
                    password_hash=hash_password(password),
                    role=role,
                ))
                inserted += 1
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    if inserted:
        logger.info("Seeded %d default account(s).", inserted)
