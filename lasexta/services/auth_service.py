"""
lasexta.services.auth_service — Accounts, Credentials & Password Reset
=======================================================================

Clients register with email + password (or a social identity); admins are
seeded.  Passwords are argon2id hashes (:mod:`lasexta.engine.passwords`);
sessions are signed tokens (:mod:`lasexta.engine.sessions`).

The unified login entry point (:func:`authenticate_any`) tries client
credentials first and falls back to admin credentials only when the client
attempt failed as "invalid credentials".  Whatever it returns carries
exactly one role.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import Engine, delete, select, update
from sqlalchemy.exc import IntegrityError

from lasexta.database.engine import get_session, run_db
from lasexta.database.models import PasswordResetCode, Role, User
from lasexta.engine.calendar import as_utc, resolve_now
from lasexta.engine.codes import generate_reset_code
from lasexta.engine.passwords import hash_password, validate_password, verify_password
from lasexta.engine.sessions import AdminClaims, ClientClaims, issue_token
from lasexta.errors import (
    AuthenticationError,
    ConflictError,
    NotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from lasexta.services.email_service import Mailer

logger = logging.getLogger(__name__)

SOCIAL_PROVIDERS = frozenset({"facebook", "instagram"})
DEFAULT_RESET_TTL_MINUTES = 15

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_INVALID_CREDENTIALS = "Invalid credentials."
_INVALID_RESET_CODE = "Invalid or expired code."


# ---------------------------------------------------------------------------
# Input normalization
# ---------------------------------------------------------------------------
def normalize_email(email: str | None) -> str:
    value = (email or "").strip().lower()
    if not _EMAIL_RE.match(value):
        raise ValidationError("A valid email is required.")
    return value


def normalize_name(name: str | None) -> str:
    value = (name or "").strip()
    if not value:
        raise ValidationError("Name is required.")
    return value


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
def session_token(user: User, secret: str, ttl_hours: int = 8) -> str:
    """Sign a token whose claim type matches the user's role."""
    claims_cls = AdminClaims if user.role == Role.ADMIN else ClientClaims
    claims = claims_cls(sub=user.id, email=user.email, name=user.name)
    return issue_token(claims, secret, ttl_hours=ttl_hours)


# ---------------------------------------------------------------------------
# Registration & login
# ---------------------------------------------------------------------------
def register_client(engine: Engine, *, name: str | None, email: str | None, password: str | None) -> User:
    """Create a client account.

    Raises
    ------
    ValidationError
        Blank name, malformed email, or a password shorter than 6 chars.
    ConflictError
        If the email is already registered.
    """
    name = normalize_name(name)
    email = normalize_email(email)
    password = validate_password(password)

    with get_session(engine) as session:
        if session.scalar(select(User.id).where(User.email == email)) is not None:
            raise ConflictError("An account with this email already exists.")
        user = User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=Role.CLIENT,
            points=0,
        )
        session.add(user)
        try:
            session.flush()
        except IntegrityError:
            raise ConflictError("An account with this email already exists.") from None

    logger.info("Client registered: %s", email)
    return user


def _authenticate(engine: Engine, email: str | None, password: str | None, role: Role) -> User:
    if not email or not password:
        raise ValidationError("Email and password are required.")
    email = email.strip().lower()
    with get_session(engine) as session:
        user = session.scalar(select(User).where(User.email == email, User.role == role))
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationError(_INVALID_CREDENTIALS)
    return user


def authenticate_client(engine: Engine, email: str | None, password: str | None) -> User:
    return _authenticate(engine, email, password, Role.CLIENT)


def authenticate_admin(engine: Engine, email: str | None, password: str | None) -> User:
    return _authenticate(engine, email, password, Role.ADMIN)


def authenticate_any(engine: Engine, email: str | None, password: str | None) -> User:
    """Client login first; on invalid credentials, retry as admin."""
    try:
        return authenticate_client(engine, email, password)
    except AuthenticationError:
        return authenticate_admin(engine, email, password)


def social_sign_in(
    engine: Engine,
    *,
    provider: str | None,
    social_id: str | None,
    email: str | None,
    name: str | None,
) -> User:
    """Find or create the client behind a social identity.

    Lookup order: (provider, social_id), then an existing client with the
    same email (which gets the identity linked), else a new password-less
    client.  The access token itself is not verified with the provider.
    """
    provider = (provider or "").strip().lower()
    if provider not in SOCIAL_PROVIDERS:
        raise ValidationError("Unsupported social provider.")
    social_id = (social_id or "").strip()
    if not social_id:
        raise ValidationError("Social account id is required.")
    email = normalize_email(email)

    with get_session(engine) as session:
        user = session.scalar(
            select(User).where(User.social_provider == provider, User.social_id == social_id)
        )
        if user is not None:
            return user

        user = session.scalar(select(User).where(User.email == email))
        if user is not None:
            if user.role != Role.CLIENT:
                raise AuthenticationError(_INVALID_CREDENTIALS)
            user.social_provider = provider
            user.social_id = social_id
            logger.info("Linked %s identity to client %s", provider, email)
            return user

        user = User(
            name=normalize_name(name or email.split("@", 1)[0]),
            email=email,
            password_hash=None,
            role=Role.CLIENT,
            points=0,
            social_provider=provider,
            social_id=social_id,
        )
        session.add(user)
        session.flush()

    logger.info("Client registered via %s: %s", provider, email)
    return user


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------
def get_profile(engine: Engine, user_id: str, role: Role | None = None) -> User:
    with get_session(engine) as session:
        user = session.get(User, user_id)
    if user is None or (role is not None and user.role != role):
        raise NotFoundError("User not found.")
    return user


def update_profile(
    engine: Engine,
    user_id: str,
    *,
    name: str | None = None,
    email: str | None = None,
) -> User:
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found.")
        if name is not None:
            user.name = normalize_name(name)
        if email is not None:
            new_email = normalize_email(email)
            if new_email != user.email:
                taken = session.scalar(
                    select(User.id).where(User.email == new_email, User.id != user_id)
                )
                if taken is not None:
                    raise ConflictError("An account with this email already exists.")
                user.email = new_email
        session.flush()
    return user


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------
def _create_reset_code(engine: Engine, email: str, ttl_minutes: int, now: datetime) -> tuple[User, str] | None:
    with get_session(engine) as session:
        user = session.scalar(select(User).where(User.email == email))
        if user is None:
            return None
        code = generate_reset_code()
        session.add(PasswordResetCode(
            email=email,
            code=code,
            expires_at=now + timedelta(minutes=ttl_minutes),
            used=False,
            created_at=now,
        ))
        return user, code


async def request_password_reset(
    engine: Engine,
    mailer: Mailer,
    email: str | None,
    ttl_minutes: int = DEFAULT_RESET_TTL_MINUTES,
    now: datetime | None = None,
) -> None:
    """Email a 6-digit reset code.  Unknown emails are ignored silently."""
    email = normalize_email(email)
    created = await run_db(_create_reset_code, engine, email, ttl_minutes, resolve_now(now))
    if created is None:
        logger.info("Password reset requested for unknown email %s", email)
        return
    user, code = created
    await mailer.send_reset_code_email(
        to=user.email, user_name=user.name, code=code, ttl_minutes=ttl_minutes
    )
    logger.info("Password reset code sent to %s", email)


def _find_usable_code(session, email: str, code: str, now: datetime) -> PasswordResetCode | None:
    candidates = session.scalars(
        select(PasswordResetCode).where(
            PasswordResetCode.email == email,
            PasswordResetCode.code == code,
            PasswordResetCode.used.is_(False),
        )
    ).all()
    for candidate in candidates:
        if as_utc(candidate.expires_at) > now:
            return candidate
    return None


def verify_reset_code(engine: Engine, email: str | None, code: str | None, now: datetime | None = None) -> bool:
    if not email or not code:
        return False
    with get_session(engine) as session:
        return _find_usable_code(session, email.strip().lower(), code.strip(), resolve_now(now)) is not None


def reset_password(
    engine: Engine,
    email: str | None,
    code: str | None,
    new_password: str | None,
    now: datetime | None = None,
) -> None:
    """Set a new password using a valid reset code.

    The code is marked used and every other unused code for the email is
    purged, so a reset can happen only once per request.
    """
    new_password = validate_password(new_password)
    if not email or not code:
        raise ValidationError(_INVALID_RESET_CODE)
    email = email.strip().lower()
    moment = resolve_now(now)

    with get_session(engine) as session:
        reset_code = _find_usable_code(session, email, code.strip(), moment)
        if reset_code is None:
            raise ValidationError(_INVALID_RESET_CODE)
        updated = session.execute(
            update(User)
            .where(User.email == email)
            .values(password_hash=hash_password(new_password))
            .execution_options(synchronize_session=False)
        )
        if updated.rowcount != 1:
            raise NotFoundError("User not found.")
        reset_code.used = True
        session.execute(
            delete(PasswordResetCode).where(
                PasswordResetCode.email == email,
                PasswordResetCode.used.is_(False),
                PasswordResetCode.id != reset_code.id,
            )
        )

    logger.info("Password reset for %s", email)
