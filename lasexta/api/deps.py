"""
lasexta.api.deps — FastAPI dependency injection
================================================
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import Engine

from lasexta.config import LaSextaConfig, load_config
from lasexta.database.engine import create_db_engine
from lasexta.engine.sessions import UNAUTHENTICATED, AdminClaims, ClientClaims, decode_token
from lasexta.errors import AuthenticationError
from lasexta.services.email_service import Mailer
from lasexta.services.event_stream import EventStreamHub

_WEAK_SECRETS = frozenset({
    "lasexta-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

FORBIDDEN = "Insufficient permissions."


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> LaSextaConfig:
    return load_config()


@lru_cache(maxsize=1)
def get_event_hub() -> EventStreamHub:
    return EventStreamHub(keepalive_seconds=get_config().stream_keepalive_seconds)


@lru_cache(maxsize=1)
def get_mailer() -> Mailer:
    return Mailer.from_env(venue_name=get_config().venue_name)


def _bearer_claims(authorization: str | None) -> AdminClaims | ClientClaims:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, UNAUTHENTICATED)
    token = authorization.split(" ", 1)[1].strip()
    try:
        return decode_token(token, JWT_SECRET)
    except AuthenticationError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, UNAUTHENTICATED) from None


def get_current_admin(
    authorization: Annotated[str | None, Header()] = None,
) -> AdminClaims:
    """Validate the bearer token and require an admin session."""
    claims = _bearer_claims(authorization)
    if not isinstance(claims, AdminClaims):
        raise HTTPException(status.HTTP_403_FORBIDDEN, FORBIDDEN)
    return claims


def get_current_client(
    authorization: Annotated[str | None, Header()] = None,
) -> ClientClaims:
    """Validate the bearer token and require a client session."""
    claims = _bearer_claims(authorization)
    if not isinstance(claims, ClientClaims):
        raise HTTPException(status.HTTP_403_FORBIDDEN, FORBIDDEN)
    return claims


EngineDep = Annotated[Engine, Depends(get_engine)]
ConfigDep = Annotated[LaSextaConfig, Depends(get_config)]
HubDep = Annotated[EventStreamHub, Depends(get_event_hub)]
MailerDep = Annotated[Mailer, Depends(get_mailer)]
AdminDep = Annotated[AdminClaims, Depends(get_current_admin)]
ClientDep = Annotated[ClientClaims, Depends(get_current_client)]
