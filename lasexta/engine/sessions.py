"""
lasexta.engine.sessions — Signed Session Tokens
================================================

Two disjoint token kinds share one wire format, told apart by the ``role``
claim.  Decoding always yields a concrete :class:`AdminClaims` or
:class:`ClientClaims`, never a loose dict, so route guards match on the
type instead of poking at keys.

Tokens are stateless HS256 JWTs (PyJWT) with a fixed TTL; there is no
server-side revocation list.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Annotated, Literal

import jwt
import pydantic
from jwt.exceptions import InvalidTokenError
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from lasexta.errors import AuthenticationError

JWT_ALGORITHM = "HS256"
DEFAULT_TTL_HOURS = 8

UNAUTHENTICATED = "Authentication required."


class _Claims(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    sub: str
    email: str
    name: str = ""
    iat: int | None = None
    exp: int | None = None


class AdminClaims(_Claims):
    role: Literal["admin"] = "admin"


class ClientClaims(_Claims):
    role: Literal["client"] = "client"


SessionClaims = Annotated[AdminClaims | ClientClaims, Field(discriminator="role")]

_claims_adapter: TypeAdapter[AdminClaims | ClientClaims] = TypeAdapter(SessionClaims)


def issue_token(
    claims: AdminClaims | ClientClaims,
    secret: str,
    ttl_hours: int = DEFAULT_TTL_HOURS,
    now: datetime | None = None,
) -> str:
    """Sign *claims* into a bearer token valid for *ttl_hours*."""
    issued = now or datetime.now(UTC)
    payload = claims.model_dump(exclude={"iat", "exp"})
    payload["iat"] = int(issued.timestamp())
    payload["exp"] = int((issued + timedelta(hours=ttl_hours)).timestamp())
    return jwt.encode(payload, secret, algorithm=JWT_ALGORITHM)


def decode_token(token: str, secret: str) -> AdminClaims | ClientClaims:
    """Verify *token* and return its typed claims.

    Every failure (bad signature, expiry, missing or unknown role) raises the
    same :class:`AuthenticationError` so callers cannot tell causes apart.
    """
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
    except InvalidTokenError as exc:
        raise AuthenticationError(UNAUTHENTICATED) from exc

    try:
        return _claims_adapter.validate_python(payload)
    except pydantic.ValidationError as exc:
        raise AuthenticationError(UNAUTHENTICATED) from exc
