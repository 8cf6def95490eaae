"""
lasexta.errors — Domain Exceptions
===================================

Services raise these; the API layer renders them as ``{"message": ...}``
with the class's ``status_code`` (see :mod:`lasexta.api.errors`).  Anything
that is not a :class:`LaSextaError` is treated as unexpected and reported as
a generic 500.
"""

from __future__ import annotations


class LaSextaError(Exception):
    """Base class for failures the caller is expected to see."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(LaSextaError):
    status_code = 400


class AuthenticationError(LaSextaError):
    status_code = 401


class PermissionDeniedError(LaSextaError):
    status_code = 403


class NotFoundError(LaSextaError):
    status_code = 404


class ConflictError(LaSextaError):
    status_code = 409


class ExpiredError(LaSextaError):
    """A redeem or reset code was used after its expiration."""
    status_code = 400


class InsufficientPointsError(LaSextaError):
    status_code = 400


class AlreadyAwardedError(LaSextaError):
    """The daily point for this user was already loaded today."""
    status_code = 400


class EmailDeliveryError(LaSextaError):
    status_code = 502
