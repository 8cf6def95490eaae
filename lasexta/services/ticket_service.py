"""
lasexta.services.ticket_service — Drink Voucher Issue, Delivery & Validation
============================================================================

Ticket lifecycle::

    issue ──► valid ──(validate by code / mark used)──► used

Invariants enforced here:

* **Retention** — a user never has more than ``retention`` tickets (2 by
  default).  Issuing deletes the oldest excess in the same transaction as
  the insert, so listings are consistent without query-side filtering.
* **Single use** — the valid → used flip is one conditional ``UPDATE``
  whose predicate re-checks the status, so two concurrent validations of
  the same code yield exactly one success.  A code that never existed and
  a code already used are indistinguishable to the caller (404 for both).
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import Engine, delete, func, select, update

from lasexta.database.engine import get_session, run_db
from lasexta.database.models import NotificationCategory, Ticket, TicketStatus, User
from lasexta.engine.calendar import resolve_now
from lasexta.engine.codes import generate_ticket_code, normalize_code
from lasexta.engine.lifecycle import sources_for
from lasexta.errors import NotFoundError, ValidationError
from lasexta.services.notification_service import create_notification

if TYPE_CHECKING:
    from lasexta.services.email_service import Mailer

logger = logging.getLogger(__name__)

DEFAULT_VALIDITY_DAYS = 7
DEFAULT_RETENTION = 2
MAX_VALIDITY_DAYS = 3650

_NOT_USABLE = "Ticket not found or already used."


def _newest_first():
    return (Ticket.created_at.desc(), Ticket.issue_seq.desc(), Ticket.id.desc())


# ---------------------------------------------------------------------------
# Issue
# ---------------------------------------------------------------------------
def issue_ticket(
    engine: Engine,
    user_id: str,
    validity_days: int | None = None,
    issued_by: str | None = None,
    retention: int = DEFAULT_RETENTION,
    now: datetime | None = None,
) -> Ticket:
    """Create a valid ticket for *user_id* and purge tickets beyond *retention*.

    Raises
    ------
    ValidationError
        If *validity_days* is given and not between 1 and
        :data:`MAX_VALIDITY_DAYS`.
    NotFoundError
        If the user does not exist.
    """
    if validity_days is None:
        validity_days = DEFAULT_VALIDITY_DAYS
    elif isinstance(validity_days, bool) or not 0 < validity_days <= MAX_VALIDITY_DAYS:
        raise ValidationError(
            f"Validity days must be a number between 1 and {MAX_VALIDITY_DAYS}."
        )

    issued_at = resolve_now(now)

    with get_session(engine) as session:
        if session.get(User, user_id) is None:
            raise NotFoundError("User not found.")

        last_seq = session.scalar(
            select(func.max(Ticket.issue_seq)).where(Ticket.user_id == user_id)
        ) or 0

        keep = max(retention - 1, 0)
        stale_ids = session.scalars(
            select(Ticket.id)
            .where(Ticket.user_id == user_id)
            .order_by(*_newest_first())
            .offset(keep)
        ).all()
        if stale_ids:
            session.execute(delete(Ticket).where(Ticket.id.in_(stale_ids)))
            logger.debug("Purged %d old ticket(s) for user %s", len(stale_ids), user_id)

        ticket = Ticket(
            user_id=user_id,
            code=generate_ticket_code(),
            status=TicketStatus.VALID,
            created_at=issued_at,
            issue_seq=last_seq + 1,
            expires_at=issued_at + timedelta(days=validity_days),
            issued_by=issued_by,
        )
        session.add(ticket)
        session.flush()

    logger.info("Ticket %s issued to user %s (valid %d days)", ticket.code, user_id, validity_days)
    return ticket


# ---------------------------------------------------------------------------
# Send
# ---------------------------------------------------------------------------
def _load_ticket_for_user(engine: Engine, user_id: str, ticket_id: str) -> tuple[Ticket, User]:
    with get_session(engine) as session:
        ticket = session.scalar(
            select(Ticket).where(Ticket.id == ticket_id, Ticket.user_id == user_id)
        )
        if ticket is None:
            raise NotFoundError("Ticket not found for this user.")
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found.")
        return ticket, user


def _record_ticket_sent(engine: Engine, ticket: Ticket) -> None:
    with get_session(engine) as session:
        create_notification(
            session,
            user_id=ticket.user_id,
            category=NotificationCategory.TICKET,
            title="New ticket",
            message=f"You received a drink ticket. Code: {ticket.code}",
            metadata={"ticket_id": ticket.id, "code": ticket.code},
        )


async def send_ticket(engine: Engine, mailer: Mailer, user_id: str, ticket_id: str) -> Ticket:
    """Email the ticket to its owner, then notify them in-app.

    An email failure raises :class:`EmailDeliveryError` before any write, so
    the ticket and the notification outbox are left untouched.
    """
    ticket, user = await run_db(_load_ticket_for_user, engine, user_id, ticket_id)

    await mailer.send_ticket_email(
        to=user.email,
        user_name=user.name,
        ticket_code=ticket.code,
        issued_at=ticket.created_at,
        expires_at=ticket.expires_at,
    )
    await run_db(_record_ticket_sent, engine, ticket)

    logger.info("Ticket %s sent to %s", ticket.code, user.email)
    return ticket


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------
def _use_ticket(engine: Engine, criterion, admin_id: str | None, now: datetime | None) -> Ticket:
    used_at = resolve_now(now)
    with get_session(engine) as session:
        result = session.execute(
            update(Ticket)
            .where(criterion, Ticket.status.in_(sorted(sources_for(TicketStatus.USED))))
            .values(status=TicketStatus.USED, used_at=used_at, issued_by=admin_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise NotFoundError(_NOT_USABLE)
        ticket = session.scalar(select(Ticket).where(criterion))
        if ticket is None:  # deleted between the update and the read
            raise NotFoundError(_NOT_USABLE)
        return ticket


def validate_ticket_code(
    engine: Engine,
    code: str,
    admin_id: str | None,
    now: datetime | None = None,
) -> Ticket:
    """Flip the valid ticket with *code* to used, or raise :class:`NotFoundError`."""
    code = normalize_code(code or "")
    if not code:
        raise ValidationError("Ticket code is required.")
    try:
        ticket = _use_ticket(engine, Ticket.code == code, admin_id, now)
    except NotFoundError:
        logger.info("Rejected ticket code %s", code)
        raise
    logger.info("Ticket %s validated by admin %s", ticket.code, admin_id)
    return ticket


def mark_ticket_used(
    engine: Engine,
    ticket_id: str,
    admin_id: str | None,
    now: datetime | None = None,
) -> Ticket:
    """Same transition as :func:`validate_ticket_code`, keyed by identity."""
    ticket = _use_ticket(engine, Ticket.id == ticket_id, admin_id, now)
    logger.info("Ticket %s marked used by admin %s", ticket.code, admin_id)
    return ticket


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def _recent_tickets(engine: Engine, user_id: str, retention: int) -> list[Ticket]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(Ticket)
            .where(Ticket.user_id == user_id)
            .order_by(*_newest_first())
            .limit(retention)
        ).all())


def list_active_tickets(engine: Engine, user_id: str, retention: int = DEFAULT_RETENTION) -> list[Ticket]:
    """Valid tickets among the user's most recent ones."""
    return [t for t in _recent_tickets(engine, user_id, retention) if t.status == TicketStatus.VALID]


def list_ticket_history(engine: Engine, user_id: str, retention: int = DEFAULT_RETENTION) -> list[Ticket]:
    """Used or expired tickets among the user's most recent ones."""
    return [t for t in _recent_tickets(engine, user_id, retention) if t.status != TicketStatus.VALID]


def list_user_tickets(engine: Engine, user_id: str) -> list[Ticket]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(Ticket).where(Ticket.user_id == user_id).order_by(*_newest_first())
        ).all())


def list_all_tickets(
    engine: Engine,
    status: TicketStatus | None = None,
) -> list[tuple[Ticket, User]]:
    """Every ticket with its owner, newest first, optionally filtered by status."""
    stmt = select(Ticket, User).join(User, Ticket.user_id == User.id)
    if status is not None:
        stmt = stmt.where(Ticket.status == status)
    with get_session(engine) as session:
        return [(ticket, user) for ticket, user in session.execute(stmt.order_by(*_newest_first())).all()]
