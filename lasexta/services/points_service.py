"""
lasexta.services.points_service — Loyalty Points Ledger
========================================================

Balances live on ``users.points``; every change is mirrored by an
append-only ``points_transactions`` row.

* **Daily load** — an admin adds exactly 1 point per client per local
  calendar day.  The pre-check scans today's ``load`` rows; the unique
  ``(user_id, load_day)`` constraint makes the database reject a
  concurrent second load, so two racing requests yield one increment.
* **Redeem** — the client asks for a short-lived code (no debit yet); an
  admin validates it.  Validation flips the code and debits the balance
  inside one transaction with conditional updates, so a failure at any
  step rolls back the whole unit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import Engine, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lasexta.database.engine import get_session
from lasexta.database.models import (
    NotificationCategory,
    PointsTransaction,
    RedeemCode,
    RedeemCodeStatus,
    Role,
    TransactionType,
    User,
)
from lasexta.engine.calendar import as_utc, local_day_bounds, resolve_now
from lasexta.engine.codes import generate_redeem_code, normalize_code
from lasexta.engine.lifecycle import ensure_transition, sources_for
from lasexta.errors import (
    AlreadyAwardedError,
    ConflictError,
    ExpiredError,
    InsufficientPointsError,
    NotFoundError,
    ValidationError,
)
from lasexta.services.notification_service import create_notification

logger = logging.getLogger(__name__)

DEFAULT_MIN_POINTS = 25
DEFAULT_CODE_TTL_MINUTES = 15

_ALREADY_ADDED = "A point was already added to this user today. Try again tomorrow."


@dataclass(frozen=True, slots=True)
class RedeemResult:
    """Outcome of a successful redeem-code validation."""
    redeem_code: RedeemCode
    balance: int


def _states(target: RedeemCodeStatus) -> list[RedeemCodeStatus]:
    return sorted(sources_for(target))


def _has_load_between(session: Session, user_id: str, start: datetime, end: datetime) -> bool:
    return session.scalar(
        select(func.count())
        .select_from(PointsTransaction)
        .where(
            PointsTransaction.user_id == user_id,
            PointsTransaction.type == TransactionType.LOAD,
            PointsTransaction.created_at >= start,
            PointsTransaction.created_at < end,
        )
    ) > 0


def _current_balance(session: Session, user_id: str) -> int:
    return session.scalar(select(User.points).where(User.id == user_id)) or 0


# ---------------------------------------------------------------------------
# Daily load
# ---------------------------------------------------------------------------
def add_daily_point(
    engine: Engine,
    user_id: str,
    admin_id: str | None,
    now: datetime | None = None,
) -> int:
    """Add today's point to *user_id* and return the new balance.

    Raises
    ------
    NotFoundError
        If *user_id* is not a client.
    AlreadyAwardedError
        If the client already received today's point.
    """
    moment = resolve_now(now)
    start, end, day = local_day_bounds(moment)

    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None or user.role != Role.CLIENT:
            raise NotFoundError("User not found.")

        if _has_load_between(session, user_id, start, end):
            raise AlreadyAwardedError(_ALREADY_ADDED)

        session.add(PointsTransaction(
            user_id=user_id,
            type=TransactionType.LOAD,
            amount=1,
            description="Daily visit point",
            created_at=moment,
            processed_by=admin_id,
            load_day=day,
        ))
        try:
            session.flush()
        except IntegrityError:
            # A concurrent request won the (user_id, load_day) slot.
            raise AlreadyAwardedError(_ALREADY_ADDED) from None

        session.execute(
            update(User)
            .where(User.id == user_id)
            .values(points=User.points + 1)
            .execution_options(synchronize_session=False)
        )
        balance = _current_balance(session, user_id)
        create_notification(
            session,
            user_id=user_id,
            category=NotificationCategory.POINTS,
            title="Point added",
            message=f"You earned 1 point for today's visit. Balance: {balance}.",
            metadata={"points": 1, "balance": balance},
        )

    logger.info("Daily point added to user %s by admin %s (balance %d)", user_id, admin_id, balance)
    return balance


def can_add_point_today(engine: Engine, user_id: str, now: datetime | None = None) -> bool:
    """Read-only twin of the :func:`add_daily_point` check."""
    start, end, _ = local_day_bounds(now)
    with get_session(engine) as session:
        return not _has_load_between(session, user_id, start, end)


# ---------------------------------------------------------------------------
# Redeem codes
# ---------------------------------------------------------------------------
def request_redeem_code(
    engine: Engine,
    user_id: str,
    points: int,
    min_points: int = DEFAULT_MIN_POINTS,
    ttl_minutes: int = DEFAULT_CODE_TTL_MINUTES,
    now: datetime | None = None,
) -> RedeemCode:
    """Create a pending code for *points*.  Nothing is debited until validation.

    A pending code already past its expiry is marked expired first, so a
    stale code never blocks a new request.
    """
    if isinstance(points, bool) or not isinstance(points, int):
        raise ValidationError("Points to redeem must be a whole number.")
    if points < min_points:
        raise ValidationError(f"A minimum of {min_points} points must be redeemed.")

    moment = resolve_now(now)

    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found.")
        if points > user.points:
            raise InsufficientPointsError("You don't have enough points.")

        session.execute(
            update(RedeemCode)
            .where(
                RedeemCode.user_id == user_id,
                RedeemCode.status.in_(_states(RedeemCodeStatus.EXPIRED)),
                RedeemCode.expires_at < moment,
            )
            .values(status=RedeemCodeStatus.EXPIRED)
            .execution_options(synchronize_session=False)
        )
        pending = session.scalar(
            select(RedeemCode.id).where(
                RedeemCode.user_id == user_id,
                RedeemCode.status == RedeemCodeStatus.PENDING,
            ).limit(1)
        )
        if pending is not None:
            raise ConflictError("You already have a pending redeem code.")

        redeem_code = RedeemCode(
            user_id=user_id,
            code=generate_redeem_code(),
            points=points,
            status=RedeemCodeStatus.PENDING,
            created_at=moment,
            expires_at=moment + timedelta(minutes=ttl_minutes),
        )
        session.add(redeem_code)
        session.flush()

    logger.info("Redeem code %s requested by user %s for %d points", redeem_code.code, user_id, points)
    return redeem_code


def validate_redeem_code(
    engine: Engine,
    code: str,
    admin_id: str | None,
    now: datetime | None = None,
) -> RedeemResult:
    """Consume a pending code and debit its points from the owner.

    Raises
    ------
    NotFoundError
        If no pending code matches.
    ExpiredError
        If the code is past its expiry.  The code is moved to ``expired``
        (and that change is committed); the balance is not touched.
    InsufficientPointsError
        If the owner's balance dropped below the code's amount.
    """
    code = normalize_code(code or "")
    if not code:
        raise ValidationError("Redeem code is required.")
    moment = resolve_now(now)
    expired = False

    with get_session(engine) as session:
        redeem_code = session.scalar(
            select(RedeemCode).where(
                RedeemCode.code == code,
                RedeemCode.status == RedeemCodeStatus.PENDING,
            )
        )
        if redeem_code is None:
            raise NotFoundError("Code not found or already used.")

        if moment > as_utc(redeem_code.expires_at):
            ensure_transition(redeem_code.status, RedeemCodeStatus.EXPIRED)
            session.execute(
                update(RedeemCode)
                .where(
                    RedeemCode.id == redeem_code.id,
                    RedeemCode.status.in_(_states(RedeemCodeStatus.EXPIRED)),
                )
                .values(status=RedeemCodeStatus.EXPIRED)
                .execution_options(synchronize_session=False)
            )
            expired = True
        else:
            ensure_transition(redeem_code.status, RedeemCodeStatus.USED)
            flipped = session.execute(
                update(RedeemCode)
                .where(
                    RedeemCode.id == redeem_code.id,
                    RedeemCode.status.in_(_states(RedeemCodeStatus.USED)),
                )
                .values(status=RedeemCodeStatus.USED, used_at=moment)
                .execution_options(synchronize_session=False)
            )
            if flipped.rowcount != 1:
                raise NotFoundError("Code not found or already used.")

            debited = session.execute(
                update(User)
                .where(User.id == redeem_code.user_id, User.points >= redeem_code.points)
                .values(points=User.points - redeem_code.points)
                .execution_options(synchronize_session=False)
            )
            if debited.rowcount != 1:
                if session.get(User, redeem_code.user_id) is None:
                    raise NotFoundError("User not found.")
                raise InsufficientPointsError("The user doesn't have enough points.")

            session.add(PointsTransaction(
                user_id=redeem_code.user_id,
                type=TransactionType.REDEEM,
                amount=redeem_code.points,
                description=f"Redeemed with code {redeem_code.code}",
                created_at=moment,
                processed_by=admin_id,
            ))
            balance = _current_balance(session, redeem_code.user_id)
            create_notification(
                session,
                user_id=redeem_code.user_id,
                category=NotificationCategory.POINTS,
                title="Points redeemed",
                message=f"You redeemed {redeem_code.points} points. Balance: {balance}.",
                metadata={
                    "points": redeem_code.points,
                    "balance": balance,
                    "redeem_code_id": redeem_code.id,
                },
            )
            redeem_code.status = RedeemCodeStatus.USED
            redeem_code.used_at = moment

    if expired:
        logger.info("Redeem code %s rejected: expired", code)
        raise ExpiredError("The code has expired.")

    logger.info(
        "Redeem code %s validated by admin %s (%d points, balance %d)",
        code, admin_id, redeem_code.points, balance,
    )
    return RedeemResult(redeem_code=redeem_code, balance=balance)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def get_balance(engine: Engine, user_id: str) -> int:
    with get_session(engine) as session:
        balance = session.scalar(select(User.points).where(User.id == user_id))
        if balance is None:
            raise NotFoundError("User not found.")
        return balance


def list_movements(engine: Engine, user_id: str, limit: int = 50) -> list[PointsTransaction]:
    """Newest first."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(PointsTransaction)
            .where(PointsTransaction.user_id == user_id)
            .order_by(PointsTransaction.created_at.desc(), PointsTransaction.id.desc())
            .limit(limit)
        ).all())
