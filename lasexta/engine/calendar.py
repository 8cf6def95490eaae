"""
lasexta.engine.calendar — Day Boundaries & Timestamp Normalization
===================================================================

The daily point cap runs from local midnight to local midnight on the
server clock.  Both the write path (``add_daily_point``) and the read-only
eligibility check use :func:`local_day_bounds`, so the two can never
disagree about what "today" means.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def local_day_bounds(now: datetime | None = None) -> tuple[datetime, datetime, date]:
    """Return ``(start_utc, end_utc, local_date)`` for the local day of *now*.

    ``start`` is inclusive, ``end`` exclusive.  *now* defaults to the
    current time; naive values are taken as UTC.
    """
    moment = as_utc(now) if now is not None else utcnow()
    local = moment.astimezone()  # server's local zone
    start_local = local.replace(hour=0, minute=0, second=0, microsecond=0)
    end_local = start_local + timedelta(days=1)
    return start_local.astimezone(UTC), end_local.astimezone(UTC), start_local.date()


def resolve_now(now: datetime | None = None) -> datetime:
    """*now* normalized to UTC, or the current time.

    Timestamps are always written in UTC so that stored values compare
    correctly on backends that drop the offset.
    """
    return as_utc(now) if now is not None else utcnow()


def iso(value: datetime | None) -> str | None:
    return as_utc(value).isoformat() if value is not None else None
