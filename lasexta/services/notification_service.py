"""
lasexta.services.notification_service — In-App Notification Outbox
===================================================================

Notifications are written as a side effect of ticket sends and point
movements.  :func:`create_notification` takes the caller's open session so
the notification commits (or rolls back) together with the action that
produced it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from sqlalchemy import Engine, func, select, update
from sqlalchemy.orm import Session

from lasexta.database.engine import get_session
from lasexta.database.models import Notification, NotificationCategory

logger = logging.getLogger(__name__)


def create_notification(
    session: Session,
    *,
    user_id: str,
    category: NotificationCategory,
    title: str,
    message: str,
    metadata: dict | None = None,
) -> Notification:
    """Stage a notification inside *session*; the caller commits."""
    notification = Notification(
        user_id=user_id,
        category=category,
        title=title,
        message=message,
        read=False,
        metadata_=dict(metadata or {}),
    )
    session.add(notification)
    return notification


def list_notifications(engine: Engine, user_id: str, limit: int = 50) -> list[Notification]:
    """Newest first."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit)
        ).all())


def unread_count(engine: Engine, user_id: str) -> int:
    with get_session(engine) as session:
        return session.scalar(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
        ) or 0


def mark_read(engine: Engine, user_id: str, ids: Iterable[str] | None = None) -> int:
    """Flag notifications as read and return how many changed.

    With *ids*, only those notifications (and only the ones owned by
    *user_id*) are touched; without, every unread notification of the user.
    """
    stmt = update(Notification).where(
        Notification.user_id == user_id,
        Notification.read.is_(False),
    )
    if ids is not None:
        id_list = [i for i in ids if i]
        if not id_list:
            return 0
        stmt = stmt.where(Notification.id.in_(id_list))

    with get_session(engine) as session:
        result = session.execute(
            stmt.values(read=True).execution_options(synchronize_session=False)
        )
        changed = result.rowcount or 0

    logger.debug("Marked %d notification(s) read for user %s", changed, user_id)
    return changed
