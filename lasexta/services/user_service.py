"""
lasexta.services.user_service — Admin User Directory
=====================================================
"""

from __future__ import annotations

from sqlalchemy import Engine, func, select

from lasexta.database.engine import get_session
from lasexta.database.models import Role, Ticket, TicketStatus, User


def list_clients(engine: Engine) -> list[tuple[User, int]]:
    """Every client sorted by name, paired with their count of valid tickets."""
    valid_tickets = (
        select(Ticket.user_id, func.count().label("valid_count"))
        .where(Ticket.status == TicketStatus.VALID)
        .group_by(Ticket.user_id)
        .subquery()
    )
    stmt = (
        select(User, func.coalesce(valid_tickets.c.valid_count, 0))
        .outerjoin(valid_tickets, valid_tickets.c.user_id == User.id)
        .where(User.role == Role.CLIENT)
        .order_by(User.name, User.email)
    )
    with get_session(engine) as session:
        return [(user, int(count)) for user, count in session.execute(stmt).all()]
