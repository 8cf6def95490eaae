"""
lasexta.api.serializers — ORM rows → JSON dicts
================================================

Response bodies use snake_case English keys.  Timestamps are ISO-8601 UTC.
Password hashes never leave this module.
"""

from __future__ import annotations

from lasexta.database.models import (
    AdminLog,
    Benefit,
    Event,
    Notification,
    PointsTransaction,
    Reward,
    Ticket,
    User,
)
from lasexta.engine.calendar import iso


def user_dict(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "role": u.role.value,
        "points": u.points,
        "registered_at": iso(u.registered_at),
        "social_provider": u.social_provider,
    }


def ticket_dict(t: Ticket, owner: User | None = None) -> dict:
    data = {
        "id": t.id,
        "user_id": t.user_id,
        "code": t.code,
        "status": t.status.value,
        "created_at": iso(t.created_at),
        "expires_at": iso(t.expires_at),
        "used_at": iso(t.used_at),
        "issued_by": t.issued_by,
    }
    if owner is not None:
        data["user"] = {"id": owner.id, "name": owner.name, "email": owner.email}
    return data


def movement_dict(tx: PointsTransaction) -> dict:
    return {
        "id": tx.id,
        "type": tx.type.value,
        "amount": tx.amount,
        "description": tx.description,
        "created_at": iso(tx.created_at),
        "processed_by": tx.processed_by,
    }


def event_dict(e: Event) -> dict:
    return {
        "id": e.id,
        "title": e.title,
        "date": e.date,
        "time": e.time,
        "day": e.day,
        "location": e.location,
        "description": e.description,
        "background_image": e.background_image,
        "purchase_link": e.purchase_link,
        "created_at": iso(e.created_at),
        "updated_at": iso(e.updated_at),
    }


def benefit_dict(b: Benefit) -> dict:
    return {
        "id": b.id,
        "title": b.title,
        "short_description": b.short_description,
        "full_description": b.full_description,
        "logo_url": b.logo_url,
        "sponsor_name": b.sponsor_name,
        "active": b.active,
        "created_at": iso(b.created_at),
        "updated_at": iso(b.updated_at),
    }


def reward_dict(r: Reward) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "required_points": r.required_points,
        "description": r.description,
        "image_url": r.image_url,
        "enabled": r.enabled,
        "created_at": iso(r.created_at),
        "updated_at": iso(r.updated_at),
    }


def notification_dict(n: Notification) -> dict:
    return {
        "id": n.id,
        "category": n.category.value,
        "title": n.title,
        "message": n.message,
        "read": n.read,
        "created_at": iso(n.created_at),
        "metadata": n.metadata_ or {},
    }


def admin_log_dict(row: AdminLog) -> dict:
    return {
        "id": row.id,
        "actor_id": row.actor_id,
        "action_type": row.action_type,
        "target_table": row.target_table,
        "target_id": row.target_id,
        "before": row.before_snapshot,
        "after": row.after_snapshot,
        "created_at": iso(row.created_at),
    }
