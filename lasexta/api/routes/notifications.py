"""
lasexta.api.routes.notifications — A client's in-app notifications
===================================================================
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import AliasChoices, BaseModel, Field

from lasexta.api.deps import ClientDep, ConfigDep, EngineDep
from lasexta.api.serializers import notification_dict
from lasexta.services import notification_service

router = APIRouter(prefix="/notifications", tags=["notifications"])


class MarkReadBody(BaseModel):
    notification_ids: list[str] | None = Field(
        None, validation_alias=AliasChoices("notification_ids", "notificationIds")
    )


@router.get("/me")
def my_notifications(client: ClientDep, engine: EngineDep, cfg: ConfigDep):
    rows = notification_service.list_notifications(engine, client.sub, limit=cfg.history_limit)
    return {"notifications": [notification_dict(n) for n in rows]}


@router.get("/me/unread-count")
def my_unread_count(client: ClientDep, engine: EngineDep):
    return {"count": notification_service.unread_count(engine, client.sub)}


@router.patch("/me/mark-read")
def mark_read(client: ClientDep, engine: EngineDep, body: MarkReadBody | None = None):
    """Mark the given ids as read, or every unread one when none are given."""
    ids = body.notification_ids if body is not None else None
    updated = notification_service.mark_read(engine, client.sub, ids or None)
    return {"updated": updated}
