"""
lasexta.api.routes.events — Event agenda, live stream & admin CRUD
===================================================================

Every admin mutation is published to the :class:`EventStreamHub` after its
transaction commits, so stream clients never see a change that was rolled
back.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Response
from fastapi.responses import StreamingResponse
from pydantic import AliasChoices, BaseModel, Field

from lasexta.api.deps import AdminDep, ConfigDep, EngineDep, HubDep
from lasexta.api.serializers import event_dict
from lasexta.database.engine import run_db
from lasexta.services import catalog_service
from lasexta.services.event_stream import STREAM_HEADERS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["events"])
admin_router = APIRouter(prefix="/admin/events", tags=["admin"])


class EventBody(BaseModel):
    title: Any = Field(None, validation_alias=AliasChoices("title", "titulo"))
    date: Any = Field(None, validation_alias=AliasChoices("date", "fecha"))
    time: Any = Field(None, validation_alias=AliasChoices("time", "hora"))
    day: Any = Field(None, validation_alias=AliasChoices("day", "dia"))
    location: Any = Field(None, validation_alias=AliasChoices("location", "ubicacion"))
    description: Any = Field(None, validation_alias=AliasChoices("description", "descripcion"))
    background_image: Any = Field(
        None, validation_alias=AliasChoices("background_image", "imagenFondo")
    )
    purchase_link: Any = Field(
        None, validation_alias=AliasChoices("purchase_link", "linkCompra")
    )


# ---------------------------------------------------------------------------
# Public
# ---------------------------------------------------------------------------
@router.get("")
def list_events(engine: EngineDep):
    return {"events": [event_dict(e) for e in catalog_service.list_events(engine)]}


@router.get("/stream")
async def stream_events(engine: EngineDep, hub: HubDep):
    """SSE feed: a ``snapshot`` frame, then created/updated/deleted and pings."""
    events = await run_db(catalog_service.list_events, engine)
    snapshot = {"type": "snapshot", "events": [event_dict(e) for e in events]}
    channel = hub.open_channel()
    return StreamingResponse(
        hub.stream(channel, snapshot),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------
@admin_router.get("")
def admin_list_events(admin: AdminDep, engine: EngineDep):
    return {"events": [event_dict(e) for e in catalog_service.list_events(engine)]}


@admin_router.post("", status_code=201)
async def create_event(
    body: EventBody,
    admin: AdminDep,
    engine: EngineDep,
    hub: HubDep,
    cfg: ConfigDep,
):
    event = await run_db(
        lambda: catalog_service.create_event(
            engine,
            actor_id=admin.sub,
            default_location=cfg.default_event_location,
            default_background=cfg.default_event_background,
            **body.model_dump(),
        )
    )
    data = event_dict(event)
    hub.publish({"type": "created", "event": data})
    return {"event": data}


@admin_router.put("/{event_id}")
async def update_event(
    event_id: str,
    body: EventBody,
    admin: AdminDep,
    engine: EngineDep,
    hub: HubDep,
    cfg: ConfigDep,
):
    event = await run_db(
        lambda: catalog_service.update_event(
            engine,
            event_id,
            actor_id=admin.sub,
            changes=body.model_dump(exclude_unset=True),
            default_location=cfg.default_event_location,
            default_background=cfg.default_event_background,
        )
    )
    data = event_dict(event)
    hub.publish({"type": "updated", "event": data})
    return {"event": data}


@admin_router.delete("/{event_id}", status_code=204)
async def delete_event(event_id: str, admin: AdminDep, engine: EngineDep, hub: HubDep):
    await run_db(lambda: catalog_service.delete_event(engine, event_id, actor_id=admin.sub))
    reached = hub.publish({"type": "deleted", "eventId": event_id})
    logger.debug("Event %s deletion pushed to %d stream client(s)", event_id, reached)
    return Response(status_code=204)
