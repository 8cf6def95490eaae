"""
lasexta.api.routes.tickets — A client's own tickets
====================================================
"""

from __future__ import annotations

from fastapi import APIRouter

from lasexta.api.deps import ClientDep, ConfigDep, EngineDep
from lasexta.api.serializers import ticket_dict
from lasexta.engine.sessions import ClientClaims
from lasexta.errors import PermissionDeniedError
from lasexta.services import ticket_service

router = APIRouter(prefix="/tickets", tags=["tickets"])


def _require_self(client: ClientClaims, user_id: str) -> None:
    if client.sub != user_id:
        raise PermissionDeniedError("You can only view your own tickets.")


@router.get("/users/{user_id}/active")
def active_tickets(user_id: str, client: ClientDep, engine: EngineDep, cfg: ConfigDep):
    _require_self(client, user_id)
    tickets = ticket_service.list_active_tickets(engine, user_id, retention=cfg.ticket_retention)
    return {"tickets": [ticket_dict(t) for t in tickets]}


@router.get("/users/{user_id}/history")
def ticket_history(user_id: str, client: ClientDep, engine: EngineDep, cfg: ConfigDep):
    _require_self(client, user_id)
    tickets = ticket_service.list_ticket_history(engine, user_id, retention=cfg.ticket_retention)
    return {"tickets": [ticket_dict(t) for t in tickets]}
