"""
lasexta.api.routes.admin — Admin session, tickets & points (JWT-protected)
===========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Query
from pydantic import AliasChoices, BaseModel, Field

from lasexta.api.deps import (
    JWT_SECRET,
    AdminDep,
    ConfigDep,
    EngineDep,
    MailerDep,
)
from lasexta.api.serializers import admin_log_dict, ticket_dict, user_dict
from lasexta.database.models import Role, TicketStatus
from lasexta.errors import ValidationError
from lasexta.services import (
    auth_service,
    catalog_service,
    points_service,
    ticket_service,
    user_service,
)

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class AdminLogin(BaseModel):
    email: str | None = None
    password: str | None = None


class TicketGenerate(BaseModel):
    user_id: str | None = Field(None, validation_alias=AliasChoices("user_id", "userId"))
    validity_days: int | None = Field(
        None, validation_alias=AliasChoices("validity_days", "diasValidez")
    )


class TicketSend(BaseModel):
    ticket_id: str | None = Field(None, validation_alias=AliasChoices("ticket_id", "ticketId"))


class PointAdd(BaseModel):
    user_id: str | None = Field(None, validation_alias=AliasChoices("user_id", "usuarioId"))


class RedeemValidate(BaseModel):
    code: str | None = Field(None, validation_alias=AliasChoices("code", "codigo"))


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------
@router.post("/login")
def admin_login(body: AdminLogin, engine: EngineDep, cfg: ConfigDep):
    user = auth_service.authenticate_admin(engine, body.email, body.password)
    token = auth_service.session_token(user, JWT_SECRET, ttl_hours=cfg.session_ttl_hours)
    return {"user": user_dict(user), "token": token}


@router.get("/me")
def admin_me(admin: AdminDep, engine: EngineDep):
    user = auth_service.get_profile(engine, admin.sub, role=Role.ADMIN)
    return {"user": user_dict(user)}


# ---------------------------------------------------------------------------
# Users & audit
# ---------------------------------------------------------------------------
@router.get("/users")
def list_users(admin: AdminDep, engine: EngineDep):
    return {
        "users": [
            {**user_dict(user), "active_tickets": valid_count}
            for user, valid_count in user_service.list_clients(engine)
        ],
    }


@router.get("/audit")
def list_audit(
    admin: AdminDep,
    engine: EngineDep,
    limit: int = Query(100, ge=1, le=500),
):
    return {"entries": [admin_log_dict(row) for row in catalog_service.list_admin_log(engine, limit)]}


# ---------------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------------
@router.get("/tickets/all")
def list_all_tickets(
    admin: AdminDep,
    engine: EngineDep,
    status: str | None = Query(None),
):
    """All tickets with their owners; an unknown ``status`` means no filter."""
    try:
        status_filter = TicketStatus(status) if status else None
    except ValueError:
        status_filter = None
    return {
        "tickets": [
            ticket_dict(ticket, owner)
            for ticket, owner in ticket_service.list_all_tickets(engine, status_filter)
        ],
    }


@router.get("/tickets/user/{user_id}")
def list_user_tickets(user_id: str, admin: AdminDep, engine: EngineDep):
    return {"tickets": [ticket_dict(t) for t in ticket_service.list_user_tickets(engine, user_id)]}


@router.post("/tickets/generate", status_code=201)
def generate_ticket(body: TicketGenerate, admin: AdminDep, engine: EngineDep, cfg: ConfigDep):
    if not body.user_id:
        raise ValidationError("user_id is required.")
    ticket = ticket_service.issue_ticket(
        engine,
        body.user_id,
        validity_days=body.validity_days if body.validity_days is not None else cfg.ticket_validity_days,
        issued_by=admin.sub,
        retention=cfg.ticket_retention,
    )
    return {"ticket": ticket_dict(ticket)}


@router.post("/tickets/send/{user_id}")
async def send_ticket(
    user_id: str,
    body: TicketSend,
    admin: AdminDep,
    engine: EngineDep,
    mailer: MailerDep,
):
    if not body.ticket_id:
        raise ValidationError("ticket_id is required.")
    ticket = await ticket_service.send_ticket(engine, mailer, user_id, body.ticket_id)
    return {"message": "Ticket sent.", "ticket": ticket_dict(ticket)}


@router.put("/tickets/use/{ticket_id}")
def use_ticket(ticket_id: str, admin: AdminDep, engine: EngineDep):
    ticket = ticket_service.mark_ticket_used(engine, ticket_id, admin.sub)
    return {"message": "Ticket marked as used.", "ticket": ticket_dict(ticket)}


@router.post("/tickets/validate/{code}")
def validate_ticket(code: str, admin: AdminDep, engine: EngineDep):
    ticket = ticket_service.validate_ticket_code(engine, code, admin.sub)
    return {"message": "Ticket validated.", "ticket": ticket_dict(ticket)}


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------
@router.post("/points/add")
def add_point(body: PointAdd, admin: AdminDep, engine: EngineDep):
    if not body.user_id:
        raise ValidationError("user_id is required.")
    balance = points_service.add_daily_point(engine, body.user_id, admin.sub)
    return {"message": "Point added.", "points": balance}


@router.post("/points/validate-redeem")
def validate_redeem(body: RedeemValidate, admin: AdminDep, engine: EngineDep):
    result = points_service.validate_redeem_code(engine, body.code or "", admin.sub)
    return {
        "message": "Redemption processed.",
        "points_redeemed": result.redeem_code.points,
        "balance": result.balance,
        "user_id": result.redeem_code.user_id,
    }


@router.get("/points/check-eligibility/{user_id}")
def check_eligibility(user_id: str, admin: AdminDep, engine: EngineDep):
    return {"can_add_today": points_service.can_add_point_today(engine, user_id)}
