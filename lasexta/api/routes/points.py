"""
lasexta.api.routes.points — Client balance, movements & redeem codes
=====================================================================
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import AliasChoices, BaseModel, Field

from lasexta.api.deps import ClientDep, ConfigDep, EngineDep
from lasexta.api.serializers import movement_dict
from lasexta.engine.calendar import iso
from lasexta.services import points_service

router = APIRouter(prefix="/points", tags=["points"])


class RedeemRequest(BaseModel):
    points: int | None = Field(
        None, validation_alias=AliasChoices("points", "puntosACanjear")
    )


@router.get("/me")
def my_points(client: ClientDep, engine: EngineDep):
    return {"points": points_service.get_balance(engine, client.sub)}


@router.get("/movements")
def my_movements(client: ClientDep, engine: EngineDep, cfg: ConfigDep):
    movements = points_service.list_movements(engine, client.sub, limit=cfg.history_limit)
    return {"movements": [movement_dict(tx) for tx in movements]}


@router.post("/generate-redeem-code", status_code=201)
def generate_redeem_code(body: RedeemRequest, client: ClientDep, engine: EngineDep, cfg: ConfigDep):
    redeem_code = points_service.request_redeem_code(
        engine,
        client.sub,
        body.points if body.points is not None else 0,
        min_points=cfg.min_points_to_redeem,
        ttl_minutes=cfg.redeem_code_ttl_minutes,
    )
    return {
        "code": redeem_code.code,
        "points": redeem_code.points,
        "expires_at": iso(redeem_code.expires_at),
    }
