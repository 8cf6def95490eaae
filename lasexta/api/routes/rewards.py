"""
lasexta.api.routes.rewards — Redeemable rewards (public list + admin CRUD)
===========================================================================
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Response
from pydantic import AliasChoices, BaseModel, Field

from lasexta.api.deps import AdminDep, EngineDep
from lasexta.api.serializers import reward_dict
from lasexta.services import catalog_service

router = APIRouter(prefix="/rewards", tags=["rewards"])
admin_router = APIRouter(prefix="/admin/rewards", tags=["admin"])


class RewardBody(BaseModel):
    name: Any = Field(None, validation_alias=AliasChoices("name", "nombre"))
    required_points: Any = Field(
        None, validation_alias=AliasChoices("required_points", "puntosRequeridos")
    )
    description: Any = Field(None, validation_alias=AliasChoices("description", "descripcion"))
    image_url: Any = Field(None, validation_alias=AliasChoices("image_url", "imagenUrl"))
    enabled: bool | None = Field(None, validation_alias=AliasChoices("enabled", "habilitado"))


@router.get("")
def list_rewards(engine: EngineDep):
    """Enabled rewards, cheapest first."""
    return {"rewards": [reward_dict(r) for r in catalog_service.list_rewards(engine)]}


@admin_router.get("")
def admin_list_rewards(admin: AdminDep, engine: EngineDep):
    rewards = catalog_service.list_rewards(engine, include_disabled=True)
    return {"rewards": [reward_dict(r) for r in rewards]}


@admin_router.post("", status_code=201)
def create_reward(body: RewardBody, admin: AdminDep, engine: EngineDep):
    fields = body.model_dump()
    fields["enabled"] = fields["enabled"] is not False
    reward = catalog_service.create_reward(engine, actor_id=admin.sub, **fields)
    return {"reward": reward_dict(reward)}


@admin_router.put("/{reward_id}")
def update_reward(reward_id: str, body: RewardBody, admin: AdminDep, engine: EngineDep):
    reward = catalog_service.update_reward(
        engine, reward_id, actor_id=admin.sub, changes=body.model_dump(exclude_unset=True)
    )
    return {"reward": reward_dict(reward)}


@admin_router.delete("/{reward_id}", status_code=204)
def delete_reward(reward_id: str, admin: AdminDep, engine: EngineDep):
    catalog_service.delete_reward(engine, reward_id, actor_id=admin.sub)
    return Response(status_code=204)
