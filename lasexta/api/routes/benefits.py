"""
lasexta.api.routes.benefits — Sponsor benefits (public list + admin CRUD)
==========================================================================
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Response
from pydantic import AliasChoices, BaseModel, Field

from lasexta.api.deps import AdminDep, EngineDep
from lasexta.api.serializers import benefit_dict
from lasexta.services import catalog_service

router = APIRouter(prefix="/benefits", tags=["benefits"])
admin_router = APIRouter(prefix="/admin/benefits", tags=["admin"])


class BenefitBody(BaseModel):
    title: Any = Field(None, validation_alias=AliasChoices("title", "titulo"))
    short_description: Any = Field(
        None, validation_alias=AliasChoices("short_description", "descripcionCorta")
    )
    full_description: Any = Field(
        None, validation_alias=AliasChoices("full_description", "descripcionCompleta")
    )
    logo_url: Any = Field(None, validation_alias=AliasChoices("logo_url", "logoUrl"))
    sponsor_name: Any = Field(
        None, validation_alias=AliasChoices("sponsor_name", "nombreAuspiciante")
    )
    active: bool | None = Field(None, validation_alias=AliasChoices("active", "activo"))


@router.get("")
def list_benefits(engine: EngineDep):
    """Active benefits only."""
    return {"benefits": [benefit_dict(b) for b in catalog_service.list_benefits(engine)]}


@admin_router.get("")
def admin_list_benefits(admin: AdminDep, engine: EngineDep):
    benefits = catalog_service.list_benefits(engine, include_inactive=True)
    return {"benefits": [benefit_dict(b) for b in benefits]}


@admin_router.post("", status_code=201)
def create_benefit(body: BenefitBody, admin: AdminDep, engine: EngineDep):
    fields = body.model_dump()
    fields["active"] = fields["active"] is not False
    benefit = catalog_service.create_benefit(engine, actor_id=admin.sub, **fields)
    return {"benefit": benefit_dict(benefit)}


@admin_router.put("/{benefit_id}")
def update_benefit(benefit_id: str, body: BenefitBody, admin: AdminDep, engine: EngineDep):
    benefit = catalog_service.update_benefit(
        engine, benefit_id, actor_id=admin.sub, changes=body.model_dump(exclude_unset=True)
    )
    return {"benefit": benefit_dict(benefit)}


@admin_router.delete("/{benefit_id}", status_code=204)
def delete_benefit(benefit_id: str, admin: AdminDep, engine: EngineDep):
    catalog_service.delete_benefit(engine, benefit_id, actor_id=admin.sub)
    return Response(status_code=204)
