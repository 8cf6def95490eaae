"""
tests/test_catalog.py — Benefits, Rewards & the Admin Audit Trail
==================================================================
"""

from __future__ import annotations

import pytest
from conftest import auth_header

from lasexta.errors import NotFoundError, ValidationError
from lasexta.services import catalog_service

BENEFIT = {
    "title": "2x1 en pizzas",
    "short_description": "Todos los jueves",
    "full_description": "Presentando la app en caja.",
    "logo_url": "https://example.com/logo.png",
    "sponsor_name": "Pizzería Roma",
}


class TestBenefitService:
    def test_inactive_benefits_are_hidden_publicly(self, db_engine):
        shown = catalog_service.create_benefit(db_engine, actor_id="a1", **BENEFIT)
        catalog_service.create_benefit(db_engine, actor_id="a1", **{**BENEFIT, "title": "Oculto"}, active=False)

        assert [b.id for b in catalog_service.list_benefits(db_engine)] == [shown.id]
        assert len(catalog_service.list_benefits(db_engine, include_inactive=True)) == 2

    def test_required_fields(self, db_engine):
        with pytest.raises(ValidationError):
            catalog_service.create_benefit(db_engine, actor_id="a1", **{**BENEFIT, "sponsor_name": " "})

    def test_update_and_delete(self, db_engine):
        benefit = catalog_service.create_benefit(db_engine, actor_id="a1", **BENEFIT)
        updated = catalog_service.update_benefit(
            db_engine, benefit.id, actor_id="a1", changes={"active": False, "title": "Nuevo"}
        )
        assert updated.active is False
        assert updated.title == "Nuevo"

        catalog_service.delete_benefit(db_engine, benefit.id, actor_id="a1")
        with pytest.raises(NotFoundError):
            catalog_service.delete_benefit(db_engine, benefit.id, actor_id="a1")


class TestRewardService:
    def test_cheapest_first_and_enabled_only(self, db_engine):
        catalog_service.create_reward(db_engine, actor_id="a1", name="Remera", required_points=80, description="Talle M")
        catalog_service.create_reward(db_engine, actor_id="a1", name="Trago", required_points=25, description="Cualquiera")
        catalog_service.create_reward(
            db_engine, actor_id="a1", name="VIP", required_points=10, description="Pase", enabled=False
        )
        names = [r.name for r in catalog_service.list_rewards(db_engine)]
        assert names == ["Trago", "Remera"]

    @pytest.mark.parametrize("points", [0, -5, "10", True, 25.7, 0.5])
    def test_required_points_must_be_positive_whole_number(self, db_engine, points):
        with pytest.raises(ValidationError):
            catalog_service.create_reward(
                db_engine, actor_id="a1", name="X", required_points=points, description="Y"
            )

    def test_integral_float_points_are_accepted(self, db_engine):
        reward = catalog_service.create_reward(
            db_engine, actor_id="a1", name="Trago", required_points=25.0, description="Y"
        )
        assert reward.required_points == 25
        assert isinstance(reward.required_points, int)

        with pytest.raises(ValidationError):
            catalog_service.update_reward(
                db_engine, reward.id, actor_id="a1", changes={"required_points": 25.7}
            )

    def test_update_missing(self, db_engine):
        with pytest.raises(NotFoundError):
            catalog_service.update_reward(db_engine, "missing", actor_id="a1", changes={"name": "Z"})


class TestAuditTrail:
    def test_every_mutation_is_logged(self, db_engine):
        reward = catalog_service.create_reward(
            db_engine, actor_id="a1", name="Trago", required_points=25, description="Cualquiera"
        )
        catalog_service.update_reward(db_engine, reward.id, actor_id="a2", changes={"required_points": 30})
        catalog_service.delete_reward(db_engine, reward.id, actor_id="a3")

        entries = catalog_service.list_admin_log(db_engine)
        by_action = {e.action_type: e for e in entries}
        assert set(by_action) == {"CREATE", "UPDATE", "DELETE"}

        assert by_action["CREATE"].before_snapshot is None
        assert by_action["CREATE"].after_snapshot["required_points"] == 25
        assert by_action["UPDATE"].before_snapshot["required_points"] == 25
        assert by_action["UPDATE"].after_snapshot["required_points"] == 30
        assert by_action["UPDATE"].actor_id == "a2"
        assert by_action["DELETE"].after_snapshot is None
        assert all(e.target_table == "rewards" and e.target_id == reward.id for e in entries)

    def test_failed_mutation_is_not_logged(self, db_engine):
        with pytest.raises(ValidationError):
            catalog_service.create_event(
                db_engine, actor_id="a1", title="", date="2026-11-07", time="23:00", day="Sábado"
            )
        assert catalog_service.list_admin_log(db_engine) == []


class TestCatalogRoutes:
    def test_benefit_crud(self, client, admin_user):
        headers = auth_header(admin_user)
        created = client.post(
            "/api/admin/benefits",
            json={
                "titulo": "2x1 en pizzas",
                "descripcionCorta": "Jueves",
                "descripcionCompleta": "Presentando la app.",
                "logoUrl": "https://example.com/logo.png",
                "nombreAuspiciante": "Pizzería Roma",
            },
            headers=headers,
        )
        assert created.status_code == 201
        benefit_id = created.json()["benefit"]["id"]

        assert len(client.get("/api/benefits").json()["benefits"]) == 1

        client.put(f"/api/admin/benefits/{benefit_id}", json={"activo": False}, headers=headers)
        assert client.get("/api/benefits").json()["benefits"] == []
        assert len(client.get("/api/admin/benefits", headers=headers).json()["benefits"]) == 1

        assert client.delete(f"/api/admin/benefits/{benefit_id}", headers=headers).status_code == 204

    def test_fractional_reward_points_rejected(self, client, admin_user):
        resp = client.post(
            "/api/admin/rewards",
            json={"nombre": "Trago", "puntosRequeridos": 25.7, "descripcion": "Cualquiera"},
            headers=auth_header(admin_user),
        )
        assert resp.status_code == 400
        assert "whole number" in resp.json()["message"]

    def test_reward_crud(self, client, admin_user):
        headers = auth_header(admin_user)
        created = client.post(
            "/api/admin/rewards",
            json={"nombre": "Trago", "puntosRequeridos": 25, "descripcion": "Cualquiera"},
            headers=headers,
        )
        assert created.status_code == 201
        reward = created.json()["reward"]
        assert reward["required_points"] == 25
        assert reward["enabled"] is True

        bad = client.put(
            f"/api/admin/rewards/{reward['id']}", json={"puntosRequeridos": 0}, headers=headers
        )
        assert bad.status_code == 400

        rewards = client.get("/api/rewards").json()["rewards"]
        assert [r["name"] for r in rewards] == ["Trago"]

    def test_audit_endpoint(self, client, admin_user, alice):
        headers = auth_header(admin_user)
        client.post(
            "/api/admin/rewards",
            json={"name": "Trago", "required_points": 25, "description": "Cualquiera"},
            headers=headers,
        )
        entries = client.get("/api/admin/audit", headers=headers).json()["entries"]
        assert entries[0]["action_type"] == "CREATE"
        assert entries[0]["actor_id"] == admin_user.id
        assert client.get("/api/admin/audit", headers=auth_header(alice)).status_code == 403
