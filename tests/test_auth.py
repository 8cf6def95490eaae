"""
tests/test_auth.py — Accounts, Login & Password Reset
======================================================
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from conftest import FakeMailer, auth_header, make_user, run
from sqlalchemy import select

from lasexta.database.engine import get_session, init_db
from lasexta.database.models import PasswordResetCode, Role, User
from lasexta.errors import (
    AuthenticationError,
    ConflictError,
    EmailDeliveryError,
    ValidationError,
)
from lasexta.services import auth_service

T0 = datetime(2026, 11, 7, 20, 0, tzinfo=UTC)


def _reset_codes(engine, email: str) -> list[PasswordResetCode]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(PasswordResetCode).where(PasswordResetCode.email == email)
        ).all())


# ===========================================================================
# Registration & login
# ===========================================================================
class TestRegistration:
    def test_register_normalizes_email(self, db_engine):
        user = auth_service.register_client(
            db_engine, name=" Ana ", email=" Ana@Example.COM ", password="secret1"
        )
        assert user.email == "ana@example.com"
        assert user.name == "Ana"
        assert user.role == Role.CLIENT
        assert user.points == 0
        assert user.password_hash != "secret1"

    def test_duplicate_email(self, db_engine):
        auth_service.register_client(db_engine, name="Ana", email="ana@example.com", password="secret1")
        with pytest.raises(ConflictError):
            auth_service.register_client(db_engine, name="Ana 2", email="ANA@example.com", password="secret2")

    @pytest.mark.parametrize(
        ("name", "email", "password"),
        [
            ("", "ana@example.com", "secret1"),
            ("Ana", "not-an-email", "secret1"),
            ("Ana", "ana@example.com", "short"),
        ],
    )
    def test_invalid_input(self, db_engine, name, email, password):
        with pytest.raises(ValidationError):
            auth_service.register_client(db_engine, name=name, email=email, password=password)


class TestLogin:
    def test_client_login(self, db_engine):
        make_user(db_engine, email="ana@example.com", password="secret1")
        user = auth_service.authenticate_any(db_engine, "ANA@example.com", "secret1")
        assert user.role == Role.CLIENT

    def test_falls_back_to_admin(self, db_engine):
        make_user(db_engine, email="staff@example.com", role=Role.ADMIN, password="Admin123!")
        user = auth_service.authenticate_any(db_engine, "staff@example.com", "Admin123!")
        assert user.role == Role.ADMIN

    def test_wrong_password(self, db_engine):
        make_user(db_engine, email="ana@example.com", password="secret1")
        with pytest.raises(AuthenticationError):
            auth_service.authenticate_any(db_engine, "ana@example.com", "nope!!")

    def test_admin_login_rejects_client(self, db_engine):
        make_user(db_engine, email="ana@example.com", password="secret1")
        with pytest.raises(AuthenticationError):
            auth_service.authenticate_admin(db_engine, "ana@example.com", "secret1")

    def test_social_account_has_no_password(self, db_engine):
        user = auth_service.social_sign_in(
            db_engine, provider="facebook", social_id="fb-1", email="social@example.com", name=None
        )
        assert user.name == "social"
        with pytest.raises(AuthenticationError):
            auth_service.authenticate_client(db_engine, "social@example.com", "anything")


class TestSocialSignIn:
    def test_same_identity_returns_same_user(self, db_engine):
        first = auth_service.social_sign_in(
            db_engine, provider="instagram", social_id="ig-9", email="ig@example.com", name="Ig"
        )
        second = auth_service.social_sign_in(
            db_engine, provider="Instagram", social_id="ig-9", email="ig@example.com", name="Ig"
        )
        assert first.id == second.id

    def test_links_existing_client_by_email(self, db_engine):
        existing = make_user(db_engine, email="ana@example.com", password="secret1")
        linked = auth_service.social_sign_in(
            db_engine, provider="facebook", social_id="fb-2", email="ana@example.com", name="Ana"
        )
        assert linked.id == existing.id
        assert linked.social_provider == "facebook"

    def test_unknown_provider(self, db_engine):
        with pytest.raises(ValidationError):
            auth_service.social_sign_in(
                db_engine, provider="myspace", social_id="1", email="a@example.com", name="A"
            )


# ===========================================================================
# Password reset
# ===========================================================================
class TestPasswordReset:
    def test_full_flow(self, db_engine, mailer):
        make_user(db_engine, email="ana@example.com", password="secret1")
        run(auth_service.request_password_reset(db_engine, mailer, "ana@example.com", now=T0))
        code = mailer.reset_codes[0]["code"]
        assert len(code) == 6 and code.isdigit()

        assert auth_service.verify_reset_code(db_engine, "ana@example.com", code, now=T0)
        auth_service.reset_password(db_engine, "ana@example.com", code, "newpass1", now=T0)

        assert auth_service.authenticate_client(db_engine, "ana@example.com", "newpass1")
        with pytest.raises(AuthenticationError):
            auth_service.authenticate_client(db_engine, "ana@example.com", "secret1")
        with pytest.raises(ValidationError):
            auth_service.reset_password(db_engine, "ana@example.com", code, "another1", now=T0)

    def test_unknown_email_is_silent(self, db_engine, mailer):
        run(auth_service.request_password_reset(db_engine, mailer, "ghost@example.com", now=T0))
        assert mailer.reset_codes == []
        assert _reset_codes(db_engine, "ghost@example.com") == []

    def test_expired_code(self, db_engine, mailer):
        make_user(db_engine, email="ana@example.com", password="secret1")
        run(auth_service.request_password_reset(db_engine, mailer, "ana@example.com", now=T0))
        code = mailer.reset_codes[0]["code"]
        later = T0 + timedelta(minutes=16)
        assert not auth_service.verify_reset_code(db_engine, "ana@example.com", code, now=later)
        with pytest.raises(ValidationError):
            auth_service.reset_password(db_engine, "ana@example.com", code, "newpass1", now=later)

    def test_reset_purges_other_codes(self, db_engine, mailer):
        make_user(db_engine, email="ana@example.com", password="secret1")
        for minute in range(2):
            run(auth_service.request_password_reset(
                db_engine, mailer, "ana@example.com", now=T0 + timedelta(minutes=minute)
            ))
        latest = mailer.reset_codes[-1]["code"]
        auth_service.reset_password(db_engine, "ana@example.com", latest, "newpass1", now=T0)

        remaining = _reset_codes(db_engine, "ana@example.com")
        assert len(remaining) == 1
        assert remaining[0].used is True

    def test_email_failure_surfaces(self, db_engine):
        make_user(db_engine, email="ana@example.com", password="secret1")
        failing = FakeMailer(fail=EmailDeliveryError("Email could not be sent."))
        with pytest.raises(EmailDeliveryError):
            run(auth_service.request_password_reset(db_engine, failing, "ana@example.com", now=T0))


# ===========================================================================
# Seeding
# ===========================================================================
class TestSeed:
    def test_init_db_seeds_default_accounts_once(self, db_engine):
        init_db(db_engine)
        init_db(db_engine)
        with get_session(db_engine) as session:
            users = session.scalars(select(User).order_by(User.email)).all()
        assert [(u.email, u.role) for u in users] == [
            ("admin@example.com", Role.ADMIN),
            ("cliente-demo@example.com", Role.CLIENT),
        ]
        admin = auth_service.authenticate_any(db_engine, "admin@example.com", "Admin123!")
        assert admin.role == Role.ADMIN


# ===========================================================================
# HTTP flows
# ===========================================================================
class TestAuthRoutes:
    def test_register_login_and_me(self, client):
        resp = client.post(
            "/api/auth/register",
            json={"nombre": "Ana", "email": "ana@example.com", "password": "secret1"},
        )
        assert resp.status_code == 201
        token = resp.json()["token"]

        login = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "secret1"})
        assert login.status_code == 200
        assert login.json()["role"] == "client"

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["user"]["email"] == "ana@example.com"
        assert "password_hash" not in me.json()["user"]

    def test_unified_login_returns_admin_role(self, client, db_engine):
        make_user(db_engine, email="staff@example.com", role=Role.ADMIN, password="Admin123!")
        resp = client.post("/api/auth/login", json={"email": "staff@example.com", "password": "Admin123!"})
        assert resp.status_code == 200
        assert resp.json()["role"] == "admin"

    def test_bad_credentials(self, client):
        resp = client.post("/api/auth/login", json={"email": "x@example.com", "password": "whatever"})
        assert resp.status_code == 401
        assert resp.json() == {"message": "Invalid credentials."}

    def test_admin_login_and_me(self, client, db_engine):
        make_user(db_engine, email="staff@example.com", role=Role.ADMIN, password="Admin123!")
        resp = client.post("/api/admin/login", json={"email": "staff@example.com", "password": "Admin123!"})
        assert resp.status_code == 200
        token = resp.json()["token"]
        me = client.get("/api/admin/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["user"]["role"] == "admin"

    def test_update_profile(self, client, alice):
        resp = client.put("/api/auth/me", json={"nombre": "Alicia"}, headers=auth_header(alice))
        assert resp.status_code == 200
        assert resp.json()["user"]["name"] == "Alicia"

    def test_forgot_password_is_uniform(self, client, alice, mailer):
        known = client.post("/api/auth/forgot-password", json={"email": alice.email})
        unknown = client.post("/api/auth/forgot-password", json={"email": "ghost@example.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()
        assert len(mailer.reset_codes) == 1

    def test_reset_password_route(self, client, db_engine, mailer):
        make_user(db_engine, email="ana@example.com", password="secret1")
        client.post("/api/auth/forgot-password", json={"email": "ana@example.com"})
        code = mailer.reset_codes[0]["code"]

        check = client.post("/api/auth/verify-reset-code", json={"email": "ana@example.com", "codigo": code})
        assert check.json() == {"valid": True}

        resp = client.post(
            "/api/auth/reset-password",
            json={"email": "ana@example.com", "code": code, "newPassword": "newpass1"},
        )
        assert resp.status_code == 200
        login = client.post("/api/auth/login", json={"email": "ana@example.com", "password": "newpass1"})
        assert login.status_code == 200

    def test_social_route(self, client):
        resp = client.post(
            "/api/auth/social",
            json={"provider": "facebook", "socialId": "fb-7", "email": "fb@example.com", "nombre": "Fede"},
        )
        assert resp.status_code == 200
        assert resp.json()["user"]["social_provider"] == "facebook"
