"""
lasexta.api.auth — Client accounts, unified login & password reset
===================================================================
"""

from __future__ import annotations

from fastapi import APIRouter
from pydantic import AliasChoices, BaseModel, Field

from lasexta.api.deps import (
    JWT_SECRET,
    ClientDep,
    ConfigDep,
    EngineDep,
    MailerDep,
)
from lasexta.api.serializers import user_dict
from lasexta.database.models import Role
from lasexta.services import auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class RegisterBody(BaseModel):
    email: str | None = None
    password: str | None = None
    name: str | None = Field(None, validation_alias=AliasChoices("name", "nombre"))


class LoginBody(BaseModel):
    email: str | None = None
    password: str | None = None


class SocialBody(BaseModel):
    provider: str | None = None
    social_id: str | None = Field(None, validation_alias=AliasChoices("social_id", "socialId"))
    email: str | None = None
    name: str | None = Field(None, validation_alias=AliasChoices("name", "nombre"))
    access_token: str | None = Field(
        None, validation_alias=AliasChoices("access_token", "accessToken")
    )


class ProfileUpdate(BaseModel):
    name: str | None = Field(None, validation_alias=AliasChoices("name", "nombre"))
    email: str | None = None


class ForgotPasswordBody(BaseModel):
    email: str | None = None


class ResetCodeBody(BaseModel):
    email: str | None = None
    code: str | None = Field(None, validation_alias=AliasChoices("code", "codigo"))


class ResetPasswordBody(ResetCodeBody):
    new_password: str | None = Field(
        None, validation_alias=AliasChoices("new_password", "newPassword")
    )


# ---------------------------------------------------------------------------
# Registration & login
# ---------------------------------------------------------------------------
@router.post("/register", status_code=201)
def register(body: RegisterBody, engine: EngineDep, cfg: ConfigDep):
    user = auth_service.register_client(
        engine, name=body.name, email=body.email, password=body.password
    )
    token = auth_service.session_token(user, JWT_SECRET, ttl_hours=cfg.session_ttl_hours)
    return {"user": user_dict(user), "token": token}


@router.post("/login")
def login(body: LoginBody, engine: EngineDep, cfg: ConfigDep):
    """Single login form for both roles: client first, then admin."""
    user = auth_service.authenticate_any(engine, body.email, body.password)
    token = auth_service.session_token(user, JWT_SECRET, ttl_hours=cfg.session_ttl_hours)
    return {"user": user_dict(user), "token": token, "role": user.role.value}


@router.post("/social")
def social_login(body: SocialBody, engine: EngineDep, cfg: ConfigDep):
    user = auth_service.social_sign_in(
        engine,
        provider=body.provider,
        social_id=body.social_id,
        email=body.email,
        name=body.name,
    )
    token = auth_service.session_token(user, JWT_SECRET, ttl_hours=cfg.session_ttl_hours)
    return {"user": user_dict(user), "token": token, "role": user.role.value}


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------
@router.get("/me")
def me(client: ClientDep, engine: EngineDep):
    user = auth_service.get_profile(engine, client.sub, role=Role.CLIENT)
    return {"user": user_dict(user)}


@router.put("/me")
def update_me(body: ProfileUpdate, client: ClientDep, engine: EngineDep):
    user = auth_service.update_profile(engine, client.sub, name=body.name, email=body.email)
    return {"user": user_dict(user)}


# ---------------------------------------------------------------------------
# Password reset
# ---------------------------------------------------------------------------
@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordBody,
    engine: EngineDep,
    mailer: MailerDep,
    cfg: ConfigDep,
):
    await auth_service.request_password_reset(
        engine, mailer, body.email, ttl_minutes=cfg.reset_code_ttl_minutes
    )
    # Same answer whether or not the email exists.
    return {"message": "If the email is registered, a reset code was sent."}


@router.post("/verify-reset-code")
def verify_reset_code(body: ResetCodeBody, engine: EngineDep):
    return {"valid": auth_service.verify_reset_code(engine, body.email, body.code)}


@router.post("/reset-password")
def reset_password(body: ResetPasswordBody, engine: EngineDep):
    auth_service.reset_password(engine, body.email, body.code, body.new_password)
    return {"message": "Password updated."}
