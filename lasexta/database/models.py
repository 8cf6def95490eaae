"""
lasexta.database.models — SQLAlchemy 2.0 Data Models
=====================================================

One table per entity family:

- users                — Clients and administrators, with point balance
- tickets              — QR-coded drink vouchers (at most 2 kept per user)
- points_transactions  — Append-only ledger of point loads and redemptions
- redeem_codes         — Short-lived codes a client shows to redeem points
- password_reset_codes — 6-digit codes for the forgot-password flow
- events               — Venue agenda, streamed live to clients
- benefits             — Sponsor benefits
- rewards              — Rewards purchasable with points
- notifications        — In-app notification outbox
- admin_log            — Before/after snapshots of admin catalog edits
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def new_id() -> str:
    """Opaque primary key for every table."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all La Sexta ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Role(enum.StrEnum):
    ADMIN = "admin"
    CLIENT = "client"


class TicketStatus(enum.StrEnum):
    VALID = "valid"
    USED = "used"
    EXPIRED = "expired"


class RedeemCodeStatus(enum.StrEnum):
    PENDING = "pending"
    USED = "used"
    EXPIRED = "expired"


class TransactionType(enum.StrEnum):
    """Direction of a ledger row. Amounts are always positive."""
    LOAD = "load"
    REDEEM = "redeem"


class NotificationCategory(enum.StrEnum):
    EVENT = "event"
    TICKET = "ticket"
    POINTS = "points"


def _enum_column(enum_cls: type[enum.Enum], name: str) -> Enum:
    # Stored as plain strings so the same schema works on SQLite and PG.
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        length=16,
        values_callable=lambda members: [m.value for m in members],
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    email: Mapped[str] = mapped_column(String(254), nullable=False, unique=True)
    password_hash: Mapped[str | None] = mapped_column(String(255), default=None)
    role: Mapped[Role] = mapped_column(
        _enum_column(Role, "user_role"), nullable=False, default=Role.CLIENT
    )
    registered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    social_provider: Mapped[str | None] = mapped_column(String(20), default=None)
    social_id: Mapped[str | None] = mapped_column(String(100), default=None)

    tickets: Mapped[list[Ticket]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="Ticket.user_id",
    )

    __table_args__ = (
        UniqueConstraint("social_provider", "social_id", name="uq_users_social_identity"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"


# ---------------------------------------------------------------------------
# Tickets
# ---------------------------------------------------------------------------
class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    status: Mapped[TicketStatus] = mapped_column(
        _enum_column(TicketStatus, "ticket_status"),
        nullable=False,
        default=TicketStatus.VALID,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    # Per-user issue counter; orders tickets that share a created_at.
    issue_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)
    # Admin who issued the ticket, overwritten by the admin who redeemed it.
    issued_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="SET NULL"), default=None
    )

    user: Mapped[User] = relationship(back_populates="tickets", foreign_keys=[user_id])

    __table_args__ = (
        Index("ix_tickets_user_created", "user_id", "created_at"),
        Index("ix_tickets_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Ticket id={self.id} code={self.code!r} status={self.status}>"


# ---------------------------------------------------------------------------
# PointsTransaction — append-only ledger
# ---------------------------------------------------------------------------
class PointsTransaction(Base):
    __tablename__ = "points_transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[TransactionType] = mapped_column(
        _enum_column(TransactionType, "transaction_type"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    processed_by: Mapped[str | None] = mapped_column(String(36), default=None)
    # Local calendar day of a load; NULL for redemptions.
    load_day: Mapped[date | None] = mapped_column(Date, default=None)

    __table_args__ = (
        UniqueConstraint("user_id", "load_day", name="uq_points_daily_load"),
        Index("ix_points_transactions_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<PointsTransaction user={self.user_id} {self.type} {self.amount}>"


# ---------------------------------------------------------------------------
# RedeemCode
# ---------------------------------------------------------------------------
class RedeemCode(Base):
    __tablename__ = "redeem_codes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    code: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[RedeemCodeStatus] = mapped_column(
        _enum_column(RedeemCodeStatus, "redeem_code_status"),
        nullable=False,
        default=RedeemCodeStatus.PENDING,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    __table_args__ = (
        Index("ix_redeem_codes_user_status", "user_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<RedeemCode code={self.code!r} points={self.points} status={self.status}>"


# ---------------------------------------------------------------------------
# PasswordResetCode
# ---------------------------------------------------------------------------
class PasswordResetCode(Base):
    __tablename__ = "password_reset_codes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    email: Mapped[str] = mapped_column(String(254), nullable=False, index=True)
    code: Mapped[str] = mapped_column(String(6), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )


# ---------------------------------------------------------------------------
# Catalog — events, benefits, rewards
# ---------------------------------------------------------------------------
class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    date: Mapped[str] = mapped_column(String(20), nullable=False)  # as entered, e.g. 2026-11-07
    time: Mapped[str] = mapped_column(String(20), nullable=False)
    day: Mapped[str] = mapped_column(String(20), nullable=False)
    location: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    background_image: Mapped[str | None] = mapped_column(String(500), default=None)
    purchase_link: Mapped[str | None] = mapped_column(String(500), default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<Event id={self.id} title={self.title!r}>"


class Benefit(Base):
    __tablename__ = "benefits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    short_description: Mapped[str] = mapped_column(String(300), nullable=False)
    full_description: Mapped[str] = mapped_column(Text, nullable=False)
    logo_url: Mapped[str] = mapped_column(String(500), nullable=False)
    sponsor_name: Mapped[str] = mapped_column(String(200), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class Reward(Base):
    __tablename__ = "rewards"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    required_points: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(500), default=None)
    enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------
class Notification(Base):
    __tablename__ = "notifications"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    category: Mapped[NotificationCategory] = mapped_column(
        _enum_column(NotificationCategory, "notification_category"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    metadata_: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )


# ---------------------------------------------------------------------------
# AdminLog — audit trail for catalog mutations
# ---------------------------------------------------------------------------
class AdminLog(Base):
    __tablename__ = "admin_log"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    actor_id: Mapped[str | None] = mapped_column(String(36), default=None)
    action_type: Mapped[str] = mapped_column(String(16), nullable=False)  # CREATE / UPDATE / DELETE
    target_table: Mapped[str] = mapped_column(String(40), nullable=False)
    target_id: Mapped[str | None] = mapped_column(String(36), default=None)
    before_snapshot: Mapped[dict | None] = mapped_column(JSON, default=None)
    after_snapshot: Mapped[dict | None] = mapped_column(JSON, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_admin_log_created", "created_at"),
    )
