"""Baseline schema: accounts, tickets, points, catalog, notifications

Revision ID: 5e1a7c3b9d20
Revises:
Create Date: 2026-10-19 12:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '5e1a7c3b9d20'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamp(name: str, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable)


def _id() -> sa.Column:
    return sa.Column("id", sa.String(36), primary_key=True)


def upgrade() -> None:
    # --- users ---
    op.create_table(
        "users",
        _id(),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("email", sa.String(254), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=True),
        sa.Column("role", sa.String(16), nullable=False, server_default="client"),
        _timestamp("registered_at"),
        sa.Column("points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("social_provider", sa.String(20), nullable=True),
        sa.Column("social_id", sa.String(100), nullable=True),
        sa.UniqueConstraint("social_provider", "social_id", name="uq_users_social_identity"),
    )

    # --- tickets ---
    op.create_table(
        "tickets",
        _id(),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("code", sa.String(32), nullable=False, unique=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="valid"),
        _timestamp("created_at"),
        sa.Column("issue_seq", sa.Integer, nullable=False, server_default="0"),
        _timestamp("expires_at", nullable=True),
        _timestamp("used_at", nullable=True),
        sa.Column(
            "issued_by", sa.String(36),
            sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True,
        ),
    )
    op.create_index("ix_tickets_user_created", "tickets", ["user_id", "created_at"])
    op.create_index("ix_tickets_status", "tickets", ["status"])

    # --- points_transactions ---
    op.create_table(
        "points_transactions",
        _id(),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("amount", sa.Integer, nullable=False),
        sa.Column("description", sa.String(255), nullable=False, server_default=""),
        _timestamp("created_at"),
        sa.Column("processed_by", sa.String(36), nullable=True),
        sa.Column("load_day", sa.Date, nullable=True),
        # One load per user per local day; NULL load_day rows never collide.
        sa.UniqueConstraint("user_id", "load_day", name="uq_points_daily_load"),
    )
    op.create_index(
        "ix_points_transactions_user_created", "points_transactions",
        ["user_id", "created_at"],
    )

    # --- redeem_codes ---
    op.create_table(
        "redeem_codes",
        _id(),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("code", sa.String(32), nullable=False, unique=True),
        sa.Column("points", sa.Integer, nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        _timestamp("created_at"),
        _timestamp("expires_at"),
        _timestamp("used_at", nullable=True),
    )
    op.create_index("ix_redeem_codes_user_status", "redeem_codes", ["user_id", "status"])

    # --- password_reset_codes ---
    op.create_table(
        "password_reset_codes",
        _id(),
        sa.Column("email", sa.String(254), nullable=False),
        sa.Column("code", sa.String(6), nullable=False),
        _timestamp("expires_at"),
        sa.Column("used", sa.Boolean, nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
    )
    op.create_index("ix_password_reset_codes_email", "password_reset_codes", ["email"])

    # --- events ---
    op.create_table(
        "events",
        _id(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("date", sa.String(20), nullable=False),
        sa.Column("time", sa.String(20), nullable=False),
        sa.Column("day", sa.String(20), nullable=False),
        sa.Column("location", sa.String(200), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("background_image", sa.String(500), nullable=True),
        sa.Column("purchase_link", sa.String(500), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    # --- benefits ---
    op.create_table(
        "benefits",
        _id(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("short_description", sa.String(300), nullable=False),
        sa.Column("full_description", sa.Text, nullable=False),
        sa.Column("logo_url", sa.String(500), nullable=False),
        sa.Column("sponsor_name", sa.String(200), nullable=False),
        sa.Column("active", sa.Boolean, nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    # --- rewards ---
    op.create_table(
        "rewards",
        _id(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("required_points", sa.Integer, nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("image_url", sa.String(500), nullable=True),
        sa.Column("enabled", sa.Boolean, nullable=False, server_default=sa.true()),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    # --- notifications ---
    op.create_table(
        "notifications",
        _id(),
        sa.Column(
            "user_id", sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("category", sa.String(16), nullable=False),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("message", sa.Text, nullable=False),
        sa.Column("read", sa.Boolean, nullable=False, server_default=sa.false()),
        _timestamp("created_at"),
        sa.Column("metadata", sa.JSON, nullable=False),
    )
    op.create_index(
        "ix_notifications_user_created", "notifications", ["user_id", "created_at"]
    )

    # --- admin_log ---
    op.create_table(
        "admin_log",
        _id(),
        sa.Column("actor_id", sa.String(36), nullable=True),
        sa.Column("action_type", sa.String(16), nullable=False),
        sa.Column("target_table", sa.String(40), nullable=False),
        sa.Column("target_id", sa.String(36), nullable=True),
        sa.Column("before_snapshot", sa.JSON, nullable=True),
        sa.Column("after_snapshot", sa.JSON, nullable=True),
        _timestamp("created_at"),
    )
    op.create_index("ix_admin_log_created", "admin_log", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_admin_log_created", table_name="admin_log")
    op.drop_table("admin_log")
    op.drop_index("ix_notifications_user_created", table_name="notifications")
    op.drop_table("notifications")
    op.drop_table("rewards")
    op.drop_table("benefits")
    op.drop_table("events")
    op.drop_index("ix_password_reset_codes_email", table_name="password_reset_codes")
    op.drop_table("password_reset_codes")
    op.drop_index("ix_redeem_codes_user_status", table_name="redeem_codes")
    op.drop_table("redeem_codes")
    op.drop_index("ix_points_transactions_user_created", table_name="points_transactions")
    op.drop_table("points_transactions")
    op.drop_index("ix_tickets_status", table_name="tickets")
    op.drop_index("ix_tickets_user_created", table_name="tickets")
    op.drop_table("tickets")
    op.drop_table("users")
