"""
lasexta.services.catalog_service — Events, Benefits & Rewards
==============================================================

Admin-managed catalog.  Every write follows the same pattern:

  1. Begin transaction
  2. Read "before" snapshot
  3. Apply change
  4. Write admin_log with before/after JSON
  5. Commit

Input rules shared by all three entities: required text fields are trimmed
and must not be blank; optional text fields collapse to their default (or
``None``) when blank.  Pushing event changes to live stream listeners is
the caller's job (see :mod:`lasexta.services.event_stream`).
"""

from __future__ import annotations

import datetime as dt
import enum
import logging
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from lasexta.database.engine import get_session
from lasexta.database.models import AdminLog, Benefit, Event, Reward
from lasexta.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_EVENT_LOCATION = "LA SEXTA"
DEFAULT_EVENT_BACKGROUND = "/card1.jpeg"

EVENT_TABLE = "events"
BENEFIT_TABLE = "benefits"
REWARD_TABLE = "rewards"


# ---------------------------------------------------------------------------
# Field validation
# ---------------------------------------------------------------------------
def _required_text(value: Any, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Field '{field}' is required.")
    return value.strip()


def _optional_text(value: Any, default: str | None = None) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _required_points(value: Any) -> int:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError("Field 'required_points' must be a whole number greater than 0.")
    return value


# ---------------------------------------------------------------------------
# Generic audit helpers
# ---------------------------------------------------------------------------
def _row_to_dict(obj: Any) -> dict | None:
    """Convert a SQLAlchemy model instance to a JSON-serializable dict."""
    if obj is None:
        return None
    result = {}
    for col in obj.__table__.columns:
        val = getattr(obj, col.key, None)
        if isinstance(val, (dt.datetime, dt.date)):
            val = val.isoformat()
        elif isinstance(val, enum.Enum):
            val = val.value
        result[col.name] = val
    return result


def _log_admin_action(
    session: Session,
    *,
    actor_id: str | None,
    action_type: str,
    target_table: str,
    target_id: str | None,
    before: dict | None,
    after: dict | None,
) -> None:
    """Insert a row into admin_log within the current transaction."""
    session.add(AdminLog(
        actor_id=actor_id,
        action_type=action_type,
        target_table=target_table,
        target_id=target_id,
        before_snapshot=before,
        after_snapshot=after,
    ))


def _audited_create(engine: Engine, row: Any, *, table_name: str, actor_id: str | None) -> Any:
    """Generic audited CREATE: add -> flush -> log -> commit -> return."""
    with get_session(engine) as session:
        session.add(row)
        session.flush()
        _log_admin_action(
            session,
            actor_id=actor_id,
            action_type="CREATE",
            target_table=table_name,
            target_id=row.id,
            before=None,
            after=_row_to_dict(row),
        )
    return row


def _audited_update(
    engine: Engine,
    model_cls: type,
    pk: str,
    *,
    table_name: str,
    actor_id: str | None,
    changes: dict[str, Any],
    frozen_keys: tuple[str, ...] = ("id", "created_at", "updated_at"),
) -> Any | None:
    """Generic audited UPDATE: get -> before -> apply changes -> log -> commit.

    Returns the updated object, or ``None`` if not found.
    """
    with get_session(engine) as session:
        obj = session.get(model_cls, pk)
        if obj is None:
            return None
        before = _row_to_dict(obj)
        for key, value in changes.items():
            if hasattr(obj, key) and key not in frozen_keys:
                setattr(obj, key, value)
        session.flush()
        _log_admin_action(
            session,
            actor_id=actor_id,
            action_type="UPDATE",
            target_table=table_name,
            target_id=obj.id,
            before=before,
            after=_row_to_dict(obj),
        )
    return obj


def _audited_delete(
    engine: Engine,
    model_cls: type,
    pk: str,
    *,
    table_name: str,
    actor_id: str | None,
) -> bool:
    """Generic audited DELETE: get -> log -> delete -> commit.

    Returns ``True`` if the row existed and was deleted.
    """
    with get_session(engine) as session:
        obj = session.get(model_cls, pk)
        if obj is None:
            return False
        _log_admin_action(
            session,
            actor_id=actor_id,
            action_type="DELETE",
            target_table=table_name,
            target_id=obj.id,
            before=_row_to_dict(obj),
            after=None,
        )
        session.delete(obj)
    return True


def _not_found(label: str):
    return NotFoundError(f"{label} not found.")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
def list_events(engine: Engine) -> list[Event]:
    """Agenda order: date, then time, then newest first."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(Event).order_by(Event.date, Event.time, Event.created_at.desc())
        ).all())


def create_event(
    engine: Engine,
    *,
    actor_id: str | None,
    title: Any,
    date: Any,
    time: Any,
    day: Any,
    location: Any = None,
    description: Any = None,
    background_image: Any = None,
    purchase_link: Any = None,
    default_location: str = DEFAULT_EVENT_LOCATION,
    default_background: str = DEFAULT_EVENT_BACKGROUND,
) -> Event:
    event = Event(
        title=_required_text(title, "title"),
        date=_required_text(date, "date"),
        time=_required_text(time, "time"),
        day=_required_text(day, "day"),
        location=_optional_text(location, default_location),
        description=_optional_text(description),
        background_image=_optional_text(background_image, default_background),
        purchase_link=_optional_text(purchase_link),
    )
    event = _audited_create(engine, event, table_name=EVENT_TABLE, actor_id=actor_id)
    logger.info("Event %s created: %s", event.id, event.title)
    return event


def update_event(
    engine: Engine,
    event_id: str,
    *,
    actor_id: str | None,
    changes: dict[str, Any],
    default_location: str = DEFAULT_EVENT_LOCATION,
    default_background: str = DEFAULT_EVENT_BACKGROUND,
) -> Event:
    """Apply only the keys present in *changes*."""
    clean: dict[str, Any] = {}
    for field in ("title", "date", "time", "day"):
        if field in changes:
            clean[field] = _required_text(changes[field], field)
    if "location" in changes:
        clean["location"] = _optional_text(changes["location"], default_location)
    if "background_image" in changes:
        clean["background_image"] = _optional_text(changes["background_image"], default_background)
    for field in ("description", "purchase_link"):
        if field in changes:
            clean[field] = _optional_text(changes[field])

    event = _audited_update(
        engine, Event, event_id, table_name=EVENT_TABLE, actor_id=actor_id, changes=clean
    )
    if event is None:
        raise _not_found("Event")
    return event


def delete_event(engine: Engine, event_id: str, *, actor_id: str | None) -> None:
    if not _audited_delete(engine, Event, event_id, table_name=EVENT_TABLE, actor_id=actor_id):
        raise _not_found("Event")
    logger.info("Event %s deleted", event_id)


# ---------------------------------------------------------------------------
# Benefits
# ---------------------------------------------------------------------------
_BENEFIT_TEXT = ("title", "short_description", "full_description", "logo_url", "sponsor_name")


def list_benefits(engine: Engine, include_inactive: bool = False) -> list[Benefit]:
    stmt = select(Benefit)
    if not include_inactive:
        stmt = stmt.where(Benefit.active.is_(True))
    with get_session(engine) as session:
        return list(session.scalars(stmt.order_by(Benefit.created_at.desc())).all())


def create_benefit(
    engine: Engine,
    *,
    actor_id: str | None,
    title: Any,
    short_description: Any,
    full_description: Any,
    logo_url: Any,
    sponsor_name: Any,
    active: Any = True,
) -> Benefit:
    benefit = Benefit(
        title=_required_text(title, "title"),
        short_description=_required_text(short_description, "short_description"),
        full_description=_required_text(full_description, "full_description"),
        logo_url=_required_text(logo_url, "logo_url"),
        sponsor_name=_required_text(sponsor_name, "sponsor_name"),
        active=active is not False,
    )
    return _audited_create(engine, benefit, table_name=BENEFIT_TABLE, actor_id=actor_id)


def update_benefit(
    engine: Engine,
    benefit_id: str,
    *,
    actor_id: str | None,
    changes: dict[str, Any],
) -> Benefit:
    clean: dict[str, Any] = {
        field: _required_text(changes[field], field)
        for field in _BENEFIT_TEXT
        if field in changes
    }
    if changes.get("active") is not None:
        clean["active"] = bool(changes["active"])

    benefit = _audited_update(
        engine, Benefit, benefit_id, table_name=BENEFIT_TABLE, actor_id=actor_id, changes=clean
    )
    if benefit is None:
        raise _not_found("Benefit")
    return benefit


def delete_benefit(engine: Engine, benefit_id: str, *, actor_id: str | None) -> None:
    if not _audited_delete(engine, Benefit, benefit_id, table_name=BENEFIT_TABLE, actor_id=actor_id):
        raise _not_found("Benefit")


# ---------------------------------------------------------------------------
# Rewards
# ---------------------------------------------------------------------------
def list_rewards(engine: Engine, include_disabled: bool = False) -> list[Reward]:
    """Cheapest first, then newest."""
    stmt = select(Reward)
    if not include_disabled:
        stmt = stmt.where(Reward.enabled.is_(True))
    with get_session(engine) as session:
        return list(session.scalars(
            stmt.order_by(Reward.required_points, Reward.created_at.desc())
        ).all())


def create_reward(
    engine: Engine,
    *,
    actor_id: str | None,
    name: Any,
    required_points: Any,
    description: Any,
    image_url: Any = None,
    enabled: Any = True,
) -> Reward:
    reward = Reward(
        name=_required_text(name, "name"),
        required_points=_required_points(required_points),
        description=_required_text(description, "description"),
        image_url=_optional_text(image_url),
        enabled=enabled is not False,
    )
    return _audited_create(engine, reward, table_name=REWARD_TABLE, actor_id=actor_id)


def update_reward(
    engine: Engine,
    reward_id: str,
    *,
    actor_id: str | None,
    changes: dict[str, Any],
) -> Reward:
    clean: dict[str, Any] = {}
    for field in ("name", "description"):
        if field in changes:
            clean[field] = _required_text(changes[field], field)
    if "required_points" in changes:
        clean["required_points"] = _required_points(changes["required_points"])
    if "image_url" in changes:
        clean["image_url"] = _optional_text(changes["image_url"])
    if changes.get("enabled") is not None:
        clean["enabled"] = bool(changes["enabled"])

    reward = _audited_update(
        engine, Reward, reward_id, table_name=REWARD_TABLE, actor_id=actor_id, changes=clean
    )
    if reward is None:
        raise _not_found("Reward")
    return reward


def delete_reward(engine: Engine, reward_id: str, *, actor_id: str | None) -> None:
    if not _audited_delete(engine, Reward, reward_id, table_name=REWARD_TABLE, actor_id=actor_id):
        raise _not_found("Reward")


# ---------------------------------------------------------------------------
# Audit trail
# ---------------------------------------------------------------------------
def list_admin_log(engine: Engine, limit: int = 100) -> list[AdminLog]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(AdminLog).order_by(AdminLog.created_at.desc()).limit(limit)
        ).all())
