"""
lasexta.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` for the venue's business tuning (ticket validity,
redeem thresholds, code lifetimes, stream keep-alive).  Secrets and
connection strings (``DATABASE_URL``, ``JWT_SECRET``, ``SMTP_*``) are *not*
here; they come from the environment / ``.env``.

Usage::

    from lasexta.config import load_config

    cfg = load_config()              # reads ./config.yaml (or $LASEXTA_CONFIG)
    print(cfg.venue_name)            # "La Sexta"
    print(cfg.min_points_to_redeem)  # 25
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path

import yaml


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LaSextaConfig:
    """Immutable configuration loaded from ``config.yaml``.

    Every field has a default, so a config file only needs the keys it
    wants to override.
    """

    # Identity
    venue_name: str = "La Sexta"

    # Tickets
    ticket_validity_days: int = 7
    ticket_retention: int = 2  # Tickets kept per user; older ones are purged

    # Points
    min_points_to_redeem: int = 25
    redeem_code_ttl_minutes: int = 15

    # Accounts
    reset_code_ttl_minutes: int = 15
    session_ttl_hours: int = 8

    # Events
    stream_keepalive_seconds: float = 25.0
    default_event_location: str = "LA SEXTA"
    default_event_background: str = "/card1.jpeg"

    # Listing caps for movements / notifications
    history_limit: int = 50


_INT_FIELDS = frozenset({
    "ticket_validity_days",
    "ticket_retention",
    "min_points_to_redeem",
    "redeem_code_ttl_minutes",
    "reset_code_ttl_minutes",
    "session_ttl_hours",
    "history_limit",
})


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def default_config_path() -> Path:
    return Path(os.getenv("LASEXTA_CONFIG", "config.yaml"))


def load_config(path: str | Path | None = None) -> LaSextaConfig:
    """Read *path* and return a :class:`LaSextaConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to
        ``$LASEXTA_CONFIG`` or ``config.yaml`` in the working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a numeric setting is not positive.
    """
    config_path = Path(path) if path is not None else default_config_path()
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    values: dict[str, object] = {}
    for f in fields(LaSextaConfig):
        if raw.get(f.name) is None:
            continue
        value = raw[f.name]
        if f.name in _INT_FIELDS:
            value = int(value)
        elif f.name == "stream_keepalive_seconds":
            value = float(value)
        else:
            value = str(value)
        if isinstance(value, (int, float)) and value <= 0:
            raise ValueError(f"Config key '{f.name}' must be positive (got {value}).")
        values[f.name] = value

    return LaSextaConfig(**values)
