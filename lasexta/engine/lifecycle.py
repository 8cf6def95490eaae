"""
lasexta.engine.lifecycle — Ticket & Redeem-Code State Machines
===============================================================

Closed transition tables for the two status fields that matter for
correctness::

    Ticket:      valid ──► used
    RedeemCode:  pending ──► used
                 pending ──► expired

Services never hard-code the "current status" predicate of their
conditional updates; they ask :func:`sources_for` which states may move to
the target, so the table here is the single source of truth.
"""

from __future__ import annotations

from enum import Enum
from typing import TypeVar

from lasexta.database.models import RedeemCodeStatus, TicketStatus
from lasexta.errors import ConflictError

S = TypeVar("S", bound=Enum)

TICKET_TRANSITIONS: dict[TicketStatus, frozenset[TicketStatus]] = {
    TicketStatus.VALID: frozenset({TicketStatus.USED}),
    TicketStatus.USED: frozenset(),
    TicketStatus.EXPIRED: frozenset(),
}

REDEEM_CODE_TRANSITIONS: dict[RedeemCodeStatus, frozenset[RedeemCodeStatus]] = {
    RedeemCodeStatus.PENDING: frozenset({RedeemCodeStatus.USED, RedeemCodeStatus.EXPIRED}),
    RedeemCodeStatus.USED: frozenset(),
    RedeemCodeStatus.EXPIRED: frozenset(),
}

_TABLES: dict[type[Enum], dict] = {
    TicketStatus: TICKET_TRANSITIONS,
    RedeemCodeStatus: REDEEM_CODE_TRANSITIONS,
}


def _table_for(state: Enum) -> dict:
    try:
        return _TABLES[type(state)]
    except KeyError:
        raise TypeError(f"No transition table for {type(state).__name__}") from None


def can_transition(current: S, target: S) -> bool:
    """Return ``True`` if *current* → *target* is in the table."""
    return target in _table_for(current).get(current, frozenset())


def ensure_transition(current: S, target: S) -> None:
    """Raise :class:`ConflictError` if *current* → *target* is not allowed."""
    if not can_transition(current, target):
        raise ConflictError(
            f"Cannot move from '{current.value}' to '{target.value}'."
        )


def sources_for(target: S) -> frozenset[S]:
    """All states from which *target* is reachable in one step."""
    return frozenset(
        state for state, targets in _table_for(target).items() if target in targets
    )
