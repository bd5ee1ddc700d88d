"""Ticket status state machine and the side effects of each move."""

from __future__ import annotations

import datetime as dt
import logging

from powercrm.core.exceptions import InvalidStatusTransitionError
from powercrm.core.rbac import parse_role
from powercrm.models.enums import TicketStatus, UserRole
from powercrm.models.ticket import Ticket
from powercrm.models.user import User

logger = logging.getLogger(__name__)

S = TicketStatus

_EMPLOYEE_TRANSITIONS: dict[TicketStatus, tuple[TicketStatus, ...]] = {
    S.open: (S.assigned, S.in_progress, S.resolved, S.rejected),
    S.assigned: (S.in_progress, S.resolved, S.on_hold),
    S.in_progress: (S.resolved, S.pending_info, S.on_hold),
    S.pending_info: (S.in_progress, S.resolved),
    S.resolved: (S.closed,),
    S.closed: (),
    S.rejected: (S.in_progress,),
    S.escalated: (S.in_progress,),
    S.on_hold: (S.in_progress,),
}

_MANAGER_TRANSITIONS: dict[TicketStatus, tuple[TicketStatus, ...]] = {
    S.open: (S.assigned, S.in_progress, S.resolved, S.rejected, S.closed, S.escalated),
    S.assigned: (S.in_progress, S.resolved, S.open, S.closed, S.rejected, S.on_hold),
    S.in_progress: (S.resolved, S.pending_info, S.assigned, S.closed, S.rejected, S.on_hold),
    S.pending_info: (S.in_progress, S.resolved, S.closed, S.rejected),
    S.resolved: (S.closed, S.in_progress),
    S.closed: (S.in_progress,),
    S.rejected: (S.in_progress,),
    S.escalated: (S.in_progress, S.resolved, S.closed),
    S.on_hold: (S.in_progress, S.assigned),
}

# PENDING_APPROVAL has no outgoing row for any role.
STATUS_TRANSITIONS: dict[UserRole, dict[TicketStatus, tuple[TicketStatus, ...]]] = {
    UserRole.client: {},
    UserRole.employee: _EMPLOYEE_TRANSITIONS,
    UserRole.manager: _MANAGER_TRANSITIONS,
    UserRole.admin: _MANAGER_TRANSITIONS,
    UserRole.super_admin: _MANAGER_TRANSITIONS,
}

FIRST_RESPONSE_STATUSES = frozenset({S.assigned, S.in_progress})


def available_transitions(status: TicketStatus, role: UserRole | str | None) -> list[TicketStatus]:
    parsed = parse_role(role)
    if parsed is None:
        return []
    return list(STATUS_TRANSITIONS[parsed].get(status, ()))


def can_transition(status: TicketStatus, target: TicketStatus, role: UserRole | str | None) -> bool:
    return target in available_transitions(status, role)


def ensure_transition_allowed(status: TicketStatus, target: TicketStatus, role: UserRole | str | None) -> None:
    allowed = available_transitions(status, role)
    if target not in allowed:
        logger.warning("Status transition refused: %s -> %s for role %s", status.value, target.value, role)
        raise InvalidStatusTransitionError(status.value, target.value, allowed=[item.value for item in allowed])


def apply_status(ticket: Ticket, target: TicketStatus, actor: User, *, note: str | None = None, now: dt.datetime | None = None) -> None:
    """Move ``ticket`` to ``target`` and stamp the lifecycle timestamps."""
    now = now or dt.datetime.now(dt.timezone.utc)
    ticket.status = target
    if target == S.resolved:
        ticket.resolved_at = now
        ticket.resolved_by_id = actor.id
        if note:
            ticket.resolution = note
    if target in FIRST_RESPONSE_STATUSES and ticket.first_response_at is None:
        ticket.first_response_at = now
    ticket.updated_at = now
