"""Before/after snapshots and audit rows for ticket mutations."""

from __future__ import annotations

import datetime as dt
import enum
from typing import Any

from sqlalchemy.orm import Session

from powercrm.models.enums import TicketAction
from powercrm.models.ticket import Ticket
from powercrm.models.ticket_log import TicketLog
from powercrm.models.user import User

TRACKED_FIELDS = (
    "title",
    "content",
    "status",
    "priority",
    "type",
    "source",
    "assignee_id",
    "resolution",
    "resolved_at",
    "resolved_by_id",
    "first_response_at",
    "deleted_at",
)


def _json_safe(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, dt.datetime):
        return value.isoformat()
    return value


def snapshot_ticket(ticket: Ticket) -> dict[str, Any]:
    snapshot = {field: _json_safe(getattr(ticket, field, None)) for field in TRACKED_FIELDS}
    snapshot["id"] = ticket.id
    snapshot["ticket_number"] = ticket.ticket_number
    return snapshot


def compute_changes(before: dict[str, Any] | None, after: dict[str, Any] | None) -> dict[str, dict[str, Any]]:
    before = before or {}
    after = after or {}
    changes: dict[str, dict[str, Any]] = {}
    for key in sorted(set(before) | set(after)):
        old = before.get(key)
        new = after.get(key)
        if old != new:
            changes[key] = {"from": old, "to": new}
    return changes


def record_ticket_log(
    db: Session,
    ticket: Ticket,
    user: User,
    action: TicketAction,
    description: str,
    *,
    before: dict[str, Any] | None = None,
    after: dict[str, Any] | None = None,
    metadata: dict[str, Any] | None = None,
) -> TicketLog:
    """Stage one audit row; the caller's commit persists it with the change."""
    entry = TicketLog(
        ticket_id=ticket.id,
        user_id=user.id,
        action=action,
        description=description,
        before=before,
        after=after,
        changes=compute_changes(before, after),
        meta=metadata,
    )
    db.add(entry)
    return entry
