"""System activity feed built from ticket audit rows."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from powercrm.core.i18n import HISTORY_ACTION_LABELS, HISTORY_ACTIONS, field_label, format_jalali, role_label
from powercrm.models.enums import TicketAction
from powercrm.models.ticket import Ticket
from powercrm.models.ticket_log import TicketLog
from powercrm.models.user import User
from powercrm.schemas.history import ActionCount, ActiveUser, FieldChange, HistoryEntry, HistoryStats, HistoryUser

logger = logging.getLogger(__name__)

STATS_WINDOW_DAYS = 30
MOST_ACTIVE_LIMIT = 10
UNKNOWN_USER = "کاربر ناشناس"

# Front-end bucket -> stored actions.
BUCKET_ACTIONS: dict[str, tuple[TicketAction, ...]] = {}
for _action, _bucket in HISTORY_ACTIONS.items():
    BUCKET_ACTIONS.setdefault(_bucket, ())
    BUCKET_ACTIONS[_bucket] += (_action,)

# Diff keys surfaced in the feed, in display order.
_FEED_FIELDS = ("status", "assignee_id", "priority", "title", "content")


def _stringify(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


def _feed_changes(changes: dict[str, Any] | None) -> list[FieldChange] | None:
    if not changes:
        return None
    result = [
        FieldChange(field=field_label(field), from_=_stringify(changes[field].get("from")), to=_stringify(changes[field].get("to")))
        for field in _FEED_FIELDS
        if field in changes
    ]
    return result or None


def _history_user(user: User | None) -> HistoryUser:
    if user is None:
        return HistoryUser(name=UNKNOWN_USER, role=role_label(None))
    return HistoryUser(id=user.id, name=user.name or user.phone or UNKNOWN_USER, role=role_label(user.role))


def to_history_entry(log: TicketLog) -> HistoryEntry:
    meta = log.meta or {}
    return HistoryEntry(
        id=f"H-{log.id}",
        task_id=f"TK-{log.ticket_id}",
        task_title=log.ticket.title if log.ticket else "",
        action=HISTORY_ACTIONS.get(TicketAction(log.action), "updated"),
        user=_history_user(log.user),
        timestamp=format_jalali(log.created_at),
        changes=_feed_changes(log.changes),
        comment=meta.get("note"),
        details=log.description,
    )


def _filtered_logs(
    db: Session,
    *,
    action: str | None = None,
    user_id: int | None = None,
    assigned_to_user_id: int | None = None,
    start_date: dt.datetime | None = None,
    end_date: dt.datetime | None = None,
):
    query = db.query(TicketLog)
    if action:
        query = query.filter(TicketLog.action.in_(BUCKET_ACTIONS.get(action, ())))
    if user_id:
        query = query.filter(TicketLog.user_id == user_id)
    if assigned_to_user_id:
        query = query.join(Ticket, Ticket.id == TicketLog.ticket_id).filter(Ticket.assignee_id == assigned_to_user_id)
    if start_date:
        query = query.filter(TicketLog.created_at >= start_date)
    if end_date:
        query = query.filter(TicketLog.created_at <= end_date)
    return query


def list_history(
    db: Session,
    *,
    page: int = 1,
    limit: int = 20,
    **filters: Any,
) -> tuple[list[HistoryEntry], int]:
    query = _filtered_logs(db, **filters)
    total = query.count()
    logs = (
        query.options(joinedload(TicketLog.user), joinedload(TicketLog.ticket))
        .order_by(TicketLog.created_at.desc(), TicketLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return [to_history_entry(log) for log in logs], total


def list_audit_logs(
    db: Session,
    *,
    page: int = 1,
    limit: int = 20,
    user_id: int | None = None,
    ticket_id: int | None = None,
    action: TicketAction | None = None,
) -> tuple[list[TicketLog], int]:
    query = db.query(TicketLog)
    if user_id:
        query = query.filter(TicketLog.user_id == user_id)
    if ticket_id:
        query = query.filter(TicketLog.ticket_id == ticket_id)
    if action:
        query = query.filter(TicketLog.action == action)
    total = query.count()
    logs = (
        query.options(joinedload(TicketLog.user))
        .order_by(TicketLog.created_at.desc(), TicketLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return logs, total


def history_stats(db: Session, *, now: dt.datetime | None = None) -> HistoryStats:
    now = now or dt.datetime.now(dt.timezone.utc)
    since = now - dt.timedelta(days=STATS_WINDOW_DAYS)

    total = db.query(func.count(TicketLog.id)).scalar() or 0
    recent = db.query(func.count(TicketLog.id)).filter(TicketLog.created_at >= since).scalar() or 0

    by_action = (
        db.query(TicketLog.action, func.count(TicketLog.id))
        .filter(TicketLog.created_at >= since)
        .group_by(TicketLog.action)
        .all()
    )
    bucket_counts: dict[str, int] = {}
    for action, count in by_action:
        bucket = HISTORY_ACTIONS.get(TicketAction(action), "updated")
        bucket_counts[bucket] = bucket_counts.get(bucket, 0) + count

    by_user = (
        db.query(TicketLog.user_id, func.count(TicketLog.id).label("activity_count"))
        .filter(TicketLog.created_at >= since)
        .group_by(TicketLog.user_id)
        .order_by(func.count(TicketLog.id).desc(), TicketLog.user_id.asc())
        .limit(MOST_ACTIVE_LIMIT)
        .all()
    )
    users = {user.id: user for user in db.query(User).filter(User.id.in_([row[0] for row in by_user])).all()}

    return HistoryStats(
        total_activities=total,
        recent_activities=recent,
        activities_by_action=[
            ActionCount(action=bucket, action_label=HISTORY_ACTION_LABELS[bucket], count=count)
            for bucket, count in sorted(bucket_counts.items(), key=lambda item: (-item[1], item[0]))
        ],
        most_active_users=[
            ActiveUser(user=_history_user(users.get(user_id)), activity_count=count) for user_id, count in by_user
        ],
    )
