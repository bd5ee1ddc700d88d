"""Aggregates behind the manager dashboard."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from powercrm.core.config import settings
from powercrm.core.i18n import greeting, local_now, percent, relative_time
from powercrm.models.enums import TicketStatus, UserRole
from powercrm.models.ticket import Ticket
from powercrm.models.user import User
from powercrm.schemas.dashboard import (
    DashboardStats,
    Performer,
    RecentActivity,
    ServerInfo,
    TicketCounters,
    UserCounters,
)

PENDING_STATUSES = (TicketStatus.open, TicketStatus.assigned, TicketStatus.in_progress)
PERFORMER_ROLES = (UserRole.employee, UserRole.manager)
BADGES = ("طلایی", "نقره‌ای", "برنزی")


def _percent_change(today: int, yesterday: int) -> int:
    if yesterday > 0:
        return percent(today - yesterday, yesterday)
    return 100 if today > 0 else 0


def _to_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def dashboard_stats(db: Session, *, now: dt.datetime | None = None) -> DashboardStats:
    local = now.astimezone(local_now().tzinfo) if now else local_now()
    today_start = local.replace(hour=0, minute=0, second=0, microsecond=0)
    tomorrow_start = today_start + dt.timedelta(days=1)
    yesterday_start = today_start - dt.timedelta(days=1)

    tickets = db.query(Ticket).filter(Ticket.deleted_at.is_(None))

    def _created_between(start: dt.datetime, end: dt.datetime) -> int:
        return tickets.filter(
            Ticket.created_at >= start.astimezone(dt.timezone.utc),
            Ticket.created_at < end.astimezone(dt.timezone.utc),
        ).count()

    total = tickets.count()
    today = _created_between(today_start, tomorrow_start)
    yesterday = _created_between(yesterday_start, today_start)
    resolved = tickets.filter(Ticket.status == TicketStatus.resolved).count()
    pending = tickets.filter(Ticket.status.in_(PENDING_STATUSES)).count()
    open_count = tickets.filter(Ticket.status == TicketStatus.open).count()

    users = db.query(User).filter(User.deleted_at.is_(None))
    online_since = local.astimezone(dt.timezone.utc) - dt.timedelta(hours=24)

    return DashboardStats(
        tickets=TicketCounters(
            total=total,
            today=today,
            yesterday=yesterday,
            open=open_count,
            resolved=resolved,
            pending=pending,
            change_percent=_percent_change(today, yesterday),
            resolution_rate=percent(resolved, total),
        ),
        users=UserCounters(
            total=users.count(),
            online=users.filter(User.last_login_at >= online_since).count(),
        ),
        server_info=ServerInfo(
            greeting=greeting(local.hour),
            timestamp=local,
            timezone=settings.TIMEZONE,
        ),
    )


def recent_activities(db: Session, *, limit: int = 10, now: dt.datetime | None = None) -> list[RecentActivity]:
    now = now or dt.datetime.now(dt.timezone.utc)
    tickets = (
        db.query(Ticket)
        .options(joinedload(Ticket.author), joinedload(Ticket.assignee))
        .filter(Ticket.deleted_at.is_(None))
        .order_by(Ticket.updated_at.desc(), Ticket.id.desc())
        .limit(limit)
        .all()
    )
    activities: list[RecentActivity] = []
    for ticket in tickets:
        kind = "جدید"
        description = "شکایت جدید دریافت شد"
        if ticket.status == TicketStatus.resolved:
            kind = "حل شده"
            description = f"شکایت #{ticket.ticket_number} حل شد"
        elif ticket.status == TicketStatus.assigned:
            kind = "تخصیص"
            assignee_name = ticket.assignee.name if ticket.assignee and ticket.assignee.name else "کارشناس"
            description = f"تخصیص شکایت به {assignee_name}"
        actor = ticket.assignee or ticket.author
        activities.append(
            RecentActivity(
                id=ticket.id,
                ticket_number=ticket.ticket_number,
                type=kind,
                description=description,
                details=ticket.title,
                time=relative_time(_to_utc(ticket.updated_at), now),
                status=ticket.status,
                user=(actor.name if actor and actor.name else None) or "نامشخص",
            )
        )
    return activities


def top_performers(db: Session, *, limit: int = 5) -> list[Performer]:
    rows = (
        db.query(User, func.count(Ticket.id).label("resolved_count"))
        .join(Ticket, Ticket.assignee_id == User.id)
        .filter(
            User.deleted_at.is_(None),
            User.role.in_(PERFORMER_ROLES),
            Ticket.deleted_at.is_(None),
            Ticket.status == TicketStatus.resolved,
        )
        .group_by(User.id)
        .order_by(func.count(Ticket.id).desc(), User.id.asc())
        .limit(limit)
        .all()
    )
    return [
        Performer(
            id=user.id,
            name=user.display_name,
            resolved_count=count,
            rank=index + 1,
            badge=BADGES[index] if index < len(BADGES) else "عادی",
        )
        for index, (user, count) in enumerate(rows)
    ]
