"""Service helpers for the ticket lifecycle: CRUD, status moves, comments and stats."""

from __future__ import annotations

import datetime as dt
import logging
from typing import Literal

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session, joinedload

from powercrm.core.exceptions import BadRequestError, InsufficientPermissionsError, NotFoundError
from powercrm.core.rbac import can_comment_ticket, can_edit_ticket_content, can_manage_tickets, can_view_ticket, is_staff, visible_comments
from powercrm.models.enums import TicketAction, TicketPriority, TicketStatus, TicketType
from powercrm.models.ticket import Ticket, TicketComment
from powercrm.models.ticket_log import TicketLog
from powercrm.models.user import User
from powercrm.schemas.ticket import TicketCommentCreate, TicketContentUpdate, TicketCreate
from powercrm.services.audit import record_ticket_log, snapshot_ticket
from powercrm.services.workflow import apply_status, ensure_transition_allowed

logger = logging.getLogger(__name__)

SortField = Literal["createdAt", "updatedAt", "title", "status"]
SORT_COLUMNS = {
    "createdAt": Ticket.created_at,
    "updatedAt": Ticket.updated_at,
    "title": Ticket.title,
    "status": Ticket.status,
}

TICKET_NOT_FOUND = "تیکت یافت نشد یا دسترسی ندارید"


def format_ticket_number(ticket_id: int) -> str:
    return f"TK{ticket_id:06d}"


def _visible_tickets(db: Session, user: User) -> Query:
    query = db.query(Ticket).filter(Ticket.deleted_at.is_(None))
    if not is_staff(user):
        query = query.filter(Ticket.author_id == user.id)
    return query


def get_ticket_for_user(db: Session, ticket_id: int, user: User) -> Ticket:
    ticket = db.get(Ticket, ticket_id)
    if not ticket or not can_view_ticket(user, ticket):
        raise NotFoundError(TICKET_NOT_FOUND)
    return ticket


def create_ticket(db: Session, data: TicketCreate, *, author: User) -> Ticket:
    ticket = Ticket(
        title=data.title,
        content=data.content,
        status=TicketStatus.open,
        priority=data.priority,
        type=data.type,
        source=data.source,
        author_id=author.id,
        customer_name=data.customer_name,
        customer_phone=data.customer_phone,
        customer_address=data.customer_address,
        meter_number=data.meter_number,
        account_number=data.account_number,
    )
    db.add(ticket)
    db.flush()
    ticket.ticket_number = format_ticket_number(ticket.id)
    record_ticket_log(
        db,
        ticket,
        author,
        TicketAction.created,
        "تیکت ایجاد شد",
        after=snapshot_ticket(ticket),
        metadata={"priority": ticket.priority.value, "type": ticket.type.value},
    )
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket created: %s by user %s", ticket.ticket_number, author.id)
    return ticket


def list_tickets(
    db: Session,
    user: User,
    *,
    status: TicketStatus | None = None,
    priority: TicketPriority | None = None,
    ticket_type: TicketType | None = None,
    author_id: int | None = None,
    assignee_id: int | None = None,
    search: str | None = None,
    date_from: dt.datetime | None = None,
    date_to: dt.datetime | None = None,
    page: int = 1,
    limit: int = 10,
    sort_by: SortField = "createdAt",
    sort_order: Literal["asc", "desc"] = "desc",
) -> tuple[list[Ticket], int]:
    query = _visible_tickets(db, user)
    if status:
        query = query.filter(Ticket.status == status)
    if priority:
        query = query.filter(Ticket.priority == priority)
    if ticket_type:
        query = query.filter(Ticket.type == ticket_type)
    if author_id and is_staff(user):
        query = query.filter(Ticket.author_id == author_id)
    if assignee_id:
        query = query.filter(Ticket.assignee_id == assignee_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Ticket.title.ilike(pattern),
                Ticket.content.ilike(pattern),
                Ticket.ticket_number.ilike(pattern),
                Ticket.customer_name.ilike(pattern),
                Ticket.customer_phone.ilike(pattern),
                Ticket.meter_number.ilike(pattern),
            )
        )
    if date_from:
        query = query.filter(Ticket.created_at >= date_from)
    if date_to:
        query = query.filter(Ticket.created_at <= date_to)

    total = query.count()
    column = SORT_COLUMNS.get(sort_by, Ticket.created_at)
    ordering = column.asc() if sort_order == "asc" else column.desc()
    items = (
        query.options(joinedload(Ticket.author), joinedload(Ticket.assignee))
        .order_by(ordering, Ticket.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return items, total


def update_status(
    db: Session,
    ticket_id: int,
    status: TicketStatus,
    *,
    actor: User,
    note: str | None = None,
) -> Ticket:
    ticket = get_ticket_for_user(db, ticket_id, actor)
    previous = ticket.status
    ensure_transition_allowed(previous, status, actor.role)

    before = snapshot_ticket(ticket)
    apply_status(ticket, status, actor, note=note)
    record_ticket_log(
        db,
        ticket,
        actor,
        TicketAction.status_changed,
        f"وضعیت تیکت از {previous.value} به {status.value} تغییر کرد",
        before=before,
        after=snapshot_ticket(ticket),
        metadata={"note": note} if note else None,
    )
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket status updated: %s %s -> %s", ticket.ticket_number, previous.value, status.value)
    return ticket


def assign_ticket(db: Session, ticket_id: int, assignee_id: int, *, actor: User) -> Ticket:
    if not can_manage_tickets(actor.role):
        raise InsufficientPermissionsError("شما مجوز واگذاری تیکت را ندارید")
    ticket = get_ticket_for_user(db, ticket_id, actor)
    assignee = db.get(User, assignee_id)
    if not assignee or assignee.deleted_at is not None or not assignee.is_active:
        raise NotFoundError("کاربر مورد نظر یافت نشد")
    if not can_manage_tickets(assignee.role):
        raise BadRequestError("تیکت فقط به کارکنان قابل واگذاری است")

    previous_assignee = ticket.assignee_id
    if previous_assignee == assignee.id:
        raise BadRequestError("تیکت در حال حاضر به همین کاربر واگذار شده است")
    before = snapshot_ticket(ticket)
    now = dt.datetime.now(dt.timezone.utc)
    ticket.assignee_id = assignee.id
    if ticket.status == TicketStatus.open:
        apply_status(ticket, TicketStatus.assigned, actor, now=now)
    ticket.updated_at = now

    reassigned = previous_assignee is not None
    record_ticket_log(
        db,
        ticket,
        actor,
        TicketAction.reassigned if reassigned else TicketAction.assigned,
        "تیکت مجدداً واگذار شد" if reassigned else "تیکت واگذار شد",
        before=before,
        after=snapshot_ticket(ticket),
        metadata={"assigned_by": actor.role.value},
    )
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket assigned: %s -> user %s", ticket.ticket_number, assignee.id)
    return ticket


def update_content(db: Session, ticket_id: int, data: TicketContentUpdate, *, actor: User) -> Ticket:
    ticket = get_ticket_for_user(db, ticket_id, actor)
    if not can_edit_ticket_content(actor, ticket):
        raise InsufficientPermissionsError("فقط امکان ویرایش تیکت‌های خودتان را دارید")
    if data.priority is not None and not is_staff(actor):
        raise InsufficientPermissionsError("تغییر اولویت فقط برای کارکنان مجاز است")

    before = snapshot_ticket(ticket)
    if data.title is not None:
        ticket.title = data.title
    if data.content is not None:
        ticket.content = data.content
    if data.priority is not None:
        ticket.priority = data.priority
    ticket.updated_at = dt.datetime.now(dt.timezone.utc)
    record_ticket_log(
        db,
        ticket,
        actor,
        TicketAction.updated,
        "محتوای تیکت بروزرسانی شد",
        before=before,
        after=snapshot_ticket(ticket),
    )
    db.commit()
    db.refresh(ticket)
    logger.info("Ticket content updated: %s", ticket.ticket_number)
    return ticket


def delete_ticket(db: Session, ticket_id: int, *, actor: User) -> None:
    ticket = get_ticket_for_user(db, ticket_id, actor)
    before = snapshot_ticket(ticket)
    ticket.deleted_at = dt.datetime.now(dt.timezone.utc)
    record_ticket_log(
        db,
        ticket,
        actor,
        TicketAction.deleted,
        "تیکت حذف شد",
        before=before,
        after=snapshot_ticket(ticket),
        metadata={"deleted_by": actor.role.value},
    )
    db.commit()
    logger.info("Ticket soft-deleted: %s by user %s", ticket.ticket_number, actor.id)


def ticket_history(db: Session, ticket_id: int, *, user: User) -> list[TicketLog]:
    ticket = get_ticket_for_user(db, ticket_id, user)
    return (
        db.query(TicketLog)
        .options(joinedload(TicketLog.user))
        .filter(TicketLog.ticket_id == ticket.id)
        .order_by(TicketLog.created_at.desc(), TicketLog.id.desc())
        .all()
    )


def list_comments(db: Session, ticket_id: int, *, user: User) -> list[TicketComment]:
    ticket = get_ticket_for_user(db, ticket_id, user)
    return visible_comments(user, ticket.comments)


def add_comment(db: Session, ticket_id: int, data: TicketCommentCreate, *, actor: User) -> TicketComment:
    ticket = get_ticket_for_user(db, ticket_id, actor)
    if not can_comment_ticket(actor, ticket, internal=data.is_internal):
        raise InsufficientPermissionsError("مشتریان امکان ثبت نظر داخلی ندارند")
    if not data.content:
        raise BadRequestError("متن نظر الزامی است")

    comment = TicketComment(
        ticket_id=ticket.id,
        author_id=actor.id,
        content=data.content,
        is_internal=data.is_internal,
    )
    db.add(comment)
    db.flush()
    record_ticket_log(
        db,
        ticket,
        actor,
        TicketAction.commented,
        "نظر داخلی اضافه شد" if data.is_internal else "نظر جدید اضافه شد",
        metadata={"is_internal": data.is_internal, "comment_id": comment.id},
    )
    db.commit()
    db.refresh(comment)
    logger.info("Comment added to ticket %s by user %s", ticket.ticket_number, actor.id)
    return comment


def compute_stats(db: Session, user: User) -> dict[str, int]:
    rows = (
        _visible_tickets(db, user)
        .with_entities(Ticket.status, func.count(Ticket.id))
        .group_by(Ticket.status)
        .all()
    )
    stats = {status.name: 0 for status in TicketStatus}
    for status, count in rows:
        stats[TicketStatus(status).name] = count
    stats["total"] = sum(stats.values())
    return stats
