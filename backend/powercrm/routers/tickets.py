"""Ticket lifecycle endpoints, comments, history and dashboard widgets."""

from __future__ import annotations

import datetime as dt
from typing import Literal

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.orm import Session

from powercrm.core.deps import get_current_user, require_manager, require_staff
from powercrm.core.exceptions import BadRequestError
from powercrm.core.rate_limit import rate_limit
from powercrm.db.session import get_db
from powercrm.models.enums import TicketPriority, TicketStatus, TicketType
from powercrm.models.user import User
from powercrm.schemas.common import MAX_PAGE_SIZE, ApiResponse, Paginated, build_pagination
from powercrm.schemas.dashboard import DashboardStats, RecentActivities, TopPerformers
from powercrm.schemas.ticket import (
    TicketAssign,
    TicketCommentCreate,
    TicketCommentOut,
    TicketContentUpdate,
    TicketCreate,
    TicketLogOut,
    TicketOut,
    TicketStats,
    TicketStatusUpdate,
    TicketTransitions,
)
from powercrm.services import dashboard as dashboard_service
from powercrm.services import tickets as ticket_service
from powercrm.services.tickets import SortField
from powercrm.services.workflow import available_transitions

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])


@router.post("/", response_model=ApiResponse[TicketOut], status_code=status.HTTP_201_CREATED)
def create_new_ticket(
    payload: TicketCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    ticket = ticket_service.create_ticket(db, payload, author=current_user)
    return ApiResponse(message="تیکت با موفقیت ایجاد شد", data=TicketOut.model_validate(ticket))


@router.get("/", response_model=ApiResponse[Paginated[TicketOut]])
def get_tickets(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=MAX_PAGE_SIZE),
    ticket_status: TicketStatus | None = Query(default=None, alias="status"),
    priority: TicketPriority | None = Query(default=None),
    ticket_type: TicketType | None = Query(default=None, alias="type"),
    author_id: int | None = Query(default=None, alias="authorId", ge=1),
    assignee_id: int | None = Query(default=None, alias="assigneeId", ge=1),
    search: str | None = Query(default=None, max_length=100),
    date_from: dt.datetime | None = Query(default=None, alias="dateFrom"),
    date_to: dt.datetime | None = Query(default=None, alias="dateTo"),
    sort_by: SortField = Query(default="createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query(default="desc", alias="sortOrder"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    if date_from and date_to and date_from > date_to:
        raise BadRequestError("بازه تاریخ نامعتبر است")
    items, total = ticket_service.list_tickets(
        db,
        current_user,
        status=ticket_status,
        priority=priority,
        ticket_type=ticket_type,
        author_id=author_id,
        assignee_id=assignee_id,
        search=search,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return ApiResponse(
        message="تیکت‌ها با موفقیت دریافت شدند",
        data=Paginated[TicketOut](
            items=[TicketOut.model_validate(ticket) for ticket in items],
            pagination=build_pagination(page, limit, total),
        ),
    )


@router.get("/stats", response_model=ApiResponse[TicketStats])
def get_stats(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    return ApiResponse(message="آمار تیکت‌ها دریافت شد", data=TicketStats(**ticket_service.compute_stats(db, current_user)))


@router.get("/dashboard-stats", response_model=ApiResponse[DashboardStats])
def get_dashboard_stats(
    db: Session = Depends(get_db),
    _: User = Depends(require_manager),
) -> ApiResponse:
    return ApiResponse(message="آمار داشبورد دریافت شد", data=dashboard_service.dashboard_stats(db))


@router.get("/recent-activities", response_model=ApiResponse[RecentActivities])
def get_recent_activities(
    limit: int = Query(default=10, ge=1, le=50),
    db: Session = Depends(get_db),
    _: User = Depends(require_manager),
) -> ApiResponse:
    activities = dashboard_service.recent_activities(db, limit=limit)
    return ApiResponse(message="فعالیت‌های اخیر دریافت شد", data=RecentActivities(activities=activities))


@router.get("/top-performers", response_model=ApiResponse[TopPerformers])
def get_top_performers(
    limit: int = Query(default=5, ge=1, le=20),
    db: Session = Depends(get_db),
    _: User = Depends(require_manager),
) -> ApiResponse:
    performers = dashboard_service.top_performers(db, limit=limit)
    return ApiResponse(message="برترین کارشناسان دریافت شد", data=TopPerformers(performers=performers))


@router.get("/{ticket_id}", response_model=ApiResponse[TicketOut])
def get_ticket(
    ticket_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    ticket = ticket_service.get_ticket_for_user(db, ticket_id, current_user)
    return ApiResponse(message="تیکت دریافت شد", data=TicketOut.model_validate(ticket))


@router.get("/{ticket_id}/history", response_model=ApiResponse[list[TicketLogOut]])
def get_ticket_history(
    ticket_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    logs = ticket_service.ticket_history(db, ticket_id, user=current_user)
    return ApiResponse(message="تاریخچه تیکت دریافت شد", data=[TicketLogOut.model_validate(log) for log in logs])


@router.get("/{ticket_id}/transitions", response_model=ApiResponse[TicketTransitions])
def get_transitions(
    ticket_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    ticket = ticket_service.get_ticket_for_user(db, ticket_id, current_user)
    return ApiResponse(
        message="وضعیت‌های مجاز دریافت شد",
        data=TicketTransitions(current=ticket.status, available=available_transitions(ticket.status, current_user.role)),
    )


@router.put("/{ticket_id}/status", response_model=ApiResponse[TicketOut])
def change_status(
    payload: TicketStatusUpdate,
    ticket_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
) -> ApiResponse:
    ticket = ticket_service.update_status(db, ticket_id, payload.status, actor=current_user, note=payload.note)
    return ApiResponse(message="وضعیت تیکت با موفقیت تغییر کرد", data=TicketOut.model_validate(ticket))


@router.put("/{ticket_id}/assign", response_model=ApiResponse[TicketOut])
def assign(
    payload: TicketAssign,
    ticket_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
) -> ApiResponse:
    ticket = ticket_service.assign_ticket(db, ticket_id, payload.assignee_id, actor=current_user)
    return ApiResponse(message="تیکت با موفقیت واگذار شد", data=TicketOut.model_validate(ticket))


@router.put("/{ticket_id}", response_model=ApiResponse[TicketOut])
def update_ticket(
    payload: TicketContentUpdate,
    ticket_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    ticket = ticket_service.update_content(db, ticket_id, payload, actor=current_user)
    return ApiResponse(message="تیکت با موفقیت بروزرسانی شد", data=TicketOut.model_validate(ticket))


@router.delete("/{ticket_id}", response_model=ApiResponse[None])
def delete_ticket(
    ticket_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_manager),
) -> ApiResponse:
    ticket_service.delete_ticket(db, ticket_id, actor=current_user)
    return ApiResponse(message="تیکت با موفقیت حذف شد")


@router.get("/{ticket_id}/comments", response_model=ApiResponse[list[TicketCommentOut]])
def get_comments(
    ticket_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    comments = ticket_service.list_comments(db, ticket_id, user=current_user)
    return ApiResponse(message="نظرات دریافت شد", data=[TicketCommentOut.model_validate(c) for c in comments])


@router.post(
    "/{ticket_id}/comments",
    response_model=ApiResponse[TicketCommentOut],
    status_code=status.HTTP_201_CREATED,
)
def create_comment(
    payload: TicketCommentCreate,
    ticket_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ApiResponse:
    comment = ticket_service.add_comment(db, ticket_id, payload, actor=current_user)
    return ApiResponse(message="نظر با موفقیت اضافه شد", data=TicketCommentOut.model_validate(comment))
