"""System activity feed, raw audit log and activity statistics."""

from __future__ import annotations

import datetime as dt
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from powercrm.core.deps import require_manager, require_staff
from powercrm.core.rate_limit import rate_limit
from powercrm.db.session import get_db
from powercrm.models.enums import TicketAction
from powercrm.models.user import User
from powercrm.schemas.common import MAX_PAGE_SIZE, ApiResponse, Paginated, build_pagination
from powercrm.schemas.history import HistoryEntry, HistoryStats
from powercrm.schemas.ticket import TicketLogOut
from powercrm.services import history as history_service

router = APIRouter(dependencies=[Depends(rate_limit())])

HistoryAction = Literal["created", "status_changed", "assigned", "comment_added", "file_attached", "updated"]


@router.get("/", response_model=ApiResponse[Paginated[HistoryEntry]])
def get_history(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    action: HistoryAction | None = Query(default=None),
    user_id: int | None = Query(default=None, alias="userId", ge=1),
    assigned_to_user_id: int | None = Query(default=None, alias="assignedToUserId", ge=1),
    start_date: dt.datetime | None = Query(default=None, alias="startDate"),
    end_date: dt.datetime | None = Query(default=None, alias="endDate"),
    db: Session = Depends(get_db),
    _: User = Depends(require_staff),
) -> ApiResponse:
    entries, total = history_service.list_history(
        db,
        page=page,
        limit=limit,
        action=action,
        user_id=user_id,
        assigned_to_user_id=assigned_to_user_id,
        start_date=start_date,
        end_date=end_date,
    )
    return ApiResponse(
        message="تاریخچه سیستم با موفقیت دریافت شد",
        data=Paginated[HistoryEntry](items=entries, pagination=build_pagination(page, limit, total)),
    )


@router.get("/audit", response_model=ApiResponse[Paginated[TicketLogOut]])
def get_audit_logs(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    user_id: int | None = Query(default=None, alias="userId", ge=1),
    ticket_id: int | None = Query(default=None, alias="ticketId", ge=1),
    action: TicketAction | None = Query(default=None),
    db: Session = Depends(get_db),
    _: User = Depends(require_manager),
) -> ApiResponse:
    logs, total = history_service.list_audit_logs(
        db,
        page=page,
        limit=limit,
        user_id=user_id,
        ticket_id=ticket_id,
        action=action,
    )
    return ApiResponse(
        message="گزارش‌های حسابرسی با موفقیت دریافت شدند",
        data=Paginated[TicketLogOut](
            items=[TicketLogOut.model_validate(log) for log in logs],
            pagination=build_pagination(page, limit, total),
        ),
    )


@router.get("/stats", response_model=ApiResponse[HistoryStats])
def get_history_stats(
    db: Session = Depends(get_db),
    _: User = Depends(require_staff),
) -> ApiResponse:
    return ApiResponse(message="آمار تاریخچه با موفقیت دریافت شد", data=history_service.history_stats(db))
