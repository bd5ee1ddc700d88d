"""Admin user management endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.orm import Session

from powercrm.core.deps import require_admin
from powercrm.core.rate_limit import rate_limit
from powercrm.db.session import get_db
from powercrm.models.enums import UserRole
from powercrm.models.user import User
from powercrm.schemas.common import MAX_PAGE_SIZE, ApiResponse, Paginated, build_pagination
from powercrm.schemas.user import RoleCount, UserOut, UserRoleUpdate, UserStatusUpdate
from powercrm.services import users as user_service

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(require_admin)])


@router.get("/", response_model=ApiResponse[Paginated[UserOut]])
def get_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    role: UserRole | None = Query(default=None),
    search: str | None = Query(default=None, max_length=100),
    db: Session = Depends(get_db),
) -> ApiResponse:
    users, total = user_service.list_users(db, role=role, search=search, page=page, limit=limit)
    return ApiResponse(
        message="کاربران دریافت شدند",
        data=Paginated[UserOut](
            items=[UserOut.model_validate(user) for user in users],
            pagination=build_pagination(page, limit, total),
        ),
    )


@router.get("/role-counts", response_model=ApiResponse[list[RoleCount]])
def get_role_counts(db: Session = Depends(get_db)) -> ApiResponse:
    counts = user_service.count_by_role(db)
    return ApiResponse(
        message="آمار نقش‌ها دریافت شد",
        data=[RoleCount(role=role, count=count) for role, count in counts.items()],
    )


@router.get("/staff", response_model=ApiResponse[list[UserOut]])
def get_staff(db: Session = Depends(get_db)) -> ApiResponse:
    return ApiResponse(message="کارکنان دریافت شدند", data=[UserOut.model_validate(u) for u in user_service.list_staff(db)])


@router.patch("/{user_id}/role", response_model=ApiResponse[UserOut])
def change_role(
    payload: UserRoleUpdate,
    user_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> ApiResponse:
    user = user_service.update_role(db, user_id, payload.role, actor=current_user)
    return ApiResponse(message="نقش کاربر با موفقیت تغییر کرد", data=UserOut.model_validate(user))


@router.patch("/{user_id}/status", response_model=ApiResponse[UserOut])
def change_status(
    payload: UserStatusUpdate,
    user_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> ApiResponse:
    user = user_service.set_active(db, user_id, payload.is_active, actor=current_user)
    return ApiResponse(message="وضعیت کاربر با موفقیت تغییر کرد", data=UserOut.model_validate(user))


@router.delete("/{user_id}", response_model=ApiResponse[None])
def remove_user(
    user_id: int = Path(ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> ApiResponse:
    user_service.delete_user(db, user_id, actor=current_user)
    return ApiResponse(message="کاربر با موفقیت حذف شد")
