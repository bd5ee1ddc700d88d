"""Task workspace endpoints authenticated against Supabase."""

from __future__ import annotations

import datetime as dt
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from powercrm.core.deps import extract_bearer_token
from powercrm.core.exceptions import AuthenticationException
from powercrm.core.rate_limit import rate_limit
from powercrm.db.session import get_db
from powercrm.integrations.supabase.client import SupabaseAuthClient
from powercrm.schemas.workspace import CommentCreate, SignupRequest, TaskCreate, TaskUpdate, WorkspaceResponse
from powercrm.services import workspace as workspace_service

router = APIRouter(dependencies=[Depends(rate_limit())])


def get_supabase_client() -> SupabaseAuthClient:
    return SupabaseAuthClient()


def get_workspace_user(
    request: Request,
    client: SupabaseAuthClient = Depends(get_supabase_client),
) -> dict[str, Any]:
    token = extract_bearer_token(request)
    if not token:
        raise AuthenticationException("توکن احراز هویت ارائه نشده است")
    user = client.get_user(token)
    if not user:
        raise AuthenticationException("احراز هویت ناموفق", error_code="INVALID_TOKEN")
    return user


@router.post("/auth/signup", response_model=WorkspaceResponse)
def signup(
    payload: SignupRequest,
    db: Session = Depends(get_db),
    client: SupabaseAuthClient = Depends(get_supabase_client),
) -> WorkspaceResponse:
    user = workspace_service.signup(db, client, payload)
    return WorkspaceResponse(message="کاربر با موفقیت ثبت‌نام شد", data={"user": user})


@router.get("/auth/user", response_model=WorkspaceResponse)
def current_user(
    db: Session = Depends(get_db),
    auth_user: dict[str, Any] = Depends(get_workspace_user),
) -> WorkspaceResponse:
    return WorkspaceResponse(data=workspace_service.user_profile(db, auth_user))


@router.get("/tasks", response_model=WorkspaceResponse)
def get_tasks(
    db: Session = Depends(get_db),
    auth_user: dict[str, Any] = Depends(get_workspace_user),
) -> WorkspaceResponse:
    return WorkspaceResponse(data={"tasks": workspace_service.list_tasks(db, auth_user)})


@router.post("/tasks", response_model=WorkspaceResponse)
def create_task(
    payload: TaskCreate,
    db: Session = Depends(get_db),
    auth_user: dict[str, Any] = Depends(get_workspace_user),
) -> WorkspaceResponse:
    task = workspace_service.create_task(db, auth_user, payload)
    return WorkspaceResponse(message="وظیفه با موفقیت ایجاد شد", data={"task": task})


@router.put("/tasks/{task_id}", response_model=WorkspaceResponse)
def update_task(
    task_id: str,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    auth_user: dict[str, Any] = Depends(get_workspace_user),
) -> WorkspaceResponse:
    task = workspace_service.update_task(db, auth_user, task_id, payload.model_dump(exclude_unset=True))
    return WorkspaceResponse(message="وظیفه با موفقیت به‌روزرسانی شد", data={"task": task})


@router.post("/tasks/{task_id}/comments", response_model=WorkspaceResponse)
def add_comment(
    task_id: str,
    payload: CommentCreate,
    db: Session = Depends(get_db),
    auth_user: dict[str, Any] = Depends(get_workspace_user),
) -> WorkspaceResponse:
    comment = workspace_service.add_comment(db, auth_user, task_id, payload.content)
    return WorkspaceResponse(message="نظر با موفقیت اضافه شد", data={"comment": comment})


@router.get("/history", response_model=WorkspaceResponse)
def get_history(
    db: Session = Depends(get_db),
    _: dict[str, Any] = Depends(get_workspace_user),
) -> WorkspaceResponse:
    return WorkspaceResponse(data={"history": workspace_service.list_history(db)})


@router.get("/analytics", response_model=WorkspaceResponse)
def get_analytics(
    db: Session = Depends(get_db),
    _: dict[str, Any] = Depends(get_workspace_user),
) -> WorkspaceResponse:
    return WorkspaceResponse(data=workspace_service.analytics(db))


@router.get("/health", response_model=WorkspaceResponse)
def health() -> WorkspaceResponse:
    return WorkspaceResponse(
        message="سرور فعال است",
        data={"status": "سرور فعال است", "timestamp": dt.datetime.now(dt.timezone.utc).isoformat()},
    )
