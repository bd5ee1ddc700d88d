"""Task workspace backed by Supabase auth and a key/value table.

Keys:
    user:<id>                       profile written at signup
    task:<id>                       canonical task document
    task:user:<assignee>:<id>       copy indexed by assignee
    history:<task>:<ms>             one entry per task mutation
"""

from __future__ import annotations

import datetime as dt
import logging
import time
from typing import Any

from sqlalchemy.orm import Session

from powercrm.core.exceptions import BadRequestError, InsufficientPermissionsError, NotFoundError
from powercrm.core.i18n import percent
from powercrm.integrations.supabase.client import SupabaseAuthClient, SupabaseAuthError
from powercrm.models.kv_entry import KVEntry
from powercrm.schemas.workspace import DEFAULT_WORKSPACE_ROLE, MANAGER_WORKSPACE_ROLES, SignupRequest, TaskCreate

logger = logging.getLogger(__name__)

DEFAULT_TASK_STATUS = "دیده نشده"
DEFAULT_TASK_PRIORITY = "متوسط"
DEFAULT_TASK_CATEGORY = "عمومی"
COMPLETED_STATUSES = frozenset({"انجام شده", "پایان با موفقیت"})
IN_PROGRESS_STATUS = "در حال انجام"


def _now_iso() -> str:
    return dt.datetime.now(dt.timezone.utc).isoformat()


def _now_ms() -> int:
    return int(time.time() * 1000)


# ---- key/value primitives ----


def kv_get(db: Session, key: str) -> dict[str, Any] | None:
    entry = db.get(KVEntry, key)
    return dict(entry.value) if entry else None


def kv_set(db: Session, key: str, value: dict[str, Any]) -> None:
    entry = db.get(KVEntry, key)
    if entry is None:
        db.add(KVEntry(key=key, value=value))
    else:
        entry.value = value
    db.flush()


def kv_del(db: Session, key: str) -> None:
    entry = db.get(KVEntry, key)
    if entry is not None:
        db.delete(entry)
        db.flush()


def kv_get_by_prefix(db: Session, prefix: str) -> list[dict[str, Any]]:
    entries = db.query(KVEntry).filter(KVEntry.key.startswith(prefix, autoescape=True)).order_by(KVEntry.key).all()
    return [dict(entry.value) for entry in entries]


def _free_key(db: Session, build) -> str:
    """Millisecond keys can collide within one request burst; bump until free."""
    stamp = _now_ms()
    while db.get(KVEntry, build(stamp)) is not None:
        stamp += 1
    return build(stamp)


# ---- auth ----


def signup(db: Session, client: SupabaseAuthClient, data: SignupRequest) -> dict[str, Any]:
    try:
        created = client.create_user(
            email=data.email,
            password=data.password,
            metadata={"name": data.name, "role": data.role},
        )
    except SupabaseAuthError as exc:
        logger.warning("Workspace signup rejected for %s: %s", data.email, exc.message)
        raise BadRequestError(f"خطا در ثبت‌نام: {exc.message}") from exc

    user_id = str(created.get("id") or "")
    if not user_id:
        raise BadRequestError("خطا در ثبت‌نام: پاسخ نامعتبر از سرویس احراز هویت")
    profile = {
        "id": user_id,
        "email": data.email,
        "name": data.name,
        "role": data.role,
        "created_at": _now_iso(),
        "is_active": True,
    }
    kv_set(db, f"user:{user_id}", profile)
    db.commit()
    logger.info("Workspace user signed up: %s", data.email)
    return {"id": user_id, "email": data.email, "name": data.name, "role": data.role}


def user_profile(db: Session, auth_user: dict[str, Any]) -> dict[str, Any]:
    stored = kv_get(db, f"user:{auth_user['id']}") or {}
    metadata = auth_user.get("user_metadata") or {}
    return {
        "id": auth_user["id"],
        "email": auth_user.get("email"),
        "name": stored.get("name") or metadata.get("name"),
        "role": stored.get("role") or metadata.get("role") or DEFAULT_WORKSPACE_ROLE,
    }


def is_workspace_manager(db: Session, auth_user: dict[str, Any]) -> bool:
    return user_profile(db, auth_user)["role"] in MANAGER_WORKSPACE_ROLES


# ---- tasks ----


def _all_tasks(db: Session) -> list[dict[str, Any]]:
    return kv_get_by_prefix(db, "task:T-")


def _sort_by_update(tasks: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return sorted(tasks, key=lambda task: task.get("updated_at") or "", reverse=True)


def list_tasks(db: Session, auth_user: dict[str, Any]) -> list[dict[str, Any]]:
    tasks = kv_get_by_prefix(db, f"task:user:{auth_user['id']}:")
    if is_workspace_manager(db, auth_user):
        tasks += _all_tasks(db)
    unique: dict[str, dict[str, Any]] = {}
    for task in tasks:
        unique.setdefault(task["id"], task)
    return _sort_by_update(list(unique.values()))


def _save_task(db: Session, task: dict[str, Any]) -> None:
    kv_set(db, f"task:{task['id']}", task)
    kv_set(db, f"task:user:{task['assigned_to']}:{task['id']}", task)


def _add_history(db: Session, task_id: str, entry: dict[str, Any]) -> None:
    key = _free_key(db, lambda stamp: f"history:{task_id}:{stamp}")
    kv_set(db, key, {"task_id": task_id, **entry})


def _get_task(db: Session, task_id: str) -> dict[str, Any]:
    task = kv_get(db, f"task:{task_id}")
    if not task:
        raise NotFoundError("وظیفه یافت نشد")
    return task


def _ensure_task_access(db: Session, auth_user: dict[str, Any], task: dict[str, Any]) -> None:
    if auth_user["id"] in {task.get("assigned_to"), task.get("created_by")}:
        return
    if is_workspace_manager(db, auth_user):
        return
    raise InsufficientPermissionsError("دسترسی به این وظیفه مجاز نیست")


def create_task(db: Session, auth_user: dict[str, Any], data: TaskCreate) -> dict[str, Any]:
    task_id = _free_key(db, lambda stamp: f"task:T-{stamp}").removeprefix("task:")
    now = _now_iso()
    task = {
        "id": task_id,
        "title": data.title,
        "description": data.description,
        "status": DEFAULT_TASK_STATUS,
        "priority": data.priority or DEFAULT_TASK_PRIORITY,
        "assigned_to": data.assigned_to or auth_user["id"],
        "category": data.category or DEFAULT_TASK_CATEGORY,
        "created_by": auth_user["id"],
        "created_at": now,
        "updated_at": now,
        "due_date": data.due_date,
        "comments": [],
        "attachments": [],
    }
    _save_task(db, task)
    _add_history(
        db,
        task_id,
        {"action": "created", "user_id": auth_user["id"], "timestamp": now, "details": "وظیفه جدید ایجاد شد", "changes": []},
    )
    db.commit()
    logger.info("Workspace task created: %s", task_id)
    return task


def update_task(db: Session, auth_user: dict[str, Any], task_id: str, updates: dict[str, Any]) -> dict[str, Any]:
    existing = _get_task(db, task_id)
    _ensure_task_access(db, auth_user, existing)
    if not updates:
        raise BadRequestError("هیچ تغییری ارسال نشده است")

    changes = [
        {"field": key, "from": existing.get(key), "to": value}
        for key, value in updates.items()
        if existing.get(key) != value
    ]
    now = _now_iso()
    updated = {**existing, **updates, "updated_at": now}
    if not updated.get("assigned_to"):
        updated["assigned_to"] = existing["assigned_to"]

    _save_task(db, updated)
    if updated["assigned_to"] != existing["assigned_to"]:
        kv_del(db, f"task:user:{existing['assigned_to']}:{task_id}")

    status = updates.get("status")
    _add_history(
        db,
        task_id,
        {
            "action": "status_changed" if status else "updated",
            "user_id": auth_user["id"],
            "timestamp": now,
            "details": f"وضعیت به {status} تغییر یافت" if status else "وظیفه به‌روزرسانی شد",
            "changes": changes,
        },
    )
    db.commit()
    logger.info("Workspace task updated: %s (%d fields)", task_id, len(changes))
    return updated


def add_comment(db: Session, auth_user: dict[str, Any], task_id: str, content: str) -> dict[str, Any]:
    text = (content or "").strip()
    if not text:
        raise BadRequestError("متن نظر الزامی است")
    task = _get_task(db, task_id)
    _ensure_task_access(db, auth_user, task)

    profile = kv_get(db, f"user:{auth_user['id']}") or {}
    now = _now_iso()
    comment = {
        "id": f"C-{_now_ms()}-{len(task.get('comments') or []) + 1}",
        "author": profile.get("name") or "کاربر",
        "author_id": auth_user["id"],
        "content": text,
        "timestamp": now,
    }
    updated = {**task, "comments": [*(task.get("comments") or []), comment], "updated_at": now}
    _save_task(db, updated)
    _add_history(
        db,
        task_id,
        {"action": "comment_added", "user_id": auth_user["id"], "timestamp": now, "details": "نظر جدید اضافه شد", "comment": text},
    )
    db.commit()
    logger.info("Workspace comment added: %s", task_id)
    return comment


def list_history(db: Session) -> list[dict[str, Any]]:
    enriched = []
    for entry in kv_get_by_prefix(db, "history:"):
        profile = kv_get(db, f"user:{entry.get('user_id')}") or {}
        task = kv_get(db, f"task:{entry.get('task_id')}") or {}
        enriched.append(
            {
                **entry,
                "user": {"name": profile.get("name") or "کاربر نامشخص", "role": profile.get("role") or DEFAULT_WORKSPACE_ROLE},
                "task_title": task.get("title") or "وظیفه حذف شده",
            }
        )
    return sorted(enriched, key=lambda item: item.get("timestamp") or "", reverse=True)


def _count_by(tasks: list[dict[str, Any]], field: str) -> dict[str, int]:
    counts: dict[str, int] = {}
    for task in tasks:
        key = str(task.get(field))
        counts[key] = counts.get(key, 0) + 1
    return counts


def analytics(db: Session) -> dict[str, Any]:
    tasks = _all_tasks(db)
    total = len(tasks)
    completed = sum(1 for task in tasks if task.get("status") in COMPLETED_STATUSES)
    return {
        "summary": {
            "total_tasks": total,
            "completed_tasks": completed,
            "in_progress_tasks": sum(1 for task in tasks if task.get("status") == IN_PROGRESS_STATUS),
            "unseen_tasks": sum(1 for task in tasks if task.get("status") == DEFAULT_TASK_STATUS),
            "success_rate": percent(completed, total),
        },
        "category_stats": _count_by(tasks, "category"),
        "status_stats": _count_by(tasks, "status"),
        "priority_stats": _count_by(tasks, "priority"),
    }
