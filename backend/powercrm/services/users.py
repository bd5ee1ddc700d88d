"""Service helpers for admin user management."""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from powercrm.core.exceptions import BadRequestError, InsufficientPermissionsError, NotFoundError
from powercrm.core.rbac import can_change_role
from powercrm.models.enums import UserRole
from powercrm.models.user import User

logger = logging.getLogger(__name__)


def _get_live_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if not user or user.deleted_at is not None:
        logger.warning("User lookup failed (not found): %s", user_id)
        raise NotFoundError("کاربر یافت نشد")
    return user


def list_users(
    db: Session,
    *,
    role: UserRole | None = None,
    search: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[User], int]:
    query = db.query(User).filter(User.deleted_at.is_(None))
    if role:
        query = query.filter(User.role == role)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(User.phone.ilike(pattern), User.name.ilike(pattern)))
    total = query.count()
    users = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return users, total


def update_role(db: Session, user_id: int, role: UserRole, *, actor: User) -> User:
    user = _get_live_user(db, user_id)
    if actor.id == user.id:
        raise BadRequestError("امکان تغییر نقش خودتان وجود ندارد")
    if not can_change_role(actor, user, role):
        logger.warning("Role change refused: %s -> %s by %s", user.phone, role.value, actor.phone)
        raise InsufficientPermissionsError("فقط مدیر ارشد سیستم می‌تواند نقش‌های مدیریتی را تغییر دهد")
    previous = user.role
    user.role = role
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User role updated: %s %s -> %s", user.phone, previous.value, role.value)
    return user


def set_active(db: Session, user_id: int, is_active: bool, *, actor: User) -> User:
    user = _get_live_user(db, user_id)
    if actor.id == user.id:
        raise BadRequestError("امکان غیرفعال کردن حساب خودتان وجود ندارد")
    if not can_change_role(actor, user, user.role):
        raise InsufficientPermissionsError()
    user.is_active = is_active
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User %s: %s", "activated" if is_active else "deactivated", user.phone)
    return user


def update_profile(db: Session, user: User, *, name: str | None) -> User:
    user.name = name
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Profile updated: %s", user.phone)
    return user


def delete_user(db: Session, user_id: int, *, actor: User) -> None:
    user = _get_live_user(db, user_id)
    if actor.id == user.id:
        raise BadRequestError("امکان حذف حساب خودتان وجود ندارد")
    if not can_change_role(actor, user, user.role):
        raise InsufficientPermissionsError()
    user.deleted_at = dt.datetime.now(dt.timezone.utc)
    user.is_active = False
    db.add(user)
    db.commit()
    logger.info("User soft-deleted: %s", user.phone)


def count_by_role(db: Session) -> dict[UserRole, int]:
    rows = (
        db.query(User.role, func.count(User.id))
        .filter(User.deleted_at.is_(None))
        .group_by(User.role)
        .all()
    )
    counts = {role: 0 for role in UserRole}
    for role, count in rows:
        counts[UserRole(role)] = count
    return counts


def list_staff(db: Session) -> list[User]:
    return (
        db.query(User)
        .filter(
            User.deleted_at.is_(None),
            User.is_active.is_(True),
            User.role.in_([UserRole.employee, UserRole.manager, UserRole.admin, UserRole.super_admin]),
        )
        .order_by(User.name.asc(), User.id.asc())
        .all()
    )
