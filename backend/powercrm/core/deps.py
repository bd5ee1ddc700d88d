"""Common FastAPI dependencies for authentication and authorization."""

from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from powercrm.core.config import settings
from powercrm.core.exceptions import AuthenticationException, ExpiredTokenError, InsufficientPermissionsError
from powercrm.core.rbac import has_permission
from powercrm.core.security import ACCESS_TOKEN_TYPE, decode_token
from powercrm.db.session import get_db
from powercrm.models.enums import UserRole
from powercrm.models.user import User


def extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    cleaned = token.strip()
    return cleaned or None


def extract_token(request: Request) -> str | None:
    return extract_bearer_token(request) or request.cookies.get(settings.COOKIE_NAME)


def _invalid_token() -> AuthenticationException:
    return AuthenticationException("توکن نامعتبر است", error_code="INVALID_TOKEN")


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    token = extract_token(request)
    if not token:
        raise AuthenticationException()

    try:
        payload = decode_token(token)
    except ValueError as exc:
        if str(exc) == "expired_token":
            raise ExpiredTokenError()
        raise _invalid_token()
    token_type = payload.get("type")
    if token_type and token_type != ACCESS_TOKEN_TYPE:
        raise _invalid_token()
    subject = payload.get("sub")
    if not subject or not str(subject).isdigit():
        raise _invalid_token()

    user = db.get(User, int(subject))
    if not user or user.deleted_at is not None:
        raise AuthenticationException("کاربر یافت نشد", error_code="USER_NOT_FOUND")
    if not user.is_active:
        raise AuthenticationException("حساب کاربری غیرفعال است", error_code="USER_INACTIVE", status_code=403)

    return user


def require_role(minimum: UserRole):
    """Allow users whose role ranks at or above ``minimum``."""

    def _checker(user: User = Depends(get_current_user)) -> User:
        if not has_permission(user.role, minimum):
            raise InsufficientPermissionsError()
        return user

    return _checker


require_staff = require_role(UserRole.employee)
require_manager = require_role(UserRole.manager)
require_admin = require_role(UserRole.admin)
