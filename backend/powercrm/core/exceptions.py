"""Domain errors rendered as the API failure envelope.

Each class fixes an HTTP status and a stable ``error_code``; the message is the
Persian text shown to the user and ends up in the envelope's ``error`` field.
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional


class PowerCRMException(Exception):
    """Base class; subclasses override the class-level defaults."""

    default_message: ClassVar[str] = "درخواست نامعتبر است"
    default_code: ClassVar[str] = "BAD_REQUEST"
    default_status: ClassVar[int] = 400

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_code
        self.status_code = status_code or self.default_status
        self.details = dict(details or {})
        self.headers = headers
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "message": self.message,
            "error": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }


class BadRequestError(PowerCRMException):
    pass


class NotFoundError(PowerCRMException):
    default_message = "مورد درخواستی یافت نشد"
    default_code = "NOT_FOUND"
    default_status = 404


class InvalidConfigurationError(PowerCRMException):
    """Startup refused because a setting is unsafe or missing."""

    default_code = "INVALID_CONFIG"
    default_status = 500

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(message, details={"setting": setting} if setting else None)


class RateLimitExceeded(PowerCRMException):
    default_message = "تعداد درخواست‌ها بیش از حد مجاز است، لطفاً بعداً تلاش کنید"
    default_code = "RATE_LIMIT"
    default_status = 429

    def __init__(self, *, retry_after: int, limit: int, window_seconds: int):
        super().__init__(
            details={"retry_after": retry_after, "limit": limit, "window_seconds": window_seconds},
            headers={"Retry-After": str(retry_after), "X-RateLimit-Limit": str(limit)},
        )


class InvalidStatusTransitionError(PowerCRMException):
    default_code = "INVALID_STATUS_TRANSITION"
    default_status = 403

    def __init__(self, current: str, target: str, *, allowed: Optional[list[str]] = None):
        super().__init__(
            f"تغییر وضعیت از {current} به {target} مجاز نیست",
            details={"currentStatus": current, "requestedStatus": target, "availableTransitions": allowed or []},
        )


class UpstreamServiceError(PowerCRMException):
    """An outside service (SMS gateway, auth provider) failed or is unreachable.

    ``status_code`` here is the upstream status and is kept in ``details``; the
    response itself is always a 502.
    """

    default_message = "خطا در اتصال به سرور"
    default_code = "UPSTREAM_ERROR"
    default_status = 502

    def __init__(self, message: Optional[str] = None, *, service: str, status_code: Optional[int] = None):
        details: Dict[str, Any] = {"service": service}
        if status_code:
            details["status_code"] = status_code
        super().__init__(message, details=details)


# ---- authentication / authorization ----


class AuthenticationException(PowerCRMException):
    default_message = "کاربر احراز هویت نشده است"
    default_code = "NOT_AUTHENTICATED"
    default_status = 401


class ExpiredTokenError(AuthenticationException):
    default_message = "توکن منقضی شده است"
    default_code = "EXPIRED_TOKEN"


class InsufficientPermissionsError(AuthenticationException):
    default_message = "دسترسی غیرمجاز"
    default_code = "INSUFFICIENT_PERMISSIONS"
    default_status = 403
