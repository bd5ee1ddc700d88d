"""Persian labels, messages and date formatting shared by the API layers."""

from __future__ import annotations

import datetime as dt
import math
from zoneinfo import ZoneInfo

import jdatetime

from powercrm.core.config import settings
from powercrm.models.enums import TicketAction, UserRole

UNKNOWN_ERROR = "خطای نامشخص رخ داد"
NETWORK_ERROR = "خطا در اتصال به سرور"
VALIDATION_ERROR = "خطا در اعتبارسنجی داده‌ها"
INTERNAL_ERROR = "خطای داخلی سرور"

ROLE_LABELS: dict[UserRole, str] = {
    UserRole.super_admin: "مدیر سیستم",
    UserRole.admin: "مدیر سیستم",
    UserRole.manager: "مدیر",
    UserRole.employee: "کارشناس",
    UserRole.client: "مشتری",
}

FIELD_LABELS = {
    "status": "وضعیت",
    "assignee": "مسئول",
    "assignee_id": "مسئول",
    "priority": "اولویت",
    "title": "عنوان",
    "content": "محتوا",
}

# Front-end history buckets and their labels.
HISTORY_ACTIONS: dict[TicketAction, str] = {
    TicketAction.created: "created",
    TicketAction.status_changed: "status_changed",
    TicketAction.assigned: "assigned",
    TicketAction.reassigned: "assigned",
    TicketAction.commented: "comment_added",
    TicketAction.updated: "updated",
    TicketAction.deleted: "updated",
}

HISTORY_ACTION_LABELS = {
    "created": "ایجاد شده",
    "status_changed": "تغییر وضعیت",
    "assigned": "واگذاری",
    "comment_added": "نظر افزوده شد",
    "file_attached": "فایل پیوست شد",
    "updated": "به‌روزرسانی",
}

_PERSIAN_DIGITS = str.maketrans("0123456789", "۰۱۲۳۴۵۶۷۸۹")


def role_label(role: UserRole | str | None) -> str:
    try:
        return ROLE_LABELS[UserRole(role)]
    except ValueError:
        return "کاربر"


def field_label(field: str) -> str:
    return FIELD_LABELS.get(field, "مقدار")


def to_persian_digits(value: object) -> str:
    return str(value).translate(_PERSIAN_DIGITS)


def round_half_up(value: float) -> int:
    """Round like the dashboards do: ``12.5`` -> ``13``, ``-12.5`` -> ``-12``."""
    return math.floor(value + 0.5)


def percent(part: int, whole: int) -> int:
    return round_half_up(part / whole * 100) if whole else 0


def local_now() -> dt.datetime:
    return dt.datetime.now(ZoneInfo(settings.TIMEZONE))


def to_local(moment: dt.datetime) -> dt.datetime:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt.timezone.utc)
    return moment.astimezone(ZoneInfo(settings.TIMEZONE))


def format_jalali(moment: dt.datetime | None, fmt: str = "%Y/%m/%d %H:%M") -> str:
    """Render a timestamp as a Jalali date in the configured timezone."""
    if moment is None:
        return ""
    local = to_local(moment).replace(tzinfo=None)
    return to_persian_digits(jdatetime.datetime.fromgregorian(datetime=local).strftime(fmt))


def greeting(hour: int) -> str:
    if 6 <= hour < 12:
        return "صبح بخیر"
    if 12 <= hour < 17:
        return "ظهر بخیر"
    if 17 <= hour < 21:
        return "عصر بخیر"
    return "شب بخیر"


def relative_time(moment: dt.datetime, now: dt.datetime | None = None) -> str:
    now = now or dt.datetime.now(dt.timezone.utc)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=dt.timezone.utc)
    minutes = int((now - moment).total_seconds() // 60)
    if minutes < 1:
        return "همین الان"
    if minutes < 60:
        return f"{minutes} دقیقه پیش"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} ساعت پیش"
    return f"{hours // 24} روز پیش"
