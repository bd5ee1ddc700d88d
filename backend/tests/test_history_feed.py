from __future__ import annotations

import datetime as dt

from powercrm.core.i18n import format_jalali, greeting, relative_time, role_label, to_persian_digits
from powercrm.models.enums import TicketAction, UserRole
from powercrm.models.ticket import Ticket
from powercrm.models.ticket_log import TicketLog
from powercrm.models.user import User
from powercrm.services.history import to_history_entry


def _create_ticket(client, headers, title: str = "قطعی برق در خیابان اصلی") -> dict:
    response = client.post(
        "/api/tickets/",
        json={"title": title, "content": "از صبح امروز برق کل کوچه قطع شده است."},
        headers=headers,
    )
    return response.json()["data"]


def test_persian_helpers() -> None:
    assert to_persian_digits("TK000012") == "TK۰۰۰۰۱۲"
    assert role_label(UserRole.manager) == "مدیر"
    assert role_label("EMPLOYEE") == "کارشناس"
    assert role_label("nobody") == "کاربر"
    assert greeting(8) == "صبح بخیر"
    assert greeting(14) == "ظهر بخیر"
    assert greeting(19) == "عصر بخیر"
    assert greeting(2) == "شب بخیر"


def test_relative_time_buckets() -> None:
    now = dt.datetime(2024, 6, 1, 12, 0, tzinfo=dt.timezone.utc)

    assert relative_time(now - dt.timedelta(seconds=20), now) == "همین الان"
    assert relative_time(now - dt.timedelta(minutes=5), now) == "5 دقیقه پیش"
    assert relative_time(now - dt.timedelta(hours=3), now) == "3 ساعت پیش"
    assert relative_time(now - dt.timedelta(days=2), now) == "2 روز پیش"


def test_format_jalali_uses_tehran_time() -> None:
    # 2023-09-30 20:30 UTC is midnight of 1402/07/09 in Tehran.
    moment = dt.datetime(2023, 9, 30, 20, 30, tzinfo=dt.timezone.utc)

    assert format_jalali(moment) == "۱۴۰۲/۰۷/۰۹ ۰۰:۰۰"
    assert format_jalali(None) == ""


def test_history_entry_maps_log_row() -> None:
    user = User(id=4, phone="09120000004", name="کارشناس پشتیبانی", role=UserRole.employee)
    ticket = Ticket(id=12, title="قطعی برق", content="برق منطقه قطع است", author_id=1)
    log = TicketLog(
        id=31,
        ticket_id=12,
        user_id=4,
        action=TicketAction.reassigned,
        description="تیکت مجدداً واگذار شد",
        changes={"assignee_id": {"from": 5, "to": 4}, "updated_at": {"from": "a", "to": "b"}},
        meta={"note": "انتقال به شیفت شب"},
        created_at=dt.datetime(2023, 9, 30, 20, 30, tzinfo=dt.timezone.utc),
    )
    log.user = user
    log.ticket = ticket

    entry = to_history_entry(log).model_dump(by_alias=True)

    assert entry["id"] == "H-31"
    assert entry["taskId"] == "TK-12"
    assert entry["taskTitle"] == "قطعی برق"
    assert entry["action"] == "assigned"
    assert entry["user"] == {"id": 4, "name": "کارشناس پشتیبانی", "role": "کارشناس"}
    assert entry["changes"] == [{"field": "مسئول", "from": "5", "to": "4"}]
    assert entry["comment"] == "انتقال به شیفت شب"
    assert entry["timestamp"] == "۱۴۰۲/۰۷/۰۹ ۰۰:۰۰"


def test_history_endpoint_filters_by_bucket(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    employee = make_user(UserRole.employee)
    ticket = _create_ticket(client, auth_headers(author))
    client.put(f"/api/tickets/{ticket['id']}/status", json={"status": "IN_PROGRESS"}, headers=auth_headers(employee))

    everything = client.get("/api/history/", headers=auth_headers(employee)).json()["data"]
    status_only = client.get(
        "/api/history/", params={"action": "status_changed"}, headers=auth_headers(employee)
    ).json()["data"]
    by_user = client.get("/api/history/", params={"userId": author.id}, headers=auth_headers(employee)).json()["data"]

    assert everything["pagination"]["total"] == 2
    assert [item["action"] for item in status_only["items"]] == ["status_changed"]
    assert status_only["items"][0]["changes"][0] == {"field": "وضعیت", "from": "OPEN", "to": "IN_PROGRESS"}
    assert [item["action"] for item in by_user["items"]] == ["created"]


def test_history_requires_staff_and_audit_requires_manager(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    employee = make_user(UserRole.employee)
    manager = make_user(UserRole.manager)
    _create_ticket(client, auth_headers(author))

    assert client.get("/api/history/", headers=auth_headers(author)).status_code == 403
    assert client.get("/api/history/audit", headers=auth_headers(employee)).status_code == 403
    audit = client.get("/api/history/audit", headers=auth_headers(manager)).json()["data"]
    assert audit["items"][0]["action"] == "CREATED"
    assert audit["items"][0]["after"]["status"] == "OPEN"


def test_history_stats(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client, name="مشترک")
    employee = make_user(UserRole.employee)
    first = _create_ticket(client, auth_headers(author))
    _create_ticket(client, auth_headers(author), title="اشتباه در قبض ماه گذشته")
    client.post(f"/api/tickets/{first['id']}/comments", json={"content": "پیگیری شد"}, headers=auth_headers(employee))

    stats = client.get("/api/history/stats", headers=auth_headers(employee)).json()["data"]

    assert stats["totalActivities"] == 3
    assert stats["recentActivities"] == 3
    assert stats["activitiesByAction"][0] == {"action": "created", "actionLabel": "ایجاد شده", "count": 2}
    assert stats["mostActiveUsers"][0]["user"]["name"] == "مشترک"
    assert stats["mostActiveUsers"][0]["activityCount"] == 2
