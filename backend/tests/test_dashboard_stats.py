from __future__ import annotations

import datetime as dt

from powercrm.core.i18n import percent, round_half_up
from powercrm.models.enums import TicketStatus, UserRole
from powercrm.models.ticket import Ticket
from powercrm.services.dashboard import _percent_change, dashboard_stats, top_performers


def _ticket(author_id: int, *, status: TicketStatus = TicketStatus.open, created_at: dt.datetime, assignee_id: int | None = None) -> Ticket:
    return Ticket(
        title="قطعی برق",
        content="برق منطقه قطع است",
        status=status,
        author_id=author_id,
        assignee_id=assignee_id,
        created_at=created_at,
        updated_at=created_at,
    )


def test_percent_change() -> None:
    assert _percent_change(6, 4) == 50
    assert _percent_change(2, 4) == -50
    assert _percent_change(3, 0) == 100
    assert _percent_change(0, 0) == 0


def test_halves_round_up() -> None:
    assert _percent_change(9, 8) == 13
    assert _percent_change(7, 8) == -12
    assert percent(1, 8) == 13
    assert percent(3, 8) == 38
    assert percent(0, 0) == 0
    assert round_half_up(2.5) == 3


def test_dashboard_counts_by_local_day(db, make_user) -> None:
    author = make_user(UserRole.client, last_login_at=dt.datetime.now(dt.timezone.utc))
    # 09:00 Tehran time.
    now = dt.datetime(2024, 6, 1, 5, 30, tzinfo=dt.timezone.utc)
    db.add_all(
        [
            _ticket(author.id, created_at=now - dt.timedelta(hours=1)),
            _ticket(author.id, created_at=now - dt.timedelta(hours=2), status=TicketStatus.resolved),
            _ticket(author.id, created_at=now - dt.timedelta(hours=12), status=TicketStatus.in_progress),
            _ticket(author.id, created_at=now - dt.timedelta(days=5), status=TicketStatus.closed),
        ]
    )
    db.commit()

    stats = dashboard_stats(db, now=now)

    assert stats.tickets.total == 4
    assert stats.tickets.today == 2
    assert stats.tickets.yesterday == 1
    assert stats.tickets.change_percent == 100
    assert stats.tickets.resolved == 1
    assert stats.tickets.pending == 2
    assert stats.tickets.open == 1
    assert stats.tickets.resolution_rate == 25
    assert stats.server_info.greeting == "صبح بخیر"
    assert stats.server_info.timezone == "Asia/Tehran"


def test_top_performers_rank_resolved_tickets(db, make_user) -> None:
    author = make_user(UserRole.client)
    best = make_user(UserRole.employee, name="کارشناس اول")
    second = make_user(UserRole.manager, name="مدیر دوم")
    admin = make_user(UserRole.admin, name="مدیر سیستم")
    now = dt.datetime.now(dt.timezone.utc)
    tickets = [_ticket(author.id, status=TicketStatus.resolved, created_at=now, assignee_id=best.id) for _ in range(3)]
    tickets.append(_ticket(author.id, status=TicketStatus.resolved, created_at=now, assignee_id=second.id))
    tickets.append(_ticket(author.id, status=TicketStatus.resolved, created_at=now, assignee_id=admin.id))
    tickets.append(_ticket(author.id, status=TicketStatus.in_progress, created_at=now, assignee_id=second.id))
    db.add_all(tickets)
    db.commit()

    performers = top_performers(db)

    assert [(p.name, p.resolved_count, p.rank, p.badge) for p in performers] == [
        ("کارشناس اول", 3, 1, "طلایی"),
        ("مدیر دوم", 1, 2, "نقره‌ای"),
    ]


def test_dashboard_endpoints_are_manager_only(client, make_user, auth_headers) -> None:
    employee = make_user(UserRole.employee)
    manager = make_user(UserRole.manager)
    client.post(
        "/api/tickets/",
        json={"title": "قطعی برق در خیابان اصلی", "content": "از صبح امروز برق کل کوچه قطع شده است."},
        headers=auth_headers(employee),
    )

    refused = client.get("/api/tickets/dashboard-stats", headers=auth_headers(employee))
    stats = client.get("/api/tickets/dashboard-stats", headers=auth_headers(manager)).json()["data"]
    recent = client.get("/api/tickets/recent-activities", headers=auth_headers(manager)).json()["data"]
    top = client.get("/api/tickets/top-performers", headers=auth_headers(manager)).json()["data"]

    assert refused.status_code == 403
    assert stats["tickets"]["total"] == 1
    assert "serverInfo" in stats
    assert recent["activities"][0]["type"] == "جدید"
    assert recent["activities"][0]["time"] == "همین الان"
    assert top == {"performers": []}
