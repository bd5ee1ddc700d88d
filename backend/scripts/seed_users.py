"""Seed one account per role plus a handful of sample tickets."""

from __future__ import annotations

import sys
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE_DIR))

from powercrm.db.base import Base  # noqa: E402
from powercrm.db.session import SessionLocal, engine  # noqa: E402
from powercrm.models.enums import TicketPriority, TicketStatus, TicketType, UserRole  # noqa: E402
from powercrm.models.ticket import Ticket  # noqa: E402
from powercrm.models.user import User  # noqa: E402
from powercrm.schemas.ticket import TicketCreate  # noqa: E402
from powercrm.services.tickets import assign_ticket, create_ticket, update_status  # noqa: E402


SEED_USERS = [
    {"phone": "09120000001", "name": "مدیر ارشد", "role": UserRole.super_admin},
    {"phone": "09120000002", "name": "مدیر سیستم", "role": UserRole.admin},
    {"phone": "09120000003", "name": "مدیر واحد", "role": UserRole.manager},
    {"phone": "09120000004", "name": "کارشناس پشتیبانی", "role": UserRole.employee},
    {"phone": "09120000005", "name": "مشترک نمونه", "role": UserRole.client},
]

SEED_TICKETS = [
    {
        "title": "قطعی برق در خیابان اصلی",
        "content": "از ساعت هشت صبح برق کل کوچه قطع شده و هنوز وصل نشده است.",
        "priority": TicketPriority.high,
        "type": TicketType.power_outage,
    },
    {
        "title": "اشتباه در قبض ماه گذشته",
        "content": "مبلغ قبض این دوره نسبت به مصرف واقعی بسیار بیشتر محاسبه شده است.",
        "priority": TicketPriority.medium,
        "type": TicketType.billing,
    },
    {
        "title": "درخواست تعویض کنتور",
        "content": "کنتور منزل خراب است و عدد مصرف را درست نشان نمی‌دهد.",
        "priority": TicketPriority.low,
        "type": TicketType.maintenance,
    },
]


def _upsert_user(db, payload: dict) -> tuple[User, bool]:
    user = db.query(User).filter(User.phone == payload["phone"]).first()
    if user is not None:
        return user, False
    user = User(phone=payload["phone"], name=payload["name"], role=payload["role"], is_active=True)
    db.add(user)
    db.flush()
    return user, True


def seed() -> None:
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    created_users = 0
    created_tickets = 0

    try:
        users: dict[UserRole, User] = {}
        for payload in SEED_USERS:
            user, created = _upsert_user(db, payload)
            users[payload["role"]] = user
            created_users += int(created)
        db.commit()

        client = users[UserRole.client]
        employee = users[UserRole.employee]
        manager = users[UserRole.manager]
        existing = db.query(Ticket).filter(Ticket.author_id == client.id).count()
        if not existing:
            for payload in SEED_TICKETS:
                create_ticket(db, TicketCreate(**payload), author=client)
                created_tickets += 1

            first = db.query(Ticket).filter(Ticket.author_id == client.id).order_by(Ticket.id.asc()).first()
            if first is not None:
                assign_ticket(db, first.id, employee.id, actor=manager)
                update_status(db, first.id, TicketStatus.in_progress, actor=employee)

        print(f"users_created={created_users}")
        print(f"tickets_created={created_tickets}")
        for role, user in users.items():
            print(f"{role.value}\t{user.phone}\tid={user.id}")
    finally:
        db.close()


if __name__ == "__main__":
    seed()
