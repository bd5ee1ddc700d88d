"""Audit log rows written for every ticket mutation."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from powercrm.db.base import Base, JSONType
from powercrm.models.enums import TicketAction
from powercrm.models.ticket import Ticket
from powercrm.models.user import User


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class TicketLog(Base):
    __tablename__ = "ticket_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    action: Mapped[TicketAction] = mapped_column(
        Enum(TicketAction, name="ticket_action", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    before: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    after: Mapped[dict | None] = mapped_column(JSONType, nullable=True)
    changes: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    # Free-form context such as the status note or the comment id.
    meta: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, index=True)

    ticket: Mapped[Ticket] = relationship("Ticket")
    user: Mapped[User] = relationship("User")
