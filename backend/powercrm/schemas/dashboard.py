"""Schemas for the manager dashboard widgets."""

from __future__ import annotations

import datetime as dt

from powercrm.models.enums import TicketStatus
from powercrm.schemas.common import CamelModel


class TicketCounters(CamelModel):
    total: int
    today: int
    yesterday: int
    open: int
    resolved: int
    pending: int
    change_percent: int
    resolution_rate: int


class UserCounters(CamelModel):
    total: int
    online: int


class ServerInfo(CamelModel):
    greeting: str
    timestamp: dt.datetime
    timezone: str


class DashboardStats(CamelModel):
    tickets: TicketCounters
    users: UserCounters
    server_info: ServerInfo


class RecentActivity(CamelModel):
    id: int
    ticket_number: str | None
    type: str
    description: str
    details: str
    time: str
    status: TicketStatus
    user: str


class RecentActivities(CamelModel):
    activities: list[RecentActivity]


class Performer(CamelModel):
    id: int
    name: str
    resolved_count: int
    rank: int
    badge: str


class TopPerformers(CamelModel):
    performers: list[Performer]
