"""Schemas for the system activity feed and its statistics."""

from __future__ import annotations

from pydantic import Field

from powercrm.schemas.common import CamelModel


class FieldChange(CamelModel):
    field: str
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None


class HistoryUser(CamelModel):
    id: int | None = None
    name: str
    role: str


class HistoryEntry(CamelModel):
    id: str
    task_id: str
    task_title: str
    action: str
    user: HistoryUser
    timestamp: str
    changes: list[FieldChange] | None = None
    comment: str | None = None
    details: str


class ActionCount(CamelModel):
    action: str
    action_label: str
    count: int


class ActiveUser(CamelModel):
    user: HistoryUser
    activity_count: int


class HistoryStats(CamelModel):
    total_activities: int
    recent_activities: int
    activities_by_action: list[ActionCount]
    most_active_users: list[ActiveUser]
