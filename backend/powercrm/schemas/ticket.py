"""Pydantic schemas for tickets, comments, audit rows and stats."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import Field, field_validator, model_validator

from powercrm.core.sanitize import clean_multiline, clean_optional, clean_single_line
from powercrm.models.enums import TicketAction, TicketPriority, TicketSource, TicketStatus, TicketType
from powercrm.schemas.common import CamelModel
from powercrm.schemas.user import UserBrief

MIN_TITLE_LEN = 5
MAX_TITLE_LEN = 200
MIN_CONTENT_LEN = 10
MAX_CONTENT_LEN = 2000
MAX_COMMENT_LEN = 2000


class TicketCreate(CamelModel):
    title: str = Field(min_length=MIN_TITLE_LEN, max_length=MAX_TITLE_LEN)
    content: str = Field(min_length=MIN_CONTENT_LEN, max_length=MAX_CONTENT_LEN)
    priority: TicketPriority = TicketPriority.medium
    type: TicketType = TicketType.complaint
    source: TicketSource = TicketSource.website
    customer_name: str | None = Field(default=None, max_length=120)
    customer_phone: str | None = Field(default=None, max_length=20)
    customer_address: str | None = Field(default=None, max_length=255)
    meter_number: str | None = Field(default=None, max_length=32)
    account_number: str | None = Field(default=None, max_length=32)

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return clean_multiline(value)

    @field_validator(
        "customer_name",
        "customer_phone",
        "customer_address",
        "meter_number",
        "account_number",
        mode="before",
    )
    @classmethod
    def normalize_optional(cls, value: str | None) -> str | None:
        return clean_optional(value)


class TicketContentUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=MIN_TITLE_LEN, max_length=MAX_TITLE_LEN)
    content: str | None = Field(default=None, min_length=MIN_CONTENT_LEN, max_length=MAX_CONTENT_LEN)
    priority: TicketPriority | None = None

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str | None) -> str | None:
        return clean_single_line(value) or None

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, value: str | None) -> str | None:
        return clean_multiline(value) or None

    @model_validator(mode="after")
    def require_change(self) -> "TicketContentUpdate":
        if self.title is None and self.content is None and self.priority is None:
            raise ValueError("حداقل یکی از فیلدهای عنوان یا محتوا باید ارسال شود")
        return self


class TicketStatusUpdate(CamelModel):
    status: TicketStatus
    note: str | None = Field(default=None, max_length=MAX_COMMENT_LEN)

    @field_validator("note", mode="before")
    @classmethod
    def normalize_note(cls, value: str | None) -> str | None:
        return clean_multiline(value) or None


class TicketAssign(CamelModel):
    assignee_id: int = Field(gt=0)


class TicketCommentCreate(CamelModel):
    content: str = Field(min_length=1, max_length=MAX_COMMENT_LEN)
    is_internal: bool = False

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return clean_multiline(value)


class TicketCommentOut(CamelModel):
    id: int
    ticket_id: int
    content: str
    is_internal: bool
    created_at: dt.datetime
    author: UserBrief


class TicketOut(CamelModel):
    id: int
    ticket_number: str | None
    title: str
    content: str
    status: TicketStatus
    priority: TicketPriority
    type: TicketType
    source: TicketSource
    author_id: int
    assignee_id: int | None = None
    customer_name: str | None = None
    customer_phone: str | None = None
    customer_address: str | None = None
    meter_number: str | None = None
    account_number: str | None = None
    resolution: str | None = None
    resolved_at: dt.datetime | None = None
    resolved_by_id: int | None = None
    first_response_at: dt.datetime | None = None
    created_at: dt.datetime
    updated_at: dt.datetime
    author: UserBrief | None = None
    assignee: UserBrief | None = None


class TicketLogOut(CamelModel):
    id: int
    ticket_id: int
    action: TicketAction
    description: str
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    changes: dict[str, Any] = Field(default_factory=dict)
    meta: dict[str, Any] | None = Field(default=None, serialization_alias="metadata")
    created_at: dt.datetime
    user: UserBrief | None = None


class TicketStats(CamelModel):
    total: int = 0
    open: int = 0
    assigned: int = 0
    in_progress: int = 0
    pending_info: int = 0
    pending_approval: int = 0
    resolved: int = 0
    closed: int = 0
    rejected: int = 0
    escalated: int = 0
    on_hold: int = 0


class TicketTransitions(CamelModel):
    current: TicketStatus
    available: list[TicketStatus]
