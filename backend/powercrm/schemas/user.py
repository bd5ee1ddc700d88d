"""Pydantic schemas for user payloads and responses."""

from __future__ import annotations

import datetime as dt

from pydantic import Field, field_validator

from powercrm.core.sanitize import clean_optional
from powercrm.models.enums import UserRole
from powercrm.schemas.common import CamelModel

MAX_NAME_LEN = 120


class UserOut(CamelModel):
    id: int
    phone: str
    name: str | None = None
    role: UserRole
    is_active: bool = True
    last_login_at: dt.datetime | None = None
    created_at: dt.datetime
    updated_at: dt.datetime


class UserBrief(CamelModel):
    id: int
    phone: str
    name: str | None = None
    role: UserRole


class UserRoleUpdate(CamelModel):
    role: UserRole


class UserStatusUpdate(CamelModel):
    is_active: bool


class UserProfileUpdate(CamelModel):
    name: str | None = Field(default=None, max_length=MAX_NAME_LEN)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        return clean_optional(value)


class RoleCount(CamelModel):
    role: UserRole
    count: int
