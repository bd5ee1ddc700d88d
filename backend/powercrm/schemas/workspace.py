"""Schemas for the Supabase-backed task workspace."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_serializer

from powercrm.core.sanitize import clean_multiline, clean_optional, clean_single_line

DEFAULT_WORKSPACE_ROLE = "کارشناس"
MANAGER_WORKSPACE_ROLES = frozenset({"مدیر", "مدیر سیستم"})


class WorkspaceResponse(BaseModel):
    message: str | None = None
    data: Any | None = None
    error: str | None = None

    @model_serializer(mode="wrap")
    def drop_empty_keys(self, handler):
        return {key: value for key, value in handler(self).items() if value is not None}


class SignupRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=1, max_length=120)
    role: str = DEFAULT_WORKSPACE_ROLE

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("role", mode="before")
    @classmethod
    def normalize_role(cls, value: str | None) -> str:
        return clean_optional(value) or DEFAULT_WORKSPACE_ROLE


class TaskCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=4000)
    priority: str | None = None
    assigned_to: str | None = None
    category: str | None = None
    due_date: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_multiline(value) or None


class TaskUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=4000)
    status: str | None = None
    priority: str | None = None
    assigned_to: str | None = None
    category: str | None = None
    due_date: str | None = None


class CommentCreate(BaseModel):
    content: str = Field(max_length=2000)
