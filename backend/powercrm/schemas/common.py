"""Response envelopes and pagination shared by every endpoint."""

from __future__ import annotations

import datetime as dt
import math
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")

MAX_PAGE_SIZE = 100


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class CamelModel(BaseModel):
    """Accepts snake_case or camelCase input and emits camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str = ""
    data: T | None = None
    error: str | None = None
    timestamp: dt.datetime = Field(default_factory=utcnow)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class Paginated(CamelModel, Generic[T]):
    items: list[T]
    pagination: Pagination


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )
