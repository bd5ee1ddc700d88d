"""Pydantic schemas for phone login and token responses."""

from __future__ import annotations

from pydantic import Field, field_validator

from powercrm.core.sanitize import is_valid_phone, normalize_phone
from powercrm.schemas.common import CamelModel
from powercrm.schemas.user import UserOut


class PhoneLogin(CamelModel):
    phone: str = Field(min_length=1, max_length=20)

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: str) -> str:
        if not is_valid_phone(value):
            raise ValueError("شماره موبایل نامعتبر است")
        return normalize_phone(value)


class VerifyCode(PhoneLogin):
    code: str = Field(min_length=4, max_length=8, pattern=r"^\d+$")


class AuthResult(CamelModel):
    user: UserOut
    token: str


class CodeSent(CamelModel):
    phone: str
    expires_in: int
    # Only populated outside production so the flow can be exercised without SMS.
    code: str | None = None


class TokenOut(CamelModel):
    token: str
