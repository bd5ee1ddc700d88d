"""One-time login codes and the JWTs handed out after a successful login."""

from __future__ import annotations

import datetime as dt
import secrets
from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from powercrm.core.config import settings

# Codes are short-lived, so a fast KDF is enough and keeps login snappy.
code_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
ACCESS_TOKEN_TYPE = "access"


def generate_otp(length: int | None = None) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length or settings.OTP_LENGTH))


def hash_code(code: str) -> str:
    return code_context.hash(code)


def verify_code(code: str, hashed: str) -> bool:
    return code_context.verify(code, hashed)


def create_access_token(claims: dict[str, Any], expires_minutes: int | None = None) -> str:
    issued_at = dt.datetime.now(dt.timezone.utc)
    lifetime = dt.timedelta(minutes=expires_minutes or settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    payload = {
        **claims,
        "type": ACCESS_TOKEN_TYPE,
        "iat": int(issued_at.timestamp()),
        "exp": issued_at + lifetime,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_user_token(user) -> str:
    # python-jose validates "sub" as a string.
    return create_access_token({"sub": str(user.id), "phone": user.phone, "role": user.role.value})


def decode_token(token: str) -> dict[str, Any]:
    """Return the claims or raise ``ValueError("expired_token" | "invalid_token")``."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise ValueError("expired_token") from exc
    except JWTError as exc:
        raise ValueError("invalid_token") from exc
