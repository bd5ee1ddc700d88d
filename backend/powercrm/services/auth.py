"""Phone-number authentication: user lookup, one-time codes and tokens."""

from __future__ import annotations

import datetime as dt
import logging

from sqlalchemy.orm import Session

from powercrm.core.config import settings
from powercrm.core.exceptions import AuthenticationException, BadRequestError
from powercrm.core.rbac import DEFAULT_USER_ROLE
from powercrm.core.sanitize import normalize_phone
from powercrm.core.security import create_user_token, generate_otp, hash_code, verify_code
from powercrm.models.user import User
from powercrm.models.verification_code import VerificationCode
from powercrm.services.sms import build_login_code_message, send_sms

logger = logging.getLogger(__name__)


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _to_utc(value: dt.datetime) -> dt.datetime:
    # SQLite hands back naive datetimes.
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def find_user_by_phone(db: Session, phone: str) -> User | None:
    return db.query(User).filter(User.phone == normalize_phone(phone)).first()


def find_or_create_user(db: Session, phone: str) -> User:
    normalized = normalize_phone(phone)
    user = find_user_by_phone(db, normalized)
    if user:
        return user
    user = User(phone=normalized, role=DEFAULT_USER_ROLE)
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User created on first login: %s", normalized)
    return user


def ensure_can_login(user: User) -> None:
    if user.deleted_at is not None:
        logger.warning("Login refused: deleted user %s", user.phone)
        raise AuthenticationException("کاربر یافت نشد", error_code="USER_NOT_FOUND")
    if not user.is_active:
        logger.warning("Login refused: inactive user %s", user.phone)
        raise AuthenticationException("حساب کاربری غیرفعال است", error_code="USER_INACTIVE", status_code=403)


def complete_login(db: Session, user: User) -> tuple[User, str]:
    user.last_login_at = _utcnow()
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("User authenticated: %s", user.phone)
    return user, create_user_token(user)


def login_with_phone(db: Session, phone: str) -> tuple[User, str]:
    user = find_or_create_user(db, phone)
    ensure_can_login(user)
    return complete_login(db, user)


def request_login_code(db: Session, phone: str) -> str:
    """Issue a fresh code for ``phone``, superseding any outstanding one."""
    user = find_or_create_user(db, phone)
    ensure_can_login(user)

    now = _utcnow()
    outstanding = (
        db.query(VerificationCode)
        .filter(VerificationCode.phone == user.phone, VerificationCode.used_at.is_(None))
        .all()
    )
    for previous in outstanding:
        previous.used_at = now

    code = generate_otp()
    db.add(
        VerificationCode(
            phone=user.phone,
            code_hash=hash_code(code),
            expires_at=now + dt.timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
        )
    )
    db.commit()
    send_sms(user.phone, build_login_code_message(code))
    logger.info("Login code issued: %s", user.phone)
    return code


def verify_login_code(db: Session, phone: str, code: str) -> tuple[User, str]:
    normalized = normalize_phone(phone)
    record = (
        db.query(VerificationCode)
        .filter(VerificationCode.phone == normalized, VerificationCode.used_at.is_(None))
        .order_by(VerificationCode.created_at.desc(), VerificationCode.id.desc())
        .first()
    )
    if not record:
        logger.warning("Code verification failed: no outstanding code (%s)", normalized)
        raise BadRequestError("کد تایید یافت نشد، لطفاً دوباره درخواست دهید")
    if _to_utc(record.expires_at) < _utcnow():
        logger.warning("Code verification failed: expired code (%s)", normalized)
        raise BadRequestError("کد تایید منقضی شده است")
    if record.attempts >= settings.OTP_MAX_ATTEMPTS:
        logger.warning("Code verification failed: too many attempts (%s)", normalized)
        raise BadRequestError("تعداد تلاش‌ها بیش از حد مجاز است")
    if not verify_code(code, record.code_hash):
        record.attempts += 1
        db.commit()
        logger.warning("Code verification failed: wrong code (%s)", normalized)
        raise BadRequestError("کد تایید نادرست است")

    record.used_at = _utcnow()
    user = find_or_create_user(db, normalized)
    ensure_can_login(user)
    return complete_login(db, user)
