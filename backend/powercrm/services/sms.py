"""Outbound SMS through the configured HTTP gateway."""

from __future__ import annotations

import logging

import httpx

from powercrm.core.config import settings

logger = logging.getLogger(__name__)


def build_login_code_message(code: str) -> str:
    return f"کد ورود شما به سامانه: {code}\nاین کد تا {settings.OTP_EXPIRE_MINUTES} دقیقه معتبر است."


def send_sms(phone: str, text: str, *, transport: httpx.BaseTransport | None = None) -> bool:
    if not settings.sms_ready:
        logger.info("SMS gateway not configured; skipping send to %s", phone)
        return False

    try:
        with httpx.Client(timeout=10.0, transport=transport) as client:
            response = client.post(
                settings.SMS_API_URL,
                headers={"Authorization": f"Bearer {settings.SMS_API_KEY}", "Accept": "application/json"},
                json={"sender": settings.SMS_SENDER, "receptor": phone, "message": text},
            )
            response.raise_for_status()
        logger.info("SMS sent: %s", phone)
        return True
    except httpx.HTTPError:
        logger.exception("SMS send failed: %s", phone)
        return False
