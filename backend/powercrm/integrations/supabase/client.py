"""Supabase GoTrue admin client used by the workspace endpoints."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from powercrm.core.config import settings
from powercrm.core.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)

_RETRY_STATUSES = {429, 500, 502, 503, 504}


class SupabaseAuthError(Exception):
    """The auth provider rejected the request (bad credentials, duplicate email)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(payload, dict):
        for key in ("msg", "error_description", "message", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
    return f"HTTP {response.status_code}"


class SupabaseAuthClient:
    def __init__(
        self,
        *,
        base_url: str | None = None,
        service_key: str | None = None,
        timeout: float | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url if base_url is not None else settings.SUPABASE_URL).rstrip("/")
        self.service_key = service_key if service_key is not None else settings.SUPABASE_SERVICE_ROLE_KEY
        self.timeout = timeout or settings.SUPABASE_TIMEOUT_SECONDS
        self.transport = transport
        self.max_retries = 2

    def _request(self, method: str, path: str, *, bearer: str | None = None, **kwargs: Any) -> httpx.Response:
        if not self.base_url:
            raise UpstreamServiceError("سرویس احراز هویت پیکربندی نشده است", service="supabase")
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {bearer or self.service_key}",
            "Accept": "application/json",
        }
        backoff = 0.25
        with httpx.Client(timeout=self.timeout, headers=headers, transport=self.transport) as client:
            for attempt in range(1, self.max_retries + 1):
                try:
                    response = client.request(method, f"{self.base_url}{path}", **kwargs)
                except httpx.HTTPError as exc:
                    if attempt >= self.max_retries:
                        logger.warning("Supabase %s %s failed: %s", method, path, exc)
                        raise UpstreamServiceError("خطا در اتصال به سرور", service="supabase") from exc
                    time.sleep(backoff)
                    backoff *= 2
                    continue
                if response.status_code in _RETRY_STATUSES and attempt < self.max_retries:
                    time.sleep(backoff)
                    backoff *= 2
                    continue
                return response
        raise UpstreamServiceError("خطا در اتصال به سرور", service="supabase")

    def create_user(self, *, email: str, password: str, metadata: dict[str, Any]) -> dict[str, Any]:
        """Create an auto-confirmed user through the admin API."""
        response = self._request(
            "POST",
            "/auth/v1/admin/users",
            json={
                "email": email,
                "password": password,
                "user_metadata": metadata,
                "email_confirm": True,
            },
        )
        if response.status_code >= 500:
            raise UpstreamServiceError(_error_message(response), service="supabase", status_code=response.status_code)
        if response.status_code >= 400:
            raise SupabaseAuthError(_error_message(response), status_code=response.status_code)
        payload = response.json()
        # GoTrue returns the user either bare or wrapped in {"user": ...}.
        return payload.get("user", payload) if isinstance(payload, dict) else {}

    def get_user(self, access_token: str) -> dict[str, Any] | None:
        response = self._request("GET", "/auth/v1/user", bearer=access_token)
        if response.status_code in {401, 403, 404}:
            return None
        if response.status_code >= 400:
            raise UpstreamServiceError(_error_message(response), service="supabase", status_code=response.status_code)
        payload = response.json()
        if not isinstance(payload, dict) or not payload.get("id"):
            return None
        return payload
