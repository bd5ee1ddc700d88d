"""HTTP client for the Power CRM ticket API.

Every call returns the server envelope as a plain dict. Transport failures and
unexpected payloads are folded into the same envelope shape so callers never
have to catch httpx exceptions.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

import httpx

from powercrm.core.i18n import NETWORK_ERROR, UNKNOWN_ERROR

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api"


def error_envelope(message: str, *, status_code: int | None = None) -> dict[str, Any]:
    envelope: dict[str, Any] = {"success": False, "message": message, "data": None, "error": message}
    if status_code is not None:
        envelope["status_code"] = status_code
    return envelope


class PowerCRMClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        *,
        token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
        on_unauthorized: Callable[[], None] | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.on_unauthorized = on_unauthorized
        self._http = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "PowerCRMClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def set_token(self, token: str | None) -> None:
        self.token = token

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        try:
            response = self._http.request(method, path, headers=self._headers(), **kwargs)
        except httpx.TransportError as exc:
            logger.warning("Request %s %s failed: %s", method, path, exc)
            return error_envelope(NETWORK_ERROR)
        except httpx.HTTPError as exc:
            logger.warning("Request %s %s errored: %s", method, path, exc)
            return error_envelope(UNKNOWN_ERROR)

        if response.status_code == 401:
            self.token = None
            if self.on_unauthorized is not None:
                self.on_unauthorized()

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            if response.is_success:
                return {"success": True, "message": "", "data": payload, "error": None}
            return error_envelope(UNKNOWN_ERROR, status_code=response.status_code)

        if response.is_error:
            message = payload.get("error") or payload.get("message") or UNKNOWN_ERROR
            envelope = error_envelope(str(message), status_code=response.status_code)
            if payload.get("error_code"):
                envelope["error_code"] = payload["error_code"]
            return envelope
        payload.setdefault("success", True)
        return payload

    # auth

    def login(self, phone: str) -> dict[str, Any]:
        result = self.request("POST", "/auth/login", json={"phone": phone})
        self._remember_token(result)
        return result

    def verify(self, phone: str, code: str) -> dict[str, Any]:
        result = self.request("POST", "/auth/verify", json={"phone": phone, "code": code})
        self._remember_token(result)
        return result

    def _remember_token(self, result: dict[str, Any]) -> None:
        data = result.get("data")
        if result.get("success") and isinstance(data, dict) and data.get("token"):
            self.token = data["token"]

    def profile(self) -> dict[str, Any]:
        return self.request("GET", "/auth/profile")

    def logout(self) -> dict[str, Any]:
        result = self.request("POST", "/auth/logout")
        self.token = None
        return result

    # tickets

    def list_tickets(self, **filters: Any) -> dict[str, Any]:
        params = {key: value for key, value in filters.items() if value is not None}
        return self.request("GET", "/tickets/", params=params)

    def get_ticket(self, ticket_id: int) -> dict[str, Any]:
        return self.request("GET", f"/tickets/{ticket_id}")

    def create_ticket(self, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", "/tickets/", json=payload)

    def update_status(self, ticket_id: int, status: str, note: str | None = None) -> dict[str, Any]:
        body: dict[str, Any] = {"status": status}
        if note:
            body["note"] = note
        return self.request("PUT", f"/tickets/{ticket_id}/status", json=body)

    def assign_ticket(self, ticket_id: int, assignee_id: int) -> dict[str, Any]:
        return self.request("PUT", f"/tickets/{ticket_id}/assign", json={"assigneeId": assignee_id})

    def add_comment(self, ticket_id: int, content: str, *, is_internal: bool = False) -> dict[str, Any]:
        return self.request(
            "POST",
            f"/tickets/{ticket_id}/comments",
            json={"content": content, "isInternal": is_internal},
        )

    def ticket_history(self, ticket_id: int) -> dict[str, Any]:
        return self.request("GET", f"/tickets/{ticket_id}/history")

    def ticket_stats(self) -> dict[str, Any]:
        return self.request("GET", "/tickets/stats")

    def dashboard_stats(self) -> dict[str, Any]:
        return self.request("GET", "/tickets/dashboard-stats")

    def history(self, **filters: Any) -> dict[str, Any]:
        params = {key: value for key, value in filters.items() if value is not None}
        return self.request("GET", "/history/", params=params)
