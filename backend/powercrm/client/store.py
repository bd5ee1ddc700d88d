"""Client-side auth state with pluggable token persistence."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from powercrm.client.api import PowerCRMClient
from powercrm.core.i18n import UNKNOWN_ERROR
from powercrm.core.rbac import has_permission
from powercrm.models.enums import UserRole

logger = logging.getLogger(__name__)

STORAGE_KEY = "power-crm-auth"


class TokenStorage:
    """In-memory storage; ``FileTokenStorage`` persists the same payload to disk."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}

    def load(self) -> dict[str, Any]:
        return dict(self._data.get(STORAGE_KEY) or {})

    def save(self, state: dict[str, Any]) -> None:
        self._data[STORAGE_KEY] = dict(state)

    def clear(self) -> None:
        self._data.pop(STORAGE_KEY, None)


class FileTokenStorage(TokenStorage):
    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable auth storage at %s", self.path)
            return {}
        return payload if isinstance(payload, dict) else {}

    def load(self) -> dict[str, Any]:
        return dict(self._read().get(STORAGE_KEY) or {})

    def save(self, state: dict[str, Any]) -> None:
        payload = self._read()
        payload[STORAGE_KEY] = dict(state)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")

    def clear(self) -> None:
        payload = self._read()
        if payload.pop(STORAGE_KEY, None) is not None:
            self.path.write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")


class AuthStore:
    def __init__(self, api: PowerCRMClient, storage: TokenStorage | None = None) -> None:
        self.api = api
        self.storage = storage or TokenStorage()
        self.user: dict[str, Any] | None = None
        self.token: str | None = None
        self.is_loading = False
        self.error: str | None = None

        saved = self.storage.load()
        self.token = saved.get("token")
        self.user = saved.get("user")
        self.api.set_token(self.token)
        self.api.on_unauthorized = self.logout

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def _persist(self) -> None:
        if self.token:
            self.storage.save({"token": self.token, "user": self.user})
        else:
            self.storage.clear()

    def _accept(self, result: dict[str, Any]) -> bool:
        data = result.get("data") or {}
        if not result.get("success") or not data.get("token"):
            self.error = result.get("error") or UNKNOWN_ERROR
            return False
        self.token = data["token"]
        self.user = data.get("user")
        self.error = None
        self.api.set_token(self.token)
        self._persist()
        return True

    def login(self, phone: str) -> dict[str, Any]:
        """Request login; returns the envelope so callers can detect the code step."""
        self.is_loading = True
        try:
            result = self.api.login(phone)
            if result.get("success") and (result.get("data") or {}).get("token"):
                self._accept(result)
            elif not result.get("success"):
                self.error = result.get("error") or UNKNOWN_ERROR
            return result
        finally:
            self.is_loading = False

    def verify(self, phone: str, code: str) -> bool:
        self.is_loading = True
        try:
            return self._accept(self.api.verify(phone, code))
        finally:
            self.is_loading = False

    def fetch_profile(self) -> bool:
        if not self.token:
            return False
        self.is_loading = True
        try:
            result = self.api.profile()
        finally:
            self.is_loading = False
        if result.get("status_code") == 401:
            self.logout()
            return False
        if not result.get("success"):
            self.error = result.get("error") or UNKNOWN_ERROR
            return False
        self.user = result.get("data")
        self._persist()
        return True

    def logout(self) -> None:
        self.token = None
        self.user = None
        self.api.set_token(None)
        self.storage.clear()

    # role helpers

    @property
    def role(self) -> str | None:
        return (self.user or {}).get("role")

    def has_role(self, required: UserRole | str) -> bool:
        return has_permission(self.role, required)

    def is_staff(self) -> bool:
        return self.has_role(UserRole.employee)

    def is_admin(self) -> bool:
        return self.has_role(UserRole.admin)
