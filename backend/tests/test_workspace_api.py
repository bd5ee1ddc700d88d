from __future__ import annotations

from typing import Any

import pytest

from powercrm.integrations.supabase.client import SupabaseAuthError
from powercrm.main import app
from powercrm.models.kv_entry import KVEntry
from powercrm.routers.workspace import get_supabase_client
from powercrm.services import workspace as workspace_service


class _FakeSupabase:
    """Stands in for the auth provider: tokens are simply ``token-<user id>``."""

    def __init__(self) -> None:
        self.users: dict[str, dict[str, Any]] = {}

    def create_user(self, *, email: str, password: str, metadata: dict[str, Any]) -> dict[str, Any]:
        if any(user["email"] == email for user in self.users.values()):
            raise SupabaseAuthError("User already registered", status_code=422)
        user_id = f"u-{len(self.users) + 1}"
        self.users[user_id] = {"id": user_id, "email": email, "user_metadata": metadata}
        return self.users[user_id]

    def get_user(self, access_token: str) -> dict[str, Any] | None:
        return self.users.get(access_token.removeprefix("token-"))


@pytest.fixture()
def supabase(client):
    fake = _FakeSupabase()
    app.dependency_overrides[get_supabase_client] = lambda: fake
    return fake


def _signup(client, email: str, name: str, role: str | None = None) -> dict[str, str]:
    payload = {"email": email, "password": "secret123", "name": name}
    if role:
        payload["role"] = role
    response = client.post("/api/workspace/auth/signup", json=payload)
    assert response.status_code == 200, response.text
    user = response.json()["data"]["user"]
    return {"Authorization": f"Bearer token-{user['id']}", "id": user["id"]}


def _headers(account: dict[str, str]) -> dict[str, str]:
    return {"Authorization": account["Authorization"]}


def test_signup_defaults_role_and_profile(client, supabase) -> None:
    account = _signup(client, "ali@barq.ir", "علی")

    profile = client.get("/api/workspace/auth/user", headers=_headers(account)).json()

    assert profile == {"data": {"id": account["id"], "email": "ali@barq.ir", "name": "علی", "role": "کارشناس"}}


def test_duplicate_signup_reports_provider_message(client, supabase) -> None:
    _signup(client, "ali@barq.ir", "علی")

    response = client.post(
        "/api/workspace/auth/signup",
        json={"email": "ali@barq.ir", "password": "secret123", "name": "علی"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "خطا در ثبت‌نام: User already registered"


def test_missing_or_bad_token(client, supabase) -> None:
    missing = client.get("/api/workspace/tasks")
    bad = client.get("/api/workspace/tasks", headers={"Authorization": "Bearer token-nobody"})

    assert missing.status_code == 401
    assert missing.json()["error"] == "توکن احراز هویت ارائه نشده است"
    assert bad.status_code == 401
    assert bad.json()["error"] == "احراز هویت ناموفق"


def test_create_task_defaults_and_listing(client, supabase) -> None:
    worker = _signup(client, "worker@barq.ir", "کارشناس")
    boss = _signup(client, "boss@barq.ir", "مدیر", role="مدیر")
    other = _signup(client, "other@barq.ir", "دیگری")

    created = client.post(
        "/api/workspace/tasks",
        json={"title": "بازدید از پست برق"},
        headers=_headers(worker),
    ).json()["data"]["task"]
    client.post("/api/workspace/tasks", json={"title": "تعویض فیوز"}, headers=_headers(other))

    assert created["id"].startswith("T-")
    assert created["status"] == "دیده نشده"
    assert created["priority"] == "متوسط"
    assert created["category"] == "عمومی"
    assert created["assigned_to"] == worker["id"]
    assert created["description"] is None
    own = client.get("/api/workspace/tasks", headers=_headers(worker)).json()["data"]["tasks"]
    everything = client.get("/api/workspace/tasks", headers=_headers(boss)).json()["data"]["tasks"]
    assert [task["id"] for task in own] == [created["id"]]
    assert len(everything) == 2
    assert everything[0]["title"] == "تعویض فیوز"


def test_update_reassigns_and_records_changes(client, db, supabase) -> None:
    worker = _signup(client, "worker@barq.ir", "کارشناس")
    other = _signup(client, "other@barq.ir", "دیگری")
    task = client.post("/api/workspace/tasks", json={"title": "بازدید"}, headers=_headers(worker)).json()["data"]["task"]

    response = client.put(
        f"/api/workspace/tasks/{task['id']}",
        json={"status": "در حال انجام", "assigned_to": other["id"]},
        headers=_headers(worker),
    )

    updated = response.json()["data"]["task"]
    assert updated["status"] == "در حال انجام"
    assert updated["assigned_to"] == other["id"]
    assert db.get(KVEntry, f"task:user:{worker['id']}:{task['id']}") is None
    assert db.get(KVEntry, f"task:user:{other['id']}:{task['id']}") is not None
    history = client.get("/api/workspace/history", headers=_headers(other)).json()["data"]["history"]
    latest = history[0]
    assert latest["action"] == "status_changed"
    assert latest["details"] == "وضعیت به در حال انجام تغییر یافت"
    assert {change["field"] for change in latest["changes"]} == {"status", "assigned_to"}
    assert latest["user"] == {"name": "کارشناس", "role": "کارشناس"}
    assert latest["task_title"] == "بازدید"


def test_update_rejects_unknown_fields_and_outsiders(client, supabase) -> None:
    worker = _signup(client, "worker@barq.ir", "کارشناس")
    outsider = _signup(client, "outsider@barq.ir", "بیگانه")
    task = client.post("/api/workspace/tasks", json={"title": "بازدید"}, headers=_headers(worker)).json()["data"]["task"]
    url = f"/api/workspace/tasks/{task['id']}"

    unknown = client.put(url, json={"created_by": outsider["id"]}, headers=_headers(worker))
    forbidden = client.put(url, json={"status": "انجام شده"}, headers=_headers(outsider))
    missing = client.put("/api/workspace/tasks/T-1", json={"status": "انجام شده"}, headers=_headers(worker))

    assert unknown.status_code == 400
    assert forbidden.status_code == 403
    assert missing.status_code == 404
    assert missing.json()["error"] == "وظیفه یافت نشد"


def test_comments_append_to_task(client, supabase) -> None:
    worker = _signup(client, "worker@barq.ir", "کارشناس")
    task = client.post("/api/workspace/tasks", json={"title": "بازدید"}, headers=_headers(worker)).json()["data"]["task"]
    url = f"/api/workspace/tasks/{task['id']}/comments"

    comment = client.post(url, json={"content": "  انجام شد  "}, headers=_headers(worker)).json()["data"]["comment"]
    empty = client.post(url, json={"content": "   "}, headers=_headers(worker))

    assert comment["content"] == "انجام شد"
    assert comment["author"] == "کارشناس"
    assert empty.status_code == 400
    assert empty.json()["error"] == "متن نظر الزامی است"
    tasks = client.get("/api/workspace/tasks", headers=_headers(worker)).json()["data"]["tasks"]
    assert [c["content"] for c in tasks[0]["comments"]] == ["انجام شد"]


def test_analytics_counts_each_task_once(client, supabase) -> None:
    worker = _signup(client, "worker@barq.ir", "کارشناس")
    headers = _headers(worker)
    first = client.post("/api/workspace/tasks", json={"title": "الف", "category": "فنی"}, headers=headers).json()["data"]["task"]
    client.post("/api/workspace/tasks", json={"title": "ب"}, headers=headers)
    client.put(f"/api/workspace/tasks/{first['id']}", json={"status": "انجام شده"}, headers=headers)

    analytics = client.get("/api/workspace/analytics", headers=headers).json()["data"]

    assert analytics["summary"] == {
        "total_tasks": 2,
        "completed_tasks": 1,
        "in_progress_tasks": 0,
        "unseen_tasks": 1,
        "success_rate": 50,
    }
    assert analytics["category_stats"] == {"فنی": 1, "عمومی": 1}


def test_workspace_health(client) -> None:
    body = client.get("/api/workspace/health").json()

    assert body["message"] == "سرور فعال است"
    assert "error" not in body


def test_free_key_skips_taken_stamps(db, monkeypatch) -> None:
    monkeypatch.setattr(workspace_service, "_now_ms", lambda: 1000)
    workspace_service.kv_set(db, "history:T-1:1000", {"a": 1})
    workspace_service.kv_set(db, "history:T-1:1001", {"a": 2})

    key = workspace_service._free_key(db, lambda stamp: f"history:T-1:{stamp}")

    assert key == "history:T-1:1002"
