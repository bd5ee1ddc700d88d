from __future__ import annotations

from powercrm.models.enums import UserRole
from powercrm.models.user import User


def test_user_endpoints_require_admin(client, make_user, auth_headers) -> None:
    manager = make_user(UserRole.manager)

    response = client.get("/api/users/", headers=auth_headers(manager))

    assert response.status_code == 403
    assert response.json()["error_code"] == "INSUFFICIENT_PERMISSIONS"


def test_list_filters_by_role_and_search(client, make_user, auth_headers) -> None:
    admin = make_user(UserRole.admin)
    make_user(UserRole.client, name="زهرا احمدی", phone="09351112233")
    make_user(UserRole.employee, name="رضا کریمی")

    clients = client.get("/api/users/", params={"role": "CLIENT"}, headers=auth_headers(admin)).json()["data"]
    found = client.get("/api/users/", params={"search": "0935"}, headers=auth_headers(admin)).json()["data"]

    assert [user["name"] for user in clients["items"]] == ["زهرا احمدی"]
    assert found["pagination"]["total"] == 1
    assert found["items"][0]["phone"] == "09351112233"


def test_admin_promotes_but_cannot_grant_admin(client, make_user, auth_headers) -> None:
    admin = make_user(UserRole.admin)
    employee = make_user(UserRole.employee)

    promoted = client.patch(f"/api/users/{employee.id}/role", json={"role": "MANAGER"}, headers=auth_headers(admin))
    refused = client.patch(f"/api/users/{employee.id}/role", json={"role": "ADMIN"}, headers=auth_headers(admin))
    own = client.patch(f"/api/users/{admin.id}/role", json={"role": "SUPER_ADMIN"}, headers=auth_headers(admin))

    assert promoted.status_code == 200
    assert promoted.json()["data"]["role"] == "MANAGER"
    assert refused.status_code == 403
    assert own.status_code == 400


def test_super_admin_can_grant_admin(client, make_user, auth_headers) -> None:
    root = make_user(UserRole.super_admin)
    employee = make_user(UserRole.employee)

    response = client.patch(f"/api/users/{employee.id}/role", json={"role": "ADMIN"}, headers=auth_headers(root))

    assert response.json()["data"]["role"] == "ADMIN"


def test_deactivate_blocks_existing_token(client, make_user, auth_headers) -> None:
    admin = make_user(UserRole.admin)
    employee = make_user(UserRole.employee)
    headers = auth_headers(employee)

    response = client.patch(f"/api/users/{employee.id}/status", json={"isActive": False}, headers=auth_headers(admin))

    assert response.json()["data"]["isActive"] is False
    blocked = client.get("/api/auth/profile", headers=headers)
    assert blocked.status_code == 403
    assert blocked.json()["error_code"] == "USER_INACTIVE"


def test_soft_delete_and_role_counts(client, db, make_user, auth_headers) -> None:
    admin = make_user(UserRole.admin)
    doomed = make_user(UserRole.client)
    make_user(UserRole.client)
    make_user(UserRole.employee)

    deleted = client.delete(f"/api/users/{doomed.id}", headers=auth_headers(admin))
    counts = client.get("/api/users/role-counts", headers=auth_headers(admin)).json()["data"]
    staff = client.get("/api/users/staff", headers=auth_headers(admin)).json()["data"]

    assert deleted.status_code == 200
    db.expire_all()
    assert db.get(User, doomed.id).deleted_at is not None
    assert {item["role"]: item["count"] for item in counts} == {
        "CLIENT": 1,
        "EMPLOYEE": 1,
        "MANAGER": 0,
        "ADMIN": 1,
        "SUPER_ADMIN": 0,
    }
    assert sorted(user["role"] for user in staff) == ["ADMIN", "EMPLOYEE"]
    assert client.delete(f"/api/users/{doomed.id}", headers=auth_headers(admin)).status_code == 404
