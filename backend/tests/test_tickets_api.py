from __future__ import annotations

from powercrm.models.enums import TicketAction, UserRole
from powercrm.models.ticket_log import TicketLog

TICKET_PAYLOAD = {
    "title": "قطعی برق در خیابان اصلی",
    "content": "از صبح امروز برق کل کوچه قطع شده است.",
    "type": "POWER_OUTAGE",
    "priority": "HIGH",
    "meterNumber": "M-1001",
}


def _create_ticket(client, headers) -> dict:
    response = client.post("/api/tickets/", json=TICKET_PAYLOAD, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_create_ticket_numbers_and_logs_creation(client, db, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)

    ticket = _create_ticket(client, auth_headers(author))

    assert ticket["ticketNumber"] == f"TK{ticket['id']:06d}"
    assert ticket["status"] == "OPEN"
    assert ticket["source"] == "WEBSITE"
    assert ticket["meterNumber"] == "M-1001"
    assert ticket["author"]["id"] == author.id
    logs = db.query(TicketLog).filter(TicketLog.ticket_id == ticket["id"]).all()
    assert [log.action for log in logs] == [TicketAction.created]
    assert logs[0].after["status"] == "OPEN"


def test_status_change_writes_exactly_one_log(client, db, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    employee = make_user(UserRole.employee)
    ticket = _create_ticket(client, auth_headers(author))

    response = client.put(
        f"/api/tickets/{ticket['id']}/status",
        json={"status": "IN_PROGRESS", "note": "در حال بررسی"},
        headers=auth_headers(employee),
    )

    assert response.status_code == 200, response.text
    assert response.json()["data"]["status"] == "IN_PROGRESS"
    assert response.json()["data"]["firstResponseAt"] is not None
    db.expire_all()
    logs = (
        db.query(TicketLog)
        .filter(TicketLog.ticket_id == ticket["id"], TicketLog.action == TicketAction.status_changed)
        .all()
    )
    assert len(logs) == 1
    assert logs[0].user_id == employee.id
    assert logs[0].before["status"] == "OPEN"
    assert logs[0].after["status"] == "IN_PROGRESS"
    assert logs[0].changes["status"] == {"from": "OPEN", "to": "IN_PROGRESS"}
    assert logs[0].meta == {"note": "در حال بررسی"}


def test_refused_transition_leaves_no_log(client, db, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    employee = make_user(UserRole.employee)
    ticket = _create_ticket(client, auth_headers(author))

    response = client.put(
        f"/api/tickets/{ticket['id']}/status",
        json={"status": "CLOSED"},
        headers=auth_headers(employee),
    )

    body = response.json()
    assert response.status_code == 403
    assert body["success"] is False
    assert body["error_code"] == "INVALID_STATUS_TRANSITION"
    assert body["details"]["currentStatus"] == "OPEN"
    assert "CLOSED" not in body["details"]["availableTransitions"]
    assert db.query(TicketLog).filter(TicketLog.action == TicketAction.status_changed).count() == 0


def test_client_cannot_change_status(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    ticket = _create_ticket(client, auth_headers(author))

    response = client.put(
        f"/api/tickets/{ticket['id']}/status",
        json={"status": "IN_PROGRESS"},
        headers=auth_headers(author),
    )

    assert response.status_code == 403
    assert response.json()["error"] == "دسترسی غیرمجاز"


def test_clients_only_list_their_own_tickets(client, make_user, auth_headers) -> None:
    alice = make_user(UserRole.client)
    bob = make_user(UserRole.client)
    manager = make_user(UserRole.manager)
    mine = _create_ticket(client, auth_headers(alice))
    _create_ticket(client, auth_headers(bob))

    own = client.get("/api/tickets/", headers=auth_headers(alice)).json()["data"]
    everything = client.get("/api/tickets/", headers=auth_headers(manager)).json()["data"]

    assert [item["id"] for item in own["items"]] == [mine["id"]]
    assert own["pagination"] == {
        "page": 1,
        "limit": 10,
        "total": 1,
        "totalPages": 1,
        "hasNext": False,
        "hasPrev": False,
    }
    assert everything["pagination"]["total"] == 2
    assert client.get(f"/api/tickets/{mine['id']}", headers=auth_headers(bob)).status_code == 404


def test_list_filters_and_search(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    employee = make_user(UserRole.employee)
    headers = auth_headers(author)
    first = _create_ticket(client, headers)
    client.post(
        "/api/tickets/",
        json={"title": "اشتباه در قبض برق", "content": "مبلغ قبض این ماه اشتباه است.", "type": "BILLING"},
        headers=headers,
    )
    client.put(f"/api/tickets/{first['id']}/status", json={"status": "IN_PROGRESS"}, headers=auth_headers(employee))

    by_status = client.get("/api/tickets/", params={"status": "IN_PROGRESS"}, headers=headers).json()["data"]
    by_type = client.get("/api/tickets/", params={"type": "BILLING"}, headers=headers).json()["data"]
    by_search = client.get("/api/tickets/", params={"search": "قبض"}, headers=headers).json()["data"]

    assert [item["id"] for item in by_status["items"]] == [first["id"]]
    assert [item["type"] for item in by_type["items"]] == ["BILLING"]
    assert by_search["pagination"]["total"] == 1


def test_assign_moves_open_ticket_and_logs_reassignment(client, db, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    manager = make_user(UserRole.manager)
    first_agent = make_user(UserRole.employee)
    second_agent = make_user(UserRole.employee)
    ticket = _create_ticket(client, auth_headers(author))

    assigned = client.put(
        f"/api/tickets/{ticket['id']}/assign",
        json={"assigneeId": first_agent.id},
        headers=auth_headers(manager),
    ).json()["data"]
    reassigned = client.put(
        f"/api/tickets/{ticket['id']}/assign",
        json={"assigneeId": second_agent.id},
        headers=auth_headers(manager),
    ).json()["data"]

    assert assigned["status"] == "ASSIGNED"
    assert reassigned["assigneeId"] == second_agent.id
    actions = [log.action for log in db.query(TicketLog).order_by(TicketLog.id).all()]
    assert actions == [TicketAction.created, TicketAction.assigned, TicketAction.reassigned]


def test_assigning_to_current_assignee_is_refused(client, db, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    manager = make_user(UserRole.manager)
    agent = make_user(UserRole.employee)
    ticket = _create_ticket(client, auth_headers(author))
    url = f"/api/tickets/{ticket['id']}/assign"
    client.put(url, json={"assigneeId": agent.id}, headers=auth_headers(manager))

    repeated = client.put(url, json={"assigneeId": agent.id}, headers=auth_headers(manager))

    assert repeated.status_code == 400
    assert repeated.json()["error_code"] == "BAD_REQUEST"
    actions = [log.action for log in db.query(TicketLog).order_by(TicketLog.id).all()]
    assert actions == [TicketAction.created, TicketAction.assigned]


def test_cannot_assign_to_client(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    manager = make_user(UserRole.manager)
    ticket = _create_ticket(client, auth_headers(author))

    response = client.put(
        f"/api/tickets/{ticket['id']}/assign",
        json={"assigneeId": author.id},
        headers=auth_headers(manager),
    )

    assert response.status_code == 400


def test_internal_comments_hidden_from_clients(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    employee = make_user(UserRole.employee)
    ticket = _create_ticket(client, auth_headers(author))
    url = f"/api/tickets/{ticket['id']}/comments"

    client.post(url, json={"content": "پیگیری می‌کنیم"}, headers=auth_headers(employee))
    client.post(url, json={"content": "اکیپ اعزام شود", "isInternal": True}, headers=auth_headers(employee))
    refused = client.post(url, json={"content": "یادداشت", "isInternal": True}, headers=auth_headers(author))

    seen_by_client = client.get(url, headers=auth_headers(author)).json()["data"]
    seen_by_staff = client.get(url, headers=auth_headers(employee)).json()["data"]
    assert refused.status_code == 403
    assert [c["content"] for c in seen_by_client] == ["پیگیری می‌کنیم"]
    assert len(seen_by_staff) == 2


def test_update_content_and_priority_rules(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    ticket = _create_ticket(client, auth_headers(author))
    url = f"/api/tickets/{ticket['id']}"

    edited = client.put(url, json={"title": "قطعی برق کامل محله"}, headers=auth_headers(author))
    priority = client.put(url, json={"priority": "URGENT"}, headers=auth_headers(author))
    empty = client.put(url, json={}, headers=auth_headers(author))

    assert edited.status_code == 200
    assert edited.json()["data"]["title"] == "قطعی برق کامل محله"
    assert priority.status_code == 403
    assert empty.status_code == 400
    assert empty.json()["error_code"] == "VALIDATION_ERROR"


def test_soft_delete_requires_manager_and_hides_ticket(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    employee = make_user(UserRole.employee)
    manager = make_user(UserRole.manager)
    ticket = _create_ticket(client, auth_headers(author))
    url = f"/api/tickets/{ticket['id']}"

    assert client.delete(url, headers=auth_headers(employee)).status_code == 403
    assert client.delete(url, headers=auth_headers(manager)).status_code == 200
    assert client.get(url, headers=auth_headers(manager)).status_code == 404


def test_history_transitions_and_stats(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)
    employee = make_user(UserRole.employee)
    ticket = _create_ticket(client, auth_headers(author))
    client.put(f"/api/tickets/{ticket['id']}/status", json={"status": "IN_PROGRESS"}, headers=auth_headers(employee))

    history = client.get(f"/api/tickets/{ticket['id']}/history", headers=auth_headers(author)).json()["data"]
    transitions = client.get(f"/api/tickets/{ticket['id']}/transitions", headers=auth_headers(employee)).json()["data"]
    stats = client.get("/api/tickets/stats", headers=auth_headers(author)).json()["data"]

    assert [entry["action"] for entry in history] == ["STATUS_CHANGED", "CREATED"]
    assert history[0]["changes"]["status"] == {"from": "OPEN", "to": "IN_PROGRESS"}
    assert transitions == {"current": "IN_PROGRESS", "available": ["RESOLVED", "PENDING_INFO", "ON_HOLD"]}
    assert stats["total"] == 1
    assert stats["inProgress"] == 1


def test_requests_without_token_are_rejected(client) -> None:
    response = client.get("/api/tickets/")

    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "message": "کاربر احراز هویت نشده است",
        "error": "کاربر احراز هویت نشده است",
        "error_code": "NOT_AUTHENTICATED",
        "details": {},
    }


def test_short_title_fails_validation(client, make_user, auth_headers) -> None:
    author = make_user(UserRole.client)

    response = client.post(
        "/api/tickets/",
        json={"title": "کم", "content": "محتوای کافی برای تیکت"},
        headers=auth_headers(author),
    )

    assert response.status_code == 400
    assert response.json()["message"] == "خطا در اعتبارسنجی داده‌ها"
