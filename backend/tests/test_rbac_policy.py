from __future__ import annotations

import datetime as dt
import itertools

from powercrm.core.rbac import (
    ROLE_HIERARCHY,
    can_change_role,
    can_comment_ticket,
    can_delete_tickets,
    can_edit_ticket_content,
    can_manage_tickets,
    can_manage_users,
    can_view_ticket,
    has_permission,
    role_level,
    visible_comments,
)
from powercrm.models.enums import TicketStatus, UserRole
from powercrm.models.ticket import Ticket, TicketComment
from powercrm.models.user import User


def _make_user(role: UserRole, *, user_id: int) -> User:
    return User(id=user_id, phone=f"0912000000{user_id}", name=role.value, role=role)


def _make_ticket(*, author_id: int, status: TicketStatus = TicketStatus.open) -> Ticket:
    return Ticket(id=1, title="قطعی برق", content="برق منطقه قطع است", status=status, author_id=author_id)


def test_has_permission_follows_hierarchy_for_every_pair() -> None:
    for held, required in itertools.product(UserRole, repeat=2):
        expected = ROLE_HIERARCHY[held] >= ROLE_HIERARCHY[required]
        assert has_permission(held, required) is expected, (held, required)


def test_role_strings_are_accepted_case_insensitively() -> None:
    assert has_permission("manager", "EMPLOYEE")
    assert not has_permission("Employee", UserRole.manager)


def test_unknown_role_ranks_lowest() -> None:
    assert role_level("JANITOR") == 0
    assert role_level(None) == 0
    assert not has_permission("JANITOR", UserRole.client)
    assert not has_permission(UserRole.super_admin, "JANITOR")


def test_coarse_action_gates() -> None:
    assert not can_manage_tickets(UserRole.client)
    assert can_manage_tickets(UserRole.employee)
    assert not can_delete_tickets(UserRole.employee)
    assert can_delete_tickets(UserRole.manager)
    assert not can_manage_users(UserRole.manager)
    assert can_manage_users(UserRole.admin)


def test_client_sees_only_own_live_tickets() -> None:
    client = _make_user(UserRole.client, user_id=1)
    employee = _make_user(UserRole.employee, user_id=2)
    own = _make_ticket(author_id=1)
    other = _make_ticket(author_id=9)

    assert can_view_ticket(client, own)
    assert not can_view_ticket(client, other)
    assert can_view_ticket(employee, other)

    own.deleted_at = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
    assert not can_view_ticket(client, own)
    assert not can_view_ticket(employee, own)


def test_content_edit_and_internal_comments() -> None:
    client = _make_user(UserRole.client, user_id=1)
    employee = _make_user(UserRole.employee, user_id=2)
    ticket = _make_ticket(author_id=1)

    assert can_edit_ticket_content(client, ticket)
    assert can_edit_ticket_content(employee, ticket)
    assert can_comment_ticket(client, ticket)
    assert not can_comment_ticket(client, ticket, internal=True)
    assert can_comment_ticket(employee, ticket, internal=True)

    comments = [
        TicketComment(id=1, ticket_id=1, author_id=2, content="public", is_internal=False),
        TicketComment(id=2, ticket_id=1, author_id=2, content="staff only", is_internal=True),
    ]
    assert [c.id for c in visible_comments(client, comments)] == [1]
    assert [c.id for c in visible_comments(employee, comments)] == [1, 2]


def test_role_changes_respect_privileged_roles() -> None:
    admin = _make_user(UserRole.admin, user_id=1)
    super_admin = _make_user(UserRole.super_admin, user_id=2)
    manager = _make_user(UserRole.manager, user_id=3)
    employee = _make_user(UserRole.employee, user_id=4)

    assert can_change_role(admin, employee, UserRole.manager)
    assert not can_change_role(admin, employee, UserRole.admin)
    assert not can_change_role(admin, _make_user(UserRole.admin, user_id=5), UserRole.employee)
    assert can_change_role(super_admin, admin, UserRole.employee)
    assert not can_change_role(manager, employee, UserRole.client)
    assert not can_change_role(super_admin, super_admin, UserRole.client)
