"""Centralized role hierarchy and ticket scope helpers."""

from __future__ import annotations

from collections.abc import Iterable

from powercrm.models.enums import UserRole
from powercrm.models.ticket import Ticket, TicketComment
from powercrm.models.user import User

ROLE_HIERARCHY: dict[UserRole, int] = {
    UserRole.client: 1,
    UserRole.employee: 2,
    UserRole.manager: 3,
    UserRole.admin: 4,
    UserRole.super_admin: 5,
}

DEFAULT_USER_ROLE = UserRole.client

# Only a super admin may grant or revoke these.
PRIVILEGED_ROLES = frozenset({UserRole.admin, UserRole.super_admin})


def parse_role(value: UserRole | str | None) -> UserRole | None:
    if isinstance(value, UserRole):
        return value
    if not value:
        return None
    try:
        return UserRole(str(value).strip().upper())
    except ValueError:
        return None


def is_valid_role(value: UserRole | str | None) -> bool:
    return parse_role(value) is not None


def role_level(value: UserRole | str | None) -> int:
    """Numeric rank of a role; unknown values rank below every real role."""
    role = parse_role(value)
    if role is None:
        return 0
    return ROLE_HIERARCHY[role]


def has_permission(user_role: UserRole | str | None, required_role: UserRole | str | None) -> bool:
    required = role_level(required_role)
    if required == 0:
        return False
    return role_level(user_role) >= required


def can_manage_tickets(role: UserRole | str | None) -> bool:
    return has_permission(role, UserRole.employee)


def can_delete_tickets(role: UserRole | str | None) -> bool:
    return has_permission(role, UserRole.manager)


def can_manage_users(role: UserRole | str | None) -> bool:
    return has_permission(role, UserRole.admin)


def is_staff(user: User) -> bool:
    return can_manage_tickets(user.role)


def can_view_ticket(user: User, ticket: Ticket) -> bool:
    if ticket.deleted_at is not None:
        return False
    if is_staff(user):
        return True
    return ticket.author_id == user.id


def can_edit_ticket_content(user: User, ticket: Ticket) -> bool:
    if not can_view_ticket(user, ticket):
        return False
    if is_staff(user):
        return True
    return ticket.author_id == user.id


def can_comment_ticket(user: User, ticket: Ticket, *, internal: bool = False) -> bool:
    if internal and not is_staff(user):
        return False
    return can_view_ticket(user, ticket)


def visible_comments(user: User, comments: Iterable[TicketComment]) -> list[TicketComment]:
    if is_staff(user):
        return list(comments)
    return [comment for comment in comments if not comment.is_internal]


def can_change_role(actor: User, target: User, new_role: UserRole) -> bool:
    if actor.id == target.id:
        return False
    if not can_manage_users(actor.role):
        return False
    if new_role in PRIVILEGED_ROLES or target.role in PRIVILEGED_ROLES:
        return actor.role == UserRole.super_admin
    return True
