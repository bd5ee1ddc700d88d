"""initial schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-18 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

USER_ROLES = ("CLIENT", "EMPLOYEE", "MANAGER", "ADMIN", "SUPER_ADMIN")
TICKET_STATUSES = (
    "OPEN",
    "ASSIGNED",
    "IN_PROGRESS",
    "PENDING_INFO",
    "PENDING_APPROVAL",
    "RESOLVED",
    "CLOSED",
    "REJECTED",
    "ESCALATED",
    "ON_HOLD",
)
TICKET_PRIORITIES = ("LOW", "MEDIUM", "HIGH", "URGENT", "CRITICAL")
TICKET_TYPES = (
    "COMPLAINT",
    "REQUEST",
    "INQUIRY",
    "BILLING",
    "TECHNICAL",
    "MAINTENANCE",
    "INSTALLATION",
    "DISCONNECTION",
    "RECONNECTION",
    "METER_READING",
    "POWER_OUTAGE",
    "EMERGENCY",
)
TICKET_SOURCES = ("PHONE", "WEBSITE", "MOBILE_APP", "EMAIL", "WALK_IN", "SMS", "SOCIAL_MEDIA", "FIELD_VISIT")
TICKET_ACTIONS = ("CREATED", "UPDATED", "ASSIGNED", "REASSIGNED", "STATUS_CHANGED", "COMMENTED", "DELETED")

ENUMS = {
    "user_role": USER_ROLES,
    "ticket_status": TICKET_STATUSES,
    "ticket_priority": TICKET_PRIORITIES,
    "ticket_type": TICKET_TYPES,
    "ticket_source": TICKET_SOURCES,
    "ticket_action": TICKET_ACTIONS,
}


def _col(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=True),
        sa.Column("role", _col("user_role"), nullable=False, server_default="CLIENT"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_users_phone"), "users", ["phone"], unique=True)

    op.create_table(
        "tickets",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ticket_number", sa.String(length=32), nullable=True),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("status", _col("ticket_status"), nullable=False),
        sa.Column("priority", _col("ticket_priority"), nullable=False),
        sa.Column("type", _col("ticket_type"), nullable=False),
        sa.Column("source", _col("ticket_source"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("assignee_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("customer_name", sa.String(length=120), nullable=True),
        sa.Column("customer_phone", sa.String(length=20), nullable=True),
        sa.Column("customer_address", sa.String(length=255), nullable=True),
        sa.Column("meter_number", sa.String(length=32), nullable=True),
        sa.Column("account_number", sa.String(length=32), nullable=True),
        sa.Column("resolution", sa.Text(), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolved_by_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("first_response_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_tickets_ticket_number"), "tickets", ["ticket_number"], unique=True)
    op.create_index(op.f("ix_tickets_status"), "tickets", ["status"])
    op.create_index(op.f("ix_tickets_author_id"), "tickets", ["author_id"])
    op.create_index(op.f("ix_tickets_assignee_id"), "tickets", ["assignee_id"])
    op.create_index(op.f("ix_tickets_deleted_at"), "tickets", ["deleted_at"])

    op.create_table(
        "ticket_comments",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("author_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_internal", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_ticket_comments_ticket_id"), "ticket_comments", ["ticket_id"])

    op.create_table(
        "ticket_logs",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("ticket_id", sa.Integer(), sa.ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("action", _col("ticket_action"), nullable=False),
        sa.Column("description", sa.String(length=255), nullable=False),
        sa.Column("before", postgresql.JSONB(), nullable=True),
        sa.Column("after", postgresql.JSONB(), nullable=True),
        sa.Column("changes", postgresql.JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(op.f("ix_ticket_logs_ticket_id"), "ticket_logs", ["ticket_id"])
    op.create_index(op.f("ix_ticket_logs_user_id"), "ticket_logs", ["user_id"])
    op.create_index(op.f("ix_ticket_logs_action"), "ticket_logs", ["action"])
    op.create_index(op.f("ix_ticket_logs_created_at"), "ticket_logs", ["created_at"])

    op.create_table(
        "verification_codes",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("phone", sa.String(length=20), nullable=False),
        sa.Column("code_hash", sa.String(length=255), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(op.f("ix_verification_codes_phone"), "verification_codes", ["phone"])

    op.create_table(
        "kv_store",
        sa.Column("key", sa.String(length=255), primary_key=True),
        sa.Column("value", postgresql.JSONB(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("kv_store")
    op.drop_index(op.f("ix_verification_codes_phone"), table_name="verification_codes")
    op.drop_table("verification_codes")
    op.drop_table("ticket_logs")
    op.drop_table("ticket_comments")
    op.drop_table("tickets")
    op.drop_index(op.f("ix_users_phone"), table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for name, values in reversed(list(ENUMS.items())):
        sa.Enum(*values, name=name).drop(bind, checkfirst=True)
