"""Convenience imports for Alembic metadata discovery."""

from powercrm.models.user import User
from powercrm.models.ticket import Ticket, TicketComment
from powercrm.models.ticket_log import TicketLog
from powercrm.models.verification_code import VerificationCode
from powercrm.models.kv_entry import KVEntry  # noqa: F401
