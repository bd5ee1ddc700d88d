"""Shared enum values used by the database models and schemas."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    client = "CLIENT"
    employee = "EMPLOYEE"
    manager = "MANAGER"
    admin = "ADMIN"
    super_admin = "SUPER_ADMIN"


class TicketStatus(str, enum.Enum):
    open = "OPEN"
    assigned = "ASSIGNED"
    in_progress = "IN_PROGRESS"
    pending_info = "PENDING_INFO"
    pending_approval = "PENDING_APPROVAL"
    resolved = "RESOLVED"
    closed = "CLOSED"
    rejected = "REJECTED"
    escalated = "ESCALATED"
    on_hold = "ON_HOLD"


class TicketPriority(str, enum.Enum):
    low = "LOW"
    medium = "MEDIUM"
    high = "HIGH"
    urgent = "URGENT"
    critical = "CRITICAL"


class TicketType(str, enum.Enum):
    complaint = "COMPLAINT"
    request = "REQUEST"
    inquiry = "INQUIRY"
    billing = "BILLING"
    technical = "TECHNICAL"
    maintenance = "MAINTENANCE"
    installation = "INSTALLATION"
    disconnection = "DISCONNECTION"
    reconnection = "RECONNECTION"
    meter_reading = "METER_READING"
    power_outage = "POWER_OUTAGE"
    emergency = "EMERGENCY"


class TicketSource(str, enum.Enum):
    phone = "PHONE"
    website = "WEBSITE"
    mobile_app = "MOBILE_APP"
    email = "EMAIL"
    walk_in = "WALK_IN"
    sms = "SMS"
    social_media = "SOCIAL_MEDIA"
    field_visit = "FIELD_VISIT"


class TicketAction(str, enum.Enum):
    created = "CREATED"
    updated = "UPDATED"
    assigned = "ASSIGNED"
    reassigned = "REASSIGNED"
    status_changed = "STATUS_CHANGED"
    commented = "COMMENTED"
    deleted = "DELETED"
