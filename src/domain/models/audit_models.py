"""Domain models for the admin audit log."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class AuditAction(str, Enum):
    """Admin actions recorded in the audit log."""
    CREATE_TENANCY = "CREATE_TENANCY"
    UPDATE_TENANCY = "UPDATE_TENANCY"
    DELETE_TENANCY = "DELETE_TENANCY"
    VIEW_TENANCIES = "VIEW_TENANCIES"
    TEST_TENANCY_CONNECTION = "TEST_TENANCY_CONNECTION"
    CREATE_DOMAIN = "CREATE_DOMAIN"
    UPDATE_DOMAIN = "UPDATE_DOMAIN"
    DELETE_DOMAIN = "DELETE_DOMAIN"
    VIEW_DOMAINS = "VIEW_DOMAINS"
    REORDER_SMTP_DOMAINS = "REORDER_SMTP_DOMAINS"
    CHECK_GROUP_SEND_PERMISSION = "CHECK_GROUP_SEND_PERMISSION"


@dataclass(frozen=True)
class AuditLogEntry:
    """Append-only audit record."""
    id: str
    action: AuditAction
    admin_email: str
    target_email: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class RequestContext:
    """Who performed an admin request and from where."""
    admin_email: str
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
