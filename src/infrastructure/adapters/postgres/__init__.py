from .postgres_tenancy_repository import PostgresTenancyRepository
from .postgres_audit_repository import PostgresAuditLogRepository

__all__ = [
    "PostgresTenancyRepository",
    "PostgresAuditLogRepository",
]
