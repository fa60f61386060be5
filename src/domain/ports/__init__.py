from .presence_cache import PresenceCacheStore
from .presence_provider import PresenceProvider
from .out_of_office_provider import OutOfOfficeProvider
from .tenancy_repository import TenancyRepository
from .audit_repository import AuditLogRepository
from .graph_directory import GraphDirectory

__all__ = [
    "PresenceCacheStore",
    "PresenceProvider",
    "OutOfOfficeProvider",
    "TenancyRepository",
    "AuditLogRepository",
    "GraphDirectory",
]
