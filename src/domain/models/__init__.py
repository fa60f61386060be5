from .presence_models import (
    Availability,
    PresenceCacheEntry,
    PresenceSnapshot,
    UpstreamPresence,
    clamp_ttl,
    format_presence_activity,
    normalize_email,
    MIN_TTL,
    MAX_TTL,
    DEFAULT_TTL,
)
from .tenancy_models import (
    FlagOverride,
    OfficeTenancy,
    SmtpDomain,
    TenancyRoute,
    DomainNotFound,
    OVERRIDABLE_FLAGS,
    TENANCY_FLAGS,
)
from .audit_models import AuditAction, AuditLogEntry, RequestContext

__all__ = [
    "Availability",
    "PresenceCacheEntry",
    "PresenceSnapshot",
    "UpstreamPresence",
    "clamp_ttl",
    "format_presence_activity",
    "normalize_email",
    "MIN_TTL",
    "MAX_TTL",
    "DEFAULT_TTL",
    "FlagOverride",
    "OfficeTenancy",
    "SmtpDomain",
    "TenancyRoute",
    "DomainNotFound",
    "OVERRIDABLE_FLAGS",
    "TENANCY_FLAGS",
    "AuditAction",
    "AuditLogEntry",
    "RequestContext",
]
