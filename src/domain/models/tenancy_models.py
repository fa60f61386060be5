"""Domain models for Office 365 tenancies and SMTP domain routing."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Optional


# Flags a domain may override. enable_group_send_check is tenancy-only.
OVERRIDABLE_FLAGS = (
    "enable_presence",
    "enable_photos",
    "enable_out_of_office",
    "enable_local_groups",
    "enable_global_groups",
)

TENANCY_FLAGS = OVERRIDABLE_FLAGS + ("enable_group_send_check",)

# Wire names used by the admin API.
FLAG_FIELD_NAMES = {
    "enable_presence": "enablePresence",
    "enable_photos": "enablePhotos",
    "enable_out_of_office": "enableOutOfOffice",
    "enable_local_groups": "enableLocalGroups",
    "enable_global_groups": "enableGlobalGroups",
    "enable_group_send_check": "enableGroupSendCheck",
}


class FlagOverride(str, Enum):
    """Per-domain override of a tenancy capability flag."""
    INHERIT = "inherit"
    ENABLED = "enabled"
    DISABLED = "disabled"

    @classmethod
    def from_nullable(cls, value: Optional[bool]) -> "FlagOverride":
        if value is None:
            return cls.INHERIT
        return cls.ENABLED if value else cls.DISABLED

    def to_nullable(self) -> Optional[bool]:
        if self is FlagOverride.INHERIT:
            return None
        return self is FlagOverride.ENABLED


@dataclass(frozen=True)
class OfficeTenancy:
    """
    Office 365 tenancy with Graph credentials and capability ceilings.

    Attributes:
        id: Unique identifier
        name: Display name
        tenant_id: Azure AD tenant UUID (immutable)
        client_id: App registration client UUID (immutable)
        client_secret: Encrypted client secret (never returned by the API)
        enabled: Tenancy-wide kill switch
        enable_*: Capability ceilings for every domain of the tenancy
        created_by: Email of the admin who created the tenancy
    """
    id: str
    name: str
    tenant_id: str
    client_id: str
    client_secret: str
    enabled: bool = True
    enable_presence: bool = True
    enable_photos: bool = True
    enable_out_of_office: bool = True
    enable_local_groups: bool = False
    enable_global_groups: bool = False
    enable_group_send_check: bool = False
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def flag(self, name: str) -> bool:
        return bool(getattr(self, name))


@dataclass(frozen=True)
class SmtpDomain:
    """
    SMTP domain routed to a tenancy.

    Attributes:
        id: Unique identifier
        domain: Lower-cased domain without ``@``
        tenancy_id: Parent tenancy
        priority: Higher values are checked first
        enable_*: Tri-state overrides of the tenancy flags
    """
    id: str
    domain: str
    tenancy_id: str
    priority: int = 0
    enable_presence: FlagOverride = FlagOverride.INHERIT
    enable_photos: FlagOverride = FlagOverride.INHERIT
    enable_out_of_office: FlagOverride = FlagOverride.INHERIT
    enable_local_groups: FlagOverride = FlagOverride.INHERIT
    enable_global_groups: FlagOverride = FlagOverride.INHERIT
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def override(self, name: str) -> FlagOverride:
        return getattr(self, name)

    def overrides(self) -> Dict[str, FlagOverride]:
        return {name: self.override(name) for name in OVERRIDABLE_FLAGS}


@dataclass(frozen=True)
class TenancyRoute:
    """Result of routing a sender domain to its tenancy."""
    domain: SmtpDomain
    tenancy: OfficeTenancy
    effective_flags: Dict[str, bool] = field(default_factory=dict)

    @property
    def enabled(self) -> bool:
        return self.tenancy.enabled

    def allows(self, flag: str) -> bool:
        """Whether ``flag`` is on for this route and the tenancy is enabled."""
        if flag == "enable_group_send_check":
            return self.enabled and self.tenancy.enable_group_send_check
        return self.enabled and self.effective_flags.get(flag, False)


@dataclass(frozen=True)
class DomainNotFound:
    """No SMTP routing entry exists for a sender domain."""
    domain: str
