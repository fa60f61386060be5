"""Domain errors for presence lookups and tenancy administration."""

from dataclasses import dataclass
from typing import Dict, Optional


class PresenceError(Exception):
    """Base class for presence lookup failures."""


class UpstreamUnavailable(PresenceError):
    """Graph timed out, returned 5xx, or failed in transport."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundOrForbidden(PresenceError):
    """Graph answered 403/404: the mailbox does not expose the data."""

    def __init__(self, status_code: int):
        super().__init__(f"Mailbox data not available (status {status_code})")
        self.status_code = status_code


class CacheStoreUnavailable(Exception):
    """The presence cache backend could not be reached."""


@dataclass(frozen=True)
class InvalidOverride:
    """A domain override grants a capability its tenancy forbids."""
    field: str
    tenancy_name: Optional[str] = None

    @property
    def message(self) -> str:
        owner = f"tenancy '{self.tenancy_name}'" if self.tenancy_name else "the tenancy"
        return f"{self.field} cannot be enabled because it is disabled for {owner}"


class TenancyValidationError(ValueError):
    """Admin input rejected; ``errors`` maps field names to messages."""

    def __init__(self, errors: Dict[str, str]):
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = dict(errors)


class TenancyNotFound(LookupError):
    """Referenced tenancy does not exist."""


class SmtpDomainNotFound(LookupError):
    """Referenced SMTP domain does not exist."""


class TenancyConflict(ValueError):
    """A tenancy with the same tenant ID already exists."""


class DomainConflict(ValueError):
    """An SMTP domain with the same name already exists."""
