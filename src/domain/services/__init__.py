from .presence_service import PresenceService
from .out_of_office_service import OutOfOfficeService
from .domain_router import SmtpDomainRouter, domain_of
from .tenancy_service import TenancyService
from .group_send_service import GroupSendService

__all__ = [
    "PresenceService",
    "OutOfOfficeService",
    "SmtpDomainRouter",
    "domain_of",
    "TenancyService",
    "GroupSendService",
]
