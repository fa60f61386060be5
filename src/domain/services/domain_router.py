"""
SMTP Domain Router.

Maps a sender's email domain to its Office tenancy and computes which
Graph capabilities are allowed for that tenancy/domain pair.
"""
import logging
from datetime import datetime, timezone
from typing import List, Union

from src.domain.models.tenancy_models import DomainNotFound, SmtpDomain, TenancyRoute
from src.domain.ports.tenancy_repository import TenancyRepository
from src.domain.services.feature_flags import effective_flags

logger = logging.getLogger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def domain_of(email_or_domain: str) -> str:
    """Lower-cased domain part of an email address (or a bare domain)."""
    value = (email_or_domain or "").strip().lower()
    if "@" in value:
        value = value.rsplit("@", 1)[1]
    return value


def _route_order(domain: SmtpDomain):
    created = domain.created_at or _EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (-domain.priority, created, domain.id)


class SmtpDomainRouter:
    """Resolves sender domains to tenancies using stored SMTP domain records."""

    def __init__(self, tenancy_repository: TenancyRepository):
        """
        Initialize router.

        Args:
            tenancy_repository: Repository for tenancies and domains
        """
        self.repository = tenancy_repository

    async def resolve_tenancy_for_domain(
        self,
        email_domain: str
    ) -> Union[TenancyRoute, DomainNotFound]:
        """
        Find the tenancy that owns ``email_domain``.

        Matching is exact on the lower-cased domain. When several records
        match, the highest priority wins; ties go to the oldest record.
        A disabled tenancy is still returned so the caller can decide.

        Args:
            email_domain: Sender domain (an email address is also accepted)

        Returns:
            TenancyRoute with effective flags, or DomainNotFound
        """
        domain = domain_of(email_domain)
        if not domain:
            return DomainNotFound(domain="")

        try:
            candidates: List[SmtpDomain] = await self.repository.find_domains_for(domain)
            if not candidates:
                logger.debug(f"No SMTP routing for domain '{domain}'")
                return DomainNotFound(domain=domain)

            # Already ordered by the repository; keep the order explicit.
            selected = sorted(candidates, key=_route_order)[0]
            tenancy = await self.repository.get_tenancy(selected.tenancy_id)
        except Exception as e:
            logger.error(f"Error resolving tenancy for domain '{domain}': {e}")
            return DomainNotFound(domain=domain)

        if tenancy is None:
            logger.warning(
                f"SMTP domain '{domain}' references missing tenancy {selected.tenancy_id}"
            )
            return DomainNotFound(domain=domain)

        flags = effective_flags(tenancy, selected)
        if len(candidates) > 1:
            logger.info(
                f"{len(candidates)} records match '{domain}'. "
                f"Selected {selected.id} (priority={selected.priority})"
            )
        if not tenancy.enabled:
            logger.info(f"Domain '{domain}' routes to disabled tenancy '{tenancy.name}'")

        return TenancyRoute(domain=selected, tenancy=tenancy, effective_flags=flags)
