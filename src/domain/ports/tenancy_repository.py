"""Port interface for tenancy and SMTP domain configuration."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Tuple

from src.domain.models.tenancy_models import OfficeTenancy, SmtpDomain


class TenancyRepository(ABC):
    """Repository interface for Office tenancies and their SMTP domains."""

    # ============================================
    # TENANCIES
    # ============================================

    @abstractmethod
    async def list_tenancies(self) -> List[OfficeTenancy]:
        """Newest tenancies first."""
        pass

    @abstractmethod
    async def get_tenancy(self, tenancy_id: str) -> Optional[OfficeTenancy]:
        """
        Get tenancy by ID.

        Args:
            tenancy_id: Tenancy ID

        Returns:
            Tenancy or None
        """
        pass

    @abstractmethod
    async def get_tenancy_by_tenant_id(self, tenant_id: str) -> Optional[OfficeTenancy]:
        """Get tenancy by its Azure AD tenant ID."""
        pass

    @abstractmethod
    async def create_tenancy(self, tenancy: OfficeTenancy) -> OfficeTenancy:
        """
        Persist a new tenancy.

        Args:
            tenancy: Tenancy with an already-encrypted client secret

        Returns:
            Stored tenancy with timestamps
        """
        pass

    @abstractmethod
    async def update_tenancy(
        self,
        tenancy_id: str,
        changes: Dict[str, Any]
    ) -> Optional[OfficeTenancy]:
        """
        Apply column changes to a tenancy.

        Args:
            tenancy_id: Tenancy ID
            changes: Attribute name -> new value

        Returns:
            Updated tenancy or None if missing
        """
        pass

    @abstractmethod
    async def delete_tenancy(self, tenancy_id: str) -> Optional[int]:
        """
        Delete a tenancy and, by cascade, its domains.

        Returns:
            Number of domains deleted, or None if the tenancy did not exist
        """
        pass

    # ============================================
    # SMTP DOMAINS
    # ============================================

    @abstractmethod
    async def list_domains(self, tenancy_id: Optional[str] = None) -> List[SmtpDomain]:
        """Newest domains first, optionally filtered by tenancy."""
        pass

    @abstractmethod
    async def get_domain(self, domain_id: str) -> Optional[SmtpDomain]:
        """Get domain by ID."""
        pass

    @abstractmethod
    async def get_domain_by_name(self, domain: str) -> Optional[SmtpDomain]:
        """Get domain by its lower-cased name."""
        pass

    @abstractmethod
    async def find_domains_for(self, domain: str) -> List[SmtpDomain]:
        """
        Get every domain record matching a literal domain.

        Ordered by priority (descending), then creation time and ID.

        Args:
            domain: Lower-cased domain

        Returns:
            Matching records, best first
        """
        pass

    @abstractmethod
    async def create_domain(self, domain: SmtpDomain) -> SmtpDomain:
        """Persist a new domain."""
        pass

    @abstractmethod
    async def update_domain(
        self,
        domain_id: str,
        changes: Dict[str, Any]
    ) -> Optional[SmtpDomain]:
        """Apply column changes to a domain. None if missing."""
        pass

    @abstractmethod
    async def delete_domain(self, domain_id: str) -> bool:
        """Delete domain. True if deleted."""
        pass

    @abstractmethod
    async def update_priorities(self, priorities: Sequence[Tuple[str, int]]) -> int:
        """
        Set priorities for several domains at once.

        Args:
            priorities: (domain_id, priority) pairs

        Returns:
            Number of domains updated
        """
        pass
