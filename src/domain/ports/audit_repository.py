"""Port interface for the append-only audit log."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from src.domain.models.audit_models import AuditAction, AuditLogEntry


class AuditLogRepository(ABC):
    """Repository interface for admin audit entries."""

    @abstractmethod
    async def append(
        self,
        action: AuditAction,
        admin_email: str,
        target_email: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AuditLogEntry:
        """
        Append an audit entry.

        Args:
            action: Audited action
            admin_email: Actor email (stored lower-cased)
            target_email: Optional target email (stored lower-cased)
            ip_address: Client IP
            user_agent: Client user agent
            metadata: JSON-serializable details

        Returns:
            The stored entry
        """
        pass

    @abstractmethod
    async def list_recent(self, limit: int = 50) -> List[AuditLogEntry]:
        """Most recent entries first."""
        pass
