"""PostgreSQL implementation of AuditLogRepository."""

import json
import logging
import uuid
from typing import Any, Dict, List, Optional

from asyncpg import Pool, Record

from src.domain.models.audit_models import AuditAction, AuditLogEntry
from src.domain.ports.audit_repository import AuditLogRepository

logger = logging.getLogger(__name__)


def _entry_from_row(row: Record) -> AuditLogEntry:
    metadata = row['metadata']
    if isinstance(metadata, str):
        metadata = json.loads(metadata)
    return AuditLogEntry(
        id=str(row['id']),
        action=AuditAction(row['action']),
        admin_email=row['admin_email'],
        target_email=row['target_email'],
        ip_address=row['ip_address'],
        user_agent=row['user_agent'],
        metadata=metadata or {},
        created_at=row['created_at']
    )


class PostgresAuditLogRepository(AuditLogRepository):
    """PostgreSQL adapter for the admin audit log."""

    def __init__(self, pool: Pool):
        """
        Initialize repository.

        Args:
            pool: AsyncPG connection pool
        """
        self.pool = pool

    async def append(
        self,
        action: AuditAction,
        admin_email: str,
        target_email: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> AuditLogEntry:
        """Insert audit entry."""
        query = """
            INSERT INTO audit_logs (id, action, admin_email, target_email, ip_address, user_agent, metadata)
            VALUES ($1, $2, $3, $4, $5, $6, $7::jsonb)
            RETURNING id, action, admin_email, target_email, ip_address, user_agent, metadata, created_at
        """

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                query,
                str(uuid.uuid4()),
                action.value,
                admin_email.lower(),
                target_email.lower() if target_email else None,
                ip_address,
                user_agent,
                json.dumps(metadata or {}, default=str)
            )

        entry = _entry_from_row(row)
        logger.info(f"Audit: {action.value} by {entry.admin_email}")
        return entry

    async def list_recent(self, limit: int = 50) -> List[AuditLogEntry]:
        query = """
            SELECT id, action, admin_email, target_email, ip_address, user_agent, metadata, created_at
            FROM audit_logs
            ORDER BY created_at DESC
            LIMIT $1
        """

        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, limit)
            return [_entry_from_row(row) for row in rows]
